"""
WaitlistApplication model — one row per applicant email.

The email is the natural key. Answers and the score breakdown are stored as
submitted/scored; only status (and its timestamps) changes afterwards.
"""
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, Float, Text, DateTime, JSON, Index

from teedclub.database import Base


def _utcnow():
    return datetime.now(timezone.utc)


class WaitlistApplication(Base):
    __tablename__ = 'waitlist_applications'

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(Text, nullable=False, unique=True)        # lowercased
    display_name = Column(Text, default='')
    city_region = Column(Text, default='')
    answers = Column(JSON, nullable=False, default=dict)
    score = Column(Float, nullable=False, default=0.0)       # capped total
    score_breakdown = Column(JSON, nullable=True)            # ScoreBreakdown.to_dict()
    status = Column(Text, nullable=False, default='pending')  # pending/approved/at_capacity/rejected
    referral_count = Column(Integer, nullable=False, default=0)
    referred_by = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        Index('ix_waitlist_status_score', 'status', 'score'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'display_name': self.display_name,
            'city_region': self.city_region,
            'score': self.score,
            'status': self.status,
            'referral_count': self.referral_count,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'approved_at': self.approved_at.isoformat() if self.approved_at else None,
        }
