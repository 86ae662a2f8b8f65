"""
FeatureFlags model — singleton row (id=1) holding beta capacity and the
admin-edited scoring config document.
"""
from sqlalchemy import Column, Integer, Float, Boolean, DateTime, JSON
from sqlalchemy.sql import func

from teedclub.database import Base

FEATURE_FLAGS_ID = 1


class FeatureFlags(Base):
    __tablename__ = 'feature_flags'

    id = Column(Integer, primary_key=True, default=FEATURE_FLAGS_ID)
    beta_cap = Column(Integer, nullable=True)
    public_beta_enabled = Column(Boolean, nullable=False, default=False)
    scoring_config = Column(JSON, nullable=True)
    auto_approve_threshold = Column(Float, nullable=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
