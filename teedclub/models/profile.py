"""
Profile model — member profile, source of the profile-completion signal and
of beta access.
"""
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, Float, Text, Boolean, DateTime

from teedclub.database import Base


class Profile(Base):
    __tablename__ = 'profiles'

    id = Column(Text, primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(Text, nullable=False, unique=True)
    display_name = Column(Text, nullable=True)
    bio = Column(Text, nullable=True)
    location = Column(Text, nullable=True)
    handicap = Column(Float, nullable=True)
    favorite_club = Column(Text, nullable=True)
    avatar_url = Column(Text, nullable=True)
    beta_access = Column(Boolean, nullable=False, default=False)
    invite_quota = Column(Integer, nullable=False, default=0)
    invites_used = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
