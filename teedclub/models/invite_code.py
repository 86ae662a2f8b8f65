"""
InviteCode model — shareable codes that admit an applicant immediately.
"""
from sqlalchemy import Column, Integer, Text, Boolean

from teedclub.database import Base


class InviteCode(Base):
    __tablename__ = 'invite_codes'

    code = Column(Text, primary_key=True)
    active = Column(Boolean, nullable=False, default=True)
    uses = Column(Integer, nullable=False, default=0)
    max_uses = Column(Integer, nullable=False, default=1)
    created_by = Column(Text, nullable=True)   # profile id

    @property
    def redeemable(self):
        return bool(self.active) and self.uses < self.max_uses
