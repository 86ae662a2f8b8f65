"""
BagEquipment model — one row per item in a member's bag.
"""
from sqlalchemy import Column, Integer, Text, ForeignKey

from teedclub.database import Base


class BagEquipment(Base):
    __tablename__ = 'bag_equipment'

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Text, ForeignKey('profiles.id'), nullable=False, index=True)
    brand = Column(Text, nullable=True)
    model = Column(Text, nullable=True)
    photo_count = Column(Integer, nullable=False, default=0)
