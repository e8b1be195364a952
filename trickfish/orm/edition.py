"""
trickfish/orm/edition.py
Tournament editions (seasons) grouping stages
"""
from sqlalchemy import Column, Integer, String, Boolean, Text
from sqlalchemy.orm import relationship

from trickfish.orm.base import BaseModel


class EditionRecord(BaseModel):
    __tablename__ = "editions"

    year = Column(Integer, nullable=False, unique=True, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    image_url = Column(String(500), nullable=True)
    active = Column(Boolean, default=True, nullable=False, index=True)

    stages = relationship("StageRecord", back_populates="edition", order_by="StageRecord.number")

    def __repr__(self):
        return f"<EditionRecord(id={self.id}, year={self.year}, active={self.active})>"
