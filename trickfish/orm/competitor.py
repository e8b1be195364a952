"""
trickfish/orm/competitor.py
Anglers taking part in the tournament
"""
from sqlalchemy import Column, String, Boolean, DateTime, Text
from sqlalchemy.orm import relationship

from trickfish.orm.base import BaseModel


class CompetitorRecord(BaseModel):
    __tablename__ = "competitors"

    name = Column(String(100), nullable=False)
    email = Column(String(100), nullable=False, unique=True, index=True)
    phone = Column(String(20), nullable=True)
    city = Column(String(100), nullable=True)
    state = Column(String(2), nullable=True)

    license_number = Column(String(50), nullable=True)
    license_expires_at = Column(DateTime, nullable=True)

    active = Column(Boolean, default=True, nullable=False)
    banned = Column(Boolean, default=False, nullable=False)
    ban_reason = Column(Text, nullable=True)
    banned_at = Column(DateTime, nullable=True)

    registrations = relationship("RegistrationRecord", back_populates="competitor")

    def __repr__(self):
        return f"<CompetitorRecord(id={self.id}, email='{self.email}', banned={self.banned})>"
