"""
trickfish/orm/stage.py
Tournament stages and their numbered rulers
"""
from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Numeric, Text, ForeignKey,
    CheckConstraint, UniqueConstraint, Index
)
from sqlalchemy.orm import relationship

from trickfish.domain.enums import StageStatus
from trickfish.orm.base import BaseModel


class StageRecord(BaseModel):
    __tablename__ = "stages"

    edition_id = Column(Integer, ForeignKey("editions.id", ondelete="SET NULL"), nullable=True, index=True)
    number = Column(Integer, nullable=False, default=1)
    name = Column(String(100), nullable=False)
    location = Column(String(200), nullable=True)
    starts_at = Column(DateTime, nullable=False)
    return_time = Column(String(10), nullable=False, default="16:00")
    entry_fee = Column(Numeric(10, 2), nullable=False, default=0)

    # 0 = unlimited
    capacity = Column(Integer, nullable=False, default=0)
    occupied = Column(Integer, nullable=False, default=0)

    status = Column(String(20), nullable=False, default=StageStatus.OPEN.value, index=True)
    rules_text = Column(Text, nullable=True)

    edition = relationship("EditionRecord", back_populates="stages")
    registrations = relationship("RegistrationRecord", back_populates="stage")
    rulers = relationship("RulerRecord", back_populates="stage", order_by="RulerRecord.number")

    __table_args__ = (
        CheckConstraint("capacity >= 0", name="ck_stage_capacity_non_negative"),
        CheckConstraint("occupied >= 0", name="ck_stage_occupied_non_negative"),
        CheckConstraint(
            "status IN ('aberta', 'em_andamento', 'finalizada', 'cancelada')",
            name="ck_stage_status_valid"
        ),
    )

    def __repr__(self):
        return f"<StageRecord(id={self.id}, name='{self.name}', status='{self.status}')>"


class RulerRecord(BaseModel):
    __tablename__ = "rulers"

    stage_id = Column(Integer, ForeignKey("stages.id", ondelete="CASCADE"), nullable=False, index=True)
    number = Column(Integer, nullable=False)
    available = Column(Boolean, default=True, nullable=False, index=True)
    returned = Column(Boolean, default=False, nullable=False)

    stage = relationship("StageRecord", back_populates="rulers")

    __table_args__ = (
        UniqueConstraint("stage_id", "number", name="uq_ruler_stage_number"),
        CheckConstraint("number >= 1", name="ck_ruler_number_positive"),
        Index("idx_ruler_stage_available", "stage_id", "available"),
    )

    def __repr__(self):
        return f"<RulerRecord(stage_id={self.stage_id}, number={self.number}, available={self.available})>"
