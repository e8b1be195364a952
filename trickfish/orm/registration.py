"""
trickfish/orm/registration.py
Stage registrations and the catches they own
"""
from datetime import datetime
from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Numeric, Text, ForeignKey,
    CheckConstraint, Index
)
from sqlalchemy.orm import relationship

from trickfish.domain.enums import PaymentStatus
from trickfish.orm.base import BaseModel


class RegistrationRecord(BaseModel):
    __tablename__ = "registrations"

    stage_id = Column(Integer, ForeignKey("stages.id", ondelete="CASCADE"), nullable=False, index=True)
    competitor_id = Column(Integer, ForeignKey("competitors.id"), nullable=False, index=True)
    ruler_id = Column(Integer, ForeignKey("rulers.id"), nullable=True, index=True)

    registered_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    entry_fee = Column(Numeric(10, 2), nullable=False, default=0)
    payment_status = Column(String(20), nullable=False, default=PaymentStatus.PENDING.value, index=True)
    paid_at = Column(DateTime, nullable=True)
    payment_receipt = Column(String(500), nullable=True)

    ruler_returned = Column(Boolean, default=False, nullable=False)
    ruler_returned_at = Column(DateTime, nullable=True)

    eliminated = Column(Boolean, default=False, nullable=False, index=True)
    elimination_reason = Column(Text, nullable=True)
    eliminated_at = Column(DateTime, nullable=True)

    # Aggregates maintained by the score recompute
    total_score = Column(Numeric(10, 2), nullable=False, default=0)
    fish_count = Column(Integer, nullable=False, default=0)

    stage = relationship("StageRecord", back_populates="registrations")
    competitor = relationship("CompetitorRecord", back_populates="registrations")
    ruler = relationship("RulerRecord")
    captures = relationship(
        "CaptureRecord",
        back_populates="registration",
        order_by="CaptureRecord.id"
    )

    __table_args__ = (
        CheckConstraint(
            "payment_status IN ('pendente', 'pago', 'cancelado', 'reembolsado')",
            name="ck_registration_payment_status_valid"
        ),
        CheckConstraint("fish_count >= 0", name="ck_registration_fish_count_non_negative"),
        Index("idx_registration_stage_competitor", "stage_id", "competitor_id"),
    )

    def __repr__(self):
        return (
            f"<RegistrationRecord(id={self.id}, stage_id={self.stage_id}, "
            f"competitor_id={self.competitor_id}, status='{self.payment_status}')>"
        )


class CaptureRecord(BaseModel):
    __tablename__ = "captures"

    registration_id = Column(
        Integer, ForeignKey("registrations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    species = Column(String(30), nullable=False, index=True)
    original_size = Column(Numeric(10, 2), nullable=False)
    final_size = Column(Numeric(10, 2), nullable=False)
    evidence_ref = Column(String(500), nullable=False)
    captured_at = Column(DateTime, nullable=False, index=True)
    counts_toward_quota = Column(Boolean, default=True, nullable=False)

    penalty = Column(Numeric(10, 2), nullable=False, default=0)
    penalty_reason = Column(Text, nullable=True)
    validated = Column(Boolean, default=False, nullable=False, index=True)
    validated_by = Column(String(100), nullable=True)
    validated_at = Column(DateTime, nullable=True)

    annulled = Column(Boolean, default=False, nullable=False, index=True)
    annulment_reason = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)

    registration = relationship("RegistrationRecord", back_populates="captures")

    __table_args__ = (
        CheckConstraint(
            "species IN ('tucunare_azul', 'tucunare_amarelo', 'traira')",
            name="ck_capture_species_valid"
        ),
        CheckConstraint("original_size >= 0", name="ck_capture_original_size_non_negative"),
        CheckConstraint("final_size >= 0", name="ck_capture_final_size_non_negative"),
        CheckConstraint("penalty >= 0 AND penalty <= 3", name="ck_capture_penalty_range"),
    )

    def __repr__(self):
        return (
            f"<CaptureRecord(id={self.id}, species='{self.species}', "
            f"final_size={self.final_size}, validated={self.validated}, annulled={self.annulled})>"
        )
