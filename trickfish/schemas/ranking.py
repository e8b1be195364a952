"""
trickfish/schemas/ranking.py
Pydantic schemas for ranking snapshots

Sizes and scores are quantized to 2 decimal places so the canonical JSON,
and therefore the checksum, does not depend on how a value was stored.
"""
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from trickfish.domain.enums import RankingCategory

QUANTIZER_2DP = Decimal("0.01")


class RankingEntryResponse(BaseModel):
    """One ranking row as handed to callers."""
    stage_id: int
    registration_id: int
    competitor_id: Optional[int] = None
    capture_id: Optional[int] = None
    category: RankingCategory
    position: int = Field(..., ge=1)
    total_score: Decimal = Decimal("0")
    largest_fish: Decimal = Decimal("0")
    fish_count: int = Field(0, ge=0)
    award: str = ""

    @field_validator("total_score", "largest_fish")
    @classmethod
    def quantize(cls, v: Decimal) -> Decimal:
        return Decimal(v).quantize(QUANTIZER_2DP, rounding=ROUND_HALF_UP)

    class Config:
        from_attributes = True


class RankingSnapshot(BaseModel):
    """
    Full ranking of a stage with a tamper-evident checksum.

    The checksum covers stage_id and entries only; generated_at is
    informational.
    """
    stage_id: int
    generated_at: datetime
    entries: List[RankingEntryResponse] = []
    checksum: str = ""

    def canonical_payload(self) -> dict:
        return {
            "stage_id": self.stage_id,
            "entries": [entry.model_dump(mode="json") for entry in self.entries],
        }
