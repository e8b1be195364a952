"""
Immutable domain values.

Every mutation in the core produces a new value via dataclasses.replace;
persistence lives behind the repository interface.
"""
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from trickfish.domain.enums import Species, PaymentStatus, StageStatus, RankingCategory
from trickfish.domain.rules import ZERO


@dataclass(frozen=True)
class Competitor:
    """A registered angler."""
    id: Optional[int]
    name: str
    email: str
    license_number: Optional[str] = None
    license_expires_at: Optional[datetime] = None
    active: bool = True
    banned: bool = False
    ban_reason: Optional[str] = None
    banned_at: Optional[datetime] = None
    phone: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    created_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


@dataclass(frozen=True)
class Edition:
    """A tournament season grouping stages. At most one is active."""
    id: Optional[int]
    year: int
    name: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    active: bool = True
    created_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None


@dataclass(frozen=True)
class Stage:
    """A single timed tournament event."""
    id: Optional[int]
    name: str
    starts_at: datetime
    capacity: int = 0
    occupied: int = 0
    status: StageStatus = StageStatus.OPEN
    number: int = 1
    location: Optional[str] = None
    entry_fee: Decimal = ZERO
    return_time: str = "16:00"
    edition_id: Optional[int] = None
    rules_text: Optional[str] = None
    created_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None

    @property
    def is_unlimited(self) -> bool:
        return self.capacity == 0

    @property
    def has_free_slot(self) -> bool:
        return self.is_unlimited or self.occupied < self.capacity


@dataclass(frozen=True)
class Registration:
    """A competitor's enrollment in one stage."""
    id: Optional[int]
    stage_id: int
    competitor_id: int
    ruler_id: Optional[int] = None
    payment_status: PaymentStatus = PaymentStatus.PENDING
    entry_fee: Decimal = ZERO
    paid_at: Optional[datetime] = None
    payment_receipt: Optional[str] = None
    eliminated: bool = False
    elimination_reason: Optional[str] = None
    eliminated_at: Optional[datetime] = None
    ruler_returned: bool = False
    ruler_returned_at: Optional[datetime] = None
    total_score: Decimal = ZERO
    fish_count: int = 0
    registered_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None


@dataclass(frozen=True)
class Capture:
    """One video-evidenced catch tied to a registration."""
    id: Optional[int]
    registration_id: int
    species: Species
    original_size: Decimal
    final_size: Decimal
    evidence_ref: str
    captured_at: datetime
    counts_toward_quota: bool = True
    penalty: Decimal = ZERO
    penalty_reason: Optional[str] = None
    validated: bool = False
    validated_by: Optional[str] = None
    validated_at: Optional[datetime] = None
    annulled: bool = False
    annulment_reason: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None

    @property
    def is_valid(self) -> bool:
        """Validated and not annulled."""
        return self.validated and not self.annulled


@dataclass(frozen=True)
class Ruler:
    """A numbered physical measuring ruler owned by a stage."""
    id: Optional[int]
    stage_id: int
    number: int
    available: bool = True
    returned: bool = False
    deleted_at: Optional[datetime] = None


@dataclass(frozen=True)
class RankingEntry:
    """Derived ranking row; rebuildable at any time."""
    stage_id: int
    registration_id: int
    category: RankingCategory
    position: int
    total_score: Decimal = ZERO
    largest_fish: Decimal = ZERO
    fish_count: int = 0
    award: str = ""
    capture_id: Optional[int] = None
    competitor_id: Optional[int] = None


__all__ = [
    "Competitor",
    "Edition",
    "Stage",
    "Registration",
    "Capture",
    "Ruler",
    "RankingEntry",
]
