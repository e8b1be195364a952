"""
Repository interface consumed by the tournament services.

Implementations load and store immutable domain values and expose the atomic
primitives the core needs (slot reservation, ruler claiming). Soft-deleted
rows are never returned.
"""
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence, Tuple

from trickfish.domain.enums import RankingCategory
from trickfish.domain.models import Competitor, Edition, Stage, Registration, Capture, Ruler, RankingEntry


class TournamentRepository(ABC):
    """Persistence boundary for the tournament core."""

    # ------------------------------------------------------------------
    # Transaction control
    # ------------------------------------------------------------------

    @abstractmethod
    async def commit(self) -> None:
        ...

    @abstractmethod
    async def rollback(self) -> None:
        ...

    # ------------------------------------------------------------------
    # Competitors
    # ------------------------------------------------------------------

    @abstractmethod
    async def get_competitor(self, competitor_id: int, lock: bool = False) -> Optional[Competitor]:
        ...

    @abstractmethod
    async def find_competitor_by_email(self, email: str, include_deleted: bool = False) -> Optional[Competitor]:
        """Case-insensitive lookup. E-mails stay reserved after a soft delete."""

    @abstractmethod
    async def add_competitor(self, competitor: Competitor) -> Competitor:
        ...

    @abstractmethod
    async def save_competitor(self, competitor: Competitor) -> Competitor:
        ...

    # ------------------------------------------------------------------
    # Editions
    # ------------------------------------------------------------------

    @abstractmethod
    async def get_edition(self, edition_id: int, lock: bool = False) -> Optional[Edition]:
        ...

    @abstractmethod
    async def find_edition_by_year(self, year: int, include_deleted: bool = False) -> Optional[Edition]:
        """Years stay reserved after a soft delete."""

    @abstractmethod
    async def list_editions(self) -> List[Edition]:
        """Editions, most recent year first."""

    @abstractmethod
    async def get_active_edition(self) -> Optional[Edition]:
        ...

    @abstractmethod
    async def add_edition(self, edition: Edition) -> Edition:
        ...

    @abstractmethod
    async def save_edition(self, edition: Edition) -> Edition:
        ...

    @abstractmethod
    async def deactivate_other_editions(self, edition_id: Optional[int] = None) -> int:
        """Mark every active edition except `edition_id` inactive; returns how many changed."""

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    @abstractmethod
    async def get_stage(self, stage_id: int, lock: bool = False) -> Optional[Stage]:
        ...

    @abstractmethod
    async def add_stage(self, stage: Stage) -> Stage:
        ...

    @abstractmethod
    async def save_stage(self, stage: Stage) -> Stage:
        """Persist stage fields. The occupied counter is only moved by the slot methods."""

    @abstractmethod
    async def list_stages(self, edition_id: Optional[int] = None) -> List[Stage]:
        """Stages ordered by number, optionally restricted to one edition."""

    @abstractmethod
    async def reserve_stage_slot(self, stage_id: int) -> bool:
        """Atomically increment `occupied` if the stage is open and not full."""

    @abstractmethod
    async def release_stage_slot(self, stage_id: int) -> bool:
        """Atomically decrement `occupied`, never below zero."""

    # ------------------------------------------------------------------
    # Registrations
    # ------------------------------------------------------------------

    @abstractmethod
    async def get_registration(self, registration_id: int, lock: bool = False) -> Optional[Registration]:
        ...

    @abstractmethod
    async def find_registration(self, stage_id: int, competitor_id: int) -> Optional[Registration]:
        ...

    @abstractmethod
    async def list_registrations(
        self,
        stage_id: int,
        eligible_only: bool = False,
        without_ruler: bool = False
    ) -> List[Registration]:
        """Registrations of a stage in creation order."""

    @abstractmethod
    async def add_registration(self, registration: Registration) -> Registration:
        ...

    @abstractmethod
    async def save_registration(self, registration: Registration) -> Registration:
        ...

    @abstractmethod
    async def attach_ruler(self, registration_id: int, ruler_id: int) -> bool:
        """Atomically set the ruler of a registration that has none."""

    # ------------------------------------------------------------------
    # Captures
    # ------------------------------------------------------------------

    @abstractmethod
    async def get_capture(self, capture_id: int, lock: bool = False) -> Optional[Capture]:
        ...

    @abstractmethod
    async def list_captures(self, registration_id: int) -> List[Capture]:
        """Captures of a registration in creation order."""

    @abstractmethod
    async def add_capture(self, capture: Capture) -> Capture:
        ...

    @abstractmethod
    async def save_capture(self, capture: Capture) -> Capture:
        ...

    @abstractmethod
    async def list_participants(self, stage_id: int) -> List[Tuple[Registration, List[Capture]]]:
        """Eligible registrations of a stage, with their captures, in creation order."""

    # ------------------------------------------------------------------
    # Rulers
    # ------------------------------------------------------------------

    @abstractmethod
    async def get_ruler(self, ruler_id: int) -> Optional[Ruler]:
        ...

    @abstractmethod
    async def list_rulers(self, stage_id: int, available: Optional[bool] = None) -> List[Ruler]:
        """Rulers of a stage ascending by number."""

    @abstractmethod
    async def max_ruler_number(self, stage_id: int) -> int:
        ...

    @abstractmethod
    async def add_rulers(self, rulers: Sequence[Ruler]) -> List[Ruler]:
        ...

    @abstractmethod
    async def save_ruler(self, ruler: Ruler) -> Ruler:
        ...

    @abstractmethod
    async def claim_ruler(self, ruler_id: int) -> bool:
        """Atomically flip an available ruler to unavailable."""

    @abstractmethod
    async def ruler_in_use(self, ruler_id: int) -> bool:
        ...

    # ------------------------------------------------------------------
    # Ranking snapshots
    # ------------------------------------------------------------------

    @abstractmethod
    async def replace_ranking(self, stage_id: int, entries: Sequence[RankingEntry]) -> None:
        """Drop every snapshot row of the stage and store `entries`."""

    @abstractmethod
    async def list_ranking(
        self,
        stage_id: int,
        category: Optional[RankingCategory] = None
    ) -> List[RankingEntry]:
        ...

    @abstractmethod
    async def list_rankings(
        self,
        stage_id: Optional[int] = None,
        edition_id: Optional[int] = None,
        competitor_id: Optional[int] = None
    ) -> List[RankingEntry]:
        """Snapshot rows across stages, ordered by position then stage."""
