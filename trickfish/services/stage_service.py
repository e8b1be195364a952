"""
Stage Service

Stage creation and the status lifecycle: aberta → em_andamento → finalizada,
with cancelada reachable from any non-terminal status.
"""
import logging
from dataclasses import replace
from datetime import datetime
from typing import List, Optional, Tuple

from trickfish.domain.clock import to_naive_utc
from trickfish.domain.eligibility import can_register
from trickfish.domain.enums import StageStatus
from trickfish.domain.models import Stage
from trickfish.domain.rules import ZERO, to_size, require_known_fields
from trickfish.errors import ValidationError, NotFoundError, ErrorCode
from trickfish.repositories.base import TournamentRepository
from trickfish.state_machines import StageStateMachine

logger = logging.getLogger(__name__)

# Status and the occupied counter have their own operations
EDITABLE_FIELDS = frozenset({
    "name", "starts_at", "capacity", "entry_fee", "location", "number",
    "return_time", "edition_id", "rules_text",
})


def _require_name(name) -> str:
    if name is None or not str(name).strip():
        raise ValidationError("name is required", code=ErrorCode.MISSING_FIELD,
                              details={"field": "name"})
    return str(name).strip()


def _require_starts_at(starts_at) -> datetime:
    if starts_at is None:
        raise ValidationError("starts_at is required", code=ErrorCode.MISSING_FIELD,
                              details={"field": "starts_at"})
    return to_naive_utc(starts_at)


def _require_capacity(capacity) -> int:
    if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity < 0:
        raise ValidationError("capacity must be an integer >= 0", code=ErrorCode.OUT_OF_RANGE,
                              details={"field": "capacity", "value": capacity})
    return capacity


def _require_fee(entry_fee):
    fee = to_size(entry_fee, "entry_fee")
    if fee < ZERO:
        raise ValidationError("entry_fee must be >= 0", code=ErrorCode.OUT_OF_RANGE,
                              details={"field": "entry_fee", "value": str(fee)})
    return fee


class StageService:
    """Stage management backed by a tournament repository."""

    def __init__(self, repo: TournamentRepository):
        self.repo = repo

    async def get(self, stage_id: int, lock: bool = False) -> Stage:
        stage = await self.repo.get_stage(stage_id, lock=lock)
        if stage is None:
            raise NotFoundError("Stage", stage_id)
        return stage

    async def list_stages(self, edition_id: Optional[int] = None) -> List[Stage]:
        """Stages ordered by number, optionally for one edition."""
        return await self.repo.list_stages(edition_id=edition_id)

    async def _require_edition(self, edition_id: Optional[int]) -> None:
        if edition_id is not None and await self.repo.get_edition(edition_id) is None:
            raise NotFoundError("Edition", edition_id)

    async def create_stage(
        self,
        name: str,
        starts_at: datetime,
        capacity: int = 0,
        entry_fee=ZERO,
        location: Optional[str] = None,
        number: int = 1,
        return_time: str = "16:00",
        edition_id: Optional[int] = None,
        rules_text: Optional[str] = None
    ) -> Stage:
        """
        Create an open stage.

        capacity 0 means unlimited slots. An aware `starts_at` is stored as
        naive UTC.

        Raises:
            ValidationError: bad name, start, capacity or fee
            NotFoundError: `edition_id` names no edition
        """
        name = _require_name(name)
        starts_at = _require_starts_at(starts_at)
        capacity = _require_capacity(capacity)
        fee = _require_fee(entry_fee)

        try:
            await self._require_edition(edition_id)
            stage = await self.repo.add_stage(Stage(
                id=None,
                name=name,
                starts_at=starts_at,
                capacity=capacity,
                entry_fee=fee,
                location=location,
                number=number,
                return_time=return_time,
                edition_id=edition_id,
                rules_text=rules_text,
            ))
            await self.repo.commit()
        except Exception:
            await self.repo.rollback()
            raise

        logger.info(f"Created stage {stage.id} '{stage.name}' (capacity={capacity or 'unlimited'})")
        return stage

    async def update_stage(self, stage_id: int, **changes) -> Stage:
        """
        Change editable stage fields.

        Capacity may not drop below the slots already taken, except to 0
        (unlimited).

        Raises:
            ValidationError: unknown field or bad value
            NotFoundError: stage or edition missing
        """
        require_known_fields(changes, EDITABLE_FIELDS)
        if "name" in changes:
            changes["name"] = _require_name(changes["name"])
        if "starts_at" in changes:
            changes["starts_at"] = _require_starts_at(changes["starts_at"])
        if "capacity" in changes:
            changes["capacity"] = _require_capacity(changes["capacity"])
        if "entry_fee" in changes:
            changes["entry_fee"] = _require_fee(changes["entry_fee"])

        try:
            stage = await self.get(stage_id, lock=True)
            capacity = changes.get("capacity", stage.capacity)
            if capacity != 0 and capacity < stage.occupied:
                raise ValidationError("capacity cannot be lower than occupied slots",
                                      code=ErrorCode.OUT_OF_RANGE,
                                      details={"field": "capacity", "value": capacity,
                                               "occupied": stage.occupied})
            if "edition_id" in changes:
                await self._require_edition(changes["edition_id"])
            stage = await self.repo.save_stage(replace(stage, **changes))
            await self.repo.commit()
        except Exception:
            await self.repo.rollback()
            raise

        logger.info(f"Stage {stage_id} updated: {sorted(changes)}")
        return stage

    async def transition(self, stage_id: int, new_status) -> Stage:
        """Move a stage to `new_status`; illegal moves raise InvalidTransitionError."""
        try:
            stage = await self.get(stage_id, lock=True)
            new_status = StageStateMachine.require_transition(stage.status, new_status)
            stage = await self.repo.save_stage(replace(stage, status=new_status))
            await self.repo.commit()
        except Exception:
            await self.repo.rollback()
            raise

        logger.info(f"Stage {stage_id} moved to {new_status.value}")
        return stage

    async def start(self, stage_id: int) -> Stage:
        return await self.transition(stage_id, StageStatus.IN_PROGRESS)

    async def finish(self, stage_id: int) -> Stage:
        return await self.transition(stage_id, StageStatus.FINISHED)

    async def cancel(self, stage_id: int) -> Stage:
        return await self.transition(stage_id, StageStatus.CANCELLED)

    async def check_registration(self, stage_id: int, now: Optional[datetime] = None) -> Tuple[bool, str]:
        stage = await self.get(stage_id)
        return can_register(stage, now)
