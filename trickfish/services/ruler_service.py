"""
Ruler Service

Generation, drawing and return of the numbered measuring rulers of a stage.

The drawing runs under a stage row lock; each pairing is additionally written
with compare-and-swap updates so a ruler can never end up attached to two
registrations, and a failed pairing rolls the whole draw back.
"""
import logging
import random
from dataclasses import replace
from datetime import datetime
from typing import List, Optional, Tuple

from trickfish.config import settings
from trickfish.domain.models import Registration, Ruler, Stage
from trickfish.domain.rulers import generate_rulers, pair_rulers, return_ruler
from trickfish.errors import ConflictError, NotFoundError, ErrorCode
from trickfish.repositories.base import TournamentRepository
from trickfish.state_machines import PaymentStateMachine

logger = logging.getLogger(__name__)


class RulerService:
    """Ruler allocation backed by a tournament repository."""

    def __init__(self, repo: TournamentRepository, rng: Optional[random.Random] = None):
        self.repo = repo
        self.rng = rng

    async def _stage(self, stage_id: int) -> Stage:
        stage = await self.repo.get_stage(stage_id, lock=True)
        if stage is None:
            raise NotFoundError("Stage", stage_id)
        return stage

    async def generate(self, stage_id: int, count: int) -> List[Ruler]:
        """Add `count` available rulers numbered after the stage's highest."""
        try:
            await self._stage(stage_id)
            current_max = await self.repo.max_ruler_number(stage_id)
            rulers = await self.repo.add_rulers(generate_rulers(stage_id, count, current_max))
            await self.repo.commit()
        except Exception:
            await self.repo.rollback()
            raise

        logger.info(f"Generated {len(rulers)} rulers for stage {stage_id} "
                    f"(#{rulers[0].number}-#{rulers[-1].number})")
        return rulers

    async def assign(
        self,
        stage_id: int,
        draw: Optional[str] = None,
        rng: Optional[random.Random] = None
    ) -> List[Tuple[Registration, Ruler]]:
        """
        Give every waiting registration of the stage an available ruler.

        Registrations whose payment was cancelled or refunded do not wait for a
        ruler. Either every waiting registration is paired or none is.

        Raises:
            InsufficientRulersError: fewer available rulers than waiting registrations
            ConflictError: a ruler or registration was taken concurrently
        """
        draw = draw or settings.RULER_DRAW_MODE
        try:
            await self._stage(stage_id)
            waiting = [
                r for r in await self.repo.list_registrations(stage_id, without_ruler=True)
                if r.payment_status not in PaymentStateMachine.RELEASES_SLOT
            ]
            available = await self.repo.list_rulers(stage_id, available=True)

            pairs = pair_rulers(waiting, available, draw=draw, rng=rng or self.rng)

            for registration, ruler in pairs:
                if not await self.repo.claim_ruler(ruler.id):
                    raise ConflictError(f"Ruler #{ruler.number} was taken concurrently",
                                        code=ErrorCode.RULER_ALREADY_ASSIGNED,
                                        details={"ruler_id": ruler.id})
                if not await self.repo.attach_ruler(registration.id, ruler.id):
                    raise ConflictError(f"Registration {registration.id} already has a ruler",
                                        code=ErrorCode.RULER_ALREADY_ASSIGNED,
                                        details={"registration_id": registration.id})
            await self.repo.commit()
        except Exception as e:
            await self.repo.rollback()
            logger.warning(f"Ruler draw failed for stage {stage_id}: {e}")
            raise

        logger.info(f"Assigned {len(pairs)} rulers in stage {stage_id} ({draw} draw)")
        return pairs

    async def return_ruler(self, registration_id: int, now: Optional[datetime] = None) -> Registration:
        """Record the ruler's return. Raises ConflictError if none or already returned."""
        try:
            registration = await self.repo.get_registration(registration_id, lock=True)
            if registration is None:
                raise NotFoundError("Registration", registration_id)
            ruler = None
            if registration.ruler_id is not None:
                ruler = await self.repo.get_ruler(registration.ruler_id)

            registration, ruler = return_ruler(registration, ruler, now=now)
            registration = await self.repo.save_registration(registration)
            if ruler is not None:
                await self.repo.save_ruler(ruler)
            await self.repo.commit()
        except Exception:
            await self.repo.rollback()
            raise

        logger.info(f"Ruler {registration.ruler_id} returned by registration {registration_id}")
        return registration

    async def delete(self, ruler_id: int, now: Optional[datetime] = None) -> None:
        """Soft delete a ruler no registration has ever referenced."""
        try:
            ruler = await self.repo.get_ruler(ruler_id)
            if ruler is None:
                raise NotFoundError("Ruler", ruler_id)
            if await self.repo.ruler_in_use(ruler_id):
                raise ConflictError("Ruler is in use and cannot be deleted", code=ErrorCode.RULER_IN_USE,
                                    details={"ruler_id": ruler_id})
            await self.repo.save_ruler(replace(ruler, available=False, deleted_at=now or datetime.utcnow()))
            await self.repo.commit()
        except Exception:
            await self.repo.rollback()
            raise

        logger.info(f"Ruler {ruler_id} deleted")

    async def list_rulers(self, stage_id: int, available: Optional[bool] = None) -> List[Ruler]:
        return await self.repo.list_rulers(stage_id, available=available)
