"""
Registration Service

Enrollment of competitors into stages and the payment lifecycle.

Slot reservation is a conditional UPDATE on the stage counter, so two
concurrent registrations can never both take the last slot.
"""
import logging
from dataclasses import replace
from datetime import datetime
from typing import List, Optional

from trickfish.domain.clock import utc_now
from trickfish.domain.eligibility import (
    require_can_register, require_can_compete, REASON_STAGE_FULL
)
from trickfish.domain.enums import PaymentStatus
from trickfish.domain.models import Registration
from trickfish.errors import (
    ValidationError, EligibilityError, ConflictError, NotFoundError, ErrorCode
)
from trickfish.repositories.base import TournamentRepository
from trickfish.state_machines import PaymentStateMachine

logger = logging.getLogger(__name__)


class RegistrationService:
    """Registration lifecycle backed by a tournament repository."""

    def __init__(self, repo: TournamentRepository):
        self.repo = repo

    async def get(self, registration_id: int, lock: bool = False) -> Registration:
        registration = await self.repo.get_registration(registration_id, lock=lock)
        if registration is None:
            raise NotFoundError("Registration", registration_id)
        return registration

    async def register(
        self,
        stage_id: int,
        competitor_id: int,
        now: Optional[datetime] = None
    ) -> Registration:
        """
        Enroll a competitor in a stage.

        Raises:
            NotFoundError: stage or competitor missing
            EligibilityError: stage closed/full/started, competitor not eligible
            ConflictError: competitor already registered in the stage
        """
        now = utc_now(now)
        try:
            stage = await self.repo.get_stage(stage_id, lock=True)
            if stage is None:
                raise NotFoundError("Stage", stage_id)
            competitor = await self.repo.get_competitor(competitor_id)
            if competitor is None:
                raise NotFoundError("Competitor", competitor_id)

            require_can_register(stage, now)
            require_can_compete(competitor, now)

            if await self.repo.find_registration(stage_id, competitor_id) is not None:
                raise ConflictError("Competitor already registered in this stage",
                                    code=ErrorCode.ALREADY_REGISTERED,
                                    details={"stage_id": stage_id, "competitor_id": competitor_id})

            if not await self.repo.reserve_stage_slot(stage_id):
                raise EligibilityError(REASON_STAGE_FULL, code=ErrorCode.STAGE_FULL,
                                       details={"stage_id": stage_id})

            registration = await self.repo.add_registration(Registration(
                id=None,
                stage_id=stage_id,
                competitor_id=competitor_id,
                entry_fee=stage.entry_fee,
                registered_at=now,
            ))
            await self.repo.commit()
        except Exception as e:
            await self.repo.rollback()
            logger.warning(f"Registration rejected for competitor {competitor_id} in stage {stage_id}: {e}")
            raise

        logger.info(f"Registration {registration.id} created: competitor {competitor_id} → stage {stage_id}")
        return registration

    async def _move_payment(
        self,
        registration_id: int,
        new_status: PaymentStatus,
        **changes
    ) -> Registration:
        try:
            registration = await self.get(registration_id, lock=True)
            PaymentStateMachine.require_transition(registration.payment_status, new_status)
            registration = await self.repo.save_registration(
                replace(registration, payment_status=new_status, **changes)
            )
            if new_status in PaymentStateMachine.RELEASES_SLOT:
                await self.repo.release_stage_slot(registration.stage_id)
            await self.repo.commit()
        except Exception:
            await self.repo.rollback()
            raise

        logger.info(f"Registration {registration_id} payment → {new_status.value}")
        return registration

    async def confirm_payment(
        self,
        registration_id: int,
        receipt_ref: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> Registration:
        """pendente → pago"""
        return await self._move_payment(
            registration_id,
            PaymentStatus.PAID,
            paid_at=now or datetime.utcnow(),
            payment_receipt=receipt_ref,
        )

    async def cancel(self, registration_id: int) -> Registration:
        """pago → cancelado; frees the stage slot."""
        return await self._move_payment(registration_id, PaymentStatus.CANCELLED)

    async def refund(self, registration_id: int) -> Registration:
        """pago → reembolsado; frees the stage slot."""
        return await self._move_payment(registration_id, PaymentStatus.REFUNDED)

    async def eliminate(
        self,
        registration_id: int,
        reason: str,
        now: Optional[datetime] = None
    ) -> Registration:
        """Terminal: there is no way back from elimination."""
        if reason is None or not str(reason).strip():
            raise ValidationError("reason is required", code=ErrorCode.MISSING_FIELD,
                                  details={"field": "reason"})
        try:
            registration = await self.get(registration_id, lock=True)
            if registration.eliminated:
                raise ConflictError("Registration already eliminated", code=ErrorCode.ALREADY_ELIMINATED,
                                    details={"registration_id": registration_id})
            registration = await self.repo.save_registration(replace(
                registration,
                eliminated=True,
                elimination_reason=str(reason).strip(),
                eliminated_at=now or datetime.utcnow(),
            ))
            await self.repo.commit()
        except Exception:
            await self.repo.rollback()
            raise

        logger.info(f"Registration {registration_id} eliminated: {reason}")
        return registration

    async def list_for_stage(self, stage_id: int, eligible_only: bool = False) -> List[Registration]:
        return await self.repo.list_registrations(stage_id, eligible_only=eligible_only)
