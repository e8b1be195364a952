"""
Capture Service

Catch intake, officiating and annulment. Every change to a registration's
catch set recomputes that registration's stored score in the same
transaction.

The registration row is locked before the quota is read, so concurrent
submissions for the same registration are serialized.
"""
import logging
from dataclasses import replace
from datetime import datetime
from typing import List, Optional

from trickfish.domain.captures import (
    new_capture, validate_capture, annul_capture, require_not_annulled
)
from trickfish.domain.models import Capture, Registration
from trickfish.domain.rules import ZERO
from trickfish.domain.scoring import apply_score
from trickfish.errors import NotFoundError
from trickfish.repositories.base import TournamentRepository

logger = logging.getLogger(__name__)


class CaptureService:
    """Capture lifecycle backed by a tournament repository."""

    def __init__(self, repo: TournamentRepository):
        self.repo = repo

    async def _registration(self, registration_id: int) -> Registration:
        registration = await self.repo.get_registration(registration_id, lock=True)
        if registration is None:
            raise NotFoundError("Registration", registration_id)
        return registration

    async def _capture(self, capture_id: int) -> Capture:
        capture = await self.repo.get_capture(capture_id, lock=True)
        if capture is None:
            raise NotFoundError("Capture", capture_id)
        return capture

    async def _recompute(self, registration: Registration) -> Registration:
        captures = await self.repo.list_captures(registration.id)
        return await self.repo.save_registration(apply_score(registration, captures))

    async def submit(
        self,
        registration_id: int,
        species,
        original_size,
        evidence_ref: str,
        captured_at: Optional[datetime] = None,
        notes: Optional[str] = None
    ) -> Capture:
        """
        Record a new, unvalidated catch.

        Raises:
            NotFoundError: registration missing
            EligibilityError: registration not paid or eliminated
            ValidationError: bad species, size or evidence
            QuotaExceededError: peacock bass quota already filled
        """
        try:
            registration = await self._registration(registration_id)
            existing = await self.repo.list_captures(registration_id)
            capture = new_capture(
                registration,
                species,
                original_size,
                evidence_ref,
                captured_at=captured_at,
                existing_captures=existing,
                notes=notes,
            )
            capture = await self.repo.add_capture(capture)
            await self._recompute(registration)
            await self.repo.commit()
        except Exception as e:
            await self.repo.rollback()
            logger.warning(f"Capture rejected for registration {registration_id}: {e}")
            raise

        logger.info(
            f"Capture {capture.id} submitted: registration {registration_id}, "
            f"{capture.species.value} {capture.original_size}cm"
        )
        return capture

    async def validate(
        self,
        capture_id: int,
        validator_id: str,
        penalty=ZERO,
        penalty_reason: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> Capture:
        """
        Validate a catch, applying an optional penalty.

        A below-minimum result raises BelowMinimumSizeError and leaves the
        capture unvalidated.
        """
        try:
            capture = await self._capture(capture_id)
            registration = await self._registration(capture.registration_id)
            capture = await self.repo.save_capture(
                validate_capture(capture, validator_id, penalty, penalty_reason, now=now)
            )
            await self._recompute(registration)
            await self.repo.commit()
        except Exception as e:
            await self.repo.rollback()
            logger.warning(f"Validation rejected for capture {capture_id}: {e}")
            raise

        logger.info(
            f"Capture {capture_id} validated by {capture.validated_by}: "
            f"penalty {capture.penalty}, final size {capture.final_size}"
        )
        return capture

    async def annul(self, capture_id: int, reason: str) -> Capture:
        try:
            capture = await self._capture(capture_id)
            require_not_annulled(capture)
            registration = await self._registration(capture.registration_id)
            capture = await self.repo.save_capture(annul_capture(capture, reason))
            await self._recompute(registration)
            await self.repo.commit()
        except Exception:
            await self.repo.rollback()
            raise

        logger.info(f"Capture {capture_id} annulled: {reason}")
        return capture

    async def delete(self, capture_id: int, now: Optional[datetime] = None) -> None:
        """Soft delete; the registration score drops the catch immediately."""
        try:
            capture = await self._capture(capture_id)
            registration = await self._registration(capture.registration_id)
            await self.repo.save_capture(replace(capture, deleted_at=now or datetime.utcnow()))
            await self._recompute(registration)
            await self.repo.commit()
        except Exception:
            await self.repo.rollback()
            raise

        logger.info(f"Capture {capture_id} deleted")

    async def get(self, capture_id: int) -> Capture:
        capture = await self.repo.get_capture(capture_id)
        if capture is None:
            raise NotFoundError("Capture", capture_id)
        return capture

    async def list_for_registration(self, registration_id: int) -> List[Capture]:
        """Captures in creation order."""
        return await self.repo.list_captures(registration_id)
