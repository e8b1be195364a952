"""
Competitor Service

Registration, profile updates, bans and soft deletion of anglers.
"""
import logging
from dataclasses import replace
from datetime import datetime
from typing import Optional, Tuple

from trickfish.domain.clock import to_naive_utc
from trickfish.domain.eligibility import can_compete
from trickfish.domain.models import Competitor
from trickfish.domain.rules import require_known_fields
from trickfish.errors import ValidationError, ConflictError, NotFoundError, ErrorCode
from trickfish.repositories.base import TournamentRepository

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = frozenset({
    "name", "email", "phone", "city", "state", "license_number", "license_expires_at",
})


def _require_text(value: Optional[str], field: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field} is required", code=ErrorCode.MISSING_FIELD,
                              details={"field": field})
    return str(value).strip()


class CompetitorService:
    """Competitor management backed by a tournament repository."""

    def __init__(self, repo: TournamentRepository):
        self.repo = repo

    async def get(self, competitor_id: int, lock: bool = False) -> Competitor:
        competitor = await self.repo.get_competitor(competitor_id, lock=lock)
        if competitor is None:
            raise NotFoundError("Competitor", competitor_id)
        return competitor

    async def register_competitor(
        self,
        name: str,
        email: str,
        license_number: Optional[str] = None,
        license_expires_at: Optional[datetime] = None,
        phone: Optional[str] = None,
        city: Optional[str] = None,
        state: Optional[str] = None
    ) -> Competitor:
        """
        Create an active, non-banned competitor.

        Raises:
            ValidationError: name or email missing
            ConflictError: e-mail already in use
        """
        name = _require_text(name, "name")
        email = _require_text(email, "email").lower()

        try:
            if await self.repo.find_competitor_by_email(email, include_deleted=True) is not None:
                raise ConflictError(f"Competitor with email '{email}' already exists",
                                    code=ErrorCode.ALREADY_EXISTS, details={"email": email})

            competitor = await self.repo.add_competitor(Competitor(
                id=None,
                name=name,
                email=email,
                license_number=license_number,
                license_expires_at=to_naive_utc(license_expires_at),
                phone=phone,
                city=city,
                state=state,
            ))
            await self.repo.commit()
        except Exception:
            await self.repo.rollback()
            raise

        logger.info(f"Registered competitor {competitor.id} ({email})")
        return competitor

    async def update_competitor(self, competitor_id: int, **changes) -> Competitor:
        """
        Change profile and license fields.

        Ban and activity flags have their own operations and are rejected here.

        Raises:
            ValidationError: unknown field, or name/email blanked
            ConflictError: new e-mail already in use
        """
        require_known_fields(changes, EDITABLE_FIELDS)
        if "name" in changes:
            changes["name"] = _require_text(changes["name"], "name")
        if "email" in changes:
            changes["email"] = _require_text(changes["email"], "email").lower()
        if "license_expires_at" in changes:
            changes["license_expires_at"] = to_naive_utc(changes["license_expires_at"])

        try:
            competitor = await self.get(competitor_id, lock=True)
            email = changes.get("email")
            if email is not None and email != competitor.email:
                if await self.repo.find_competitor_by_email(email, include_deleted=True) is not None:
                    raise ConflictError(f"Competitor with email '{email}' already exists",
                                        code=ErrorCode.ALREADY_EXISTS, details={"email": email})
            competitor = await self.repo.save_competitor(replace(competitor, **changes))
            await self.repo.commit()
        except Exception:
            await self.repo.rollback()
            raise

        logger.info(f"Competitor {competitor_id} updated: {sorted(changes)}")
        return competitor

    async def ban(self, competitor_id: int, reason: str, now: Optional[datetime] = None) -> Competitor:
        reason = _require_text(reason, "reason")
        try:
            competitor = await self.get(competitor_id, lock=True)
            if competitor.banned:
                raise ConflictError("Competitor is already banned", code=ErrorCode.ALREADY_BANNED,
                                    details={"competitor_id": competitor_id})
            competitor = await self.repo.save_competitor(replace(
                competitor, banned=True, ban_reason=reason, banned_at=now or datetime.utcnow()
            ))
            await self.repo.commit()
        except Exception:
            await self.repo.rollback()
            raise

        logger.info(f"Competitor {competitor_id} banned: {reason}")
        return competitor

    async def unban(self, competitor_id: int) -> Competitor:
        try:
            competitor = await self.get(competitor_id, lock=True)
            competitor = await self.repo.save_competitor(replace(
                competitor, banned=False, ban_reason=None, banned_at=None
            ))
            await self.repo.commit()
        except Exception:
            await self.repo.rollback()
            raise

        logger.info(f"Competitor {competitor_id} unbanned")
        return competitor

    async def deactivate(self, competitor_id: int) -> Competitor:
        try:
            competitor = await self.get(competitor_id, lock=True)
            competitor = await self.repo.save_competitor(replace(competitor, active=False))
            await self.repo.commit()
        except Exception:
            await self.repo.rollback()
            raise

        logger.info(f"Competitor {competitor_id} deactivated")
        return competitor

    async def delete(self, competitor_id: int, now: Optional[datetime] = None) -> None:
        """Soft delete. The row stays for historical registrations."""
        try:
            competitor = await self.get(competitor_id, lock=True)
            await self.repo.save_competitor(replace(competitor, deleted_at=now or datetime.utcnow()))
            await self.repo.commit()
        except Exception:
            await self.repo.rollback()
            raise

        logger.info(f"Competitor {competitor_id} deleted")

    async def check_eligibility(self, competitor_id: int, now: Optional[datetime] = None) -> Tuple[bool, str]:
        competitor = await self.get(competitor_id)
        return can_compete(competitor, now)
