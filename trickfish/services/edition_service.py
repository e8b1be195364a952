"""
Edition Service

Tournament editions (one per year). At most one edition is active; creating
or updating an edition as active deactivates every other one in the same
transaction.
"""
import logging
from dataclasses import replace
from datetime import datetime
from typing import List, Optional

from trickfish.domain.models import Edition
from trickfish.domain.rules import require_known_fields
from trickfish.errors import ValidationError, ConflictError, NotFoundError, ErrorCode
from trickfish.repositories.base import TournamentRepository

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = frozenset({"year", "name", "description", "image_url", "active"})


def _require_year(year) -> int:
    if isinstance(year, bool) or not isinstance(year, int) or year < 1:
        raise ValidationError("year must be a positive integer", code=ErrorCode.OUT_OF_RANGE,
                              details={"field": "year", "value": year})
    return year


def _require_name(name) -> str:
    if name is None or not str(name).strip():
        raise ValidationError("name is required", code=ErrorCode.MISSING_FIELD,
                              details={"field": "name"})
    return str(name).strip()


class EditionService:
    """Edition management backed by a tournament repository."""

    def __init__(self, repo: TournamentRepository):
        self.repo = repo

    async def get(self, edition_id: int, lock: bool = False) -> Edition:
        edition = await self.repo.get_edition(edition_id, lock=lock)
        if edition is None:
            raise NotFoundError("Edition", edition_id)
        return edition

    async def get_active(self) -> Edition:
        edition = await self.repo.get_active_edition()
        if edition is None:
            raise NotFoundError("Edition", "active")
        return edition

    async def list_editions(self) -> List[Edition]:
        """Most recent year first."""
        return await self.repo.list_editions()

    async def _require_free_year(self, year: int, edition_id: Optional[int] = None) -> None:
        existing = await self.repo.find_edition_by_year(year, include_deleted=True)
        if existing is not None and existing.id != edition_id:
            raise ConflictError(f"Edition for year {year} already exists",
                                code=ErrorCode.ALREADY_EXISTS, details={"year": year})

    async def create_edition(
        self,
        year: int,
        name: str,
        description: Optional[str] = None,
        image_url: Optional[str] = None,
        active: bool = True
    ) -> Edition:
        """
        Create an edition.

        Raises:
            ValidationError: bad year or missing name
            ConflictError: the year already has an edition
        """
        year = _require_year(year)
        name = _require_name(name)

        try:
            await self._require_free_year(year)
            if active:
                await self.repo.deactivate_other_editions()
            edition = await self.repo.add_edition(Edition(
                id=None,
                year=year,
                name=name,
                description=description,
                image_url=image_url,
                active=bool(active),
            ))
            await self.repo.commit()
        except Exception:
            await self.repo.rollback()
            raise

        logger.info(f"Created edition {edition.id} ({year}, active={edition.active})")
        return edition

    async def update_edition(self, edition_id: int, **changes) -> Edition:
        """Change editable fields; unknown fields raise ValidationError."""
        require_known_fields(changes, EDITABLE_FIELDS)
        if "year" in changes:
            changes["year"] = _require_year(changes["year"])
        if "name" in changes:
            changes["name"] = _require_name(changes["name"])
        if "active" in changes:
            changes["active"] = bool(changes["active"])

        try:
            edition = await self.get(edition_id, lock=True)
            if "year" in changes:
                await self._require_free_year(changes["year"], edition_id)
            edition = replace(edition, **changes)
            if edition.active:
                await self.repo.deactivate_other_editions(edition_id)
            edition = await self.repo.save_edition(edition)
            await self.repo.commit()
        except Exception:
            await self.repo.rollback()
            raise

        logger.info(f"Edition {edition_id} updated: {sorted(changes)}")
        return edition

    async def delete(self, edition_id: int, now: Optional[datetime] = None) -> None:
        """Soft delete. Stages keep their edition reference."""
        try:
            edition = await self.get(edition_id, lock=True)
            await self.repo.save_edition(replace(edition, active=False, deleted_at=now or datetime.utcnow()))
            await self.repo.commit()
        except Exception:
            await self.repo.rollback()
            raise

        logger.info(f"Edition {edition_id} deleted")
