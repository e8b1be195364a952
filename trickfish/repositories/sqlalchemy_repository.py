"""
SQLAlchemy async implementation of the tournament repository.

Row locks use with_for_update(); counters and ruler availability use
conditional UPDATE ... WHERE statements checked by row count.
"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import select, update, delete, func, and_, or_
from sqlalchemy.ext.asyncio import AsyncSession

from trickfish.domain.enums import Species, PaymentStatus, StageStatus, RankingCategory
from trickfish.domain.models import Competitor, Edition, Stage, Registration, Capture, Ruler, RankingEntry
from trickfish.orm import (
    CompetitorRecord, EditionRecord, StageRecord, RulerRecord, RegistrationRecord, CaptureRecord,
    RankingEntryRecord
)
from trickfish.errors import NotFoundError
from trickfish.repositories.base import TournamentRepository

logger = logging.getLogger(__name__)


def _dec(value) -> Decimal:
    if value is None:
        return Decimal("0")
    return value if isinstance(value, Decimal) else Decimal(str(value))


# ============================================================================
# Row <-> value mapping
# ============================================================================

def _to_competitor(row: CompetitorRecord) -> Competitor:
    return Competitor(
        id=row.id,
        name=row.name,
        email=row.email,
        license_number=row.license_number,
        license_expires_at=row.license_expires_at,
        active=row.active,
        banned=row.banned,
        ban_reason=row.ban_reason,
        banned_at=row.banned_at,
        phone=row.phone,
        city=row.city,
        state=row.state,
        created_at=row.created_at,
        deleted_at=row.deleted_at,
    )


def _to_edition(row: EditionRecord) -> Edition:
    return Edition(
        id=row.id,
        year=row.year,
        name=row.name,
        description=row.description,
        image_url=row.image_url,
        active=row.active,
        created_at=row.created_at,
        deleted_at=row.deleted_at,
    )


def _to_stage(row: StageRecord) -> Stage:
    return Stage(
        id=row.id,
        name=row.name,
        starts_at=row.starts_at,
        capacity=row.capacity,
        occupied=row.occupied,
        status=StageStatus(row.status),
        number=row.number,
        location=row.location,
        entry_fee=_dec(row.entry_fee),
        return_time=row.return_time,
        edition_id=row.edition_id,
        rules_text=row.rules_text,
        created_at=row.created_at,
        deleted_at=row.deleted_at,
    )


def _to_registration(row: RegistrationRecord) -> Registration:
    return Registration(
        id=row.id,
        stage_id=row.stage_id,
        competitor_id=row.competitor_id,
        ruler_id=row.ruler_id,
        payment_status=PaymentStatus(row.payment_status),
        entry_fee=_dec(row.entry_fee),
        paid_at=row.paid_at,
        payment_receipt=row.payment_receipt,
        eliminated=row.eliminated,
        elimination_reason=row.elimination_reason,
        eliminated_at=row.eliminated_at,
        ruler_returned=row.ruler_returned,
        ruler_returned_at=row.ruler_returned_at,
        total_score=_dec(row.total_score),
        fish_count=row.fish_count,
        registered_at=row.registered_at,
        deleted_at=row.deleted_at,
    )


def _to_capture(row: CaptureRecord) -> Capture:
    return Capture(
        id=row.id,
        registration_id=row.registration_id,
        species=Species(row.species),
        original_size=_dec(row.original_size),
        final_size=_dec(row.final_size),
        evidence_ref=row.evidence_ref,
        captured_at=row.captured_at,
        counts_toward_quota=row.counts_toward_quota,
        penalty=_dec(row.penalty),
        penalty_reason=row.penalty_reason,
        validated=row.validated,
        validated_by=row.validated_by,
        validated_at=row.validated_at,
        annulled=row.annulled,
        annulment_reason=row.annulment_reason,
        notes=row.notes,
        created_at=row.created_at,
        deleted_at=row.deleted_at,
    )


def _to_ruler(row: RulerRecord) -> Ruler:
    return Ruler(
        id=row.id,
        stage_id=row.stage_id,
        number=row.number,
        available=row.available,
        returned=row.returned,
        deleted_at=row.deleted_at,
    )


def _to_ranking_entry(row: RankingEntryRecord) -> RankingEntry:
    return RankingEntry(
        stage_id=row.stage_id,
        registration_id=row.registration_id,
        competitor_id=row.competitor_id,
        capture_id=row.capture_id,
        category=RankingCategory(row.category),
        position=row.position,
        total_score=_dec(row.total_score),
        largest_fish=_dec(row.largest_fish),
        fish_count=row.fish_count,
        award=row.award or "",
    )


def _competitor_fields(value: Competitor) -> dict:
    return {
        "name": value.name,
        "email": value.email,
        "phone": value.phone,
        "city": value.city,
        "state": value.state,
        "license_number": value.license_number,
        "license_expires_at": value.license_expires_at,
        "active": value.active,
        "banned": value.banned,
        "ban_reason": value.ban_reason,
        "banned_at": value.banned_at,
        "deleted_at": value.deleted_at,
    }


def _edition_fields(value: Edition) -> dict:
    return {
        "year": value.year,
        "name": value.name,
        "description": value.description,
        "image_url": value.image_url,
        "active": value.active,
        "deleted_at": value.deleted_at,
    }


def _stage_fields(value: Stage) -> dict:
    return {
        "edition_id": value.edition_id,
        "number": value.number,
        "name": value.name,
        "location": value.location,
        "starts_at": value.starts_at,
        "return_time": value.return_time,
        "entry_fee": value.entry_fee,
        "capacity": value.capacity,
        "status": value.status.value,
        "rules_text": value.rules_text,
        "deleted_at": value.deleted_at,
    }


def _registration_fields(value: Registration) -> dict:
    return {
        "stage_id": value.stage_id,
        "competitor_id": value.competitor_id,
        "ruler_id": value.ruler_id,
        "entry_fee": value.entry_fee,
        "payment_status": value.payment_status.value,
        "paid_at": value.paid_at,
        "payment_receipt": value.payment_receipt,
        "ruler_returned": value.ruler_returned,
        "ruler_returned_at": value.ruler_returned_at,
        "eliminated": value.eliminated,
        "elimination_reason": value.elimination_reason,
        "eliminated_at": value.eliminated_at,
        "total_score": value.total_score,
        "fish_count": value.fish_count,
        "deleted_at": value.deleted_at,
    }


def _capture_fields(value: Capture) -> dict:
    return {
        "registration_id": value.registration_id,
        "species": value.species.value,
        "original_size": value.original_size,
        "final_size": value.final_size,
        "evidence_ref": value.evidence_ref,
        "captured_at": value.captured_at,
        "counts_toward_quota": value.counts_toward_quota,
        "penalty": value.penalty,
        "penalty_reason": value.penalty_reason,
        "validated": value.validated,
        "validated_by": value.validated_by,
        "validated_at": value.validated_at,
        "annulled": value.annulled,
        "annulment_reason": value.annulment_reason,
        "notes": value.notes,
        "deleted_at": value.deleted_at,
    }


def _apply(row, fields: dict) -> None:
    for key, val in fields.items():
        setattr(row, key, val)


class SqlAlchemyTournamentRepository(TournamentRepository):
    """Tournament repository over an AsyncSession."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def commit(self) -> None:
        await self.db.commit()

    async def rollback(self) -> None:
        await self.db.rollback()

    async def _one(self, model, record_id: int, lock: bool = False):
        query = (
            select(model)
            .where(and_(model.id == record_id, model.deleted_at.is_(None)))
            .execution_options(populate_existing=True)
        )
        if lock:
            query = query.with_for_update()
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def _row(self, model, record_id: int):
        row = await self.db.get(model, record_id)
        if row is None:
            raise NotFoundError(model.__tablename__, record_id)
        return row

    # ------------------------------------------------------------------
    # Competitors
    # ------------------------------------------------------------------

    async def get_competitor(self, competitor_id: int, lock: bool = False) -> Optional[Competitor]:
        row = await self._one(CompetitorRecord, competitor_id, lock)
        return _to_competitor(row) if row else None

    async def find_competitor_by_email(self, email: str, include_deleted: bool = False) -> Optional[Competitor]:
        query = select(CompetitorRecord).where(func.lower(CompetitorRecord.email) == email.strip().lower())
        if not include_deleted:
            query = query.where(CompetitorRecord.deleted_at.is_(None))
        result = await self.db.execute(query)
        row = result.scalars().first()
        return _to_competitor(row) if row else None

    async def add_competitor(self, competitor: Competitor) -> Competitor:
        row = CompetitorRecord(**_competitor_fields(competitor))
        self.db.add(row)
        await self.db.flush()
        return _to_competitor(row)

    async def save_competitor(self, competitor: Competitor) -> Competitor:
        row = await self._row(CompetitorRecord, competitor.id)
        _apply(row, _competitor_fields(competitor))
        await self.db.flush()
        return _to_competitor(row)

    # ------------------------------------------------------------------
    # Editions
    # ------------------------------------------------------------------

    async def get_edition(self, edition_id: int, lock: bool = False) -> Optional[Edition]:
        row = await self._one(EditionRecord, edition_id, lock)
        return _to_edition(row) if row else None

    async def find_edition_by_year(self, year: int, include_deleted: bool = False) -> Optional[Edition]:
        query = select(EditionRecord).where(EditionRecord.year == year)
        if not include_deleted:
            query = query.where(EditionRecord.deleted_at.is_(None))
        result = await self.db.execute(query)
        row = result.scalars().first()
        return _to_edition(row) if row else None

    async def list_editions(self) -> List[Edition]:
        result = await self.db.execute(
            select(EditionRecord)
            .where(EditionRecord.deleted_at.is_(None))
            .order_by(EditionRecord.year.desc())
            .execution_options(populate_existing=True)
        )
        return [_to_edition(row) for row in result.scalars().all()]

    async def get_active_edition(self) -> Optional[Edition]:
        result = await self.db.execute(
            select(EditionRecord)
            .where(and_(EditionRecord.active.is_(True), EditionRecord.deleted_at.is_(None)))
            .order_by(EditionRecord.year.desc())
            .execution_options(populate_existing=True)
        )
        row = result.scalars().first()
        return _to_edition(row) if row else None

    async def add_edition(self, edition: Edition) -> Edition:
        row = EditionRecord(**_edition_fields(edition))
        self.db.add(row)
        await self.db.flush()
        return _to_edition(row)

    async def save_edition(self, edition: Edition) -> Edition:
        row = await self._row(EditionRecord, edition.id)
        _apply(row, _edition_fields(edition))
        await self.db.flush()
        return _to_edition(row)

    async def deactivate_other_editions(self, edition_id: Optional[int] = None) -> int:
        query = update(EditionRecord).where(EditionRecord.active.is_(True))
        if edition_id is not None:
            query = query.where(EditionRecord.id != edition_id)
        result = await self.db.execute(
            query
            .values(active=False, updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def get_stage(self, stage_id: int, lock: bool = False) -> Optional[Stage]:
        row = await self._one(StageRecord, stage_id, lock)
        return _to_stage(row) if row else None

    async def add_stage(self, stage: Stage) -> Stage:
        row = StageRecord(occupied=stage.occupied, **_stage_fields(stage))
        self.db.add(row)
        await self.db.flush()
        return _to_stage(row)

    async def save_stage(self, stage: Stage) -> Stage:
        row = await self._row(StageRecord, stage.id)
        _apply(row, _stage_fields(stage))
        await self.db.flush()
        await self.db.refresh(row)
        return _to_stage(row)

    async def list_stages(self, edition_id: Optional[int] = None) -> List[Stage]:
        query = select(StageRecord).where(StageRecord.deleted_at.is_(None))
        if edition_id is not None:
            query = query.where(StageRecord.edition_id == edition_id)
        result = await self.db.execute(
            query
            .order_by(StageRecord.number, StageRecord.starts_at, StageRecord.id)
            .execution_options(populate_existing=True)
        )
        return [_to_stage(row) for row in result.scalars().all()]

    async def reserve_stage_slot(self, stage_id: int) -> bool:
        result = await self.db.execute(
            update(StageRecord)
            .where(
                and_(
                    StageRecord.id == stage_id,
                    StageRecord.deleted_at.is_(None),
                    StageRecord.status == StageStatus.OPEN.value,
                    or_(
                        StageRecord.capacity == 0,
                        StageRecord.occupied < StageRecord.capacity
                    )
                )
            )
            .values(occupied=StageRecord.occupied + 1, updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def release_stage_slot(self, stage_id: int) -> bool:
        result = await self.db.execute(
            update(StageRecord)
            .where(and_(StageRecord.id == stage_id, StageRecord.occupied > 0))
            .values(occupied=StageRecord.occupied - 1, updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    # ------------------------------------------------------------------
    # Registrations
    # ------------------------------------------------------------------

    async def get_registration(self, registration_id: int, lock: bool = False) -> Optional[Registration]:
        row = await self._one(RegistrationRecord, registration_id, lock)
        return _to_registration(row) if row else None

    async def find_registration(self, stage_id: int, competitor_id: int) -> Optional[Registration]:
        result = await self.db.execute(
            select(RegistrationRecord).where(
                and_(
                    RegistrationRecord.stage_id == stage_id,
                    RegistrationRecord.competitor_id == competitor_id,
                    RegistrationRecord.deleted_at.is_(None)
                )
            )
        )
        row = result.scalars().first()
        return _to_registration(row) if row else None

    def _registrations_query(self, stage_id: int, eligible_only: bool = False, without_ruler: bool = False):
        query = select(RegistrationRecord).where(
            and_(
                RegistrationRecord.stage_id == stage_id,
                RegistrationRecord.deleted_at.is_(None)
            )
        )
        if eligible_only:
            query = query.where(
                and_(
                    RegistrationRecord.payment_status == PaymentStatus.PAID.value,
                    RegistrationRecord.eliminated.is_(False)
                )
            )
        if without_ruler:
            query = query.where(RegistrationRecord.ruler_id.is_(None))
        return (
            query
            .order_by(RegistrationRecord.registered_at, RegistrationRecord.id)
            .execution_options(populate_existing=True)
        )

    async def list_registrations(
        self,
        stage_id: int,
        eligible_only: bool = False,
        without_ruler: bool = False
    ) -> List[Registration]:
        result = await self.db.execute(self._registrations_query(stage_id, eligible_only, without_ruler))
        return [_to_registration(row) for row in result.scalars().all()]

    async def add_registration(self, registration: Registration) -> Registration:
        fields = _registration_fields(registration)
        if registration.registered_at is not None:
            fields["registered_at"] = registration.registered_at
        row = RegistrationRecord(**fields)
        self.db.add(row)
        await self.db.flush()
        return _to_registration(row)

    async def save_registration(self, registration: Registration) -> Registration:
        row = await self._row(RegistrationRecord, registration.id)
        _apply(row, _registration_fields(registration))
        await self.db.flush()
        return _to_registration(row)

    async def attach_ruler(self, registration_id: int, ruler_id: int) -> bool:
        result = await self.db.execute(
            update(RegistrationRecord)
            .where(
                and_(
                    RegistrationRecord.id == registration_id,
                    RegistrationRecord.ruler_id.is_(None),
                    RegistrationRecord.deleted_at.is_(None)
                )
            )
            .values(ruler_id=ruler_id, updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    # ------------------------------------------------------------------
    # Captures
    # ------------------------------------------------------------------

    async def get_capture(self, capture_id: int, lock: bool = False) -> Optional[Capture]:
        row = await self._one(CaptureRecord, capture_id, lock)
        return _to_capture(row) if row else None

    async def list_captures(self, registration_id: int) -> List[Capture]:
        result = await self.db.execute(
            select(CaptureRecord)
            .where(
                and_(
                    CaptureRecord.registration_id == registration_id,
                    CaptureRecord.deleted_at.is_(None)
                )
            )
            .order_by(CaptureRecord.id)
            .execution_options(populate_existing=True)
        )
        return [_to_capture(row) for row in result.scalars().all()]

    async def add_capture(self, capture: Capture) -> Capture:
        row = CaptureRecord(**_capture_fields(capture))
        self.db.add(row)
        await self.db.flush()
        return _to_capture(row)

    async def save_capture(self, capture: Capture) -> Capture:
        row = await self._row(CaptureRecord, capture.id)
        _apply(row, _capture_fields(capture))
        await self.db.flush()
        return _to_capture(row)

    async def list_participants(self, stage_id: int) -> List[Tuple[Registration, List[Capture]]]:
        registrations = await self.list_registrations(stage_id, eligible_only=True)
        if not registrations:
            return []

        result = await self.db.execute(
            select(CaptureRecord)
            .where(
                and_(
                    CaptureRecord.registration_id.in_([r.id for r in registrations]),
                    CaptureRecord.deleted_at.is_(None)
                )
            )
            .order_by(CaptureRecord.id)
            .execution_options(populate_existing=True)
        )
        by_registration = {r.id: [] for r in registrations}
        for row in result.scalars().all():
            by_registration[row.registration_id].append(_to_capture(row))

        return [(r, by_registration[r.id]) for r in registrations]

    # ------------------------------------------------------------------
    # Rulers
    # ------------------------------------------------------------------

    async def get_ruler(self, ruler_id: int) -> Optional[Ruler]:
        row = await self._one(RulerRecord, ruler_id)
        return _to_ruler(row) if row else None

    async def list_rulers(self, stage_id: int, available: Optional[bool] = None) -> List[Ruler]:
        query = select(RulerRecord).where(
            and_(RulerRecord.stage_id == stage_id, RulerRecord.deleted_at.is_(None))
        )
        if available is not None:
            query = query.where(RulerRecord.available.is_(available))
        result = await self.db.execute(
            query.order_by(RulerRecord.number).execution_options(populate_existing=True)
        )
        return [_to_ruler(row) for row in result.scalars().all()]

    async def max_ruler_number(self, stage_id: int) -> int:
        # Deleted rulers keep their number reserved (unique per stage)
        result = await self.db.execute(
            select(func.max(RulerRecord.number)).where(RulerRecord.stage_id == stage_id)
        )
        return result.scalar() or 0

    async def add_rulers(self, rulers: Sequence[Ruler]) -> List[Ruler]:
        rows = [
            RulerRecord(stage_id=r.stage_id, number=r.number, available=r.available, returned=r.returned)
            for r in rulers
        ]
        self.db.add_all(rows)
        await self.db.flush()
        return [_to_ruler(row) for row in rows]

    async def save_ruler(self, ruler: Ruler) -> Ruler:
        row = await self._row(RulerRecord, ruler.id)
        _apply(row, {
            "available": ruler.available,
            "returned": ruler.returned,
            "deleted_at": ruler.deleted_at,
        })
        await self.db.flush()
        return _to_ruler(row)

    async def claim_ruler(self, ruler_id: int) -> bool:
        result = await self.db.execute(
            update(RulerRecord)
            .where(
                and_(
                    RulerRecord.id == ruler_id,
                    RulerRecord.available.is_(True),
                    RulerRecord.deleted_at.is_(None)
                )
            )
            .values(available=False, updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def ruler_in_use(self, ruler_id: int) -> bool:
        result = await self.db.execute(
            select(func.count(RegistrationRecord.id)).where(RegistrationRecord.ruler_id == ruler_id)
        )
        return (result.scalar() or 0) > 0

    # ------------------------------------------------------------------
    # Ranking snapshots
    # ------------------------------------------------------------------

    async def replace_ranking(self, stage_id: int, entries: Sequence[RankingEntry]) -> None:
        await self.db.execute(
            delete(RankingEntryRecord)
            .where(RankingEntryRecord.stage_id == stage_id)
            .execution_options(synchronize_session=False)
        )
        self.db.add_all([
            RankingEntryRecord(
                stage_id=entry.stage_id,
                registration_id=entry.registration_id,
                competitor_id=entry.competitor_id,
                capture_id=entry.capture_id,
                category=entry.category.value,
                position=entry.position,
                total_score=entry.total_score,
                largest_fish=entry.largest_fish,
                fish_count=entry.fish_count,
                award=entry.award,
            )
            for entry in entries
        ])
        await self.db.flush()

    async def list_ranking(
        self,
        stage_id: int,
        category: Optional[RankingCategory] = None
    ) -> List[RankingEntry]:
        query = select(RankingEntryRecord).where(RankingEntryRecord.stage_id == stage_id)
        if category is not None:
            query = query.where(RankingEntryRecord.category == RankingCategory.parse(category).value)
        result = await self.db.execute(query.order_by(RankingEntryRecord.id))
        return [_to_ranking_entry(row) for row in result.scalars().all()]

    async def list_rankings(
        self,
        stage_id: Optional[int] = None,
        edition_id: Optional[int] = None,
        competitor_id: Optional[int] = None
    ) -> List[RankingEntry]:
        query = select(RankingEntryRecord)
        if stage_id is not None:
            query = query.where(RankingEntryRecord.stage_id == stage_id)
        if edition_id is not None:
            query = (
                query
                .join(StageRecord, StageRecord.id == RankingEntryRecord.stage_id)
                .where(StageRecord.edition_id == edition_id)
            )
        if competitor_id is not None:
            query = query.where(RankingEntryRecord.competitor_id == competitor_id)
        result = await self.db.execute(
            query.order_by(RankingEntryRecord.position, RankingEntryRecord.stage_id, RankingEntryRecord.id)
        )
        return [_to_ranking_entry(row) for row in result.scalars().all()]
