"""
Shared fixtures: in-memory aiosqlite database, repository, services and a
few ready-made tournament records.
"""
from datetime import datetime, timedelta
from decimal import Decimal
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from trickfish.database import build_engine, build_session_factory, init_db, drop_db, close_db
from trickfish.domain.enums import Species, PaymentStatus
from trickfish.domain.models import Capture, Registration
from trickfish.repositories import SqlAlchemyTournamentRepository
from trickfish.services import (
    CompetitorService, EditionService, StageService, RegistrationService,
    CaptureService, RulerService, RankingService
)

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


# ============================================================================
# Domain builders
# ============================================================================

def make_registration(registration_id: int = 1, **overrides) -> Registration:
    values = dict(
        id=registration_id,
        stage_id=1,
        competitor_id=registration_id,
        payment_status=PaymentStatus.PAID,
        registered_at=datetime(2026, 1, 1, 8, 0) + timedelta(minutes=registration_id),
    )
    values.update(overrides)
    return Registration(**values)


def make_capture(capture_id: int, size, species=Species.BLUE_PEACOCK_BASS, **overrides) -> Capture:
    """A validated, countable capture unless overridden."""
    size = Decimal(str(size))
    values = dict(
        id=capture_id,
        registration_id=1,
        species=species,
        original_size=size,
        final_size=size,
        evidence_ref=f"video-{capture_id}.mp4",
        captured_at=datetime(2026, 1, 1, 9, 0) + timedelta(minutes=capture_id),
        counts_toward_quota=species is not Species.WOLFFISH,
        validated=True,
        validated_by="official-1",
    )
    values.update(overrides)
    return Capture(**values)


# ============================================================================
# Database
# ============================================================================

@pytest_asyncio.fixture
async def engine():
    engine = build_engine(TEST_DATABASE_URL, echo=False)
    await init_db(engine)
    yield engine
    await drop_db(engine)
    await close_db(engine)


@pytest_asyncio.fixture
async def db(engine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = build_session_factory(engine)
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def repo(db):
    return SqlAlchemyTournamentRepository(db)


# ============================================================================
# Services
# ============================================================================

@pytest.fixture
def competitors(repo):
    return CompetitorService(repo)


@pytest.fixture
def editions(repo):
    return EditionService(repo)


@pytest.fixture
def stages(repo):
    return StageService(repo)


@pytest.fixture
def registrations(repo):
    return RegistrationService(repo)


@pytest.fixture
def captures(repo):
    return CaptureService(repo)


@pytest.fixture
def rulers(repo):
    return RulerService(repo)


@pytest.fixture
def rankings(repo):
    return RankingService(repo)


# ============================================================================
# Records
# ============================================================================

@pytest.fixture
def license_expiry():
    return datetime.utcnow() + timedelta(days=365)


@pytest_asyncio.fixture
async def stage(stages):
    return await stages.create_stage(
        name="Etapa Rio Negro",
        starts_at=datetime.utcnow() + timedelta(days=7),
        capacity=10,
        entry_fee=Decimal("150.00"),
        location="Barcelos",
    )


@pytest_asyncio.fixture
async def competitor(competitors, license_expiry):
    return await competitors.register_competitor(
        name="Ana Souza",
        email="ana@example.com",
        license_number="AM-0001",
        license_expires_at=license_expiry,
    )


@pytest_asyncio.fixture
async def make_paid_registration(competitors, registrations, stage, license_expiry):
    """Factory: a new competitor registered in `stage` with payment confirmed."""
    counter = {"n": 0}

    async def _make(stage_id=None):
        counter["n"] += 1
        competitor = await competitors.register_competitor(
            name=f"Angler {counter['n']}",
            email=f"angler{counter['n']}@example.com",
            license_number=f"AM-{counter['n']:04d}",
            license_expires_at=license_expiry,
        )
        registration = await registrations.register(stage_id or stage.id, competitor.id)
        return await registrations.confirm_payment(registration.id, receipt_ref="PIX-123")

    return _make


@pytest_asyncio.fixture
async def paid_registration(make_paid_registration):
    return await make_paid_registration()
