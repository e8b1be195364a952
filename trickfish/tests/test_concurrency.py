"""
Concurrency Test Suite

Tests for the conditional UPDATE guards on stage slots and ruler pairing,
and for the all-or-nothing rollback of the services that rely on them.

A concurrent writer is simulated by letting a service read its rows first
and then changing those rows underneath it before it writes.
"""
from dataclasses import replace
from datetime import datetime, timedelta
from unittest.mock import patch

import pytest
import pytest_asyncio

from trickfish.errors import ConflictError, EligibilityError, ErrorCode


@pytest_asyncio.fixture
async def single_slot_stage(stages):
    return await stages.create_stage(
        name="Etapa Lago Azul",
        starts_at=datetime.utcnow() + timedelta(days=7),
        capacity=1,
    )


async def _new_competitor(competitors, license_expiry, n):
    return await competitors.register_competitor(
        name=f"Racer {n}",
        email=f"racer{n}@example.com",
        license_number=f"RC-{n:04d}",
        license_expires_at=license_expiry,
    )


# ============================================================================
# Test Class 1: Repository guards
# ============================================================================

class TestRepositoryGuards:
    """Conditional updates report whether they won."""

    @pytest.mark.asyncio
    async def test_last_slot_reserved_once(self, repo, single_slot_stage):
        assert await repo.reserve_stage_slot(single_slot_stage.id) is True
        assert await repo.reserve_stage_slot(single_slot_stage.id) is False

        stage = await repo.get_stage(single_slot_stage.id)
        assert stage.occupied == 1

    @pytest.mark.asyncio
    async def test_unlimited_stage_always_reserves(self, repo, stages):
        stage = await stages.create_stage(name="Open water", starts_at=datetime.utcnow() + timedelta(days=1))
        for _ in range(3):
            assert await repo.reserve_stage_slot(stage.id) is True
        assert (await repo.get_stage(stage.id)).occupied == 3

    @pytest.mark.asyncio
    async def test_closed_stage_reserves_nothing(self, repo, stages, single_slot_stage):
        await stages.start(single_slot_stage.id)
        assert await repo.reserve_stage_slot(single_slot_stage.id) is False
        assert (await repo.get_stage(single_slot_stage.id)).occupied == 0

    @pytest.mark.asyncio
    async def test_release_never_goes_below_zero(self, repo, single_slot_stage):
        assert await repo.release_stage_slot(single_slot_stage.id) is False
        assert (await repo.get_stage(single_slot_stage.id)).occupied == 0

        assert await repo.reserve_stage_slot(single_slot_stage.id) is True
        assert await repo.release_stage_slot(single_slot_stage.id) is True
        assert await repo.release_stage_slot(single_slot_stage.id) is False
        assert (await repo.get_stage(single_slot_stage.id)).occupied == 0

    @pytest.mark.asyncio
    async def test_ruler_claimed_once(self, repo, rulers, stage):
        ruler, _ = await rulers.generate(stage.id, 2)

        assert await repo.claim_ruler(ruler.id) is True
        assert await repo.claim_ruler(ruler.id) is False
        assert [r.number for r in await repo.list_rulers(stage.id, available=True)] == [2]

    @pytest.mark.asyncio
    async def test_deleted_ruler_cannot_be_claimed(self, repo, rulers, stage):
        ruler, _ = await rulers.generate(stage.id, 2)
        await rulers.delete(ruler.id)
        assert await repo.claim_ruler(ruler.id) is False

    @pytest.mark.asyncio
    async def test_registration_takes_one_ruler(self, repo, rulers, stage, paid_registration):
        first, second = await rulers.generate(stage.id, 2)

        assert await repo.attach_ruler(paid_registration.id, first.id) is True
        assert await repo.attach_ruler(paid_registration.id, second.id) is False

        registration = await repo.get_registration(paid_registration.id)
        assert registration.ruler_id == first.id


# ============================================================================
# Test Class 2: Service rollback on a lost race
# ============================================================================

class TestServiceRaces:
    """A lost conditional update aborts the whole operation."""

    @pytest.mark.asyncio
    async def test_ruler_taken_during_draw_rolls_back(self, repo, rulers, stage, make_paid_registration):
        first_registration = await make_paid_registration()
        second_registration = await make_paid_registration()
        await rulers.generate(stage.id, 3)

        read_rulers = repo.list_rulers

        async def list_then_taken(stage_id, available=None):
            listed = await read_rulers(stage_id, available=available)
            # Another draw grabs the ruler meant for the second registration
            await repo.claim_ruler(listed[1].id)
            return listed

        with patch.object(repo, "list_rulers", new=list_then_taken):
            with pytest.raises(ConflictError) as exc_info:
                await rulers.assign(stage.id, draw="sequential")

        assert exc_info.value.code == ErrorCode.RULER_ALREADY_ASSIGNED
        assert exc_info.value.status_code == 409

        for registration_id in (first_registration.id, second_registration.id):
            assert (await repo.get_registration(registration_id)).ruler_id is None
        assert len(await repo.list_rulers(stage.id, available=True)) == 3

    @pytest.mark.asyncio
    async def test_registration_paired_during_draw_rolls_back(self, repo, rulers, stage, make_paid_registration):
        first_registration = await make_paid_registration()
        await make_paid_registration()
        generated = await rulers.generate(stage.id, 3)

        read_registrations = repo.list_registrations

        async def list_then_paired(stage_id, eligible_only=False, without_ruler=False):
            listed = await read_registrations(stage_id, eligible_only=eligible_only,
                                              without_ruler=without_ruler)
            await repo.attach_ruler(listed[0].id, generated[-1].id)
            return listed

        with patch.object(repo, "list_registrations", new=list_then_paired):
            with pytest.raises(ConflictError) as exc_info:
                await rulers.assign(stage.id, draw="sequential")

        assert exc_info.value.code == ErrorCode.RULER_ALREADY_ASSIGNED
        assert exc_info.value.details == {"registration_id": first_registration.id}
        assert (await repo.get_registration(first_registration.id)).ruler_id is None
        assert len(await repo.list_rulers(stage.id, available=True)) == 3

    @pytest.mark.asyncio
    async def test_draw_succeeds_after_lost_race(self, repo, rulers, stage, make_paid_registration):
        await make_paid_registration()
        await rulers.generate(stage.id, 2)

        read_rulers = repo.list_rulers

        async def list_then_taken(stage_id, available=None):
            listed = await read_rulers(stage_id, available=available)
            await repo.claim_ruler(listed[0].id)
            return listed

        with patch.object(repo, "list_rulers", new=list_then_taken):
            with pytest.raises(ConflictError):
                await rulers.assign(stage.id, draw="sequential")

        pairs = await rulers.assign(stage.id, draw="sequential")
        assert [ruler.number for _, ruler in pairs] == [1]

    @pytest.mark.asyncio
    async def test_last_slot_taken_after_stale_read(self, repo, competitors, registrations,
                                                    single_slot_stage, license_expiry):
        winner = await _new_competitor(competitors, license_expiry, 1)
        loser = await _new_competitor(competitors, license_expiry, 2)
        await registrations.register(single_slot_stage.id, winner.id)

        read_stage = repo.get_stage

        async def stale_stage(stage_id, lock=False):
            # Read taken before the winner's slot was counted
            stage = await read_stage(stage_id, lock=lock)
            return replace(stage, occupied=0)

        with patch.object(repo, "get_stage", new=stale_stage):
            with pytest.raises(EligibilityError) as exc_info:
                await registrations.register(single_slot_stage.id, loser.id)

        assert exc_info.value.code == ErrorCode.STAGE_FULL
        assert (await repo.get_stage(single_slot_stage.id)).occupied == 1
        assert await repo.find_registration(single_slot_stage.id, loser.id) is None

    @pytest.mark.asyncio
    async def test_double_cancel_frees_one_slot(self, repo, registrations, single_slot_stage,
                                                competitors, license_expiry):
        competitor = await _new_competitor(competitors, license_expiry, 3)
        registration = await registrations.register(single_slot_stage.id, competitor.id)
        await registrations.confirm_payment(registration.id)

        await registrations.cancel(registration.id)
        assert (await repo.get_stage(single_slot_stage.id)).occupied == 0

        # A second release for the same stage finds nothing to free
        assert await repo.release_stage_slot(single_slot_stage.id) is False
        assert (await repo.get_stage(single_slot_stage.id)).occupied == 0
