"""
Integration tests for editions, record updates, listings across stages and
timezone-aware inputs.
"""
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from trickfish.domain.enums import Species, StageStatus
from trickfish.errors import ValidationError, ConflictError, NotFoundError, ErrorCode

MANAUS = timezone(timedelta(hours=-4))


# ============================================================================
# Test Class 1: Editions
# ============================================================================

class TestEditionService:

    @pytest.mark.asyncio
    async def test_new_active_edition_deactivates_previous(self, editions):
        previous = await editions.create_edition(2025, "Circuito 2025")
        current = await editions.create_edition(2026, "Circuito 2026", description="Rio Negro",
                                                image_url="https://example.com/2026.png")

        assert current.active
        assert current.description == "Rio Negro"
        assert not (await editions.get(previous.id)).active
        assert (await editions.get_active()).id == current.id
        assert [e.year for e in await editions.list_editions()] == [2026, 2025]

    @pytest.mark.asyncio
    async def test_inactive_edition_leaves_active_one(self, editions):
        current = await editions.create_edition(2026, "Circuito 2026")
        draft = await editions.create_edition(2027, "Circuito 2027", active=False)

        assert not draft.active
        assert (await editions.get_active()).id == current.id

    @pytest.mark.asyncio
    async def test_duplicate_year_conflicts(self, editions):
        edition = await editions.create_edition(2026, "Circuito 2026")
        with pytest.raises(ConflictError) as exc_info:
            await editions.create_edition(2026, "Outro")
        assert exc_info.value.code == ErrorCode.ALREADY_EXISTS

        # Year stays reserved after a soft delete
        await editions.delete(edition.id)
        with pytest.raises(ConflictError):
            await editions.create_edition(2026, "Outro")

    @pytest.mark.parametrize("year, name", [(0, "x"), (True, "x"), ("2026", "x"), (2026, "  ")])
    @pytest.mark.asyncio
    async def test_create_validates_input(self, editions, year, name):
        with pytest.raises(ValidationError):
            await editions.create_edition(year, name)

    @pytest.mark.asyncio
    async def test_update_activation_keeps_single_active(self, editions):
        old = await editions.create_edition(2025, "Circuito 2025")
        new = await editions.create_edition(2026, "Circuito 2026")

        reactivated = await editions.update_edition(old.id, active=True, name="Circuito 2025 (reaberto)")
        assert reactivated.active
        assert reactivated.name == "Circuito 2025 (reaberto)"
        assert not (await editions.get(new.id)).active
        assert (await editions.get_active()).id == old.id

    @pytest.mark.asyncio
    async def test_update_to_taken_year_conflicts(self, editions):
        await editions.create_edition(2025, "Circuito 2025")
        edition = await editions.create_edition(2026, "Circuito 2026")

        with pytest.raises(ConflictError):
            await editions.update_edition(edition.id, year=2025)

        unchanged = await editions.update_edition(edition.id, year=2026, description="same year")
        assert unchanged.year == 2026

    @pytest.mark.asyncio
    async def test_update_rejects_unknown_fields(self, editions):
        edition = await editions.create_edition(2026, "Circuito 2026")
        with pytest.raises(ValidationError) as exc_info:
            await editions.update_edition(edition.id, deleted_at=datetime.utcnow())
        assert exc_info.value.code == ErrorCode.UNKNOWN_FIELD

    @pytest.mark.asyncio
    async def test_no_active_edition(self, editions):
        await editions.create_edition(2026, "Circuito 2026", active=False)
        with pytest.raises(NotFoundError):
            await editions.get_active()

    @pytest.mark.asyncio
    async def test_delete_hides_edition(self, editions):
        edition = await editions.create_edition(2026, "Circuito 2026")
        await editions.delete(edition.id)

        with pytest.raises(NotFoundError):
            await editions.get(edition.id)
        assert await editions.list_editions() == []
        with pytest.raises(NotFoundError):
            await editions.get_active()


# ============================================================================
# Test Class 2: Stage edition, regulation and updates
# ============================================================================

class TestStageUpdates:

    @pytest.mark.asyncio
    async def test_stage_keeps_edition_and_regulation(self, stages, editions):
        edition = await editions.create_edition(2026, "Circuito 2026")
        stage = await stages.create_stage(
            name="Etapa Barcelos",
            starts_at=datetime.utcnow() + timedelta(days=3),
            edition_id=edition.id,
            rules_text="Iscas artificiais apenas.",
        )

        stored = await stages.get(stage.id)
        assert stored.edition_id == edition.id
        assert stored.rules_text == "Iscas artificiais apenas."

    @pytest.mark.asyncio
    async def test_unknown_edition_rejected(self, stages):
        with pytest.raises(NotFoundError):
            await stages.create_stage(name="Etapa", starts_at=datetime.utcnow() + timedelta(days=1),
                                      edition_id=999)

    @pytest.mark.asyncio
    async def test_list_stages_by_edition(self, stages, editions, stage):
        edition = await editions.create_edition(2026, "Circuito 2026")
        starts_at = datetime.utcnow() + timedelta(days=10)
        second = await stages.create_stage(name="Etapa 2", starts_at=starts_at, number=2, edition_id=edition.id)
        first = await stages.create_stage(name="Etapa 1", starts_at=starts_at, number=1, edition_id=edition.id)

        assert [s.id for s in await stages.list_stages(edition_id=edition.id)] == [first.id, second.id]
        assert len(await stages.list_stages()) == 3

    @pytest.mark.asyncio
    async def test_update_stage_fields(self, stages, stage):
        updated = await stages.update_stage(
            stage.id,
            name="Etapa Rio Negro (adiada)",
            rules_text="Soltura obrigatória.",
            entry_fee="175.50",
            return_time="17:00",
        )
        assert updated.name == "Etapa Rio Negro (adiada)"
        assert updated.rules_text == "Soltura obrigatória."
        assert updated.entry_fee == Decimal("175.50")
        assert updated.return_time == "17:00"
        assert updated.status == StageStatus.OPEN

    @pytest.mark.asyncio
    async def test_capacity_cannot_drop_below_occupied(self, stages, stage, make_paid_registration):
        await make_paid_registration()
        await make_paid_registration()

        with pytest.raises(ValidationError) as exc_info:
            await stages.update_stage(stage.id, capacity=1)
        assert exc_info.value.details["occupied"] == 2

        assert (await stages.update_stage(stage.id, capacity=2)).capacity == 2
        unlimited = await stages.update_stage(stage.id, capacity=0)
        assert unlimited.is_unlimited
        assert unlimited.occupied == 2

    @pytest.mark.parametrize("field, value", [("occupied", 0), ("status", "finalizada"), ("id", 7)])
    @pytest.mark.asyncio
    async def test_counter_and_status_not_editable(self, stages, stage, field, value):
        with pytest.raises(ValidationError) as exc_info:
            await stages.update_stage(stage.id, **{field: value})
        assert exc_info.value.code == ErrorCode.UNKNOWN_FIELD

    @pytest.mark.asyncio
    async def test_update_missing_stage(self, stages):
        with pytest.raises(NotFoundError):
            await stages.update_stage(999, name="x")

    @pytest.mark.asyncio
    async def test_aware_start_stored_as_utc(self, stages):
        starts_at = datetime(2030, 5, 1, 6, 0, tzinfo=MANAUS)
        stage = await stages.create_stage(name="Etapa Madrugada", starts_at=starts_at)

        stored = await stages.get(stage.id)
        assert stored.starts_at == datetime(2030, 5, 1, 10, 0)
        assert stored.starts_at.tzinfo is None
        assert await stages.check_registration(stage.id, now=datetime(2030, 5, 1, 5, 0, tzinfo=MANAUS)) == (True, "")


# ============================================================================
# Test Class 3: Competitor updates and aware license dates
# ============================================================================

class TestCompetitorUpdates:

    @pytest.mark.asyncio
    async def test_update_profile(self, competitors, competitor):
        updated = await competitors.update_competitor(
            competitor.id, name="Ana S. Souza", phone="92999990000", city="Manaus", state="AM",
            email="Ana.Souza@Example.com",
        )
        assert updated.name == "Ana S. Souza"
        assert updated.city == "Manaus"
        assert updated.email == "ana.souza@example.com"
        assert not updated.banned

    @pytest.mark.asyncio
    async def test_update_to_used_email_conflicts(self, competitors, competitor, license_expiry):
        await competitors.register_competitor(name="Bia", email="bia@example.com",
                                              license_expires_at=license_expiry)
        with pytest.raises(ConflictError) as exc_info:
            await competitors.update_competitor(competitor.id, email="BIA@example.com")
        assert exc_info.value.code == ErrorCode.ALREADY_EXISTS

        same = await competitors.update_competitor(competitor.id, email="ana@example.com")
        assert same.email == "ana@example.com"

    @pytest.mark.parametrize("field", ["banned", "active", "ban_reason", "deleted_at"])
    @pytest.mark.asyncio
    async def test_flags_not_editable(self, competitors, competitor, field):
        with pytest.raises(ValidationError) as exc_info:
            await competitors.update_competitor(competitor.id, **{field: None})
        assert exc_info.value.code == ErrorCode.UNKNOWN_FIELD

    @pytest.mark.asyncio
    async def test_blank_name_rejected(self, competitors, competitor):
        with pytest.raises(ValidationError):
            await competitors.update_competitor(competitor.id, name=" ")

    @pytest.mark.asyncio
    async def test_renewed_license_restores_eligibility(self, competitors, competitor):
        expired = await competitors.update_competitor(
            competitor.id, license_expires_at=datetime.utcnow() - timedelta(days=1)
        )
        assert not (await competitors.check_eligibility(expired.id))[0]

        renewed = await competitors.update_competitor(
            competitor.id, license_expires_at=datetime.now(MANAUS) + timedelta(days=90)
        )
        assert renewed.license_expires_at.tzinfo is None
        assert await competitors.check_eligibility(renewed.id) == (True, "")

    @pytest.mark.asyncio
    async def test_aware_license_and_clock(self, competitors, registrations, stage):
        competitor = await competitors.register_competitor(
            name="Caio", email="caio@example.com",
            license_expires_at=datetime.now(timezone.utc) + timedelta(days=30),
        )
        assert competitor.license_expires_at.tzinfo is None

        registration = await registrations.register(stage.id, competitor.id, now=datetime.now(MANAUS))
        assert registration.registered_at.tzinfo is None


# ============================================================================
# Test Class 4: Rankings across stages
# ============================================================================

class TestRankingListing:

    @pytest.mark.asyncio
    async def test_filters_by_edition_stage_and_competitor(self, stages, editions, captures, rankings,
                                                         stage, make_paid_registration):
        edition = await editions.create_edition(2026, "Circuito 2026")
        river = await stages.create_stage(name="Etapa Rio Negro 2", starts_at=datetime.utcnow() + timedelta(days=9),
                                          number=2, edition_id=edition.id)

        outside = await make_paid_registration()
        inside = await make_paid_registration(stage_id=river.id)
        capture = await captures.submit(inside.id, Species.BLUE_PEACOCK_BASS, Decimal("31"), "video.mp4")
        await captures.validate(capture.id, "official-1")

        await rankings.rebuild(stage.id)
        await rankings.rebuild(river.id)

        by_edition = await rankings.list_rankings(edition_id=edition.id)
        assert by_edition
        assert {entry.stage_id for entry in by_edition} == {river.id}

        by_competitor = await rankings.list_rankings(competitor_id=outside.competitor_id)
        assert by_competitor
        assert {entry.registration_id for entry in by_competitor} == {outside.id}

        assert await rankings.list_rankings(stage_id=stage.id, edition_id=edition.id) == []

        everything = await rankings.list_rankings()
        positions = [entry.position for entry in everything]
        assert positions == sorted(positions)
        assert {entry.stage_id for entry in everything} == {stage.id, river.id}
