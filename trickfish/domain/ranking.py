"""
Ranking builder: overall standings and per-species largest-fish awards.

Pure functions over (registration, captures) pairs. Nothing here touches the
authoritative records; persistence of snapshots is the service's job.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, List, Sequence, Tuple

from trickfish.domain.eligibility import can_participate
from trickfish.domain.enums import Species, RankingCategory
from trickfish.domain.models import Capture, Registration, RankingEntry
from trickfish.domain.rules import award_label, species_award_label
from trickfish.domain.scoring import compute_score, largest_countable

Participant = Tuple[Registration, Sequence[Capture]]


@dataclass(frozen=True)
class _Standing:
    registration: Registration
    total: Decimal
    largest_fish: Decimal
    fish_count: int


def eligible(participants: Iterable[Participant]) -> List[Participant]:
    """Keep only registrations that are paid and not eliminated."""
    return [
        (registration, captures) for registration, captures in participants
        if registration.deleted_at is None and can_participate(registration)
    ]


def build_overall_ranking(stage_id: int, participants: Iterable[Participant]) -> List[RankingEntry]:
    """
    Rank eligible registrations by total score, highest first.

    Equal totals keep the order in which participants were supplied; callers
    that need reproducible output pass them in a stable order. Award labels
    attach by position only.
    """
    standings = []
    for registration, captures in eligible(participants):
        score = compute_score(captures)
        standings.append(_Standing(
            registration=registration,
            total=score.total,
            largest_fish=largest_countable(captures),
            fish_count=score.fish_count,
        ))

    # list.sort is stable, reverse included
    standings.sort(key=lambda s: s.total, reverse=True)

    return [
        RankingEntry(
            stage_id=stage_id,
            registration_id=standing.registration.id,
            competitor_id=standing.registration.competitor_id,
            category=RankingCategory.OVERALL,
            position=position,
            total_score=standing.total,
            largest_fish=standing.largest_fish,
            fish_count=standing.fish_count,
            award=award_label(position),
        )
        for position, standing in enumerate(standings, start=1)
    ]


def build_species_ranking(
    stage_id: int,
    species,
    participants: Iterable[Participant]
) -> List[RankingEntry]:
    """
    Zero-or-one entry for the largest valid catch of `species`.

    Ties on size go to the earliest capture time, then the lowest capture id.
    """
    species = Species.parse(species)
    candidates = []
    for registration, captures in eligible(participants):
        for capture in captures:
            if capture.deleted_at is None and capture.species is species and capture.is_valid:
                candidates.append((registration, capture))

    if not candidates:
        return []

    registration, winner = min(
        candidates,
        key=lambda pair: (-pair[1].final_size, pair[1].captured_at, pair[1].id or 0)
    )
    return [RankingEntry(
        stage_id=stage_id,
        registration_id=registration.id,
        competitor_id=registration.competitor_id,
        capture_id=winner.id,
        category=RankingCategory.for_species(species),
        position=1,
        largest_fish=winner.final_size,
        fish_count=1,
        award=species_award_label(species),
    )]


def build_stage_rankings(stage_id: int, participants: Iterable[Participant]) -> List[RankingEntry]:
    """Overall ranking followed by one largest-fish entry per species."""
    participants = list(participants)
    entries = build_overall_ranking(stage_id, participants)
    for species in Species:
        entries.extend(build_species_ranking(stage_id, species, participants))
    return entries
