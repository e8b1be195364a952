"""
Score aggregation for a registration's catches.
"""
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Iterable

from trickfish.domain.models import Capture, Registration
from trickfish.domain.quota import is_countable
from trickfish.domain.rules import QUOTA_MAX, ZERO


@dataclass(frozen=True)
class ScoreResult:
    total: Decimal
    fish_count: int


def compute_score(captures: Iterable[Capture], maximum: int = QUOTA_MAX) -> ScoreResult:
    """
    Sum final sizes of countable catches in stored (creation) order, stopping
    at the quota. Captures are not sorted by size first.
    """
    total = ZERO
    count = 0
    for capture in captures:
        if capture.deleted_at is not None:
            continue
        if is_countable(capture) and count < maximum:
            total += capture.final_size
            count += 1
    return ScoreResult(total=total, fish_count=count)


def apply_score(registration: Registration, captures: Iterable[Capture]) -> Registration:
    """Return the registration with its stored total and count recomputed."""
    result = compute_score(captures)
    return replace(registration, total_score=result.total, fish_count=result.fish_count)


def largest_countable(captures: Iterable[Capture]) -> Decimal:
    """Largest final size among countable catches, 0 if none."""
    sizes = [c.final_size for c in captures if c.deleted_at is None and is_countable(c)]
    return max(sizes) if sizes else ZERO
