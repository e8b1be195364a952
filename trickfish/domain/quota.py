"""
Quota policy: which catches count toward the scoring quota.
"""
from typing import Iterable

from trickfish.domain.enums import Species
from trickfish.domain.models import Capture
from trickfish.domain.rules import QUOTA_MAX


def counts_toward_quota_for(species: Species) -> bool:
    """Wolffish is exempt from the quota cap."""
    return Species.parse(species) is not Species.WOLFFISH


def is_countable(capture: Capture) -> bool:
    """Validated, not annulled, and flagged to count toward quota."""
    return capture.is_valid and capture.counts_toward_quota


def intake_quota_used(captures: Iterable[Capture]) -> int:
    """Countable peacock bass catches already held by a registration."""
    return sum(
        1 for capture in captures
        if capture.species.is_peacock_bass
        and is_countable(capture)
        and capture.deleted_at is None
    )


def quota_reached(captures: Iterable[Capture], maximum: int = QUOTA_MAX) -> bool:
    return intake_quota_used(captures) >= maximum
