"""
Ruler allocation: numbering, drawing and return tracking.
"""
import random
from dataclasses import replace
from datetime import datetime
from typing import List, Optional, Sequence, Tuple

from trickfish.domain.models import Registration, Ruler
from trickfish.errors import (
    ValidationError, ConflictError, InsufficientRulersError, ErrorCode
)

DRAW_SEQUENTIAL = "sequential"
DRAW_RANDOM = "random"
DRAW_MODES = (DRAW_SEQUENTIAL, DRAW_RANDOM)


def generate_rulers(stage_id: int, count: int, current_max: int = 0) -> List[Ruler]:
    """New available rulers numbered from current_max + 1."""
    if isinstance(count, bool) or not isinstance(count, int) or count < 1:
        raise ValidationError("count must be a positive integer", code=ErrorCode.OUT_OF_RANGE,
                              details={"field": "count", "value": count})
    start = (current_max or 0) + 1
    return [
        Ruler(id=None, stage_id=stage_id, number=start + offset, available=True, returned=False)
        for offset in range(count)
    ]


def pair_rulers(
    registrations: Sequence[Registration],
    rulers: Sequence[Ruler],
    draw: str = DRAW_SEQUENTIAL,
    rng: Optional[random.Random] = None
) -> List[Tuple[Registration, Ruler]]:
    """
    Pair registrations without a ruler with available rulers.

    `sequential` pairs index-for-index in ascending ruler number. `random`
    shuffles the ascending list first. Nothing is paired unless every
    registration can get a ruler.
    """
    if draw not in DRAW_MODES:
        raise ValidationError(f"Unknown draw mode '{draw}'", code=ErrorCode.INVALID_CHOICE,
                              details={"field": "draw", "value": draw})

    waiting = [r for r in registrations if r.ruler_id is None and r.deleted_at is None]
    pool = sorted(
        (r for r in rulers if r.available and r.deleted_at is None),
        key=lambda r: r.number
    )
    if len(pool) < len(waiting):
        raise InsufficientRulersError(available=len(pool), required=len(waiting))

    if draw == DRAW_RANDOM:
        (rng or random.Random()).shuffle(pool)

    return [
        (replace(registration, ruler_id=ruler.id), replace(ruler, available=False))
        for registration, ruler in zip(waiting, pool)
    ]


def return_ruler(
    registration: Registration,
    ruler: Optional[Ruler],
    now: Optional[datetime] = None
) -> Tuple[Registration, Optional[Ruler]]:
    """
    Record the ruler's return. The ruler stays unavailable; only generation
    adds rulers back to the pool.
    """
    if registration.ruler_id is None:
        raise ConflictError("No ruler assigned to this registration", code=ErrorCode.RULER_NOT_ASSIGNED,
                            details={"registration_id": registration.id})
    if registration.ruler_returned:
        raise ConflictError("Ruler already returned", code=ErrorCode.RULER_ALREADY_RETURNED,
                            details={"registration_id": registration.id})

    returned_registration = replace(
        registration, ruler_returned=True, ruler_returned_at=now or datetime.utcnow()
    )
    returned_ruler = replace(ruler, returned=True) if ruler is not None else None
    return returned_registration, returned_ruler
