"""
Tournament rules: quota, minimum sizes and penalties.

All sizes are centimetres, carried as Decimal.
"""
from decimal import Decimal, InvalidOperation
from typing import Optional

from trickfish.domain.enums import Species
from trickfish.errors import ValidationError, ErrorCode

QUOTA_MAX = 4

MIN_PEACOCK_BASS_SIZE = Decimal("20")

PENALTY_MIN = Decimal("0")
PENALTY_MAX = Decimal("3")

ZERO = Decimal("0")

AWARD_LABELS = {
    1: "1st Lugar",
    2: "2nd Lugar",
    3: "3rd Lugar",
}


def to_size(value, field: str = "size") -> Decimal:
    """Coerce a numeric input to Decimal, rejecting garbage."""
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be numeric", code=ErrorCode.VALIDATION_ERROR,
                              details={"field": field})
    try:
        size = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(f"{field} must be numeric", code=ErrorCode.VALIDATION_ERROR,
                              details={"field": field, "value": str(value)}) from None
    if not size.is_finite():
        raise ValidationError(f"{field} must be finite", code=ErrorCode.VALIDATION_ERROR,
                              details={"field": field, "value": str(value)})
    return size


def minimum_size(species: Species) -> Optional[Decimal]:
    """Minimum final size for a species; None means unconstrained."""
    if Species.parse(species).is_peacock_bass:
        return MIN_PEACOCK_BASS_SIZE
    return None


def final_size(original_size, penalty) -> Decimal:
    """max(0, original - penalty)"""
    size = to_size(original_size, "original_size") - to_size(penalty, "penalty")
    return size if size > ZERO else ZERO


def meets_minimum_size(species: Species, size) -> bool:
    minimum = minimum_size(species)
    if minimum is None:
        return True
    return to_size(size) >= minimum


def validate_penalty(penalty) -> Decimal:
    """Penalty must lie within [PENALTY_MIN, PENALTY_MAX]."""
    value = to_size(penalty, "penalty")
    if value < PENALTY_MIN or value > PENALTY_MAX:
        raise ValidationError(
            f"Penalty must be between {PENALTY_MIN} and {PENALTY_MAX} cm",
            code=ErrorCode.OUT_OF_RANGE,
            details={"field": "penalty", "value": str(value),
                     "min": str(PENALTY_MIN), "max": str(PENALTY_MAX)}
        )
    return value


def award_label(position: int) -> str:
    return AWARD_LABELS.get(position, "")


def species_award_label(species: Species) -> str:
    return f"Largest {Species.parse(species).display_name}"


def require_known_fields(changes: dict, allowed) -> None:
    """Reject update payloads naming fields outside `allowed`."""
    unknown = sorted(set(changes) - set(allowed))
    if unknown:
        raise ValidationError(f"Unknown or read-only fields: {', '.join(unknown)}",
                              code=ErrorCode.UNKNOWN_FIELD,
                              details={"fields": unknown})
