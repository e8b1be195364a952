"""
Capture validation: intake, officiating penalties and annulment.

Each operation takes an immutable Capture and returns a new one, or raises.
"""
import logging
from dataclasses import replace
from datetime import datetime
from typing import Iterable, Optional

from trickfish.domain.clock import to_naive_utc, utc_now
from trickfish.domain.eligibility import require_can_participate
from trickfish.domain.enums import Species
from trickfish.domain.models import Capture, Registration
from trickfish.domain.quota import counts_toward_quota_for, intake_quota_used
from trickfish.domain.rules import (
    QUOTA_MAX, ZERO, to_size, final_size, minimum_size, validate_penalty
)
from trickfish.errors import (
    ValidationError, ConflictError, BelowMinimumSizeError, QuotaExceededError, ErrorCode
)

logger = logging.getLogger(__name__)


def _require_text(value: Optional[str], field: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field} is required", code=ErrorCode.MISSING_FIELD,
                              details={"field": field})
    return str(value).strip()


def new_capture(
    registration: Registration,
    species,
    original_size,
    evidence_ref: str,
    captured_at: Optional[datetime] = None,
    existing_captures: Iterable[Capture] = (),
    notes: Optional[str] = None,
    now: Optional[datetime] = None
) -> Capture:
    """
    Build a new, unvalidated capture for a registration.

    Raises:
        EligibilityError: registration not paid or eliminated
        ValidationError: unknown species, negative size, missing evidence
        QuotaExceededError: peacock bass quota already filled
    """
    require_can_participate(registration)

    species = Species.parse(species)
    size = to_size(original_size, "original_size")
    if size < ZERO:
        raise ValidationError("original_size must be >= 0", code=ErrorCode.OUT_OF_RANGE,
                              details={"field": "original_size", "value": str(size)})
    evidence_ref = _require_text(evidence_ref, "evidence_ref")

    counts = counts_toward_quota_for(species)
    if counts:
        used = intake_quota_used(existing_captures)
        if used >= QUOTA_MAX:
            raise QuotaExceededError(used, QUOTA_MAX)

    return Capture(
        id=None,
        registration_id=registration.id,
        species=species,
        original_size=size,
        final_size=size,
        evidence_ref=evidence_ref,
        captured_at=to_naive_utc(captured_at) or utc_now(now),
        counts_toward_quota=counts,
        notes=notes,
    )


def validate_capture(
    capture: Capture,
    validator_id: str,
    penalty=ZERO,
    penalty_reason: Optional[str] = None,
    now: Optional[datetime] = None
) -> Capture:
    """
    Apply an official's validation with an optional size penalty.

    On a below-minimum result the capture is left untouched and the caller is
    told the computed size and the minimum.
    """
    if capture.validated:
        raise ConflictError("Capture has already been validated", code=ErrorCode.ALREADY_VALIDATED,
                            details={"capture_id": capture.id})
    validator_id = _require_text(validator_id, "validator_id")
    penalty = validate_penalty(penalty)

    size = final_size(capture.original_size, penalty)
    minimum = minimum_size(capture.species)
    if minimum is not None and size < minimum:
        logger.warning(f"Capture {capture.id} below minimum after penalty: {size} < {minimum}")
        raise BelowMinimumSizeError(size, minimum)

    return replace(
        capture,
        validated=True,
        validated_by=validator_id,
        validated_at=utc_now(now),
        penalty=penalty,
        penalty_reason=penalty_reason,
        final_size=size,
    )


def annul_capture(capture: Capture, reason: str) -> Capture:
    """Mark a capture annulled. Works before or after validation."""
    reason = _require_text(reason, "reason")
    return replace(capture, annulled=True, annulment_reason=reason)


def require_not_annulled(capture: Capture) -> None:
    if capture.annulled:
        raise ConflictError("Capture has already been annulled", code=ErrorCode.ALREADY_ANNULLED,
                            details={"capture_id": capture.id})
