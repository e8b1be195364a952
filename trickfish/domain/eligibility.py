"""
Eligibility rules for competitors, stages and registrations.

The `can_*` predicates return (allowed, reason); the `require_*` variants raise
EligibilityError carrying the same reason.
"""
from datetime import datetime
from typing import Optional, Tuple

from trickfish.domain.clock import to_naive_utc, utc_now
from trickfish.domain.enums import PaymentStatus, StageStatus
from trickfish.domain.models import Competitor, Stage, Registration
from trickfish.errors import EligibilityError, ErrorCode

REASON_LICENSE_EXPIRED = "Fishing license expired or not provided"
REASON_INACTIVE = "Competitor inactive"
REASON_BANNED = "Competitor banned from the tournament"
REASON_STAGE_CLOSED = "Stage is not open for registrations"
REASON_STAGE_FULL = "Stage has no available slots"
REASON_STAGE_STARTED = "Stage start time has already passed"
REASON_PAYMENT_PENDING = "Payment pending"
REASON_ELIMINATED = "Competitor eliminated"

_REASON_CODES = {
    REASON_LICENSE_EXPIRED: ErrorCode.LICENSE_EXPIRED,
    REASON_INACTIVE: ErrorCode.COMPETITOR_INACTIVE,
    REASON_BANNED: ErrorCode.COMPETITOR_BANNED,
    REASON_STAGE_CLOSED: ErrorCode.STAGE_CLOSED,
    REASON_STAGE_FULL: ErrorCode.STAGE_FULL,
    REASON_STAGE_STARTED: ErrorCode.STAGE_STARTED,
    REASON_PAYMENT_PENDING: ErrorCode.PAYMENT_PENDING,
    REASON_ELIMINATED: ErrorCode.REGISTRATION_ELIMINATED,
}


def license_valid(competitor: Competitor, now: Optional[datetime] = None) -> bool:
    """License expiry must be strictly after now. Aware datetimes are compared in UTC."""
    if competitor.license_expires_at is None:
        return False
    return to_naive_utc(competitor.license_expires_at) > utc_now(now)


def can_compete(competitor: Competitor, now: Optional[datetime] = None) -> Tuple[bool, str]:
    """
    Check whether a competitor may enter stages.

    License is reported first so an expired license is always named, whatever
    the active/banned flags say. Banned or inactive competitors never pass.
    """
    if not license_valid(competitor, now):
        return False, REASON_LICENSE_EXPIRED
    if not competitor.active or competitor.is_deleted:
        return False, REASON_INACTIVE
    if competitor.banned:
        return False, REASON_BANNED
    return True, ""


def can_register(stage: Stage, now: Optional[datetime] = None) -> Tuple[bool, str]:
    """Check whether a stage currently accepts registrations."""
    if stage.status != StageStatus.OPEN:
        return False, REASON_STAGE_CLOSED
    if not stage.has_free_slot:
        return False, REASON_STAGE_FULL
    if utc_now(now) >= to_naive_utc(stage.starts_at):
        return False, REASON_STAGE_STARTED
    return True, ""


def participation_status(registration: Registration) -> Tuple[bool, str]:
    if registration.payment_status != PaymentStatus.PAID:
        return False, REASON_PAYMENT_PENDING
    if registration.eliminated:
        return False, REASON_ELIMINATED
    return True, ""


def can_participate(registration: Registration) -> bool:
    """Paid and not eliminated. Gates catch submission and ranking inclusion."""
    return participation_status(registration)[0]


def _raise(reason: str, **details):
    raise EligibilityError(reason, code=_REASON_CODES.get(reason, ErrorCode.NOT_ELIGIBLE),
                           details=details or None)


def require_can_compete(competitor: Competitor, now: Optional[datetime] = None) -> None:
    allowed, reason = can_compete(competitor, now)
    if not allowed:
        _raise(reason, competitor_id=competitor.id)


def require_can_register(stage: Stage, now: Optional[datetime] = None) -> None:
    allowed, reason = can_register(stage, now)
    if not allowed:
        _raise(reason, stage_id=stage.id)


def require_can_participate(registration: Registration) -> None:
    allowed, reason = participation_status(registration)
    if not allowed:
        _raise(reason, registration_id=registration.id)
