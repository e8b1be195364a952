"""
trickfish/errors.py
Centralized error taxonomy for the tournament engine

ERROR STRUCTURE:
{
    "success": false,
    "error": "ErrorType",
    "message": "Human-readable description",
    "code": "UNIQUE_ERROR_CODE",
    "details": {} (optional)
}

Every error is per-operation and recoverable by the caller. None of them is
retried automatically.
"""
from decimal import Decimal
from typing import Optional, Dict, Any

SIZE_QUANTIZER = Decimal("0.01")


class ErrorCode:
    """Unique error codes for machine-readable error handling"""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_CHOICE = "INVALID_CHOICE"
    MISSING_FIELD = "MISSING_FIELD"
    OUT_OF_RANGE = "OUT_OF_RANGE"
    UNKNOWN_FIELD = "UNKNOWN_FIELD"
    BELOW_MINIMUM_SIZE = "BELOW_MINIMUM_SIZE"

    NOT_ELIGIBLE = "NOT_ELIGIBLE"
    COMPETITOR_INACTIVE = "COMPETITOR_INACTIVE"
    COMPETITOR_BANNED = "COMPETITOR_BANNED"
    LICENSE_EXPIRED = "LICENSE_EXPIRED"
    STAGE_CLOSED = "STAGE_CLOSED"
    STAGE_FULL = "STAGE_FULL"
    STAGE_STARTED = "STAGE_STARTED"
    PAYMENT_PENDING = "PAYMENT_PENDING"
    REGISTRATION_ELIMINATED = "REGISTRATION_ELIMINATED"

    CONFLICT = "CONFLICT"
    ALREADY_VALIDATED = "ALREADY_VALIDATED"
    ALREADY_ANNULLED = "ALREADY_ANNULLED"
    ALREADY_REGISTERED = "ALREADY_REGISTERED"
    ALREADY_ELIMINATED = "ALREADY_ELIMINATED"
    ALREADY_BANNED = "ALREADY_BANNED"
    ALREADY_EXISTS = "ALREADY_EXISTS"
    QUOTA_EXCEEDED = "QUOTA_EXCEEDED"
    RULER_NOT_ASSIGNED = "RULER_NOT_ASSIGNED"
    RULER_ALREADY_ASSIGNED = "RULER_ALREADY_ASSIGNED"
    RULER_ALREADY_RETURNED = "RULER_ALREADY_RETURNED"
    RULER_IN_USE = "RULER_IN_USE"
    INSUFFICIENT_RULERS = "INSUFFICIENT_RULERS"
    STATE_TRANSITION_INVALID = "STATE_TRANSITION_INVALID"

    NOT_FOUND = "NOT_FOUND"


class TournamentError(Exception):
    """Base tournament exception with consistent structure"""

    status_code: int = 500
    error: str = "Internal Error"
    default_code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code or self.default_code
        self.details = details
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        result = {
            "success": False,
            "error": self.error,
            "message": self.message,
            "code": self.code
        }
        if self.details:
            result["details"] = self.details
        return result


class ValidationError(TournamentError):
    """400 - Malformed or out-of-range input (unknown species, bad penalty, missing field)"""
    status_code = 400
    error = "Validation Error"
    default_code = ErrorCode.VALIDATION_ERROR


class EligibilityError(TournamentError):
    """403 - Competitor, stage or registration does not currently permit the action"""
    status_code = 403
    error = "Not Eligible"
    default_code = ErrorCode.NOT_ELIGIBLE


class ConflictError(TournamentError):
    """409 - Operation conflicts with current state; caller must re-fetch"""
    status_code = 409
    error = "Conflict"
    default_code = ErrorCode.CONFLICT


class NotFoundError(TournamentError):
    """404 - Referenced entity does not exist (or is soft-deleted)"""
    status_code = 404
    error = "Not Found"
    default_code = ErrorCode.NOT_FOUND

    def __init__(self, resource: str, identifier: Any = None):
        message = f"{resource} not found"
        if identifier is not None:
            message = f"{resource} with id '{identifier}' not found"
        self.resource = resource
        self.identifier = identifier
        super().__init__(message)


class BelowMinimumSizeError(ValidationError):
    """Final size after penalty is under the species minimum."""

    def __init__(self, final_size, minimum):
        self.final_size = final_size
        self.minimum = minimum
        # Sizes reported with two decimals whatever their stored scale
        size_text = str(Decimal(str(final_size)).quantize(SIZE_QUANTIZER))
        minimum_text = str(Decimal(str(minimum)).quantize(SIZE_QUANTIZER))
        super().__init__(
            f"Fish below minimum size after penalty: {size_text} < {minimum_text}",
            code=ErrorCode.BELOW_MINIMUM_SIZE,
            details={"final_size": size_text, "minimum": minimum_text}
        )


class QuotaExceededError(ConflictError):
    """Registration already holds the maximum number of countable catches."""

    def __init__(self, counted: int, maximum: int):
        self.counted = counted
        self.maximum = maximum
        super().__init__(
            f"Fish quota reached ({maximum} peacock bass)",
            code=ErrorCode.QUOTA_EXCEEDED,
            details={"counted": counted, "maximum": maximum}
        )


class InsufficientRulersError(ConflictError):
    """Fewer available rulers than registrations waiting for one."""

    def __init__(self, available: int, required: int):
        self.available = available
        self.required = required
        super().__init__(
            f"Insufficient rulers: {available} available, {required} required. Generate more rulers.",
            code=ErrorCode.INSUFFICIENT_RULERS,
            details={"available": available, "required": required}
        )


class InvalidTransitionError(ConflictError):
    """Requested status change is not allowed from the current status."""

    def __init__(self, entity: str, from_state: str, to_state: str):
        self.entity = entity
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(
            f"Invalid {entity} transition: {from_state} → {to_state}",
            code=ErrorCode.STATE_TRANSITION_INVALID,
            details={"from_state": from_state, "to_state": to_state}
        )
