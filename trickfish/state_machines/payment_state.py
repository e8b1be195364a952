"""
Registration Payment State Machine

State Flow: pendente → pago → {cancelado, reembolsado}

No transition returns to pendente. Elimination is an orthogonal flag and is
not modelled here.
"""
from typing import List

from trickfish.domain.enums import PaymentStatus
from trickfish.errors import InvalidTransitionError


class PaymentStateMachine:
    """Transition table for registration payment status."""

    VALID_TRANSITIONS = {
        PaymentStatus.PENDING: [PaymentStatus.PAID],
        PaymentStatus.PAID: [PaymentStatus.CANCELLED, PaymentStatus.REFUNDED],
        PaymentStatus.CANCELLED: [],
        PaymentStatus.REFUNDED: [],
    }

    # Statuses that no longer hold a stage slot
    RELEASES_SLOT = [PaymentStatus.CANCELLED, PaymentStatus.REFUNDED]

    @classmethod
    def allowed_from(cls, current) -> List[PaymentStatus]:
        return list(cls.VALID_TRANSITIONS.get(PaymentStatus.parse(current), []))

    @classmethod
    def is_valid_transition(cls, current, new) -> bool:
        return PaymentStatus.parse(new) in cls.allowed_from(current)

    @classmethod
    def require_transition(cls, current, new) -> PaymentStatus:
        current = PaymentStatus.parse(current)
        new = PaymentStatus.parse(new)
        if not cls.is_valid_transition(current, new):
            raise InvalidTransitionError("payment", current.value, new.value)
        return new
