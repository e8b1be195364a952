"""
Stage State Machine

State Flow: aberta → em_andamento → finalizada
cancelada is reachable from any status that is not finalizada.
"""
from typing import List

from trickfish.domain.enums import StageStatus
from trickfish.errors import InvalidTransitionError


class StageStateMachine:
    """Transition table for stage status."""

    VALID_TRANSITIONS = {
        StageStatus.OPEN: [StageStatus.IN_PROGRESS, StageStatus.CANCELLED],
        StageStatus.IN_PROGRESS: [StageStatus.FINISHED, StageStatus.CANCELLED],
        StageStatus.FINISHED: [],  # Terminal state
        StageStatus.CANCELLED: [],  # Terminal state
    }

    @classmethod
    def allowed_from(cls, current) -> List[StageStatus]:
        return list(cls.VALID_TRANSITIONS.get(StageStatus.parse(current), []))

    @classmethod
    def is_valid_transition(cls, current, new) -> bool:
        return StageStatus.parse(new) in cls.allowed_from(current)

    @classmethod
    def require_transition(cls, current, new) -> StageStatus:
        current = StageStatus.parse(current)
        new = StageStatus.parse(new)
        if not cls.is_valid_transition(current, new):
            raise InvalidTransitionError("stage", current.value, new.value)
        return new
