from trickfish.state_machines.payment_state import PaymentStateMachine
from trickfish.state_machines.stage_state import StageStateMachine

__all__ = ["PaymentStateMachine", "StageStateMachine"]
