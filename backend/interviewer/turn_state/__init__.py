from interviewer.turn_state.engine import TurnStateMachine
from interviewer.turn_state.models import TransitionRecord

__all__ = ["TransitionRecord", "TurnStateMachine"]
