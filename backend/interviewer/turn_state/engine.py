import logging
from collections import deque
from typing import Callable, List, Optional

from core.state import TurnPhase
from interviewer.errors import TurnTransitionError
from interviewer.turn_lifecycle import CycleGuard
from .models import TransitionRecord
from . import rules

logger = logging.getLogger("turn")

TransitionListener = Callable[[TransitionRecord], None]


class TurnStateMachine:
    """
    Owns the conversation phase for ONE session.
    Every write is synchronous so later handlers see a consistent phase.
    """

    def __init__(self, cycles: Optional[CycleGuard] = None, on_transition: Optional[TransitionListener] = None):
        self.phase: TurnPhase = TurnPhase.IDLE
        self.cycles = cycles or CycleGuard()
        self.waiting_for_response: bool = False
        self.history: deque = deque(maxlen=rules.MAX_HISTORY)
        self._on_transition = on_transition

    # -------------------------
    # CORE TRANSITION
    # -------------------------

    def transition(self, target: TurnPhase, reason: str) -> TransitionRecord:
        current = self.phase
        if not rules.is_allowed(current, target):
            raise TurnTransitionError(current, target, reason)

        self.phase = target
        record = TransitionRecord(source=current, target=target, reason=reason, cycle=self.cycles.current)
        self.history.append(record)
        logger.info("[TURN cycle=%s] %s -> %s | reason=%s", record.cycle, current.value, target.value, reason)

        if self._on_transition is not None:
            self._on_transition(record)
        return record

    def is_in(self, *phases: TurnPhase) -> bool:
        return self.phase in phases

    # -------------------------
    # NAMED TRANSITIONS
    # -------------------------

    def begin_question(self, reason: str = rules.REASON_NEXT_QUESTION) -> TransitionRecord:
        return self.transition(TurnPhase.PLAYING_QUESTION, reason)

    def enter_recording(self, reason: str) -> int:
        """
        Opens a new listening window and returns its cycle.
        """
        cycle = self.cycles.advance(reason)
        self.waiting_for_response = True
        self.transition(TurnPhase.RECORDING, reason)
        return cycle

    def begin_evaluation(self) -> int:
        cycle = self.cycles.advance(rules.REASON_SUBMITTED)
        self.waiting_for_response = False
        self.transition(TurnPhase.EVALUATING, rules.REASON_SUBMITTED)
        return cycle

    def rest(self, reason: str, waiting_for_response: Optional[bool] = None) -> TransitionRecord:
        if waiting_for_response is not None:
            self.waiting_for_response = waiting_for_response
        if self.phase == TurnPhase.IDLE:
            record = TransitionRecord(source=self.phase, target=self.phase, reason=reason, cycle=self.cycles.current)
            self.history.append(record)
            return record
        return self.transition(TurnPhase.IDLE, reason)

    def history_dicts(self) -> List[dict]:
        return [item.to_dict() for item in self.history]
