from __future__ import annotations

import logging
from typing import Callable

from core.config import SILENCE_DEBOUNCE_MS
from interviewer.scheduler import Scheduler, TimerHandle, cancel_handle
from interviewer.system_metrics import increment_metric
from interviewer.turn_lifecycle import CycleGuard

logger = logging.getLogger("silence_debounce")


class SilenceDebouncer:
    """
    Re-arms a quiet-interval timer on every transcript update.
    The timer is tagged with the cycle it was armed in and re-validates
    the whole turn state before submitting.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        cycles: CycleGuard,
        on_quiet: Callable[[], None],
        can_submit: Callable[[], bool],
        quiet_ms: int = SILENCE_DEBOUNCE_MS,
    ):
        self._scheduler = scheduler
        self._cycles = cycles
        self._on_quiet = on_quiet
        self._can_submit = can_submit
        self.quiet_ms = quiet_ms
        self._handle: TimerHandle | None = None
        self.armed_cycle: int | None = None

    @property
    def is_armed(self) -> bool:
        return self._handle is not None

    def note_speech(self) -> None:
        self.cancel()
        cycle = self._cycles.current
        self.armed_cycle = cycle
        self._handle = self._scheduler.call_later(self.quiet_ms, lambda: self._fire(cycle))

    def cancel(self) -> None:
        cancel_handle(self._handle)
        self._handle = None
        self.armed_cycle = None

    def _fire(self, cycle: int) -> None:
        if self.armed_cycle == cycle:
            self._handle = None
            self.armed_cycle = None

        if not self._cycles.is_current(cycle) or not self._can_submit():
            # Staleness is expected under races; discard quietly.
            logger.debug("silence timer discarded | armed_cycle=%s current=%s", cycle, self._cycles.current)
            increment_metric("stale_timer_discards")
            return

        logger.info("silence window elapsed | cycle=%s quiet_ms=%s", cycle, self.quiet_ms)
        self._on_quiet()
