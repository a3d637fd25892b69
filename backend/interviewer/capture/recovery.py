from __future__ import annotations

from dataclasses import dataclass

from core.config import (
    CAPTURE_BACKOFF_CAP_MS,
    CAPTURE_BACKOFF_FLOOR_MS,
    CAPTURE_RESTART_DELAY_MS,
)

# Engine error codes
PERMISSION_ERRORS = {"not-allowed", "service-not-allowed"}
IGNORED_ERRORS = {"aborted"}
TRANSIENT_ERRORS = {"no-speech", "audio-capture", "network"}

# Engine stop events
END_EVENTS = {"end", "audioend"}

ACTION_RESTART = "restart"
ACTION_BLOCK = "block"
ACTION_IGNORE = "ignore"


@dataclass(frozen=True)
class RecoveryDecision:
    action: str
    delay_ms: int = 0
    reason: str = ""

    @property
    def should_restart(self) -> bool:
        return self.action == ACTION_RESTART


class RecoveryPolicy:
    """
    Decides whether and when the capture engine is restarted.
    Pure bookkeeping: it never touches the engine itself.
    """

    def __init__(
        self,
        restart_delay_ms: int = CAPTURE_RESTART_DELAY_MS,
        backoff_floor_ms: int = CAPTURE_BACKOFF_FLOOR_MS,
        backoff_cap_ms: int = CAPTURE_BACKOFF_CAP_MS,
    ):
        self.restart_delay_ms = max(0, int(restart_delay_ms))
        self.backoff_floor_ms = max(1, int(backoff_floor_ms))
        self.backoff_cap_ms = max(self.backoff_floor_ms, int(backoff_cap_ms))
        self._next_backoff_ms = self.backoff_floor_ms
        self.consecutive_failures = 0

    @property
    def next_backoff_ms(self) -> int:
        return self._next_backoff_ms

    def on_result(self) -> None:
        self._next_backoff_ms = self.backoff_floor_ms
        self.consecutive_failures = 0

    def on_end(self, kind: str = "end", still_desired: bool = True) -> RecoveryDecision:
        if not still_desired:
            return RecoveryDecision(ACTION_IGNORE, reason="not_desired")
        normalized = str(kind or "end").strip().lower()
        if normalized not in END_EVENTS:
            normalized = "end"
        return RecoveryDecision(ACTION_RESTART, self.restart_delay_ms, reason=normalized)

    def on_error(self, code: str, still_desired: bool = True) -> RecoveryDecision:
        normalized = str(code or "").strip().lower()

        if normalized in PERMISSION_ERRORS:
            return RecoveryDecision(ACTION_BLOCK, reason=normalized)
        if normalized in IGNORED_ERRORS or not still_desired:
            return RecoveryDecision(ACTION_IGNORE, reason=normalized or "not_desired")

        delay = self._next_backoff_ms
        self._next_backoff_ms = min(self._next_backoff_ms * 2, self.backoff_cap_ms)
        self.consecutive_failures += 1
        reason = normalized if normalized in TRANSIENT_ERRORS else f"unknown:{normalized or 'empty'}"
        return RecoveryDecision(ACTION_RESTART, delay, reason=reason)
