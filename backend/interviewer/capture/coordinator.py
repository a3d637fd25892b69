from __future__ import annotations

import logging
from typing import Callable

from core.logger import log_event
from interviewer.capture.recovery import ACTION_BLOCK, RecoveryDecision, RecoveryPolicy
from interviewer.capture.service import CaptureEngine
from interviewer.scheduler import Scheduler, TimerHandle, cancel_handle
from interviewer.system_metrics import increment_metric
from interviewer.transcript.models import TranscriptFragment

logger = logging.getLogger("capture")

FragmentHandler = Callable[[TranscriptFragment], None]
BlockedHandler = Callable[[str], None]


class CaptureCoordinator:
    """
    Sole owner of the capture engine handle.
    Tracks whether capture is *desired* separately from whether the engine is
    *running*, and restarts it per the recovery policy while it is desired.
    """

    def __init__(
        self,
        engine: CaptureEngine,
        scheduler: Scheduler,
        on_fragment: FragmentHandler,
        on_blocked: BlockedHandler | None = None,
        policy: RecoveryPolicy | None = None,
        session_id: str = "",
    ):
        self.engine = engine
        self.policy = policy or RecoveryPolicy()
        self.session_id = session_id
        self.desired = False
        self.blocked = False
        self.restarts = 0
        self._scheduler = scheduler
        self._on_fragment = on_fragment
        self._on_blocked = on_blocked
        self._restart_handle: TimerHandle | None = None

    @property
    def is_running(self) -> bool:
        return bool(self.engine.is_running)

    @property
    def restart_pending(self) -> bool:
        return self._restart_handle is not None

    # -------------------------
    # EXPLICIT CONTROL
    # -------------------------

    def resume(self) -> bool:
        if self.blocked:
            logger.info("capture resume refused (permission blocked) | session_id=%s", self.session_id)
            return False

        self.desired = True
        if self.is_running:
            return True

        self._cancel_restart()
        self._start_engine(reason="resume")
        return True

    def suspend(self) -> None:
        self.desired = False
        self._cancel_restart()
        if self.is_running:
            self.engine.stop()
            log_event("capture", "stopped", self.session_id)

    def unblock(self) -> None:
        if not self.blocked:
            return
        self.blocked = False
        self.policy.on_result()
        log_event("capture", "unblocked", self.session_id)

    def shutdown(self) -> None:
        self.suspend()

    # -------------------------
    # ENGINE CALLBACKS
    # -------------------------

    def on_fragment(self, text: str, is_final: bool = False) -> None:
        if not self.desired:
            return
        self.policy.on_result()
        fragment = TranscriptFragment(text=str(text or ""), is_final=bool(is_final))
        if fragment.is_empty:
            return
        self._on_fragment(fragment)

    def on_end(self, kind: str = "end") -> None:
        if self.restart_pending:
            # An error already scheduled a (longer) backoff restart.
            return
        decision = self.policy.on_end(kind, still_desired=self.desired and not self.blocked)
        self._apply(decision)

    def on_error(self, code: str) -> None:
        decision = self.policy.on_error(code, still_desired=self.desired and not self.blocked)
        logger.warning(
            "capture error | session_id=%s code=%s action=%s delay_ms=%s",
            self.session_id,
            code,
            decision.action,
            decision.delay_ms,
        )
        self._apply(decision)

    # -------------------------
    # RECOVERY
    # -------------------------

    def _apply(self, decision: RecoveryDecision) -> None:
        if decision.action == ACTION_BLOCK:
            self.blocked = True
            self.desired = False
            self._cancel_restart()
            if self.is_running:
                self.engine.stop()
            increment_metric("capture_permission_denied")
            log_event("capture", "blocked", self.session_id, reason=decision.reason)
            if self._on_blocked is not None:
                self._on_blocked(decision.reason)
            return

        if not decision.should_restart:
            return

        self._cancel_restart()
        self._restart_handle = self._scheduler.call_later(decision.delay_ms, self._restart)
        log_event("capture", "restart_scheduled", self.session_id, delay_ms=decision.delay_ms, reason=decision.reason)

    def _restart(self) -> None:
        self._restart_handle = None
        if not self.desired or self.blocked or self.is_running:
            return
        self.restarts += 1
        increment_metric("capture_restarts_total")
        self._start_engine(reason="restart")

    def _start_engine(self, reason: str) -> None:
        try:
            self.engine.start(self)
        except Exception as exc:
            logger.warning("capture start failed | session_id=%s reason=%s err=%s", self.session_id, reason, exc)
            self._apply(self.policy.on_error("audio-capture", still_desired=self.desired))
            return
        log_event("capture", "started", self.session_id, reason=reason)

    def _cancel_restart(self) -> None:
        cancel_handle(self._restart_handle)
        self._restart_handle = None
