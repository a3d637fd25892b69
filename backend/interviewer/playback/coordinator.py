from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable

from core.logger import log_event
from interviewer.capture.coordinator import CaptureCoordinator
from interviewer.playback.service import PlaybackService
from interviewer.system_metrics import increment_metric

logger = logging.getLogger("playback")


class PlaybackCoordinator:
    """
    Speaks interviewer audio with capture suspended so the candidate's
    transcript never contains the interviewer's own voice.
    Playback failures count as completion.
    """

    def __init__(
        self,
        playback: PlaybackService,
        capture: CaptureCoordinator,
        session_id: str = "",
        on_change: Callable[[], None] | None = None,
    ):
        self.playback = playback
        self.capture = capture
        self.session_id = session_id
        self.speaking = False
        self._on_change = on_change

    def _set_speaking(self, value: bool) -> None:
        if self.speaking == value:
            return
        self.speaking = value
        if self._on_change is not None:
            self._on_change()

    async def play(self, audio_payload: str | None) -> bool:
        # Stops the runtime listener only; the mic preference is owned by the session.
        self.capture.suspend()

        if not audio_payload:
            return True

        started = time.monotonic()
        self._set_speaking(True)
        try:
            await self.playback.play(audio_payload)
            return True
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            increment_metric("playback_failures_total")
            logger.warning("playback failed, treating as done | session_id=%s err=%s", self.session_id, exc)
            return False
        finally:
            self._set_speaking(False)
            log_event("playback", "finished", self.session_id, duration_ms=round((time.monotonic() - started) * 1000.0, 1))

    def stop(self) -> None:
        try:
            self.playback.stop()
        except Exception as exc:
            logger.warning("playback stop failed | session_id=%s err=%s", self.session_id, exc)
        self._set_speaking(False)
