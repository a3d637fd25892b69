from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Awaitable, Callable

from core.config import PLAYBACK_TIMEOUT_SEC
from interviewer.capture.service import CaptureListener

logger = logging.getLogger("ws_interview")

SendFn = Callable[[dict], Awaitable[None]]
SpawnFn = Callable[[Awaitable[None]], object]


class BrowserCaptureEngine:
    """
    Speech recognition running in the candidate's browser.
    Each start gets a capture_id; events echoing an older id are dropped.
    """

    def __init__(self, send_fn: SendFn, spawn_fn: SpawnFn):
        self._send_fn = send_fn
        self._spawn_fn = spawn_fn
        self._listener: CaptureListener | None = None
        self._running = False
        self.capture_id = 0

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self, listener: CaptureListener) -> None:
        if self._running:
            return
        self._listener = listener
        self._running = True
        self.capture_id += 1
        self._spawn_fn(self._send_fn({"type": "capture_start", "capture_id": self.capture_id}))

    def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        self._spawn_fn(self._send_fn({"type": "capture_stop", "capture_id": self.capture_id}))

    def _is_current(self, capture_id) -> bool:
        if capture_id is None:
            return True
        try:
            return int(capture_id) == self.capture_id
        except (TypeError, ValueError):
            return False

    # -------------------------
    # INBOUND (browser -> server)
    # -------------------------

    def deliver_fragment(self, text: str, is_final: bool, capture_id=None) -> None:
        if not self._running or self._listener is None or not self._is_current(capture_id):
            return
        self._listener.on_fragment(text, is_final)

    def deliver_end(self, kind: str = "end", capture_id=None) -> None:
        if self._listener is None or not self._is_current(capture_id):
            return
        self._running = False
        self._listener.on_end(kind)

    def deliver_error(self, code: str, capture_id=None) -> None:
        if self._listener is None or not self._is_current(capture_id):
            return
        self._running = False
        self._listener.on_error(code)


class BrowserPlayback:
    """
    Asks the browser to play audio and waits for its playback_done echo.
    A missing echo is bounded by the playback timeout.
    """

    def __init__(self, send_fn: SendFn, spawn_fn: SpawnFn, timeout_sec: float = PLAYBACK_TIMEOUT_SEC):
        self._send_fn = send_fn
        self._spawn_fn = spawn_fn
        self.timeout_sec = timeout_sec
        self._pending: dict[str, asyncio.Future] = {}

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def play(self, audio_payload: str) -> None:
        playback_id = uuid.uuid4().hex
        future = asyncio.get_running_loop().create_future()
        self._pending[playback_id] = future
        try:
            await self._send_fn({
                "type": "play_audio",
                "playback_id": playback_id,
                "audio_base64": audio_payload,
            })
            error = await asyncio.wait_for(future, timeout=self.timeout_sec)
        finally:
            self._pending.pop(playback_id, None)

        if error:
            raise RuntimeError(f"browser playback error: {error}")

    def complete(self, playback_id: str, error: str | None = None) -> bool:
        future = self._pending.get(str(playback_id or ""))
        if future is None or future.done():
            return False
        future.set_result(error)
        return True

    def stop(self) -> None:
        for future in list(self._pending.values()):
            if not future.done():
                future.set_result(None)
        self._spawn_fn(self._send_fn({"type": "stop_audio"}))


class WebSocketNotifier:
    def __init__(self, send_fn: SendFn, spawn_fn: SpawnFn):
        self._send_fn = send_fn
        self._spawn_fn = spawn_fn

    def notify(self, level: str, message: str) -> None:
        logger.info("notice | level=%s message=%s", level, message)
        self._spawn_fn(self._send_fn({"type": "notice", "level": level, "message": message}))
