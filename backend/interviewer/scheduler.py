from __future__ import annotations

import asyncio
from typing import Callable, Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None:
        ...


class Scheduler(Protocol):
    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        ...


class LoopScheduler:
    """
    Timer seam backed by the running event loop.
    Callbacks run on the loop thread, never concurrently with another handler.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        self._loop = loop

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return self._get_loop().call_later(max(0.0, float(delay_ms)) / 1000.0, callback)


def cancel_handle(handle: TimerHandle | None) -> None:
    if handle is not None:
        handle.cancel()
