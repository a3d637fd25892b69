from __future__ import annotations

from typing import Protocol


class CaptureListener(Protocol):
    def on_fragment(self, text: str, is_final: bool) -> None:
        ...

    def on_end(self, kind: str = "end") -> None:
        ...

    def on_error(self, code: str) -> None:
        ...


class CaptureEngine(Protocol):
    """
    Black-box speech-to-text capture handle.
    start() while running must be harmless; stop() while stopped too.
    """

    @property
    def is_running(self) -> bool:
        ...

    def start(self, listener: CaptureListener) -> None:
        ...

    def stop(self) -> None:
        ...
