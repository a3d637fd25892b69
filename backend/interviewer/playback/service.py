from __future__ import annotations

from typing import Protocol


class PlaybackService(Protocol):
    """
    Plays one question's audio. play() returns when playback is over;
    it may raise on decode/device errors.
    """

    async def play(self, audio_payload: str) -> None:
        ...

    def stop(self) -> None:
        ...


class SilentPlayback:
    """Text-only sessions: nothing is spoken, playback completes immediately."""

    async def play(self, audio_payload: str) -> None:
        return None

    def stop(self) -> None:
        return None
