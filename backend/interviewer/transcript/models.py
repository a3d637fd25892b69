from dataclasses import dataclass, field
import time


@dataclass(frozen=True)
class TranscriptFragment:
    """
    One recognition result delivered by the capture engine.
    Interim fragments may be revised; final ones never are.
    """
    text: str
    is_final: bool = False
    received_ts: float = field(default_factory=time.monotonic)

    @property
    def is_empty(self) -> bool:
        return not self.text.strip()
