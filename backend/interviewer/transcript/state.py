from typing import Optional

from .models import TranscriptFragment


class TranscriptBuffer:
    """
    Holds the candidate's speech for ONE listening cycle.
    """

    def __init__(self):
        self.cycle: int = 0

        # Committed recognition results
        self.final_text: str = ""

        # Latest revisable fragment, replaced on every interim result
        self.interim_text: str = ""

        self.last_update_ts: Optional[float] = None

    # -------------------------
    # INGEST
    # -------------------------

    def ingest(self, fragment: TranscriptFragment) -> bool:
        """
        Fold a fragment into the buffer.
        Returns True when the visible text changed.
        """
        if fragment.is_empty:
            return False

        before = self.text
        piece = fragment.text.strip()

        if fragment.is_final:
            self.final_text = f"{self.final_text} {piece}".strip() if self.final_text else piece
            self.interim_text = ""
        else:
            self.interim_text = piece

        self.last_update_ts = fragment.received_ts
        return self.text != before

    # -------------------------
    # VIEW
    # -------------------------

    @property
    def text(self) -> str:
        if not self.interim_text:
            return self.final_text
        if not self.final_text:
            return self.interim_text
        return f"{self.final_text} {self.interim_text}"

    def is_empty(self) -> bool:
        return not self.text.strip()

    # -------------------------
    # RESET
    # -------------------------

    def clear(self, cycle: Optional[int] = None):
        self.final_text = ""
        self.interim_text = ""
        self.last_update_ts = None
        if cycle is not None:
            self.cycle = cycle
