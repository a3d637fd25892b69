from dataclasses import dataclass, field
import time

from core.state import TurnPhase


@dataclass(frozen=True)
class TransitionRecord:
    source: TurnPhase
    target: TurnPhase
    reason: str
    cycle: int
    ts: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        return {
            "from": self.source.value,
            "to": self.target.value,
            "reason": self.reason,
            "cycle": self.cycle,
            "ts": self.ts,
        }
