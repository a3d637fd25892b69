from __future__ import annotations

import itertools
import secrets
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

from core.state import SessionStatus, SpeakerRole

_message_counter = itertools.count(1)


def _message_id(role: SpeakerRole) -> str:
    return f"{role.value}_{int(time.time() * 1000)}_{next(_message_counter)}_{secrets.token_hex(5)}"


@dataclass(frozen=True)
class Message:
    """
    One entry in the append-only conversation log.
    """
    role: SpeakerRole
    content: str
    id: str = ""
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        if not self.id:
            object.__setattr__(self, "id", _message_id(self.role))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "role": self.role.value,
            "content": self.content,
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class Session:
    candidate_name: str
    token: str = ""
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    status: SessionStatus = SessionStatus.ACTIVE

    def mark(self, status: SessionStatus) -> None:
        self.status = status

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "candidate_name": self.candidate_name,
            "started_at": self.started_at.isoformat(),
            "status": self.status.value,
        }


class MessageLog:
    """Append-only; callers get copies."""

    def __init__(self):
        self._items: list[Message] = []

    def append(self, role: SpeakerRole, content: str) -> Message:
        message = Message(role=role, content=content)
        self._items.append(message)
        return message

    def last(self, role: SpeakerRole) -> Message | None:
        for message in reversed(self._items):
            if message.role == role:
                return message
        return None

    def count(self, role: SpeakerRole | None = None) -> int:
        if role is None:
            return len(self._items)
        return sum(1 for item in self._items if item.role == role)

    def __len__(self) -> int:
        return len(self._items)

    def to_list(self) -> list[dict]:
        return [item.to_dict() for item in self._items]
