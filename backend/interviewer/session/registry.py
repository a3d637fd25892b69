from __future__ import annotations

import time
from threading import Lock


class SessionRegistry:
    """
    Live interview sessions keyed by session id.
    Entries outlive their socket so snapshots stay readable until cleanup.
    """

    def __init__(self):
        self._lock = Lock()
        self._sessions: dict[str, dict] = {}

    def register(self, session_id: str, controller) -> None:
        now_ts = time.time()
        with self._lock:
            self._sessions[session_id] = {
                "controller": controller,
                "created_at": now_ts,
                "updated_at": now_ts,
                "active": True,
            }

    def try_register(self, session_id: str, controller) -> bool:
        """Registers unless an active entry already holds the id."""
        now_ts = time.time()
        with self._lock:
            current = self._sessions.get(session_id)
            if current and bool(current.get("active")):
                return False
            self._sessions[session_id] = {
                "controller": controller,
                "created_at": now_ts,
                "updated_at": now_ts,
                "active": True,
            }
            return True

    def touch(self, session_id: str) -> None:
        with self._lock:
            if session_id in self._sessions:
                self._sessions[session_id]["updated_at"] = time.time()

    def mark_inactive(self, session_id: str) -> None:
        with self._lock:
            if session_id in self._sessions:
                self._sessions[session_id]["active"] = False
                self._sessions[session_id]["updated_at"] = time.time()

    def get(self, session_id: str) -> dict | None:
        with self._lock:
            item = self._sessions.get(session_id)
            return dict(item) if item else None

    def get_controller(self, session_id: str):
        item = self.get(session_id)
        return (item or {}).get("controller")

    def is_active(self, session_id: str) -> bool:
        item = self.get(session_id)
        return bool((item or {}).get("active"))

    def entry_meta(self, session_id: str) -> dict:
        item = self.get(session_id) or {}
        return {
            "active": bool(item.get("active", False)),
            "created_at": item.get("created_at"),
            "updated_at": item.get("updated_at"),
        }

    def active_count(self) -> int:
        with self._lock:
            return sum(1 for item in self._sessions.values() if bool((item or {}).get("active")))

    def cleanup_inactive(self, ttl_sec: float) -> int:
        cutoff = time.time() - max(30.0, float(ttl_sec or 900.0))
        with self._lock:
            expired = [
                session_id
                for session_id, data in self._sessions.items()
                if not bool((data or {}).get("active", False))
                and float((data or {}).get("updated_at") or 0.0) <= cutoff
            ]
            for session_id in expired:
                self._sessions.pop(session_id, None)
        return len(expired)


session_registry = SessionRegistry()
