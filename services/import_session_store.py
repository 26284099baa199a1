"""
In-memory storage for import sessions.

Sessions expire after a TTL measured from their last save. Single-process
only; a restart drops every in-progress import.
"""

import threading
from datetime import datetime, timedelta
from typing import Callable, Optional

from models.import_session import ImportSession

DEFAULT_TTL_MINUTES = 30


class ImportSessionStore:
    """Session id → (expiry, session) map with lazy expiry."""

    def __init__(
        self,
        ttl_minutes: int = DEFAULT_TTL_MINUTES,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.ttl = timedelta(minutes=ttl_minutes)
        self._clock = clock
        self._entries: dict[str, tuple[datetime, ImportSession]] = {}
        self._lock = threading.Lock()

    def save(self, session: ImportSession) -> None:
        """Store or replace a session and restart its TTL."""
        with self._lock:
            self._entries[session.id] = (self._clock() + self.ttl, session)
            self._cleanup_expired()

    def get(self, session_id: str) -> Optional[ImportSession]:
        """Session by id, or None if missing or expired."""
        with self._lock:
            entry = self._entries.get(session_id)
            if entry is None:
                return None
            expires_at, session = entry
            if self._clock() > expires_at:
                del self._entries[session_id]
                return None
            return session

    def delete(self, session_id: str) -> None:
        """Remove a session; unknown ids are ignored."""
        with self._lock:
            self._entries.pop(session_id, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            self._cleanup_expired()
            return len(self._entries)

    def _cleanup_expired(self) -> None:
        """Remove all expired entries. Caller holds the lock."""
        now = self._clock()
        expired = [k for k, (exp, _) in self._entries.items() if now > exp]
        for k in expired:
            del self._entries[k]
