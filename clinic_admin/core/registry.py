"""
In-memory revocation registry.

Records which issued tokens are currently honored. A token with a valid
signature that is absent here (logged out, rotated away, purged) must be
rejected. Nothing is persisted; a process restart invalidates every session.
"""

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Dict, Optional
import threading

from .security import TokenType


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class SessionEntry:
    subject: str
    token_type: TokenType
    issued_at: datetime
    expires_at: Optional[datetime] = None
    last_activity: Optional[datetime] = None

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return False
        return (now or utcnow()) >= self.expires_at


class RevocationRegistry:
    """Lock-guarded map of token string to SessionEntry.

    Safe to share between the event loop and FastAPI's threadpool workers.
    Every method holds the lock only for the dict operation itself.
    """

    def __init__(self):
        self._entries: Dict[str, SessionEntry] = {}
        self._lock = threading.Lock()

    def add(self, token: str, entry: SessionEntry) -> None:
        if entry.last_activity is None:
            entry.last_activity = entry.issued_at
        with self._lock:
            self._entries[token] = entry

    def get(self, token: str) -> Optional[SessionEntry]:
        """Return a copy of the entry, or None if the token is not honored."""
        with self._lock:
            entry = self._entries.get(token)
            return replace(entry) if entry is not None else None

    def touch(self, token: str, now: Optional[datetime] = None) -> bool:
        """Update last_activity. Returns False if the token was revoked meanwhile."""
        with self._lock:
            entry = self._entries.get(token)
            if entry is None:
                return False
            entry.last_activity = now or utcnow()
            return True

    def discard(self, token: str) -> bool:
        """Remove a token. Returns whether it was present; absence is not an error."""
        with self._lock:
            return self._entries.pop(token, None) is not None

    def purge_expired(self, now: Optional[datetime] = None) -> int:
        """Drop entries past their expiry. Returns the number removed."""
        now = now or utcnow()
        with self._lock:
            expired = [
                token for token, entry in self._entries.items()
                if entry.is_expired(now)
            ]
            for token in expired:
                del self._entries[token]
        return len(expired)

    def count(self, token_type: Optional[TokenType] = None) -> int:
        with self._lock:
            if token_type is None:
                return len(self._entries)
            return sum(
                1 for entry in self._entries.values()
                if entry.token_type is token_type
            )

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, token: str) -> bool:
        with self._lock:
            return token in self._entries

    def __len__(self) -> int:
        return self.count()
