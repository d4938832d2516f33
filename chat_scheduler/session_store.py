"""Session storage keyed by user identifier (phone number, email or IP).

The in-memory store is process-local: restarting the server or running
more than one worker loses or splits in-flight conversations.
"""

from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from collections import OrderedDict

from chat_scheduler.models.session import Session

log = logging.getLogger("chat_scheduler.session_store")


class SessionStore(ABC):
    """get/put/delete plus a per-key lock for sequencing turns."""

    @abstractmethod
    def get(self, key: str) -> Session | None:
        """Return the session for ``key``, or None if absent or expired."""

    @abstractmethod
    def put(self, key: str, session: Session) -> None:
        """Insert or replace the session for ``key``."""

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove ``key``. Returns True if a session was removed."""

    @abstractmethod
    def lock(self, key: str) -> asyncio.Lock:
        """Lock serializing read-modify-write cycles on ``key``'s session."""

    @abstractmethod
    def all(self) -> dict[str, Session]:
        """Snapshot of all live sessions."""


class InMemorySessionStore(SessionStore):
    """Dict-backed store with optional idle expiry and an LRU capacity bound.

    Args:
        ttl_seconds: Sessions idle for longer than this are dropped on the
            next access. ``0`` disables expiry.
        max_sessions: Upper bound on stored sessions; the least recently
            used session is evicted first. ``0`` disables the bound.
    """

    def __init__(self, ttl_seconds: int = 0, max_sessions: int = 0) -> None:
        self._ttl = ttl_seconds
        self._max = max_sessions
        self._sessions: OrderedDict[str, Session] = OrderedDict()
        self._locks: dict[str, asyncio.Lock] = {}

    def __len__(self) -> int:
        self._purge_expired()
        return len(self._sessions)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def _is_expired(self, session: Session, now: float) -> bool:
        return self._ttl > 0 and now - session.updated_at > self._ttl

    def _drop(self, key: str) -> None:
        self._sessions.pop(key, None)
        lock = self._locks.get(key)
        if lock is not None and not lock.locked():
            del self._locks[key]

    def _purge_expired(self) -> None:
        if self._ttl <= 0:
            return
        now = time.time()
        expired = [k for k, s in self._sessions.items() if self._is_expired(s, now)]
        for key in expired:
            self._drop(key)
        if expired:
            log.info("Expired %d idle session(s)", len(expired))

    def get(self, key: str) -> Session | None:
        session = self._sessions.get(key)
        if session is None:
            return None
        if self._is_expired(session, time.time()):
            self._drop(key)
            log.info("Session expired on access")
            return None
        self._sessions.move_to_end(key)
        return session

    def put(self, key: str, session: Session) -> None:
        session.touch()
        self._sessions[key] = session
        self._sessions.move_to_end(key)

        self._purge_expired()
        while self._max > 0 and len(self._sessions) > self._max:
            oldest, _ = next(iter(self._sessions.items()))
            self._drop(oldest)
            log.warning("Session store full (%d) — evicted least recently used session", self._max)

    def delete(self, key: str) -> bool:
        existed = key in self._sessions
        self._drop(key)
        return existed

    def lock(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    def all(self) -> dict[str, Session]:
        self._purge_expired()
        return dict(self._sessions)
