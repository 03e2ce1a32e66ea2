"""Session store abstractions."""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Protocol

from shot_assessment.domain.assessments import AssessmentSession, SessionKey


class SessionStore(Protocol):
    """Key-value persistence for assessment sessions.

    Sessions handed out are copies; changes reach the store only via ``put``.
    """

    def get(self, key: SessionKey) -> AssessmentSession | None:
        """Return the session for a key, if present."""

    def get_or_create(self, key: SessionKey) -> AssessmentSession:
        """Return the session for a key, creating a zeroed one if absent."""

    def put(self, session: AssessmentSession) -> None:
        """Persist a session under its own key."""

    def delete_all(self, shoot_id: str) -> int:
        """Delete every room session of a shoot and return how many went."""


@dataclass
class _StoreEntry:
    session: AssessmentSession
    expires_at: datetime | None

    def expired(self, now: datetime) -> bool:
        return self.expires_at is not None and now >= self.expires_at


@dataclass
class InMemorySessionStore(SessionStore):
    """Process-local session store.

    Grows without bound unless ``ttl_seconds`` is set. With a TTL, expired
    sessions are purged on every write and never counted by ``delete_all``.
    """

    ttl_seconds: int | None
    _entries: dict[SessionKey, _StoreEntry]

    def __init__(self, ttl_seconds: int | None = None) -> None:
        self.ttl_seconds = ttl_seconds
        self._entries = {}

    def get(self, key: SessionKey) -> AssessmentSession | None:
        """Return a copy of the session if it hasn't expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expired(datetime.now(tz=UTC)):
            self._entries.pop(key, None)
            return None
        return entry.session.copy_state()

    def get_or_create(self, key: SessionKey) -> AssessmentSession:
        """Return a copy of the session, storing a fresh one first if needed."""
        session = self.get(key)
        if session is not None:
            return session
        session = AssessmentSession.fresh(key)
        self.put(session)
        return session.copy_state()

    def put(self, session: AssessmentSession) -> None:
        """Store a copy of the session and refresh its TTL."""
        now = datetime.now(tz=UTC)
        self._purge_expired(now)
        expires_at = None
        if self.ttl_seconds is not None:
            expires_at = now + timedelta(seconds=self.ttl_seconds)
        self._entries[session.key] = _StoreEntry(
            session=session.copy_state(), expires_at=expires_at
        )

    def delete_all(self, shoot_id: str) -> int:
        """Delete all live rooms of a shoot."""
        self._purge_expired(datetime.now(tz=UTC))
        keys = [key for key in self._entries if key.shoot_id == shoot_id]
        for key in keys:
            del self._entries[key]
        return len(keys)

    def _purge_expired(self, now: datetime) -> None:
        if self.ttl_seconds is None:
            return
        expired = [key for key, entry in self._entries.items() if entry.expired(now)]
        for key in expired:
            del self._entries[key]

    def __len__(self) -> int:
        return len(self._entries)
