"""Idle tracking for a chat session."""

from collections.abc import Callable
from datetime import datetime, timedelta
from enum import Enum

DEFAULT_SESSION_TIMEOUT = timedelta(minutes=10)


class SessionStatus(str, Enum):
    """Idle classification of a session."""

    FRESH = "fresh"  # no genuine interaction yet
    ACTIVE = "active"
    EXPIRED = "expired"


class SessionClock:
    """Remembers when the user last genuinely interacted with the session."""

    def __init__(self, now: Callable[[], datetime] = datetime.now):
        self._now = now
        self.last_interaction_time: datetime | None = None

    def now(self) -> datetime:
        return self._now()

    def record_interaction(self) -> None:
        self.last_interaction_time = self._now()

    def reset(self) -> None:
        self.last_interaction_time = None

    def classify(self, now: datetime, timeout: timedelta = DEFAULT_SESSION_TIMEOUT) -> SessionStatus:
        """Classify the session at ``now``.

        An elapsed time equal to ``timeout`` is still active.
        """
        if self.last_interaction_time is None:
            return SessionStatus.FRESH
        if now - self.last_interaction_time <= timeout:
            return SessionStatus.ACTIVE
        return SessionStatus.EXPIRED
