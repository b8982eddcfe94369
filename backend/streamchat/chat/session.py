"""ChatSession holds the identity of one logical conversation."""

import logging
import uuid
from collections.abc import Callable
from datetime import datetime
from typing import Any

from streamchat.chat.clock import SessionClock

logger = logging.getLogger(__name__)


def new_topic_id() -> str:
    return str(uuid.uuid4())


class ChatSession:
    """Identity and idle state of the current conversation.

    The session maintains:
    - A locally generated topic id, replaced on every rotation
    - The remote session id, unknown until the server assigns it
    - The idle clock
    - The pending input buffer for messages that arrived before a connection
    """

    def __init__(self, now: Callable[[], datetime] = datetime.now):
        self.topic_id = new_topic_id()
        self.session_id: str | None = None
        self.clock = SessionClock(now)
        self.pending_input: str | None = None
        self.created_at = self.clock.now()

    def rotate(self) -> None:
        """Start a new topic in place. Pending input survives rotation."""
        previous = self.topic_id
        self.topic_id = new_topic_id()
        self.session_id = None
        self.clock.reset()
        self.created_at = self.clock.now()
        logger.info(f"Rotated chat topic {previous} -> {self.topic_id}")

    def adopt(self, topic_id: str, session_id: str | None) -> None:
        """Take over an existing conversation's identity."""
        self.topic_id = topic_id
        self.session_id = session_id or None

    def take_pending_input(self) -> str | None:
        """Return and clear the pending input, or None if there is none."""
        text = self.pending_input
        self.pending_input = None
        if text is None or not text.strip():
            return None
        return text

    def get_info(self) -> dict[str, Any]:
        """Get session information."""
        last = self.clock.last_interaction_time
        return {
            "topic_id": self.topic_id,
            "session_id": self.session_id,
            "created_at": self.created_at.isoformat(),
            "last_interaction_time": last.isoformat() if last else None,
            "has_pending_input": self.pending_input is not None,
        }
