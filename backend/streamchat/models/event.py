"""Pydantic models for events published to chat observers."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class ChatEventType(str, Enum):
    """Kinds of notifications a chat controller publishes."""

    MESSAGE_APPENDED = "message_appended"
    MESSAGE_REPLACED = "message_replaced"
    MESSAGES_RESET = "messages_reset"
    SESSION_ID = "session_id"
    TOPIC_ROTATED = "topic_rotated"
    CONNECTION = "connection"
    ERROR = "error"
    SCROLL_TO_BOTTOM = "scroll_to_bottom"
    SHOW_CHAT_SURFACE = "show_chat_surface"
    HIDE_CHAT_SURFACE = "hide_chat_surface"


class ChatEvent(BaseModel):
    """An event emitted while a chat controller mutates its state.

    ``index`` and ``message`` are set for store mutations; ``payload`` carries
    anything else (session ids, topic ids, error text).
    """

    event: ChatEventType
    index: int | None = None
    message: dict[str, Any] | None = None
    payload: dict[str, Any] = Field(default_factory=dict)

    class Config:
        use_enum_values = True
