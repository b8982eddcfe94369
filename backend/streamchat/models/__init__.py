"""Pydantic models for streamchat."""

from streamchat.models.event import ChatEvent, ChatEventType
from streamchat.models.message import HistoryExchange, HistoryRecord, Message

__all__ = [
    "ChatEvent",
    "ChatEventType",
    "HistoryExchange",
    "HistoryRecord",
    "Message",
]
