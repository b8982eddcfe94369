"""Pydantic models for chat turns and the history exchange."""

from datetime import datetime

from pydantic import BaseModel, Field


class Message(BaseModel):
    """One chat turn in the message store.

    ``id`` and ``is_user`` are fixed at creation. ``text`` only changes while
    the bot turn is streaming; the stream assembler is the only writer.
    """

    id: str = Field(frozen=True)
    text: str = ""
    is_user: bool = Field(frozen=True)
    feedback_rating: int | None = None
    created_at: datetime = Field(default_factory=datetime.now)


class HistoryRecord(BaseModel):
    """A past exchange as carried by the history request/response.

    Either side may be missing or blank; blank sides are skipped on load.
    """

    id: str
    user_text: str | None = None
    bot_text: str | None = None
    feedback_rating: int | None = None


class HistoryExchange(BaseModel):
    """Payload of the history exchange between the UI and the controller."""

    topic_id: str
    session_id: str | None = None
    messages: list[HistoryRecord] = Field(default_factory=list)
