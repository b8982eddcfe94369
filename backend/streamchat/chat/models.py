"""Pydantic request and response models for the chat API."""

from pydantic import BaseModel, Field

from streamchat.models.message import Message


class SendMessageRequest(BaseModel):
    """Request to send a user message."""

    text: str
    rating: int | None = Field(
        default=None,
        description="Rate the latest bot answer before sending the message",
    )


class FeedbackRequest(BaseModel):
    """Request to rate a bot message."""

    message_id: str
    rating: int


class IncomingMessageRequest(BaseModel):
    """Text handed to the chat from outside the chat screen."""

    text: str


class ChatStateResponse(BaseModel):
    """Snapshot of a chat controller."""

    client_id: str
    topic_id: str
    session_id: str | None = None
    connection_state: str
    session_status: str
    is_streaming: bool = False
    messages: list[Message] = Field(default_factory=list)
