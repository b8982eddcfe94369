"""Hooks the chat controller calls on the UI that renders it."""

from abc import ABC, abstractmethod

from streamchat.chat.events import ChatEventHub
from streamchat.models.event import ChatEventType


class ChatSurface(ABC):
    """The screen showing the conversation.

    Calls are fire-and-forget; when the UI actually scrolls or navigates is
    up to the UI.
    """

    @abstractmethod
    def scroll_to_bottom(self) -> None:
        """Bring the newest message into view."""

    @abstractmethod
    def show_chat_surface(self) -> None:
        """Reveal the chat screen."""

    @abstractmethod
    def hide_chat_surface(self) -> None:
        """Dismiss the chat screen."""


class EventHubSurface(ChatSurface):
    """Surface that turns each hook into an event on the controller's hub.

    Used when the UI lives on the other side of a WebSocket.
    """

    def __init__(self, hub: ChatEventHub):
        self._hub = hub

    def scroll_to_bottom(self) -> None:
        self._hub.publish(ChatEventType.SCROLL_TO_BOTTOM)

    def show_chat_surface(self) -> None:
        self._hub.publish(ChatEventType.SHOW_CHAT_SURFACE)

    def hide_chat_surface(self) -> None:
        self._hub.publish(ChatEventType.HIDE_CHAT_SURFACE)
