"""Synchronous observer hub for chat controller events."""

import logging
from collections.abc import Callable
from typing import Any

from streamchat.models.event import ChatEvent, ChatEventType

logger = logging.getLogger(__name__)

ChatObserver = Callable[[ChatEvent], None]


class ChatEventHub:
    """Fans out ``ChatEvent``s to subscribed observers.

    Observers run synchronously, in subscription order, right after the
    mutation that produced the event.
    """

    def __init__(self) -> None:
        self._observers: list[ChatObserver] = []

    @property
    def observer_count(self) -> int:
        """Number of subscribed observers."""
        return len(self._observers)

    def subscribe(self, observer: ChatObserver) -> Callable[[], None]:
        """Add an observer.

        Returns:
            A callable that removes the observer again.
        """
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def publish(
        self,
        event: ChatEventType,
        index: int | None = None,
        message: dict[str, Any] | None = None,
        **payload: Any,
    ) -> ChatEvent:
        """Build an event and deliver it to every observer."""
        chat_event = ChatEvent(event=event, index=index, message=message, payload=payload)
        for observer in list(self._observers):
            try:
                observer(chat_event)
            except Exception as e:
                logger.exception(f"Chat observer failed on {chat_event.event}: {e}")
        return chat_event
