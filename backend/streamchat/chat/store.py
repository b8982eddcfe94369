"""Ordered message store with observer notifications."""

import logging
from collections.abc import Iterable, Iterator

from streamchat.chat.events import ChatEventHub
from streamchat.models.event import ChatEventType
from streamchat.models.message import Message

logger = logging.getLogger(__name__)


class MessageStore:
    """Append-only list of chat turns.

    Besides appending, only two targeted mutations exist: rewriting the text
    of the last bot message and setting feedback on a message by id. Each
    mutation publishes one event on the hub.
    """

    def __init__(self, hub: ChatEventHub):
        self._hub = hub
        self._messages: list[Message] = []

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(self._messages)

    @property
    def messages(self) -> list[Message]:
        """Snapshot of the current messages, oldest first."""
        return list(self._messages)

    def get(self, message_id: str) -> Message | None:
        for message in self._messages:
            if message.id == message_id:
                return message
        return None

    def last_bot_message(self) -> Message | None:
        """The most recently appended non-user message, if any."""
        for message in reversed(self._messages):
            if not message.is_user:
                return message
        return None

    def append(self, message: Message) -> None:
        self._messages.append(message)
        self._hub.publish(
            ChatEventType.MESSAGE_APPENDED,
            index=len(self._messages) - 1,
            message=message.model_dump(mode="json"),
        )

    def replace_last_bot_text(self, message_id: str, text: str) -> bool:
        """Overwrite the text of the last bot message if it is ``message_id``.

        Returns:
            True if a message was updated.
        """
        for index in range(len(self._messages) - 1, -1, -1):
            message = self._messages[index]
            if message.is_user:
                continue
            if message.id != message_id:
                logger.debug(f"Last bot message is {message.id}, not streaming id {message_id}")
                return False
            message.text = text
            self._publish_replaced(index, message)
            return True
        return False

    def set_feedback(self, message_id: str, rating: int) -> bool:
        """Set the rating of the non-user message ``message_id``.

        Returns:
            True if a matching bot message was found.
        """
        for index, message in enumerate(self._messages):
            if message.id == message_id and not message.is_user:
                message.feedback_rating = rating
                self._publish_replaced(index, message)
                return True
        return False

    def replace_all(self, messages: Iterable[Message]) -> None:
        self._messages = list(messages)
        self._hub.publish(ChatEventType.MESSAGES_RESET, count=len(self._messages))

    def clear(self) -> None:
        self.replace_all([])

    def _publish_replaced(self, index: int, message: Message) -> None:
        self._hub.publish(
            ChatEventType.MESSAGE_REPLACED,
            index=index,
            message=message.model_dump(mode="json"),
        )
