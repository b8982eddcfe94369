"""StreamAssembler folds transport events into the message store."""

import logging
from collections.abc import Awaitable, Callable

from streamchat.chat.events import ChatEventHub
from streamchat.chat.session import ChatSession
from streamchat.chat.store import MessageStore
from streamchat.chat.surface import ChatSurface
from streamchat.chat.transport import TransportListener
from streamchat.models.event import ChatEventType
from streamchat.models.message import Message

logger = logging.getLogger(__name__)


class StreamAssembler(TransportListener):
    """Builds bot messages out of start/chunk/end events.

    The in-flight answer and the id of the message being streamed belong to
    this instance and are reset at every start, end and disconnect.
    """

    def __init__(
        self,
        session: ChatSession,
        store: MessageStore,
        surface: ChatSurface,
        hub: ChatEventHub,
        send_user_message: Callable[[str], Awaitable[None]],
    ):
        self._session = session
        self._store = store
        self._surface = surface
        self._hub = hub
        self._send_user_message = send_user_message
        self._current_answer = ""
        self._current_message_id: str | None = None

    @property
    def current_message_id(self) -> str | None:
        """Id of the bot message being streamed, or None between turns."""
        return self._current_message_id

    @property
    def current_answer(self) -> str:
        return self._current_answer

    @property
    def is_streaming(self) -> bool:
        return self._current_message_id is not None

    def reset(self) -> None:
        """Forget the in-flight turn. Its partial text stays in the store."""
        if self._current_message_id is not None:
            logger.info(f"Dropping in-flight stream for message {self._current_message_id}")
        self._current_answer = ""
        self._current_message_id = None

    async def on_start(self, message_id: str) -> None:
        self._current_answer = ""
        self._current_message_id = message_id
        self._store.append(Message(id=message_id, text="", is_user=False))

    async def on_chunk(self, fragment: str) -> None:
        if self._current_message_id is None:
            logger.debug("Chunk received outside of a stream, ignoring")
            return

        self._current_answer += fragment
        if self._store.replace_last_bot_text(self._current_message_id, self._current_answer):
            self._surface.scroll_to_bottom()

    async def on_end(self, message_id: str) -> None:
        if self._current_message_id is None:
            logger.debug(f"End of stream {message_id} without a matching start, ignoring")
            return

        if message_id != self._current_message_id:
            logger.warning(
                f"Stream ended with id {message_id} while {self._current_message_id} was streaming"
            )

        # A finished answer counts as a completed exchange
        self._session.clock.record_interaction()
        self._current_answer = ""
        self._current_message_id = None

    async def on_session_id_received(self, session_id: str) -> None:
        self._session.session_id = session_id
        logger.info(f"Received session id {session_id} for topic {self._session.topic_id}")
        self._hub.publish(ChatEventType.SESSION_ID, session_id=session_id)

        await self.flush_pending_input()

    async def flush_pending_input(self) -> None:
        """Send the pending input, if any, exactly once."""
        text = self._session.take_pending_input()
        if text is not None:
            await self._send_user_message(text)

    async def on_error(self, error: Exception) -> None:
        logger.error(f"Chat transport error: {error}")
        self._hub.publish(
            ChatEventType.ERROR,
            message_type=type(error).__name__,
            detail=str(error),
            retriable=getattr(error, "retriable", None),
        )
