"""SessionOrchestrator coordinates one chat conversation."""

import logging
import time
from collections.abc import Callable, Iterable
from datetime import datetime, timedelta
from typing import Any

from streamchat.chat.assembler import StreamAssembler
from streamchat.chat.clock import DEFAULT_SESSION_TIMEOUT
from streamchat.chat.events import ChatEventHub, ChatObserver
from streamchat.chat.session import ChatSession
from streamchat.chat.store import MessageStore
from streamchat.chat.supervisor import ConnectionState, ConnectionSupervisor
from streamchat.chat.surface import ChatSurface, EventHubSurface
from streamchat.chat.transport import BaseTransport
from streamchat.models.event import ChatEventType
from streamchat.models.message import HistoryExchange, HistoryRecord, Message

logger = logging.getLogger(__name__)


def _has_text(text: str | None) -> bool:
    return bool(text and text.strip())


class SessionOrchestrator:
    """Controller for a single conversation over a streaming transport.

    Public operations never raise for control flow: sends that cannot be
    delivered are logged and dropped, unknown feedback ids only reach the
    transport, and blank history entries are skipped.
    """

    def __init__(
        self,
        transport: BaseTransport,
        surface: ChatSurface | None = None,
        timeout: timedelta = DEFAULT_SESSION_TIMEOUT,
        now: Callable[[], datetime] = datetime.now,
    ):
        """Initialize the orchestrator.

        Args:
            transport: Streaming transport; connected lazily.
            surface: UI hooks. Defaults to publishing them on the event hub.
            timeout: Idle time after which the next connect rotates the session.
            now: Clock source, injectable for tests.
        """
        self.hub = ChatEventHub()
        self.session = ChatSession(now)
        self.store = MessageStore(self.hub)
        self.surface = surface or EventHubSurface(self.hub)
        self._transport = transport
        self._last_user_message_id = 0
        self.assembler = StreamAssembler(
            session=self.session,
            store=self.store,
            surface=self.surface,
            hub=self.hub,
            send_user_message=self.send_user_message,
        )
        self.supervisor = ConnectionSupervisor(
            transport=transport,
            listener=self.assembler,
            clock=self.session.clock,
            rotate=self.rotate_session,
            hub=self.hub,
            timeout=timeout,
        )

    @property
    def topic_id(self) -> str:
        return self.session.topic_id

    @property
    def session_id(self) -> str | None:
        return self.session.session_id

    @property
    def messages(self) -> list[Message]:
        return self.store.messages

    @property
    def connection_state(self) -> ConnectionState:
        return self.supervisor.state

    @property
    def can_send_message(self) -> bool:
        return self._transport.can_send_message

    def subscribe(self, observer: ChatObserver) -> Callable[[], None]:
        """Register an observer for store mutations and UI hooks."""
        return self.hub.subscribe(observer)

    # =========================================================================
    # Connection
    # =========================================================================

    async def ensure_connected(self) -> None:
        await self.supervisor.ensure_connected()

    async def rotate_session(self) -> None:
        """Start a new conversation: new topic, no session, empty store."""
        await self.supervisor.disconnect()
        self.assembler.reset()
        self.session.rotate()
        self._transport.session_id = None
        self.store.clear()
        self.hub.publish(ChatEventType.TOPIC_ROTATED, topic_id=self.session.topic_id)

    async def close(self) -> None:
        """Disconnect without rotating.

        The interaction time is kept so the next connect still measures
        idleness from the last real interaction.
        """
        await self.supervisor.disconnect()
        self.assembler.reset()
        self.surface.hide_chat_surface()
        logger.info(f"Closed chat for topic {self.session.topic_id}")

    # =========================================================================
    # Sending
    # =========================================================================

    async def send_user_message(self, text: str) -> None:
        """Append a user turn and ask the transport to answer it."""
        await self._send(text)

    async def send_user_message_by_feedback(self, text: str, rating: int) -> None:
        """Rate the latest bot answer, then send ``text`` as a new question."""
        await self._send(text, rating=rating)

    async def _send(self, text: str, rating: int | None = None) -> None:
        if not _has_text(text):
            return

        self.session.clock.record_interaction()
        if not self._transport.can_send_message:
            logger.warning(
                f"Transport cannot send for topic {self.session.topic_id}, dropping message"
            )
            return

        if rating is not None:
            last_bot = self.store.last_bot_message()
            if last_bot is not None:
                await self.submit_feedback(last_bot.id, rating)

        message_id = self._next_user_message_id()
        self.store.append(Message(id=message_id, text=text, is_user=True))
        self.session.pending_input = None
        self.surface.scroll_to_bottom()
        await self._transport.ask(message_id, text, self.session.topic_id)

    def _next_user_message_id(self) -> str:
        # Wall-clock milliseconds, bumped when two sends share a millisecond
        millis = max(int(time.time() * 1000), self._last_user_message_id + 1)
        self._last_user_message_id = millis
        return str(millis)

    async def submit_feedback(self, message_id: str, rating: int) -> None:
        """Send a rating upstream and mirror it locally when the message is known."""
        await self._transport.send_feedback(message_id, rating)
        if not self.store.set_feedback(message_id, rating):
            logger.debug(f"Feedback for unknown message {message_id} sent upstream only")

    async def handle_external_incoming(self, text: str) -> None:
        """Route text coming from outside the chat screen into the conversation."""
        self.session.pending_input = text
        self.surface.show_chat_surface()

        if self.supervisor.is_connected:
            await self.assembler.flush_pending_input()
        else:
            # The session id event flushes the pending input once connected
            await self.ensure_connected()

    # =========================================================================
    # History
    # =========================================================================

    async def load_history(
        self,
        topic_id: str,
        session_id: str | None,
        records: Iterable[HistoryRecord | dict[str, Any]],
    ) -> None:
        """Replace the conversation with one loaded from history.

        Loading is passive and does not count as an interaction.
        """
        if topic_id != self.session.topic_id:
            logger.info(f"Switching chat topic {self.session.topic_id} -> {topic_id}")
            await self.supervisor.disconnect()
            self.assembler.reset()
            self.session.clock.reset()
            self._transport.session_id = None
            self.session.adopt(topic_id, session_id)
        elif session_id:
            self.session.session_id = session_id

        if self.session.session_id:
            # Resume the remote session without a fresh handshake
            self._transport.session_id = self.session.session_id

        self.store.replace_all(self._history_messages(records))
        self.surface.scroll_to_bottom()
        await self.ensure_connected()

    async def load_history_exchange(self, exchange: HistoryExchange) -> None:
        await self.load_history(exchange.topic_id, exchange.session_id, exchange.messages)

    @staticmethod
    def _history_messages(records: Iterable[HistoryRecord | dict[str, Any]]) -> list[Message]:
        messages: list[Message] = []
        for raw in records:
            record = raw if isinstance(raw, HistoryRecord) else HistoryRecord.model_validate(raw)
            if _has_text(record.user_text):
                messages.append(Message(id=f"{record.id}:user", text=record.user_text, is_user=True))
            if _has_text(record.bot_text):
                messages.append(
                    Message(
                        id=record.id,
                        text=record.bot_text,
                        is_user=False,
                        feedback_rating=record.feedback_rating,
                    )
                )
        return messages

    def export_history(self) -> HistoryExchange:
        """Pack the current conversation for the history exchange.

        A user turn and the bot turn right after it share one record.
        """
        records: list[HistoryRecord] = []
        pending_user: Message | None = None

        for message in self.store:
            if message.is_user:
                if pending_user is not None:
                    records.append(HistoryRecord(id=pending_user.id, user_text=pending_user.text))
                pending_user = message
                continue

            records.append(
                HistoryRecord(
                    id=message.id,
                    user_text=pending_user.text if pending_user else None,
                    bot_text=message.text,
                    feedback_rating=message.feedback_rating,
                )
            )
            pending_user = None

        if pending_user is not None:
            records.append(HistoryRecord(id=pending_user.id, user_text=pending_user.text))

        return HistoryExchange(
            topic_id=self.session.topic_id,
            session_id=self.session.session_id,
            messages=records,
        )

    def get_info(self) -> dict[str, Any]:
        """Get controller information."""
        return {
            **self.session.get_info(),
            "connection_state": self.connection_state.value,
            "session_status": self.supervisor.session_status().value,
            "message_count": len(self.store),
            "is_streaming": self.assembler.is_streaming,
        }
