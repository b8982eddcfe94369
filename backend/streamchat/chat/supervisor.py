"""ConnectionSupervisor owns the life cycle of the streaming connection."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import timedelta
from enum import Enum

from streamchat.chat.clock import DEFAULT_SESSION_TIMEOUT, SessionClock, SessionStatus
from streamchat.chat.events import ChatEventHub
from streamchat.chat.transport import BaseTransport, TransportListener
from streamchat.models.event import ChatEventType

logger = logging.getLogger(__name__)


class ConnectionState(str, Enum):
    """Connection state as seen by the controller."""

    IDLE = "idle"  # not initialized
    CONNECTING = "connecting"  # initialized, transport not connected
    CONNECTED = "connected"


class ConnectionSupervisor:
    """Decides when to connect, reconnect or rotate before connecting.

    Responsibilities:
    - Rotate the session first when the idle timeout has passed
    - Install the transport listener once per initialization
    - Reconnect an initialized transport without reinstalling the listener
    - Collapse concurrent connect requests into one
    """

    def __init__(
        self,
        transport: BaseTransport,
        listener: TransportListener,
        clock: SessionClock,
        rotate: Callable[[], Awaitable[None]],
        hub: ChatEventHub,
        timeout: timedelta = DEFAULT_SESSION_TIMEOUT,
    ):
        """Initialize the supervisor.

        Args:
            transport: The streaming transport to drive.
            listener: Receiver installed on the transport on initialization.
            clock: Idle clock of the session; reset in place on rotation.
            rotate: Coroutine that rotates the session.
            hub: Event hub for connection state notifications.
            timeout: Idle time after which the session rotates.
        """
        self._transport = transport
        self._listener = listener
        self._clock = clock
        self._rotate = rotate
        self._hub = hub
        self._timeout = timeout
        self._initialized = False
        self._connecting: asyncio.Task | None = None
        self.connect_count = 0

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def timeout(self) -> timedelta:
        return self._timeout

    @property
    def state(self) -> ConnectionState:
        if not self._initialized:
            return ConnectionState.IDLE
        if self._transport.is_connected:
            return ConnectionState.CONNECTED
        return ConnectionState.CONNECTING

    @property
    def is_connected(self) -> bool:
        return self.state == ConnectionState.CONNECTED

    def session_status(self) -> SessionStatus:
        return self._clock.classify(self._clock.now(), self._timeout)

    async def ensure_connected(self) -> None:
        """Make sure the transport is connected for the current session.

        Safe to call repeatedly; a connect already in flight is awaited
        instead of being started twice.
        """
        if self.session_status() == SessionStatus.EXPIRED:
            logger.info("Chat session idle past timeout, rotating before connect")
            await self._rotate()

        if self._connecting is not None:
            await self._join(self._connecting)
            return

        if self._initialized and self._transport.is_connected:
            return

        self._connecting = asyncio.create_task(self._connect())
        try:
            await self._join(self._connecting)
        finally:
            self._connecting = None

    async def _join(self, task: asyncio.Task) -> None:
        try:
            await asyncio.shield(task)
        except asyncio.CancelledError:
            if not task.cancelled():
                raise
            logger.info("Chat connect cancelled by disconnect")

    async def _connect(self) -> None:
        if self._initialized:
            logger.info("Reconnecting chat transport")
        else:
            self._transport.set_listener(self._listener)
            self._initialized = True
            logger.info("Initializing chat transport")

        self.connect_count += 1
        self._hub.publish(ChatEventType.CONNECTION, state=ConnectionState.CONNECTING.value)
        try:
            await self._transport.connect()
        except Exception as e:
            logger.error(f"Chat transport failed to connect: {e}")
            await self._listener.on_error(e)
        self._hub.publish(ChatEventType.CONNECTION, state=self.state.value)

    async def disconnect(self) -> None:
        """Tear down the transport and mark the supervisor not initialized."""
        if self._connecting is not None:
            self._connecting.cancel()
            try:
                await self._connecting
            except asyncio.CancelledError:
                pass
            self._connecting = None

        await self._transport.disconnect()
        self._initialized = False
        logger.info("Chat transport disconnected")
        self._hub.publish(ChatEventType.CONNECTION, state=ConnectionState.IDLE.value)
