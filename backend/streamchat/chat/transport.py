"""Transport contract between chat controllers and a streaming socket.

The socket implementation itself lives outside this package. A transport must:
1. Open, reopen and close the connection
2. Report whether it is connected and whether it can accept sends
3. Forward questions and feedback to the remote side
4. Deliver stream events to exactly one installed listener
"""

from abc import ABC, abstractmethod


class TransportError(Exception):
    """Error reported by a transport through ``TransportListener.on_error``."""

    def __init__(self, message: str, retriable: bool = True):
        super().__init__(message)
        self.retriable = retriable


class TransportListener(ABC):
    """Receiver for stream events.

    The transport awaits each hook in the order the events arrive, so one
    event is fully processed before the next is delivered.
    """

    @abstractmethod
    async def on_start(self, message_id: str) -> None:
        """A bot turn with ``message_id`` begins streaming."""

    @abstractmethod
    async def on_chunk(self, fragment: str) -> None:
        """A fragment of the current bot turn arrived."""

    @abstractmethod
    async def on_end(self, message_id: str) -> None:
        """The bot turn with ``message_id`` finished streaming."""

    @abstractmethod
    async def on_session_id_received(self, session_id: str) -> None:
        """The remote side assigned a session id to this connection."""

    @abstractmethod
    async def on_error(self, error: Exception) -> None:
        """The transport hit an error. Recovery is the transport's job."""


class BaseTransport(ABC):
    """Abstract base class for streaming chat transports.

    Example implementation:
        class WebSocketTransport(BaseTransport):
            async def connect(self) -> None:
                self._ws = await websockets.connect(self._url)
                self._reader = asyncio.create_task(self._read_loop())

            async def _read_loop(self) -> None:
                async for frame in self._ws:
                    event = json.loads(frame)
                    if event["type"] == "chunk":
                        await self.listener.on_chunk(event["text"])
                    ...
    """

    def __init__(self) -> None:
        self.listener: TransportListener | None = None
        self.session_id: str | None = None

    def set_listener(self, listener: TransportListener) -> None:
        """Install the single listener for stream events.

        A second call replaces the first listener; callers install once.
        """
        self.listener = listener

    # =========================================================================
    # Abstract Methods (must implement)
    # =========================================================================

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        """Whether the underlying socket is open."""

    @property
    @abstractmethod
    def can_send_message(self) -> bool:
        """Whether ``ask`` would currently be delivered."""

    @abstractmethod
    async def connect(self) -> None:
        """Open the connection, or reopen it reusing the installed listener.

        When ``session_id`` is already set the transport resumes that session
        instead of performing a fresh handshake.
        """

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the connection. Safe to call when already closed."""

    @abstractmethod
    async def ask(self, message_id: str, message: str, topic_id: str) -> None:
        """Send a user question within ``topic_id``."""

    @abstractmethod
    async def send_feedback(self, message_id: str, rating: int) -> None:
        """Send a rating for the bot message ``message_id``."""
