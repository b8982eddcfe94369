"""Pytest configuration and fixtures."""

import asyncio
from datetime import datetime, timedelta
from typing import AsyncGenerator, Generator

import pytest
from httpx import ASGITransport, AsyncClient

from streamchat.chat.events import ChatEventHub
from streamchat.chat.manager import ChatControllerManager, set_controller_manager
from streamchat.chat.orchestrator import SessionOrchestrator
from streamchat.chat.surface import ChatSurface
from streamchat.chat.transport import BaseTransport
from streamchat.main import app
from streamchat.models.event import ChatEvent


class MockTransport(BaseTransport):
    """In-memory transport recording every call.

    ``connect`` hands out a new session id through the listener unless a
    session id was already set (resume).
    """

    def __init__(self, accept_sends: bool = True, handshake: bool = True):
        super().__init__()
        self.connected = False
        self.accept_sends = accept_sends
        self.handshake = handshake
        self.connect_calls = 0
        self.disconnect_calls = 0
        self.set_listener_calls = 0
        self.asked: list[tuple[str, str, str]] = []
        self.feedback: list[tuple[str, int]] = []

    def set_listener(self, listener) -> None:
        self.set_listener_calls += 1
        super().set_listener(listener)

    @property
    def is_connected(self) -> bool:
        return self.connected

    @property
    def can_send_message(self) -> bool:
        return self.connected and self.accept_sends

    async def connect(self) -> None:
        self.connect_calls += 1
        await asyncio.sleep(0)
        self.connected = True
        if self.session_id is None and self.handshake:
            self.session_id = f"sess-{self.connect_calls}"
            await self.listener.on_session_id_received(self.session_id)

    async def disconnect(self) -> None:
        self.disconnect_calls += 1
        self.connected = False

    async def ask(self, message_id: str, message: str, topic_id: str) -> None:
        self.asked.append((message_id, message, topic_id))

    async def send_feedback(self, message_id: str, rating: int) -> None:
        self.feedback.append((message_id, rating))

    async def stream(self, message_id: str, *chunks: str) -> None:
        """Deliver one complete bot turn to the listener."""
        await self.listener.on_start(message_id)
        for chunk in chunks:
            await self.listener.on_chunk(chunk)
        await self.listener.on_end(message_id)


class RecordingSurface(ChatSurface):
    """Chat surface that counts hook calls."""

    def __init__(self):
        self.calls: list[str] = []

    def scroll_to_bottom(self) -> None:
        self.calls.append("scroll")

    def show_chat_surface(self) -> None:
        self.calls.append("show")

    def hide_chat_surface(self) -> None:
        self.calls.append("hide")


class FakeNow:
    """Controllable clock source."""

    def __init__(self, start: datetime | None = None):
        self.current = start or datetime(2024, 5, 1, 9, 0, 0)

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> None:
        self.current += timedelta(**kwargs)


@pytest.fixture
def now() -> FakeNow:
    return FakeNow()


@pytest.fixture
def transport() -> MockTransport:
    return MockTransport()


@pytest.fixture
def surface() -> RecordingSurface:
    return RecordingSurface()


@pytest.fixture
def controller(transport: MockTransport, surface: RecordingSurface, now: FakeNow) -> SessionOrchestrator:
    return SessionOrchestrator(transport=transport, surface=surface, now=now)


@pytest.fixture
def events(controller: SessionOrchestrator) -> list[ChatEvent]:
    """Every event the controller publishes from now on."""
    received: list[ChatEvent] = []
    controller.subscribe(received.append)
    return received


@pytest.fixture
def hub() -> ChatEventHub:
    return ChatEventHub()


@pytest.fixture
def manager() -> Generator[ChatControllerManager, None, None]:
    manager = ChatControllerManager(transport_factory=MockTransport)
    set_controller_manager(manager)
    yield manager
    set_controller_manager(None)


@pytest.fixture
async def client(manager: ChatControllerManager) -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
