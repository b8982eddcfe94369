"""ChatControllerManager keeps one chat controller per client."""

import asyncio
import logging
from collections import Counter
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

from streamchat.chat.clock import SessionStatus
from streamchat.chat.orchestrator import SessionOrchestrator
from streamchat.chat.supervisor import ConnectionState
from streamchat.chat.transport import BaseTransport
from streamchat.config import ChatSettings, load_settings, load_transport_factory

logger = logging.getLogger(__name__)

TransportFactory = Callable[[], BaseTransport]

# Singleton manager instance
_manager: "ChatControllerManager | None" = None


class ControllerUnavailableError(Exception):
    """Raised when a controller is requested but no transport is configured."""


class ChatControllerManager:
    """Manages chat controller lifecycle.

    Responsibilities:
    - Create controllers with their own transport
    - Store controllers per client (in-memory)
    - Close connections of controllers idle past the session timeout
    - Get/close controllers by client id
    """

    def __init__(
        self,
        transport_factory: TransportFactory | None = None,
        session_timeout_minutes: float = 10,
        cleanup_interval_seconds: float = 60,
    ):
        """Initialize the controller manager.

        Args:
            transport_factory: Builds a fresh transport for each controller.
            session_timeout_minutes: Idle time after which a session rotates.
            cleanup_interval_seconds: How often idle connections are closed.
        """
        self._controllers: dict[str, SessionOrchestrator] = {}
        self._transport_factory = transport_factory
        self._session_timeout = timedelta(minutes=session_timeout_minutes)
        self._cleanup_interval = cleanup_interval_seconds
        self._cleanup_task: asyncio.Task | None = None
        self._created_at: dict[str, datetime] = {}

    @classmethod
    def from_settings(cls, settings: ChatSettings) -> "ChatControllerManager":
        return cls(
            transport_factory=load_transport_factory(settings.transport),
            session_timeout_minutes=settings.session_timeout_minutes,
            cleanup_interval_seconds=settings.cleanup_interval_seconds,
        )

    @property
    def active_controller_count(self) -> int:
        return len(self._controllers)

    def get_or_create(self, client_id: str) -> SessionOrchestrator:
        """Get the controller for a client, creating it on first use.

        Raises:
            ControllerUnavailableError: If no transport factory is configured.
        """
        controller = self._controllers.get(client_id)
        if controller:
            return controller

        if self._transport_factory is None:
            raise ControllerUnavailableError("No chat transport configured (set CHAT_TRANSPORT)")

        controller = SessionOrchestrator(
            transport=self._transport_factory(),
            timeout=self._session_timeout,
        )
        self._controllers[client_id] = controller
        self._created_at[client_id] = datetime.now()
        logger.info(
            f"Created chat controller for client {client_id} "
            f"(total controllers: {len(self._controllers)})"
        )
        return controller

    def get(self, client_id: str) -> SessionOrchestrator | None:
        return self._controllers.get(client_id)

    async def close_controller(self, client_id: str) -> bool:
        """Close and remove a controller; False if the client had none."""
        controller = self._controllers.pop(client_id, None)
        self._created_at.pop(client_id, None)
        if controller:
            await controller.close()
            logger.info(f"Removed chat controller for client {client_id}")
            return True
        return False

    async def close_idle_connections(self) -> int:
        """Disconnect controllers whose session has expired.

        Controllers stay registered; their next connect rotates the session.
        """
        idle = [
            client_id
            for client_id, c in self._controllers.items()
            if c.connection_state != ConnectionState.IDLE
            and c.supervisor.session_status() == SessionStatus.EXPIRED
        ]

        for client_id in idle:
            logger.info(f"Closing idle chat connection for client {client_id}")
            await self._controllers[client_id].close()

        if idle:
            logger.info(f"Closed {len(idle)} idle chat connection(s)")

        return len(idle)

    async def start_cleanup_task(self) -> None:
        if self._cleanup_task is None:
            self._cleanup_task = asyncio.create_task(self._cleanup_loop())
            logger.info("Started chat idle cleanup background task")

    async def stop_cleanup_task(self) -> None:
        if self._cleanup_task:
            self._cleanup_task.cancel()
            try:
                await self._cleanup_task
            except asyncio.CancelledError:
                pass
            self._cleanup_task = None
            logger.info("Stopped chat idle cleanup background task")

    async def _cleanup_loop(self) -> None:
        while True:
            try:
                await asyncio.sleep(self._cleanup_interval)
                await self.close_idle_connections()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.exception(f"Error in chat cleanup task: {e}")

    async def shutdown(self) -> None:
        """Stop idle cleanup and close every controller."""
        await self.stop_cleanup_task()

        for client_id in list(self._controllers):
            await self.close_controller(client_id)

        logger.info("Chat controller manager shutdown complete")

    def get_stats(self) -> dict[str, Any]:
        oldest = min(self._created_at.values(), default=None)
        return {
            "active_controllers": len(self._controllers),
            "controllers_by_state": dict(
                Counter(c.connection_state.value for c in self._controllers.values())
            ),
            "oldest_controller_age_seconds": (
                (datetime.now() - oldest).total_seconds() if oldest else None
            ),
            "cleanup_task_running": self._cleanup_task is not None,
            "transport_configured": self._transport_factory is not None,
        }


def get_controller_manager() -> ChatControllerManager:
    """Return the process-wide manager, building it from settings on first use."""
    global _manager
    if _manager is None:
        _manager = ChatControllerManager.from_settings(load_settings())
    return _manager


def set_controller_manager(manager: ChatControllerManager | None) -> None:
    """Replace the singleton, e.g. with one built around a test transport."""
    global _manager
    _manager = manager


async def init_controller_manager() -> ChatControllerManager:
    manager = get_controller_manager()
    await manager.start_cleanup_task()
    return manager


async def shutdown_controller_manager() -> None:
    global _manager
    if _manager:
        await _manager.shutdown()
        _manager = None
