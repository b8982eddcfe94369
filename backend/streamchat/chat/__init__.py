"""Chat session core for streamed conversations.

This module provides the building blocks of one conversation's life cycle:
- MessageStore: Ordered chat turns with observer notifications
- SessionClock: Idle classification driving session rotation
- ConnectionSupervisor: Connect, reconnect and rotate-before-connect
- StreamAssembler: Turns start/chunk/end events into bot messages
- SessionOrchestrator: The controller the UI talks to
- ChatControllerManager: One controller per client
"""

from streamchat.chat.assembler import StreamAssembler
from streamchat.chat.clock import SessionClock, SessionStatus
from streamchat.chat.events import ChatEventHub
from streamchat.chat.manager import (
    ChatControllerManager,
    ControllerUnavailableError,
    get_controller_manager,
)
from streamchat.chat.orchestrator import SessionOrchestrator
from streamchat.chat.session import ChatSession
from streamchat.chat.store import MessageStore
from streamchat.chat.supervisor import ConnectionState, ConnectionSupervisor
from streamchat.chat.surface import ChatSurface, EventHubSurface
from streamchat.chat.transport import BaseTransport, TransportError, TransportListener

__all__ = [
    "BaseTransport",
    "ChatControllerManager",
    "ChatEventHub",
    "ChatSession",
    "ChatSurface",
    "ConnectionState",
    "ConnectionSupervisor",
    "ControllerUnavailableError",
    "EventHubSurface",
    "MessageStore",
    "SessionClock",
    "SessionOrchestrator",
    "SessionStatus",
    "StreamAssembler",
    "TransportError",
    "TransportListener",
    "get_controller_manager",
]
