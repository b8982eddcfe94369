"""Chat API endpoints driving one controller per client."""

import asyncio
import logging
from typing import Any

from fastapi import APIRouter, HTTPException, WebSocket, WebSocketDisconnect

from streamchat.chat.manager import ControllerUnavailableError, get_controller_manager
from streamchat.chat.models import (
    ChatStateResponse,
    FeedbackRequest,
    IncomingMessageRequest,
    SendMessageRequest,
)
from streamchat.chat.orchestrator import SessionOrchestrator
from streamchat.models.event import ChatEvent
from streamchat.models.message import HistoryExchange

logger = logging.getLogger(__name__)

router = APIRouter()


def _controller(client_id: str) -> SessionOrchestrator:
    try:
        return get_controller_manager().get_or_create(client_id)
    except ControllerUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))


def _state(client_id: str, controller: SessionOrchestrator) -> ChatStateResponse:
    return ChatStateResponse(
        client_id=client_id,
        topic_id=controller.topic_id,
        session_id=controller.session_id,
        connection_state=controller.connection_state.value,
        session_status=controller.supervisor.session_status().value,
        is_streaming=controller.assembler.is_streaming,
        messages=controller.messages,
    )


# Admin endpoint for monitoring; declared before the {client_id} routes
@router.get("/chat/stats")
async def get_chat_stats() -> dict[str, Any]:
    """Get chat controller statistics (admin endpoint)."""
    return get_controller_manager().get_stats()


@router.post("/chat/{client_id}/open")
async def open_chat(client_id: str) -> ChatStateResponse:
    """Connect the client's chat, rotating the session if it sat idle too long."""
    controller = _controller(client_id)
    await controller.ensure_connected()
    return _state(client_id, controller)


@router.get("/chat/{client_id}")
async def get_chat(client_id: str) -> ChatStateResponse:
    """Get the current conversation of a client."""
    controller = get_controller_manager().get(client_id)
    if not controller:
        raise HTTPException(status_code=404, detail="Chat not found")
    return _state(client_id, controller)


@router.post("/chat/{client_id}/messages")
async def send_message(client_id: str, request: SendMessageRequest) -> ChatStateResponse:
    """Send a user message, optionally rating the latest answer first.

    Messages the transport cannot accept right now are dropped; check
    ``connection_state`` in the response.
    """
    controller = _controller(client_id)
    if request.rating is None:
        await controller.send_user_message(request.text)
    else:
        await controller.send_user_message_by_feedback(request.text, request.rating)
    return _state(client_id, controller)


@router.post("/chat/{client_id}/feedback")
async def submit_feedback(client_id: str, request: FeedbackRequest) -> dict[str, Any]:
    """Rate a bot message."""
    controller = _controller(client_id)
    await controller.submit_feedback(request.message_id, request.rating)
    message = controller.store.get(request.message_id)
    return {
        "message_id": request.message_id,
        "rating": request.rating,
        "applied_locally": message is not None and message.feedback_rating == request.rating,
    }


@router.post("/chat/{client_id}/incoming")
async def incoming_message(client_id: str, request: IncomingMessageRequest) -> ChatStateResponse:
    """Hand text from elsewhere in the app to the chat."""
    controller = _controller(client_id)
    await controller.handle_external_incoming(request.text)
    return _state(client_id, controller)


@router.put("/chat/{client_id}/history")
async def load_history(client_id: str, exchange: HistoryExchange) -> ChatStateResponse:
    """Replace the conversation with a past one and resume it."""
    controller = _controller(client_id)
    await controller.load_history_exchange(exchange)
    return _state(client_id, controller)


@router.get("/chat/{client_id}/history")
async def export_history(client_id: str) -> HistoryExchange:
    """Export the current conversation in history exchange form."""
    controller = get_controller_manager().get(client_id)
    if not controller:
        raise HTTPException(status_code=404, detail="Chat not found")
    return controller.export_history()


@router.delete("/chat/{client_id}")
async def close_chat(client_id: str) -> dict[str, str]:
    """Close the client's connection. The conversation is kept."""
    controller = get_controller_manager().get(client_id)
    if not controller:
        raise HTTPException(status_code=404, detail="Chat not found")

    await controller.close()
    return {"status": "closed", "client_id": client_id}


@router.websocket("/chat/{client_id}/ws")
async def chat_events(websocket: WebSocket, client_id: str) -> None:
    """WebSocket streaming controller events to the UI.

    Events sent to client:
    {"event": "message_appended", "index": 0, "message": {...}}
    {"event": "message_replaced", "index": 0, "message": {...}}
    {"event": "messages_reset", "payload": {"count": 0}}
    {"event": "scroll_to_bottom"}
    {"event": "error", "payload": {"detail": "..."}}
    """
    await websocket.accept()

    controller = get_controller_manager().get(client_id)
    if not controller:
        await websocket.close(code=4004, reason="Chat not found")
        return

    queue: asyncio.Queue[ChatEvent] = asyncio.Queue()
    unsubscribe = controller.subscribe(queue.put_nowait)
    logger.info(f"Event WebSocket connected for client {client_id}")

    async def forward_events() -> None:
        while True:
            event = await queue.get()
            await websocket.send_json(event.model_dump(mode="json"))

    forwarder = asyncio.create_task(forward_events())

    try:
        # Inbound frames are ignored; reading only detects the disconnect
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
        logger.info(f"Event WebSocket disconnected for client {client_id}")
    except WebSocketDisconnect:
        logger.info(f"Event WebSocket disconnected for client {client_id}")
    except Exception as e:
        logger.error(f"Event WebSocket error: {e}")
    finally:
        # Closing the socket does not close the chat; idle cleanup handles that
        unsubscribe()
        forwarder.cancel()
        try:
            await forwarder
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.error(f"Event WebSocket send failed: {e}")
