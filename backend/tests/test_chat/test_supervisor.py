"""Tests for ConnectionSupervisor through the orchestrator."""

import asyncio

import pytest

from conftest import MockTransport
from streamchat.chat.orchestrator import SessionOrchestrator
from streamchat.chat.supervisor import ConnectionState


class FailingTransport(MockTransport):
    """Transport whose connect always fails."""

    async def connect(self) -> None:
        self.connect_calls += 1
        raise ConnectionError("refused")


class SlowTransport(MockTransport):
    """Transport whose connect waits until released."""

    def __init__(self):
        super().__init__()
        self.release = asyncio.Event()

    async def connect(self) -> None:
        self.connect_calls += 1
        await self.release.wait()
        self.connected = True


class TestEnsureConnected:
    """Tests for connect, reconnect and idempotence."""

    @pytest.mark.asyncio
    async def test_first_call_installs_listener_and_connects(self, controller, transport):
        assert controller.connection_state == ConnectionState.IDLE

        await controller.ensure_connected()

        assert controller.connection_state == ConnectionState.CONNECTED
        assert transport.set_listener_calls == 1
        assert transport.connect_calls == 1
        assert transport.listener is controller.assembler

    @pytest.mark.asyncio
    async def test_repeated_calls_connect_once(self, controller, transport):
        await controller.ensure_connected()
        await controller.ensure_connected()

        assert transport.connect_calls == 1

    @pytest.mark.asyncio
    async def test_concurrent_calls_connect_once(self, controller, transport):
        await asyncio.gather(controller.ensure_connected(), controller.ensure_connected())

        assert transport.connect_calls == 1
        assert controller.connection_state == ConnectionState.CONNECTED

    @pytest.mark.asyncio
    async def test_reconnect_reuses_listener(self, controller, transport):
        await controller.ensure_connected()
        topic_id = controller.topic_id
        transport.connected = False  # dropped by the remote side

        assert controller.connection_state == ConnectionState.CONNECTING
        await controller.ensure_connected()

        assert transport.connect_calls == 2
        assert transport.set_listener_calls == 1
        assert controller.topic_id == topic_id

    @pytest.mark.asyncio
    async def test_connect_failure_is_reported_not_raised(self, now):
        transport = FailingTransport()
        controller = SessionOrchestrator(transport=transport, now=now)
        received = []
        controller.subscribe(received.append)

        await controller.ensure_connected()

        assert controller.connection_state == ConnectionState.CONNECTING
        assert any(e.event == "error" and e.payload["detail"] == "refused" for e in received)

    @pytest.mark.asyncio
    async def test_disconnect_during_connect(self, now):
        transport = SlowTransport()
        controller = SessionOrchestrator(transport=transport, now=now)

        pending = asyncio.create_task(controller.ensure_connected())
        while transport.connect_calls == 0:
            await asyncio.sleep(0)
        await controller.close()
        await pending

        assert controller.connection_state == ConnectionState.IDLE
        assert transport.connect_calls == 1


class TestRotationOnConnect:
    """Tests for idle-timeout rotation when a connection is ensured."""

    @pytest.mark.asyncio
    async def test_expired_session_rotates(self, controller, transport, now):
        await controller.ensure_connected()
        await controller.send_user_message("hello")
        old_topic = controller.topic_id
        old_session = controller.session_id

        now.advance(minutes=10, seconds=1)
        await controller.ensure_connected()

        assert controller.topic_id != old_topic
        assert controller.session_id != old_session
        assert controller.messages == []
        assert controller.session.clock.last_interaction_time is None
        assert transport.disconnect_calls == 1
        assert transport.connect_calls == 2

    @pytest.mark.asyncio
    async def test_active_session_does_not_rotate(self, controller, transport, now):
        await controller.ensure_connected()
        await controller.send_user_message("hello")
        topic_id = controller.topic_id

        now.advance(minutes=10)
        await controller.ensure_connected()

        assert controller.topic_id == topic_id
        assert len(controller.messages) == 1
        assert transport.disconnect_calls == 0

    @pytest.mark.asyncio
    async def test_fresh_session_never_rotates(self, controller, now):
        topic_id = controller.topic_id
        now.advance(hours=5)

        await controller.ensure_connected()

        assert controller.topic_id == topic_id
