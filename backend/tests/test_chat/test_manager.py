"""Tests for ChatControllerManager and configuration."""

from collections import OrderedDict
from datetime import datetime, timedelta

import pytest

from conftest import MockTransport
from streamchat.chat.manager import ChatControllerManager, ControllerUnavailableError
from streamchat.chat.supervisor import ConnectionState
from streamchat.config import ChatSettings, load_settings, load_transport_factory


class TestChatSettings:
    """Tests for ChatSettings."""

    def test_default_values(self):
        """Test default configuration values."""
        settings = ChatSettings()
        assert settings.session_timeout_minutes == 10
        assert settings.cleanup_interval_seconds == 60
        assert settings.transport is None
        assert settings.log_level == "INFO"

    def test_load_from_environment(self, monkeypatch):
        """Test settings read from environment variables."""
        monkeypatch.setenv("CHAT_SESSION_TIMEOUT_MINUTES", "2.5")
        monkeypatch.setenv("CHAT_CLEANUP_INTERVAL_SECONDS", "5")
        monkeypatch.setenv("CHAT_TRANSPORT", "mypkg.sockets:create")
        monkeypatch.setenv("LOG_LEVEL", "debug")

        settings = load_settings()

        assert settings.session_timeout_minutes == 2.5
        assert settings.cleanup_interval_seconds == 5
        assert settings.transport == "mypkg.sockets:create"
        assert settings.log_level == "DEBUG"

    def test_load_transport_factory(self):
        assert load_transport_factory("collections:OrderedDict") is OrderedDict
        assert load_transport_factory(None) is None

    def test_load_transport_factory_requires_attribute(self):
        with pytest.raises(ValueError):
            load_transport_factory("collections")


class TestChatControllerManager:
    """Tests for controller lifecycle."""

    def test_requires_transport(self):
        manager = ChatControllerManager()
        with pytest.raises(ControllerUnavailableError):
            manager.get_or_create("client-1")

    def test_get_or_create_reuses_controller(self):
        manager = ChatControllerManager(transport_factory=MockTransport)

        first = manager.get_or_create("client-1")
        second = manager.get_or_create("client-1")
        other = manager.get_or_create("client-2")

        assert first is second
        assert first is not other
        assert manager.active_controller_count == 2

    def test_timeout_is_passed_to_controllers(self):
        manager = ChatControllerManager(transport_factory=MockTransport, session_timeout_minutes=3)

        controller = manager.get_or_create("client-1")

        assert controller.supervisor.timeout == timedelta(minutes=3)

    @pytest.mark.asyncio
    async def test_close_controller(self):
        manager = ChatControllerManager(transport_factory=MockTransport)
        controller = manager.get_or_create("client-1")
        await controller.ensure_connected()

        assert await manager.close_controller("client-1") is True
        assert await manager.close_controller("client-1") is False
        assert controller.connection_state == ConnectionState.IDLE
        assert manager.get("client-1") is None

    @pytest.mark.asyncio
    async def test_close_idle_connections(self):
        manager = ChatControllerManager(transport_factory=MockTransport)
        idle = manager.get_or_create("idle")
        busy = manager.get_or_create("busy")
        await idle.ensure_connected()
        await busy.ensure_connected()
        await idle.send_user_message("hello")
        await busy.send_user_message("hello")
        idle.session.clock.last_interaction_time = datetime.now() - timedelta(minutes=11)
        idle_topic = idle.topic_id

        closed = await manager.close_idle_connections()

        assert closed == 1
        assert idle.connection_state == ConnectionState.IDLE
        assert busy.connection_state == ConnectionState.CONNECTED
        # Still registered; the next connect rotates
        assert manager.get("idle") is idle
        await idle.ensure_connected()
        assert idle.topic_id != idle_topic

    @pytest.mark.asyncio
    async def test_cleanup_task_start_stop(self):
        manager = ChatControllerManager(transport_factory=MockTransport)

        await manager.start_cleanup_task()
        assert manager.get_stats()["cleanup_task_running"] is True

        await manager.shutdown()
        assert manager.get_stats()["cleanup_task_running"] is False

    @pytest.mark.asyncio
    async def test_stats(self):
        manager = ChatControllerManager(transport_factory=MockTransport)
        assert manager.get_stats()["oldest_controller_age_seconds"] is None

        await manager.get_or_create("a").ensure_connected()
        manager.get_or_create("b")

        stats = manager.get_stats()
        assert stats["active_controllers"] == 2
        assert stats["controllers_by_state"] == {"connected": 1, "idle": 1}
        assert stats["transport_configured"] is True
