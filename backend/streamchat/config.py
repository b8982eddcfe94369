"""Runtime configuration for chat controllers."""

import importlib
import logging
import os
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel

logger = logging.getLogger(__name__)

DEFAULT_SESSION_TIMEOUT_MINUTES = 10
DEFAULT_CLEANUP_INTERVAL_SECONDS = 60


class ChatSettings(BaseModel):
    """Settings shared by every chat controller in the process."""

    session_timeout_minutes: float = DEFAULT_SESSION_TIMEOUT_MINUTES
    cleanup_interval_seconds: float = DEFAULT_CLEANUP_INTERVAL_SECONDS
    transport: str | None = None  # "package.module:factory"
    log_level: str = "INFO"


def load_settings() -> ChatSettings:
    """Build settings from environment variables."""
    return ChatSettings(
        session_timeout_minutes=float(
            os.getenv("CHAT_SESSION_TIMEOUT_MINUTES", DEFAULT_SESSION_TIMEOUT_MINUTES)
        ),
        cleanup_interval_seconds=float(
            os.getenv("CHAT_CLEANUP_INTERVAL_SECONDS", DEFAULT_CLEANUP_INTERVAL_SECONDS)
        ),
        transport=os.getenv("CHAT_TRANSPORT") or None,
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )


def load_transport_factory(path: str | None) -> Callable[[], Any] | None:
    """Resolve a ``module:attribute`` import path to a transport factory.

    Args:
        path: Import path such as ``"mypkg.sockets:create_transport"``.

    Returns:
        The factory callable, or None when no path is configured.
    """
    if not path:
        return None

    module_name, _, attribute = path.partition(":")
    if not attribute:
        raise ValueError(f"Transport path must look like 'module:factory', got {path!r}")

    module = importlib.import_module(module_name)
    factory = getattr(module, attribute)
    logger.info(f"Loaded chat transport factory {path}")
    return factory
