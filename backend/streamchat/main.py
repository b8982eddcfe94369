"""FastAPI application entry point."""

import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from streamchat.chat.manager import init_controller_manager, shutdown_controller_manager
from streamchat.config import load_settings

settings = load_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    stream=sys.stdout,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup and shutdown."""
    manager = await init_controller_manager()
    if not manager.get_stats()["transport_configured"]:
        logger.warning("CHAT_TRANSPORT is not set; chat endpoints will answer 503")

    yield

    await shutdown_controller_manager()


app = FastAPI(
    title="streamchat",
    description="Session and streaming core for a single chat conversation",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware - allow any localhost port for local UIs
app.add_middleware(
    CORSMiddleware,
    allow_origin_regex=r"^http://localhost(:\d+)?$",
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}


# Import and include routers after app is created to avoid circular imports
from streamchat.api import chat  # noqa: E402

app.include_router(chat.router, prefix="/api/v1", tags=["chat"])
