"""FastAPI application factory for the Time Capsule viewer API."""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI

# Configure root logger so all application logs are visible in container output
logging.basicConfig(
    level=os.environ.get("CAPSULE_LOG_LEVEL", "INFO"),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
from fastapi.middleware.cors import CORSMiddleware

from capsule.config import CapsuleConfig, get_config
from capsule.engine.capsule_registry import CapsuleRegistry
from capsule.engine.log_buffer import BufferHandler, LogBuffer
from capsule.api.routes.health import VERSION

logger = logging.getLogger("api")


def create_app(
    capsule_registry: CapsuleRegistry | None = None,
    log_buffer: LogBuffer | None = None,
    config: CapsuleConfig | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    All dependencies are injectable for testing. When called with no
    arguments, defaults are built from the environment.

    Args:
        capsule_registry: Injected capsule registry (creates default if None).
        log_buffer: Injected log buffer (creates default if None).
        config: Injected configuration (global config if None).

    Returns:
        Configured FastAPI instance.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Time Capsule API v%s starting", VERSION)
        yield
        logger.info("Shutting down Time Capsule API")
        for session in app.state.registry.list_sessions():
            session.archive.close()
        logging.getLogger().removeHandler(_buffer_handler)

    app = FastAPI(
        title="Time Capsule Viewer API",
        description="Upload, validate and browse time capsule archives.",
        version=VERSION,
        lifespan=lifespan,
    )

    # ── Shared state ──────────────────────────────────────────────────
    cfg = config or get_config()
    app.state.config = cfg
    app.state.registry = capsule_registry or CapsuleRegistry(max_sessions=cfg.max_sessions)
    app.state.log_buffer = log_buffer or LogBuffer()

    # Attach a BufferHandler to the root logger so all log records are
    # captured in the ring buffer.
    _buffer_handler = BufferHandler(app.state.log_buffer)
    _buffer_handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    logging.getLogger().addHandler(_buffer_handler)

    # ── CORS ──────────────────────────────────────────────────────────
    allowed_origins = os.environ.get(
        "ALLOWED_ORIGINS", "http://localhost:3000,http://localhost:8000"
    ).split(",")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Routers ───────────────────────────────────────────────────────
    from capsule.api.routes.health import router as health_router
    from capsule.api.routes.capsules import router as capsules_router
    from capsule.api.routes.manifest import router as manifest_router
    from capsule.api.routes.logs import router as logs_router

    app.include_router(health_router)
    app.include_router(capsules_router)
    app.include_router(manifest_router)
    app.include_router(logs_router)

    return app
