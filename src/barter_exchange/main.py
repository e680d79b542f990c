"""FastAPI application entry point for the Barter Exchange.

Lifecycle:
    1. Startup: Initialize logging, database, Redis, create tables (dev mode).
    2. Running: Serve REST API + MCP tools on a single Uvicorn process.
    3. Shutdown: Close database and Redis connections gracefully.

The MCP server is mounted at /mcp so trading agents can discover tools
alongside the REST API at /api/v1/*.

Run with:
    uvicorn barter_exchange.main:app --reload --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

from contextlib import AsyncExitStack, asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI

from barter_exchange.config import get_settings
from barter_exchange.logging_config import get_logger, setup_logging_from_settings

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application startup and shutdown lifecycle."""
    settings = get_settings()

    setup_logging_from_settings(settings)
    logger = get_logger(__name__)
    logger.info("app.starting", env=settings.app_env, debug=settings.app_debug)

    from barter_exchange.infrastructure.database.engine import close_db, init_db

    await init_db()

    from barter_exchange.infrastructure.redis_client import close_redis, init_redis

    # Without Redis only idempotency keys are unavailable.
    try:
        await init_redis()
    except Exception as exc:
        logger.warning("app.redis_unavailable", error=str(exc))

    logger.info("app.started", host=settings.app_host, port=settings.app_port)

    async with AsyncExitStack() as stack:
        # Mounted sub-apps get no lifespan of their own.
        if settings.mcp_transport == "streamable-http":
            from barter_exchange.mcp_server.tools import mcp

            await stack.enter_async_context(mcp.session_manager.run())
        yield

    logger.info("app.shutting_down")
    await close_db()
    await close_redis()
    logger.info("app.stopped")


def create_app() -> FastAPI:
    """Application factory — creates and configures the FastAPI app."""
    settings = get_settings()

    app = FastAPI(
        title="Barter Exchange",
        description=(
            "Bilateral barter negotiation between vendors: offers, counter-offers, "
            "dual fulfillment and arbitrated disputes."
        ),
        version="0.1.0",
        lifespan=lifespan,
        debug=settings.app_debug,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )

    # --- Middleware ---
    from barter_exchange.api.middleware import setup_middleware

    setup_middleware(app)

    # --- REST API Routes ---
    from barter_exchange.api.routes.arbiter import router as arbiter_router
    from barter_exchange.api.routes.health import router as health_router
    from barter_exchange.api.routes.offers import router as offers_router

    app.include_router(health_router)
    app.include_router(offers_router)
    app.include_router(arbiter_router)

    # --- MCP Server (mounted as sub-application) ---
    from barter_exchange.mcp_server.tools import mcp

    if settings.mcp_transport == "streamable-http":
        app.mount("/mcp", mcp.streamable_http_app())
    else:
        app.mount("/mcp", mcp.sse_app())

    return app


# The app instance used by Uvicorn
app = create_app()
