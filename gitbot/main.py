"""
FastAPI Application Entry Point

This module creates and configures the FastAPI application.
It sets up all routes, exception handlers and the shared notifier.

Design Decisions:
- Use lifespan events for startup/shutdown
- The notifier is created once per application and injected into handlers
- Missing configuration is logged, not fatal (health checks keep working)
- Expose health check endpoints
"""

import asyncio
from contextlib import asynccontextmanager, suppress
from typing import Any, AsyncGenerator, Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from gitbot import __version__
from gitbot.config import Settings, get_settings
from gitbot.logging_config import get_logger, setup_logging
from gitbot.services.keepalive import start_keepalive
from gitbot.services.notifier import DiscordNotifier
from gitbot.webhook import create_webhook_router

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Handles startup and shutdown events for the application.
    """
    settings: Settings = app.state.settings

    # Startup
    logger.info(
        "Starting gitbot",
        host=settings.host,
        port=settings.port,
        webhook_path=settings.webhook_path,
        quick_ack=settings.quick_ack
    )

    if not settings.github_webhook_secret:
        logger.warning("GITHUB_WEBHOOK_SECRET is not set; every webhook will be rejected")

    missing = settings.missing_notifier_settings()
    if missing:
        logger.warning(
            "Discord notifier not configured; notifications will fail",
            missing=missing
        )

    keepalive_task = start_keepalive(settings.keepalive_url, settings.keepalive_interval)

    yield

    # Shutdown
    logger.info("Shutting down gitbot")

    if keepalive_task is not None:
        keepalive_task.cancel()
        with suppress(asyncio.CancelledError):
            await keepalive_task

    close = getattr(app.state.notifier, "close", None)
    if close is not None:
        await close()


def create_app(
    settings: Optional[Settings] = None,
    notifier: Optional[Any] = None
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Settings to use (defaults to the cached environment settings)
        notifier: Object with an async notify(notification) method
            (defaults to a DiscordNotifier built from settings)

    Returns:
        Configured FastAPI application instance
    """
    settings = settings or get_settings()
    setup_logging(settings)

    app = FastAPI(
        title="gitbot",
        description="Relays GitHub pull request webhooks to Discord",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url=None
    )

    app.state.settings = settings
    app.state.notifier = notifier if notifier is not None else DiscordNotifier.from_settings(settings)

    # Register routes
    app.include_router(create_webhook_router(settings.webhook_path))

    # Add global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request,
        exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.error(
            "Unhandled exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            error_type=type(exc).__name__
        )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "Internal server error",
                "type": type(exc).__name__
            }
        )

    # Add root endpoint
    @app.get("/")
    async def root():
        """Root endpoint with basic info."""
        return {
            "name": "gitbot",
            "version": __version__,
            "status": "running",
            "webhook": settings.webhook_path
        }

    # Add health check endpoint
    @app.get("/health")
    async def health_check(request: Request):
        """
        Health check endpoint.

        Returns basic health status for load balancers and monitors.
        """
        current = request.app.state.notifier
        return {
            "status": "healthy",
            "service": "gitbot",
            "version": __version__,
            "signature_verification": bool(settings.github_webhook_secret),
            "notifier_configured": bool(getattr(current, "is_configured", False)),
            "notifier_ready": bool(getattr(current, "is_ready", False))
        }

    return app


# Create the application instance
app = create_app()
