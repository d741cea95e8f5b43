"""FastAPI application factory."""

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from seren_capture.api.captures import router as captures_router
from seren_capture.app_logging import configure_logging
from seren_capture.containers import AppContainer
from seren_capture.domain.errors import (
    CaptureError,
    IntegrityError,
    NotFoundError,
    StorageError,
)


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        state_container: AppContainer = app.state.container
        await state_container.capture_service.initialize()
        cleanup_task = None
        interval = state_container.settings.session_cleanup_interval_seconds
        if interval > 0:
            cleanup_task = asyncio.create_task(
                _cleanup_periodically(state_container, interval)
            )
        yield
        if cleanup_task is not None:
            cleanup_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await cleanup_task
        await state_container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(captures_router)

    @app.exception_handler(CaptureError)
    async def capture_error_handler(_: Request, exc: CaptureError) -> JSONResponse:
        status_code = _status_code_for(exc)
        if status_code >= 500:  # noqa: PLR2004
            logger.error("Capture request failed: %s", exc)
        return JSONResponse(
            status_code=status_code, content={"success": False, "error": str(exc)}
        )

    @app.get("/health")
    async def health() -> dict[str, object]:
        """Simple health check endpoint."""
        return {
            "status": "healthy",
            "service": "seren-capture",
            "timestamp": datetime.now(tz=UTC).isoformat(),
        }

    return app


def _status_code_for(exc: CaptureError) -> int:
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, IntegrityError | StorageError):
        return 500
    return 400


async def _cleanup_periodically(container: AppContainer, interval: int) -> None:
    """Sweep expired sessions every ``interval`` seconds."""
    logger = logging.getLogger(__name__)
    max_age_ms = container.settings.session_max_age_seconds * 1000
    while True:
        await asyncio.sleep(interval)
        removed = container.capture_service.cleanup_expired_sessions(max_age_ms)
        if removed:
            logger.info("Periodic cleanup removed %s sessions", removed)
