import uuid
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from mediator.api.routes import conversations, events, mediation, runs
from mediator.bridge.broadcaster import EventBroadcaster
from mediator.bridge.gateway import MediationGateway
from mediator.bridge.schemas import RequestStatus
from mediator.bridge.store import PendingRequestStore
from mediator.conversations.store import ConversationStore
from mediator.core.config import Settings, settings
from mediator.core.database import Database
from mediator.core.errors import (
    ErrorDetail,
    ErrorResponse,
    MediatorError,
    error_to_detail,
    http_status_for,
)
from mediator.core.logger import logger
from mediator.runs.live_status import LiveStatusFeed
from mediator.runs.registry import RunRegistry
from mediator.runs.watchdog import WatchdogService

# --- Exception Handlers ---


async def mediator_error_handler(_request: Request, exc: MediatorError) -> JSONResponse:
    """
    Centralized handler for mediator errors.

    ValidationError -> 400, NotFoundError -> 404, TransportError -> 502, anything else -> 500.
    """
    response = ErrorResponse(error=error_to_detail(exc), trace_id=exc.trace_id)
    return JSONResponse(status_code=http_status_for(exc), content=response.model_dump())


async def validation_error_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Handle Pydantic validation errors from FastAPI request parsing.

    Malformed bodies and query parameters are client errors: 400.
    """
    trace_id = str(uuid.uuid4())
    error_detail = ErrorDetail(
        code="ERR_VALIDATION",
        message=f"Invalid request format: {exc.errors()}",
        retryable=False,
        trace_id=trace_id,
    )
    response = ErrorResponse(error=error_detail, trace_id=trace_id)
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=response.model_dump())


async def general_exception_handler(_request: Request, exc: Exception) -> JSONResponse:
    """
    Catch-all handler for unexpected exceptions.

    Logs the full error and returns a sanitized response.
    """
    trace_id = str(uuid.uuid4())
    error_detail = ErrorDetail(
        code="ERR_UNKNOWN",
        message="An unexpected error occurred. Please check logs for details.",
        retryable=False,
        trace_id=trace_id,
    )

    logger.error(
        f"Unhandled exception (trace_id={trace_id}): {exc}",
        exc_info=True,
        extra={"trace_id": trace_id},
    )

    response = ErrorResponse(error=error_detail, trace_id=trace_id)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=response.model_dump(),
    )


def create_app(app_settings: Settings | None = None) -> FastAPI:
    """
    Build the broker application.

    Every component is constructed here exactly once and shared through
    app.state, so one process holds exactly one pending request store.
    """
    app_settings = app_settings or settings

    store = PendingRequestStore()
    gateway = MediationGateway(store)
    feed = LiveStatusFeed()
    registry = RunRegistry(gateway, feed)
    database = Database(app_settings.database_url)
    conversation_store = ConversationStore(database)
    broadcaster = EventBroadcaster(store, feed)
    watchdog = WatchdogService(registry, threshold_hours=app_settings.run_idle_timeout_hours)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        """Lifespan event handler for startup and shutdown."""
        await database.init()
        await watchdog.start(interval_seconds=app_settings.watchdog_interval_seconds)
        yield
        await watchdog.stop()
        broadcaster.close()
        store.clear()
        await database.close()

    app = FastAPI(
        title="Mediator",
        description="Human-in-the-loop mediation bridge for detached agent runs",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.settings = app_settings
    app.state.store = store
    app.state.gateway = gateway
    app.state.feed = feed
    app.state.registry = registry
    app.state.database = database
    app.state.conversations = conversation_store
    app.state.broadcaster = broadcaster
    app.state.watchdog = watchdog

    app.add_exception_handler(MediatorError, mediator_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    app.include_router(mediation.router)
    app.include_router(runs.router)
    app.include_router(conversations.router)
    app.include_router(events.router)

    @app.get("/api/v1/status")
    async def get_status():
        """Health check endpoint."""
        return {
            "status": "online",
            "pending_requests": len(store.list(status=RequestStatus.PENDING)),
            "active_runs": len(registry.active_runs),
            "push_connections": broadcaster.get_connection_count(),
        }

    return app


app = create_app()


if __name__ == "__main__":
    print(f"Starting Mediator on http://{settings.host}:{settings.port}")
    uvicorn.run(app, host=settings.host, port=settings.port)
