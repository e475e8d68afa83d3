"""
FastAPI routes for agent run lifecycle.

Called by the process supervisor: register a run (gets its streaming id),
report live status while it streams, and end it (triggers cleanup).
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from mediator.api.dependencies import get_registry
from mediator.bridge.schemas import WireModel
from mediator.runs.live_status import ConnectionState, LiveStatus
from mediator.runs.registry import RunRegistry

router = APIRouter(prefix="/api/v1/runs", tags=["runs"])


class RunCreate(WireModel):
    streaming_id: str | None = None


class RunResponse(WireModel):
    streaming_id: str


class RunStatusUpdate(WireModel):
    connection_state: ConnectionState = ConnectionState.CONNECTED
    current_status: str


class RunEnded(WireModel):
    streaming_id: str
    removed: int


@router.post("", response_model=RunResponse)
async def register_run(
    registry: Annotated[RunRegistry, Depends(get_registry)],
    body: RunCreate | None = None,
):
    """Register a run; a streaming id is generated when none is supplied."""
    streaming_id = registry.register_run(body.streaming_id if body else None)
    return RunResponse(streaming_id=streaming_id)


@router.post("/{streaming_id}/status", response_model=LiveStatus)
async def report_status(
    streaming_id: str,
    update: RunStatusUpdate,
    registry: Annotated[RunRegistry, Depends(get_registry)],
):
    """Publish a live status for a run."""
    status = LiveStatus(
        streaming_id=streaming_id,
        connection_state=update.connection_state,
        current_status=update.current_status,
    )
    registry.report_status(status)
    return status


@router.delete("/{streaming_id}", response_model=RunEnded)
async def end_run(
    streaming_id: str,
    registry: Annotated[RunRegistry, Depends(get_registry)],
):
    """End a run and drop all of its mediation requests."""
    removed = registry.end_run(streaming_id)
    return RunEnded(streaming_id=streaming_id, removed=removed)
