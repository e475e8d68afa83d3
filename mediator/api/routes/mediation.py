"""
FastAPI routes for mediation requests.

POST /mediate/notify is called by the agent-side tool server, GET /mediate by
both the tool server (polling) and the UI, POST /mediate/{id}/decide by the UI.
"""

from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, Query

from mediator.api.dependencies import get_gateway
from mediator.bridge.gateway import MediationGateway
from mediator.bridge.schemas import (
    DecideResponse,
    MediationListResponse,
    NotifyRequest,
    NotifyResponse,
)
from mediator.core.logger import logger

router = APIRouter(prefix="/mediate", tags=["mediation"])


@router.post("/notify", response_model=NotifyResponse)
async def notify(
    body: NotifyRequest,
    gateway: Annotated[MediationGateway, Depends(get_gateway)],
):
    """
    Create a mediation request.

    Returns 400 when the payload is malformed for its kind.
    """
    request_id = gateway.notify(body.kind, body.payload, body.correlation_id)
    logger.debug(f"Mediation request tracked: {request_id} (run={body.correlation_id})")
    return NotifyResponse(id=request_id)


@router.get("", response_model=MediationListResponse)
async def list_requests(
    gateway: Annotated[MediationGateway, Depends(get_gateway)],
    correlation_id: Annotated[str | None, Query(alias="correlationId")] = None,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
):
    """
    List mediation requests.

    Args:
        correlation_id: Only requests of this run
        status_filter: Only requests in this status (pending, approved, denied, answered)
    """
    requests = gateway.list(correlation_id=correlation_id, status=status_filter)
    return MediationListResponse(requests=requests)


@router.post("/{request_id}/decide", response_model=DecideResponse)
async def decide(
    request_id: str,
    decision: Annotated[dict[str, Any], Body()],
    gateway: Annotated[MediationGateway, Depends(get_gateway)],
):
    """
    Record the human decision for a request.

    404 when the request is absent or already decided; 400 when the decision
    does not fit the request's kind.
    """
    gateway.decide(request_id, decision)
    return DecideResponse()
