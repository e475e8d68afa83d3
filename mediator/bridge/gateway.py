"""
Mediation Gateway - the boundary both the agent side and the UI call through.

Thin translation layer over PendingRequestStore that owns validation.
"""

from typing import Any

from pydantic import ValidationError as PydanticValidationError

from mediator.bridge.schemas import (
    DECISION_MODELS,
    PAYLOAD_MODELS,
    Decision,
    MediationRequest,
    Payload,
    PermissionPayload,
    QuestionPayload,
    RequestKind,
    RequestStatus,
)
from mediator.bridge.store import PendingRequestStore
from mediator.core.errors import NotFoundError, ValidationError
from mediator.core.logger import logger

UNKNOWN_CORRELATION_ID = "unknown"


def _first_error(exc: PydanticValidationError) -> str:
    error = exc.errors()[0]
    location = ".".join(str(part) for part in error.get("loc", ()))
    return f"{location}: {error.get('msg')}" if location else str(error.get("msg"))


class MediationGateway:
    """Create, list and decide mediation requests on behalf of HTTP callers."""

    def __init__(self, store: PendingRequestStore):
        self.store = store

    def parse_payload(self, kind: RequestKind | str, payload: Any) -> Payload:
        """
        Validate a raw notify payload for its kind.

        Raises:
            ValidationError: Unknown kind, wrong shape, empty tool name,
                empty question list, or a question without options
        """
        try:
            kind = RequestKind(kind)
        except ValueError as e:
            raise ValidationError(f"Unknown request kind: {kind!r}", field="kind") from e

        model = PAYLOAD_MODELS[kind]
        if isinstance(payload, model):
            parsed = payload
        else:
            try:
                parsed = model.model_validate(payload)
            except PydanticValidationError as e:
                raise ValidationError(
                    f"Invalid {kind.value} payload: {_first_error(e)}", field="payload"
                ) from e

        if isinstance(parsed, PermissionPayload):
            if not parsed.tool_name.strip():
                raise ValidationError("toolName is required", field="toolName")
        elif isinstance(parsed, QuestionPayload):
            if not parsed.questions:
                raise ValidationError("questions array is required", field="questions")
            for index, item in enumerate(parsed.questions):
                if not item.header.strip():
                    raise ValidationError(
                        f"questions[{index}] requires a header", field="questions"
                    )
                if not item.options:
                    raise ValidationError(
                        f"questions[{index}] ({item.header}) requires at least one option",
                        field="questions",
                    )
        return parsed

    def parse_decision(self, request: MediationRequest, decision: Any) -> Decision:
        """
        Validate a raw decision against the kind of the request it targets.

        Multi-select answers are flattened to "a, b" here.
        """
        model = DECISION_MODELS[RequestKind(request.kind)]
        if isinstance(decision, model):
            return decision
        try:
            return model.model_validate(decision)
        except PydanticValidationError as e:
            raise ValidationError(
                f"Invalid decision for {request.kind} request: {_first_error(e)}",
                field="decision",
            ) from e

    def notify(self, kind: RequestKind | str, payload: Any, correlation_id: str | None = None) -> str:
        """
        Validate and store a new request.

        Returns:
            The new request id
        """
        parsed = self.parse_payload(kind, payload)
        request = self.store.create(parsed, correlation_id or UNKNOWN_CORRELATION_ID)
        return request.id

    def list(
        self, correlation_id: str | None = None, status: RequestStatus | str | None = None
    ) -> list[MediationRequest]:
        if status is not None:
            try:
                status = RequestStatus(status)
            except ValueError as e:
                raise ValidationError(f"Unknown status filter: {status!r}", field="status") from e
        return self.store.list(correlation_id=correlation_id, status=status)

    def get(self, request_id: str) -> MediationRequest | None:
        return self.store.get(request_id)

    def decide(self, request_id: str, decision: Any) -> None:
        """
        Submit the human decision for a request.

        Raises:
            NotFoundError: Absent or already decided (not distinguished)
            ValidationError: Decision malformed for the request's kind
        """
        request = self.store.get(request_id)
        if request is None or not request.is_pending:
            raise NotFoundError(request_id=request_id)

        parsed = self.parse_decision(request, decision)
        if not self.store.decide(request_id, parsed):
            raise NotFoundError(request_id=request_id)

    def cleanup(self, correlation_id: str) -> int:
        """Drop every request of a finished run."""
        removed = self.store.remove_by_correlation_id(correlation_id)
        logger.debug(f"Cleanup for run {correlation_id} removed {removed} request(s)")
        return removed
