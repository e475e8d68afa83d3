"""
Pending Request Store - single source of truth for outstanding mediation requests.

In-memory and process-local: pending requests are meaningless after a
restart because the agent call waiting on them is gone too.
"""

from collections.abc import Callable
from datetime import datetime, timezone
from uuid import uuid4

from mediator.bridge.schemas import (
    Decision,
    MediationRequest,
    Payload,
    PermissionDecision,
    PermissionPayload,
    PermissionRequest,
    QuestionDecision,
    QuestionPayload,
    QuestionRequest,
    RequestStatus,
    StoreEvent,
    StoreEventType,
)
from mediator.core.logger import logger

StoreListener = Callable[[StoreEvent], None]


class PendingRequestStore:
    """
    Keyed store of mediation requests with at-most-one-decision semantics.

    Every method is synchronous. Under the cooperative event loop that makes
    decide() an atomic check-and-set: nothing can interleave between the
    pending check and the write.

    Records are frozen; decide() swaps in a decided copy, so snapshots
    handed out earlier never change under the caller.
    """

    def __init__(self):
        # id -> request, insertion ordered
        self._requests: dict[str, MediationRequest] = {}
        self._listeners: list[StoreListener] = []

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        """
        Register a lifecycle event listener.

        Returns:
            Callable that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, event_type: StoreEventType, request: MediationRequest) -> None:
        event = StoreEvent(type=event_type, request=request)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                # The mutation already happened; a broken observer must not undo it
                logger.error(f"Store listener failed on {event_type} for {request.id}: {e}", exc_info=True)

    def create(self, payload: Payload, correlation_id: str) -> MediationRequest:
        """
        Store a new pending request and emit request_created.

        Args:
            payload: Permission or question payload (already validated)
            correlation_id: Streaming id of the agent run that asked

        Returns:
            The stored request
        """
        fields = {
            "id": str(uuid4()),
            "correlation_id": correlation_id,
            "created_at": datetime.now(timezone.utc),
            "payload": payload,
        }
        if isinstance(payload, PermissionPayload):
            request: MediationRequest = PermissionRequest(**fields)
        elif isinstance(payload, QuestionPayload):
            request = QuestionRequest(**fields)
        else:
            raise TypeError(f"Unsupported payload type: {type(payload).__name__}")

        self._requests[request.id] = request
        logger.info(
            f"Mediation request added: {request.id} "
            f"(kind={request.kind}, correlation_id={correlation_id})"
        )
        self._emit("request_created", request)
        return request

    def list(
        self, correlation_id: str | None = None, status: RequestStatus | None = None
    ) -> list[MediationRequest]:
        """Return matching requests in insertion order (filters are AND-combined)."""
        requests = list(self._requests.values())
        if correlation_id is not None:
            requests = [r for r in requests if r.correlation_id == correlation_id]
        if status is not None:
            requests = [r for r in requests if r.status == status]
        return requests

    def get(self, request_id: str) -> MediationRequest | None:
        return self._requests.get(request_id)

    def decide(self, request_id: str, decision: Decision) -> bool:
        """
        Record the one and only decision for a request.

        Args:
            request_id: Request to decide
            decision: PermissionDecision or QuestionDecision matching the request kind

        Returns:
            True if this call decided the request, False if it is absent or
            already decided (nothing changes in that case)
        """
        request = self._requests.get(request_id)
        if request is None:
            logger.warning(f"Mediation request not found: {request_id}")
            return False
        if not request.is_pending:
            logger.warning(f"Mediation request already decided: {request_id} ({request.status.value})")
            return False

        if isinstance(request, PermissionRequest) and isinstance(decision, PermissionDecision):
            status = PermissionRequest.status_for(decision)
        elif isinstance(request, QuestionRequest) and isinstance(decision, QuestionDecision):
            status = QuestionRequest.status_for(decision)
        else:
            raise TypeError(
                f"{type(decision).__name__} does not apply to a {request.kind} request"
            )

        decided = request.model_copy(update={"status": status, "decision": decision})
        self._requests[request_id] = decided
        logger.info(f"Mediation request decided: {request_id} ({status.value})")
        self._emit("request_decided", decided)
        return True

    def remove_by_correlation_id(self, correlation_id: str) -> int:
        """
        Remove every request of one agent run, whatever its status.

        Used for cleanup when a run ends.

        Returns:
            Number of requests removed
        """
        to_remove = [
            request_id
            for request_id, request in self._requests.items()
            if request.correlation_id == correlation_id
        ]
        for request_id in to_remove:
            del self._requests[request_id]

        if to_remove:
            logger.info(
                f"Removed {len(to_remove)} mediation request(s) for run {correlation_id}"
            )
        return len(to_remove)

    def clear(self) -> None:
        """Drop all requests (shutdown and tests)."""
        self._requests.clear()

    def __len__(self) -> int:
        return len(self._requests)
