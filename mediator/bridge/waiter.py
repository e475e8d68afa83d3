"""
Mediation Waiter - the agent-side two-phase long-poll state machine.

The agent's tool call cannot hold a connection open on a store it does not
own, so it polls. A request missing from the pending list is ambiguous (just
decided, or never existed); an immediate second query over all requests of
the run settles which, within the same iteration.

    CREATED --notify ok--> POLLING --decided/vanished--> RESOLVED
       |                      |------budget spent------> TIMED_OUT
       +-----error----------> +------error-------------> FAILED
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any, Protocol

from pydantic import BaseModel

from mediator.bridge.schemas import (
    MediationRequest,
    PermissionDecision,
    QuestionDecision,
    RequestKind,
    RequestStatus,
)
from mediator.core.errors import MediatorError
from mediator.core.logger import logger

POLL_INTERVAL_SECONDS = 1.0
TIMEOUT_SECONDS = 60 * 60

DEFAULT_DENY_MESSAGE = (
    "The user doesn't want to proceed with this tool use. The tool use was rejected "
    "(eg. if it was a file edit, the new_string was NOT written to the file). "
    "STOP what you are doing and wait for the user to tell you how to proceed."
)
PERMISSION_TIMEOUT_MESSAGE = "Permission request timed out after the user did not respond"
QUESTION_TIMEOUT_MESSAGE = "Question timed out - user did not respond"
VANISHED_MESSAGE = "Mediation request no longer exists on the broker"


class WaiterState(str, Enum):
    """Lifecycle of one waiter."""

    CREATED = "created"
    POLLING = "polling"
    RESOLVED = "resolved"
    TIMED_OUT = "timed_out"
    FAILED = "failed"


TERMINAL_STATES = frozenset({WaiterState.RESOLVED, WaiterState.TIMED_OUT, WaiterState.FAILED})

_TRANSITIONS: dict[WaiterState, frozenset[WaiterState]] = {
    WaiterState.CREATED: frozenset({WaiterState.POLLING, WaiterState.FAILED}),
    WaiterState.POLLING: frozenset({WaiterState.RESOLVED, WaiterState.TIMED_OUT, WaiterState.FAILED}),
    WaiterState.RESOLVED: frozenset(),
    WaiterState.TIMED_OUT: frozenset(),
    WaiterState.FAILED: frozenset(),
}


class MediationClient(Protocol):
    """What the waiter needs from the broker (BrokerClient implements it)."""

    async def notify(self, kind: RequestKind | str, payload: dict[str, Any], correlation_id: str) -> str: ...

    async def list_requests(
        self, correlation_id: str, status: RequestStatus | str | None = None
    ) -> list[MediationRequest]: ...


class WaitResult(BaseModel):
    """Terminal outcome of a waiter run."""

    state: WaiterState
    request_id: str
    request: MediationRequest | None = None
    polls: int = 0
    elapsed_seconds: float = 0.0

    @property
    def vanished(self) -> bool:
        """Resolved because the request disappeared from the broker."""
        return self.state == WaiterState.RESOLVED and self.request is None


class MediationWaiter:
    """
    Waits for the human decision on one mediation request.

    No external cancel signal: a waiter always ends RESOLVED, TIMED_OUT or
    FAILED. The timeout is wall-clock from creation and checked
    cooperatively, so a slow poll can overshoot it by one round-trip.
    """

    def __init__(
        self,
        client: MediationClient,
        correlation_id: str,
        poll_interval: float = POLL_INTERVAL_SECONDS,
        timeout: float = TIMEOUT_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.client = client
        self.correlation_id = correlation_id
        self.poll_interval = poll_interval
        self.timeout = timeout
        self._clock = clock
        self._sleep = sleep

        self.state = WaiterState.CREATED
        self.request_id: str | None = None
        self.polls = 0
        self._created_at: float | None = None

    def _transition(self, new_state: WaiterState) -> None:
        if new_state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Illegal waiter transition {self.state.value}->{new_state.value}")
        logger.debug(f"Waiter {self.request_id}: {self.state.value}->{new_state.value}")
        self.state = new_state

    def _elapsed(self) -> float:
        return self._clock() - self._created_at if self._created_at is not None else 0.0

    def _result(self, request: MediationRequest | None = None) -> WaitResult:
        return WaitResult(
            state=self.state,
            request_id=self.request_id or "",
            request=request,
            polls=self.polls,
            elapsed_seconds=self._elapsed(),
        )

    async def wait(self, kind: RequestKind | str, payload: dict[str, Any]) -> WaitResult:
        """
        Create the request and poll until it is decided or the budget is spent.

        Raises:
            ValidationError: The broker rejected the payload (no polling happened)
            TransportError: A notify or poll call failed (no silent retry)

        Any exception leaves the waiter FAILED before it propagates.
        """
        try:
            self.request_id = await self.client.notify(kind, payload, self.correlation_id)
        except Exception:
            self._transition(WaiterState.FAILED)
            raise

        self._created_at = self._clock()
        logger.debug(f"Mediation request created: {self.request_id} (run={self.correlation_id})")
        self._transition(WaiterState.POLLING)

        while self.state == WaiterState.POLLING:
            try:
                result = await self._poll_once()
            except Exception as e:
                logger.error(
                    f"Polling failed for {self.request_id}: {e}",
                    exc_info=not isinstance(e, MediatorError),
                )
                self._transition(WaiterState.FAILED)
                raise
            if result is not None:
                return result

        raise RuntimeError(f"Waiter left POLLING without a result ({self.state.value})")

    async def _poll_once(self) -> WaitResult | None:
        """One iteration: sleep, timeout check, phase A, then phase B if needed."""
        await self._sleep(self.poll_interval)
        self.polls += 1

        if self._elapsed() > self.timeout:
            logger.warning(
                f"Mediation request {self.request_id} timed out after {self._elapsed():.0f}s"
            )
            self._transition(WaiterState.TIMED_OUT)
            return self._result()

        # Phase A: still pending?
        pending = await self.client.list_requests(self.correlation_id, status=RequestStatus.PENDING)
        if any(request.id == self.request_id for request in pending):
            return None

        # Phase B: absent from pending, so look it up among all requests of the run
        everything = await self.client.list_requests(self.correlation_id)
        match = next((request for request in everything if request.id == self.request_id), None)

        if match is None:
            logger.warning(f"Mediation request {self.request_id} vanished from the broker")
            self._transition(WaiterState.RESOLVED)
            return self._result()
        if match.is_pending:
            return None

        logger.debug(f"Mediation request {self.request_id} resolved ({match.status.value})")
        self._transition(WaiterState.RESOLVED)
        return self._result(match)


# --- Tool-call payload mapping ---


def permission_outcome(result: WaitResult, tool_input: dict[str, Any]) -> dict[str, Any]:
    """Map a permission waiter result to the approval tool's return payload (fails closed)."""
    if result.state == WaiterState.TIMED_OUT:
        return {"behavior": "deny", "message": PERMISSION_TIMEOUT_MESSAGE}

    request = result.request
    decision = request.decision if request is not None else None
    if not isinstance(decision, PermissionDecision):
        return {"behavior": "deny", "message": f"Permission denied: {VANISHED_MESSAGE}"}

    if request.status == RequestStatus.APPROVED:
        updated = decision.modified_input if decision.modified_input is not None else tool_input
        return {"behavior": "allow", "updatedInput": updated}
    return {"behavior": "deny", "message": decision.deny_reason or DEFAULT_DENY_MESSAGE}


def question_outcome(result: WaitResult) -> dict[str, Any]:
    """Map a question waiter result to the question tool's return payload."""
    if result.state == WaiterState.TIMED_OUT:
        return {"error": QUESTION_TIMEOUT_MESSAGE}

    request = result.request
    decision = request.decision if request is not None else None
    if request is None or request.status != RequestStatus.ANSWERED or not isinstance(
        decision, QuestionDecision
    ):
        return {"error": f"Question failed: {VANISHED_MESSAGE}"}
    return {"answers": decision.answers}
