"""
Pydantic schemas for mediation requests.

Defines the two request variants (permission, question), their payloads and
decisions, the store event envelope, and the HTTP wire bodies. Wire names are
camelCase; snake_case is accepted on input.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from pydantic.alias_generators import to_camel

# Exact separator used when a multi-select answer is flattened to one string
MULTI_SELECT_SEPARATOR = ", "


class WireModel(BaseModel):
    """Base for everything that crosses the HTTP boundary."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        """JSON-ready dict using wire (camelCase) names."""
        return self.model_dump(mode="json", by_alias=True)


class RequestKind(str, Enum):
    """Variant tag of a mediation request."""

    PERMISSION = "permission"
    QUESTION = "question"


class RequestStatus(str, Enum):
    """Mediation request status. Monotonic: never returns to PENDING."""

    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"
    ANSWERED = "answered"


# --- Payloads ---


class PermissionPayload(WireModel):
    """A tool the agent wants to run, and the input it wants to run it with."""

    tool_name: str = Field(description="The tool requesting permission")
    tool_input: dict[str, Any] = Field(default_factory=dict, description="The input for the tool")


class QuestionOption(WireModel):
    label: str = Field(description="Display text for this option")
    description: str | None = Field(default=None, description="Optional explanation of the option")


class QuestionItem(WireModel):
    question: str = Field(description="The question text to display")
    header: str = Field(description="Short label for the question, also the answer key")
    options: list[QuestionOption] = Field(description="Available choices for this question")
    multi_select: bool = Field(default=False, description="Whether several options can be chosen")


class QuestionPayload(WireModel):
    questions: list[QuestionItem] = Field(description="Ordered questions to ask the user")


# --- Decisions ---


class PermissionDecision(WireModel):
    """Human verdict on a permission request."""

    approved: bool = Field(strict=True, description="Only a real boolean true grants the tool use")
    modified_input: dict[str, Any] | None = Field(
        default=None, description="Replacement tool input (approve only)"
    )
    deny_reason: str | None = Field(default=None, description="Message for the agent (deny only)")


class QuestionDecision(WireModel):
    """Answers keyed by question header."""

    answers: dict[str, str]

    @field_validator("answers", mode="before")
    @classmethod
    def flatten_multi_select(cls, value: Any) -> Any:
        """Join multi-select answers into one string ("a, b")."""
        if not isinstance(value, dict):
            return value
        flattened = {}
        for header, answer in value.items():
            if isinstance(answer, list):
                if not all(isinstance(item, str) for item in answer):
                    raise ValueError(f"answer for {header!r} must be a list of strings")
                answer = MULTI_SELECT_SEPARATOR.join(answer)
            flattened[header] = answer
        return flattened


# --- Requests ---


class _RequestEnvelope(WireModel):
    """Fields shared by both request variants."""

    model_config = ConfigDict(frozen=True)

    id: str
    correlation_id: str
    created_at: datetime
    status: RequestStatus = RequestStatus.PENDING

    @property
    def is_pending(self) -> bool:
        return self.status == RequestStatus.PENDING


class PermissionRequest(_RequestEnvelope):
    kind: Literal["permission"] = "permission"
    payload: PermissionPayload
    decision: PermissionDecision | None = None

    @staticmethod
    def status_for(decision: PermissionDecision) -> RequestStatus:
        return RequestStatus.APPROVED if decision.approved else RequestStatus.DENIED


class QuestionRequest(_RequestEnvelope):
    kind: Literal["question"] = "question"
    payload: QuestionPayload
    decision: QuestionDecision | None = None

    @staticmethod
    def status_for(decision: QuestionDecision) -> RequestStatus:
        return RequestStatus.ANSWERED


MediationRequest = Annotated[PermissionRequest | QuestionRequest, Field(discriminator="kind")]
MediationRequestAdapter: TypeAdapter[PermissionRequest | QuestionRequest] = TypeAdapter(
    MediationRequest
)

Payload = PermissionPayload | QuestionPayload
Decision = PermissionDecision | QuestionDecision

PAYLOAD_MODELS: dict[RequestKind, type[WireModel]] = {
    RequestKind.PERMISSION: PermissionPayload,
    RequestKind.QUESTION: QuestionPayload,
}
DECISION_MODELS: dict[RequestKind, type[WireModel]] = {
    RequestKind.PERMISSION: PermissionDecision,
    RequestKind.QUESTION: QuestionDecision,
}


# --- Store events ---

StoreEventType = Literal["request_created", "request_decided"]


class StoreEvent(BaseModel):
    """Lifecycle event emitted by the pending request store."""

    type: StoreEventType
    request: MediationRequest

    def to_wire(self) -> dict[str, Any]:
        return {"type": self.type, "request": self.request.to_wire()}


# --- HTTP bodies ---


class NotifyRequest(WireModel):
    kind: RequestKind
    payload: dict[str, Any]
    correlation_id: str | None = None


class NotifyResponse(WireModel):
    success: bool = True
    id: str


class MediationListResponse(WireModel):
    requests: list[MediationRequest]


class DecideResponse(WireModel):
    success: bool = True
    message: str = "Decision recorded"
