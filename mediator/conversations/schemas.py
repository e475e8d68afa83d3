"""Pydantic schemas for conversation summaries and their live-status overlay."""

from datetime import datetime, timezone
from enum import Enum

from pydantic import ConfigDict, Field

from mediator.bridge.schemas import WireModel
from mediator.runs.live_status import LiveStatus


class ConversationStatus(str, Enum):
    ONGOING = "ongoing"
    COMPLETED = "completed"


class ConversationSummary(WireModel):
    """Durable conversation metadata, as stored."""

    model_config = ConfigDict(frozen=True)

    session_id: str
    title: str = "New Chat"
    project_path: str | None = None
    status: ConversationStatus = ConversationStatus.ONGOING
    streaming_id: str | None = None
    archived: bool = False
    pinned: bool = False
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ConversationWithLiveStatus(ConversationSummary):
    """Display view: a summary plus whatever the live feed knows about its run."""

    live_status: LiveStatus | None = None


class ConversationPage(WireModel):
    conversations: list[ConversationWithLiveStatus]
    has_more: bool
