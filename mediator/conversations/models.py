"""
Database models for the durable conversation store.

Persists finished and ongoing conversation metadata; mediation requests are
never stored here.
"""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, String, func
from sqlalchemy.orm import Mapped, mapped_column

from mediator.core.database import Base


class ConversationRecord(Base):
    """
    One conversation (agent session) as the durable store knows it.

    streaming_id is set while the conversation has a live agent run.
    """

    __tablename__ = "conversations"

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    project_path: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="ongoing", index=True)
    streaming_id: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    pinned: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now(), index=True
    )

    def __repr__(self) -> str:
        return (
            f"<ConversationRecord(id={self.id!r}, status={self.status!r}, "
            f"streaming_id={self.streaming_id!r})>"
        )


Index("ix_conversations_archived_updated", ConversationRecord.archived, ConversationRecord.updated_at)
