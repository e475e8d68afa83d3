"""
Conversation Store - durable conversation metadata over SQLAlchemy Async.

Provides offset pagination ordered by last update, newest first.
"""

from sqlalchemy import select

from mediator.conversations.models import ConversationRecord
from mediator.conversations.schemas import ConversationStatus, ConversationSummary
from mediator.core.database import Database
from mediator.core.logger import logger


def _to_summary(record: ConversationRecord) -> ConversationSummary:
    return ConversationSummary(
        session_id=record.id,
        title=record.title or "New Chat",
        project_path=record.project_path,
        status=ConversationStatus(record.status),
        streaming_id=record.streaming_id,
        archived=record.archived,
        pinned=record.pinned,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


class ConversationStore:
    """Read/write access to conversation records."""

    def __init__(self, database: Database):
        self.database = database

    async def save(self, summary: ConversationSummary) -> ConversationSummary:
        """Insert or update a conversation record."""
        async with self.database.session() as session:
            record = await session.get(ConversationRecord, summary.session_id)
            if record is None:
                record = ConversationRecord(id=summary.session_id, created_at=summary.created_at)
                session.add(record)

            record.title = summary.title
            record.project_path = summary.project_path
            record.status = summary.status.value
            record.streaming_id = summary.streaming_id
            record.archived = summary.archived
            record.pinned = summary.pinned
            record.updated_at = summary.updated_at
            await session.commit()
            await session.refresh(record)

            logger.debug(f"Saved conversation {record.id} (status={record.status})")
            return _to_summary(record)

    async def get(self, session_id: str) -> ConversationSummary | None:
        async with self.database.session() as session:
            record = await session.get(ConversationRecord, session_id)
            return _to_summary(record) if record else None

    async def list_page(
        self,
        limit: int,
        offset: int = 0,
        archived: bool | None = None,
        pinned: bool | None = None,
    ) -> list[ConversationSummary]:
        """
        One page of summaries, most recently updated first.

        Args:
            limit: Page size
            offset: Number of summaries to skip
            archived: Only archived / only non-archived when set
            pinned: Only pinned / only unpinned when set
        """
        async with self.database.session() as session:
            stmt = select(ConversationRecord)
            if archived is not None:
                stmt = stmt.where(ConversationRecord.archived == archived)
            if pinned is not None:
                stmt = stmt.where(ConversationRecord.pinned == pinned)
            stmt = (
                stmt.order_by(ConversationRecord.updated_at.desc(), ConversationRecord.id)
                .offset(offset)
                .limit(limit)
            )

            result = await session.execute(stmt)
            return [_to_summary(record) for record in result.scalars().all()]
