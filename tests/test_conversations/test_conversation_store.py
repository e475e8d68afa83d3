"""
Tests for ConversationStore.

Tests upsert, pagination order and filters against a temporary SQLite file.
"""

from datetime import datetime, timedelta

import pytest
import pytest_asyncio

from mediator.conversations.schemas import ConversationStatus, ConversationSummary
from mediator.conversations.store import ConversationStore
from mediator.core.database import Database

BASE_TIME = datetime(2026, 1, 1, 12, 0, 0)


@pytest_asyncio.fixture
async def database(tmp_path):
    """Initialized database on a temporary file."""
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'conversations.db'}")
    await db.init()
    yield db
    await db.close()


@pytest.fixture
def conversation_store(database):
    return ConversationStore(database)


def _summary(index: int, **overrides) -> ConversationSummary:
    fields = {
        "session_id": f"session-{index}",
        "title": f"Conversation {index}",
        "project_path": "/work/project",
        "created_at": BASE_TIME,
        "updated_at": BASE_TIME + timedelta(minutes=index),
    }
    fields.update(overrides)
    return ConversationSummary(**fields)


class TestConversationStore:
    """Test ConversationStore functionality."""

    @pytest.mark.asyncio
    async def test_save_and_get(self, conversation_store):
        saved = await conversation_store.save(_summary(1, streaming_id="run-1"))

        fetched = await conversation_store.get("session-1")
        assert fetched == saved
        assert fetched.streaming_id == "run-1"
        assert fetched.status == ConversationStatus.ONGOING

    @pytest.mark.asyncio
    async def test_get_missing(self, conversation_store):
        assert await conversation_store.get("nope") is None

    @pytest.mark.asyncio
    async def test_save_updates_existing(self, conversation_store):
        await conversation_store.save(_summary(1))
        await conversation_store.save(_summary(1, title="Renamed", pinned=True))

        fetched = await conversation_store.get("session-1")
        assert fetched.title == "Renamed"
        assert fetched.pinned is True
        assert len(await conversation_store.list_page(limit=10)) == 1

    @pytest.mark.asyncio
    async def test_list_page_newest_first(self, conversation_store):
        for index in range(5):
            await conversation_store.save(_summary(index))

        first = await conversation_store.list_page(limit=2)
        second = await conversation_store.list_page(limit=2, offset=2)

        assert [s.session_id for s in first] == ["session-4", "session-3"]
        assert [s.session_id for s in second] == ["session-2", "session-1"]

    @pytest.mark.asyncio
    async def test_list_page_filters(self, conversation_store):
        await conversation_store.save(_summary(0, archived=True))
        await conversation_store.save(_summary(1, pinned=True))
        await conversation_store.save(_summary(2))

        archived = await conversation_store.list_page(limit=10, archived=True)
        pinned = await conversation_store.list_page(limit=10, archived=False, pinned=True)

        assert [s.session_id for s in archived] == ["session-0"]
        assert [s.session_id for s in pinned] == ["session-1"]

