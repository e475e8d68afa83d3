"""
Live Status Correlator - overlays live run status onto durable conversation summaries.

The durable store only learns a run is over when its record is rewritten;
the live feed usually knows first. The correlator merges both into one
display list without ever writing to the durable store.
"""

from collections.abc import Awaitable, Callable, Iterable, Mapping
from typing import Any

from mediator.conversations.schemas import (
    ConversationStatus,
    ConversationSummary,
    ConversationWithLiveStatus,
)
from mediator.core.logger import logger
from mediator.runs.live_status import LiveStatus, LiveStatusFeed

INITIAL_LIMIT = 20
LOAD_MORE_LIMIT = 40

FetchPage = Callable[..., Awaitable[list[ConversationSummary]]]
ChangeListener = Callable[[list[ConversationWithLiveStatus]], None]


def merge_live_status(
    summaries: Iterable[ConversationSummary], statuses: Mapping[str, LiveStatus]
) -> list[ConversationWithLiveStatus]:
    """
    Project live statuses onto summaries.

    Pure: the same inputs always give the same view, and the summaries are
    not modified. An ongoing summary whose run dropped its connection after
    a terminal phase is displayed as completed; any other live status is
    attached without touching the durable status.
    """
    merged = []
    for summary in summaries:
        fields: dict[str, Any] = summary.model_dump()
        live = None
        if summary.streaming_id and summary.status == ConversationStatus.ONGOING:
            live = statuses.get(summary.streaming_id)
        if live is not None:
            fields["live_status"] = live
            if live.is_finished:
                fields["status"] = ConversationStatus.COMPLETED
        merged.append(ConversationWithLiveStatus.model_validate(fields))
    return merged


class LiveStatusCorrelator:
    """
    Paginated conversation list with live-status overlay for one UI session.

    Subscribes to the live feed for every loaded summary that is ongoing with
    a known streaming id; subscribing twice to the same id is a no-op.
    """

    def __init__(
        self,
        fetch_page: FetchPage,
        feed: LiveStatusFeed,
        initial_limit: int = INITIAL_LIMIT,
        load_more_limit: int = LOAD_MORE_LIMIT,
        on_change: ChangeListener | None = None,
    ):
        self.fetch_page = fetch_page
        self.feed = feed
        self.initial_limit = initial_limit
        self.load_more_limit = load_more_limit
        self.on_change = on_change

        self._summaries: list[ConversationSummary] = []
        self._statuses: dict[str, LiveStatus] = {}
        self._subscriptions: dict[str, Callable[[], None]] = {}
        self._filters: dict[str, Any] = {}

        self.has_more = True
        self.loading = False
        self.loading_more = False

    @property
    def conversations(self) -> list[ConversationWithLiveStatus]:
        return merge_live_status(self._summaries, self._statuses)

    @property
    def subscribed_ids(self) -> set[str]:
        return set(self._subscriptions)

    async def load(self, limit: int | None = None, **filters: Any) -> list[ConversationWithLiveStatus]:
        """Load the first page, replacing whatever was loaded before."""
        page_size = limit or self.initial_limit
        self.loading = True
        try:
            page = await self.fetch_page(limit=page_size, offset=0, **filters)
        finally:
            self.loading = False

        self._filters = filters
        self._summaries = list(page)
        self.has_more = len(page) == page_size
        self._drop_unloaded_subscriptions()
        self._subscribe_ongoing(page)
        logger.debug(f"Loaded {len(page)} conversation(s) (has_more={self.has_more})")
        return self._changed()

    async def load_more(self) -> list[ConversationWithLiveStatus]:
        """Append the next page, skipping summaries that are already loaded."""
        if self.loading_more or not self.has_more:
            return self.conversations

        self.loading_more = True
        try:
            page = await self.fetch_page(
                limit=self.load_more_limit, offset=len(self._summaries), **self._filters
            )
        finally:
            self.loading_more = False

        existing = {summary.session_id for summary in self._summaries}
        fresh = [summary for summary in page if summary.session_id not in existing]
        self._summaries.extend(fresh)
        self.has_more = len(page) == self.load_more_limit
        self._subscribe_ongoing(fresh)
        logger.debug(f"Loaded {len(fresh)} more conversation(s) (has_more={self.has_more})")
        return self._changed()

    def _subscribe_ongoing(self, summaries: Iterable[ConversationSummary]) -> None:
        for summary in summaries:
            streaming_id = summary.streaming_id
            if summary.status != ConversationStatus.ONGOING or not streaming_id:
                continue
            if streaming_id in self._subscriptions:
                continue
            self._subscriptions[streaming_id] = self.feed.subscribe(
                streaming_id, self._on_live_status
            )
            latest = self.feed.get(streaming_id)
            if latest is not None:
                self._statuses[streaming_id] = latest

    def _drop_unloaded_subscriptions(self) -> None:
        """Unsubscribe from runs no loaded ongoing summary refers to anymore."""
        wanted = {
            summary.streaming_id
            for summary in self._summaries
            if summary.status == ConversationStatus.ONGOING and summary.streaming_id
        }
        for streaming_id in [sid for sid in self._subscriptions if sid not in wanted]:
            self._subscriptions.pop(streaming_id)()
            self._statuses.pop(streaming_id, None)

    def _on_live_status(self, status: LiveStatus) -> None:
        self._statuses[status.streaming_id] = status
        self._changed()

    def _changed(self) -> list[ConversationWithLiveStatus]:
        view = self.conversations
        if self.on_change is not None:
            self.on_change(view)
        return view

    def most_recent_project_path(self) -> str | None:
        """Project path of the most recently updated loaded conversation."""
        if not self._summaries:
            return None
        latest = max(self._summaries, key=lambda summary: summary.updated_at)
        return latest.project_path

    def close(self) -> None:
        """Drop every live-feed subscription."""
        for unsubscribe in self._subscriptions.values():
            unsubscribe()
        self._subscriptions.clear()
