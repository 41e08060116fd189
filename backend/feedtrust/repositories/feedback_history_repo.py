"""Feedback event log reader (read-only).

The event log is owned by the ingestion/feedback side of the system. Its tables
are described here with a private MetaData so they are never part of this
service's migrations.
"""

from __future__ import annotations

from sqlalchemy import Column, DateTime, MetaData, String, Table, func, select
from sqlalchemy.dialects.postgresql import UUID

from calibration.core.decay import ensure_utc
from calibration.core.stores import FeedbackHistory
from calibration.core.types import HistoricalFeedback
from feedtrust.repositories.base import ReadOnlyRepository


external_metadata = MetaData()

feedback_events = Table(
    "feedback_events",
    external_metadata,
    Column("id", UUID(as_uuid=False), primary_key=True),
    Column("user_id", UUID(as_uuid=False)),
    Column("content_item_id", UUID(as_uuid=False)),
    Column("action", String),
    Column("created_at", DateTime(timezone=True)),
)

content_items = Table(
    "content_items",
    external_metadata,
    Column("id", UUID(as_uuid=False), primary_key=True),
    Column("author", String),
)

content_item_sources = Table(
    "content_item_sources",
    external_metadata,
    Column("content_item_id", UUID(as_uuid=False)),
    Column("source_id", UUID(as_uuid=False)),
)


class FeedbackHistoryRepository(ReadOnlyRepository[HistoricalFeedback], FeedbackHistory):
    """All feedback on items authored by a handle within one source, oldest first."""

    def list_events(self, source_id: str, handle: str) -> list[HistoricalFeedback]:
        author = func.lower(content_items.c.author)
        stmt = (
            select(feedback_events.c.action, feedback_events.c.created_at)
            .join(content_items, content_items.c.id == feedback_events.c.content_item_id)
            .join(content_item_sources, content_item_sources.c.content_item_id == content_items.c.id)
            .where(content_item_sources.c.source_id == source_id)
            .where(author.in_([handle, f"@{handle}"]))
            .order_by(feedback_events.c.created_at.asc(), feedback_events.c.id.asc())
        )
        return [
            HistoricalFeedback(action=r.action, occurred_at=ensure_utc(r.created_at))
            for r in self._execute(stmt).all()
        ]
