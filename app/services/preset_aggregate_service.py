"""
Preset aggregate tracker.

Aggregates are a cached index over ``sent_messages``. Every write recounts the
ledger for the affected text under a row lock instead of adjusting counters,
so interleaved sends and cancellations cannot drift. Methods here only flush;
the calling service owns the transaction.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import distinct, func
from sqlalchemy.orm import Query, Session

from app.models.preset_aggregate import PresetAggregate
from app.models.sent_message import SentMessage
from app.schemas.admin import AggregateUpdate

logger = logging.getLogger(__name__)


class PresetAggregateService:
    """Maintains one PresetAggregate row per visible text in the ledger."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def get_by_text(self, text: str) -> Optional[PresetAggregate]:
        return self.db.query(PresetAggregate).filter(PresetAggregate.text == text).first()

    def get_presets_query(self) -> Query[PresetAggregate]:
        """Query for preset aggregates, most recently active first (for pagination)."""
        return self.db.query(PresetAggregate).order_by(
            PresetAggregate.last_sent_at.desc(), PresetAggregate.text
        )

    def on_send(self, text: str, sender_id: str, now: datetime) -> PresetAggregate:
        """
        Refresh the aggregate after a new ledger row for ``text`` was added.

        The new row must already be in the session; it is flushed here so the
        recount sees it. A concurrent first send of the same text surfaces as an
        IntegrityError on the unique ``text`` column; callers retry.
        """
        self.db.flush()
        aggregate = self._lock(text)
        total, senders = self._ledger_counts(text)
        if aggregate is None:
            aggregate = PresetAggregate(text=text, created_by=sender_id)
            self.db.add(aggregate)
        aggregate.total_send_count = total
        aggregate.distinct_sender_count = senders
        aggregate.last_sent_at = now
        self.db.flush()
        return aggregate

    def recompute(self, text: str) -> AggregateUpdate:
        """
        Rebuild the aggregate for ``text`` from the remaining visible ledger rows.

        Deletes the aggregate when nothing visible remains; recreates it when
        rows became visible again after the aggregate had been dropped.
        An existing aggregate keeps its original author in ``created_by``; a
        recreated one takes the earliest visible sender.
        """
        self.db.flush()
        aggregate = self._lock(text)
        total, senders = self._ledger_counts(text)

        if total == 0:
            if aggregate is not None:
                self.db.delete(aggregate)
                self.db.flush()
                logger.info("Dropped preset aggregate for %r", text)
            return AggregateUpdate(
                text=text, total_send_count=0, distinct_sender_count=0, deleted=True
            )

        first_sender, last_sent_at = self._ledger_bounds(text)
        if aggregate is None:
            aggregate = PresetAggregate(text=text, created_by=first_sender)
            self.db.add(aggregate)
        aggregate.total_send_count = total
        aggregate.distinct_sender_count = senders
        aggregate.last_sent_at = last_sent_at
        self.db.flush()
        return AggregateUpdate(
            text=text,
            total_send_count=total,
            distinct_sender_count=senders,
            deleted=False,
        )

    def recompute_many(self, texts: Iterable[str]) -> List[AggregateUpdate]:
        """Recompute several texts; locks are taken in sorted order."""
        return [self.recompute(text) for text in sorted(set(texts))]

    def _lock(self, text: str) -> Optional[PresetAggregate]:
        return (
            self.db.query(PresetAggregate)
            .filter(PresetAggregate.text == text)
            .with_for_update()
            .populate_existing()
            .first()
        )

    def _visible(self, text: str):
        return (SentMessage.text == text, SentMessage.is_hidden.is_(False))

    def _ledger_counts(self, text: str) -> Tuple[int, int]:
        total, senders = (
            self.db.query(
                func.count(SentMessage.id),
                func.count(distinct(SentMessage.sender_id)),
            )
            .filter(*self._visible(text))
            .one()
        )
        return int(total or 0), int(senders or 0)

    def _ledger_bounds(self, text: str) -> Tuple[str, datetime]:
        """(earliest sender, latest created_at) among visible rows."""
        first = (
            self.db.query(SentMessage.sender_id)
            .filter(*self._visible(text))
            .order_by(SentMessage.created_at.asc())
            .first()
        )
        last_sent_at = (
            self.db.query(func.max(SentMessage.created_at))
            .filter(*self._visible(text))
            .scalar()
        )
        return first[0], last_sent_at
