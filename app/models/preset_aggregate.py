"""PresetAggregate model: per-text rollup derived from the sent message ledger."""

from __future__ import annotations

import uuid

from sqlalchemy import Column, DateTime, Integer, String, Uuid

from app.db import Base
from app.models.mixins import TimestampMixin
from app.models.sent_message import MAX_TEXT_LENGTH


class PresetAggregate(Base, TimestampMixin):
    """
    Cached index over ``sent_messages``; never a source of truth.

    ``total_send_count`` and ``distinct_sender_count`` always equal the counts of
    non-hidden ledger rows with this text. The row is deleted when the count
    reaches zero.
    """

    __tablename__ = "preset_aggregates"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    text = Column(String(MAX_TEXT_LENGTH), unique=True, nullable=False)
    total_send_count = Column(Integer, nullable=False, default=0)
    distinct_sender_count = Column(Integer, nullable=False, default=0)
    last_sent_at = Column(DateTime(timezone=True), nullable=False, index=True)
    created_by = Column(String(64), nullable=False)
    link_title = Column(String(512), nullable=True)
    link_image = Column(String(1024), nullable=True)
