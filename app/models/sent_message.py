"""SentMessage model: one directed (sender -> receiver) message in the ledger."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Index, String, Uuid

from app.db import Base

MAX_TEXT_LENGTH = 500


class SentMessage(Base):
    """
    A->B and B->A with the same text are two unrelated rows.

    Rows are removed on cancellation; moderation only flips ``is_hidden``.
    """

    __tablename__ = "sent_messages"

    __table_args__ = (
        Index("ix_sent_messages_receiver_text", "receiver_id", "text"),
        Index("ix_sent_messages_sender_text", "sender_id", "text"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    sender_id = Column(String(64), nullable=False)
    receiver_id = Column(String(64), nullable=False)
    text = Column(String(MAX_TEXT_LENGTH), nullable=False, index=True)
    is_hidden = Column(Boolean, nullable=False, default=False)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<SentMessage {self.id} {self.sender_id}->{self.receiver_id} {self.text!r}>"
