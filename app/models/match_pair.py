"""MatchPair model: an established mutual exchange of the same text."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Index, String, Uuid

from app.db import Base
from app.models.sent_message import MAX_TEXT_LENGTH


class MatchPair(Base):
    """
    Insert-only. ``user1_id`` is the user whose match check created the pair.

    No uniqueness on (users, text): every satisfied check appends a row unless
    duplicate matches are switched off in settings.
    """

    __tablename__ = "match_pairs"

    __table_args__ = (
        Index("ix_match_pairs_text_users", "text", "user1_id", "user2_id"),
        Index("ix_match_pairs_user2_matched_at", "user2_id", "matched_at"),
        Index("ix_match_pairs_user1_matched_at", "user1_id", "matched_at"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user1_id = Column(String(64), nullable=False)
    user2_id = Column(String(64), nullable=False)
    text = Column(String(MAX_TEXT_LENGTH), nullable=False)
    matched_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    def partner_of(self, user_id: str) -> str:
        return self.user2_id if self.user1_id == user_id else self.user1_id
