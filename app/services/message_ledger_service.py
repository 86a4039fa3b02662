"""
Message ledger: directed sent messages and the queries built on them.

Each append writes the ledger row and refreshes the text's preset aggregate in
one transaction. Removal and moderation go through MessageModerationService.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Query, Session

from app.config import get_settings
from app.core.content_filter import ContentFilter
from app.core.errors import ContentRejected, ValidationError
from app.core.expiry import (
    ensure_utc,
    is_match_expired,
    match_expiry_boundary,
    message_expires_at,
    utcnow,
)
from app.infra.logging_config import get_logger
from app.models.match_pair import MatchPair
from app.models.preset_aggregate import PresetAggregate
from app.models.sent_message import SentMessage
from app.schemas.admin import ModerationResult
from app.services.match_service import match_exists_clause
from app.services.moderation_service import MessageModerationService
from app.services.preset_aggregate_service import PresetAggregateService

logger = get_logger("ledger")

# A concurrent first send of a new text loses the unique-key race once at most.
APPEND_ATTEMPTS = 2


@dataclass
class SentHistoryEntry:
    message: SentMessage
    is_matched: bool
    is_expired: bool


class MessageLedgerService:
    """Owns SentMessage rows."""

    def __init__(
        self,
        db: Session,
        content_filter: Optional[ContentFilter] = None,
        aggregate_service: Optional[PresetAggregateService] = None,
        expiry_hours: Optional[int] = None,
    ) -> None:
        settings = get_settings()
        self.db = db
        self.content_filter = content_filter or ContentFilter(
            settings.hidden_keyword_list
        )
        self.aggregates = aggregate_service or PresetAggregateService(db)
        self.expiry_hours = expiry_hours or settings.match_expiry_hours

    def append(
        self,
        sender_id: str,
        receiver_id: str,
        text: str,
        now: Optional[datetime] = None,
        expiry_days: Optional[int] = None,
    ) -> SentMessage:
        """Record one message. Raises ContentRejected for filtered text."""
        return self.append_many(sender_id, [receiver_id], text, now, expiry_days)[0]

    def append_many(
        self,
        sender_id: str,
        receiver_ids: Sequence[str],
        text: str,
        now: Optional[datetime] = None,
        expiry_days: Optional[int] = None,
    ) -> List[SentMessage]:
        """Record the same text to several receivers in a single transaction."""
        text = (text or "").strip()
        if not sender_id:
            raise ValidationError("sender_id is required")
        if not text:
            raise ValidationError("text is required")
        if not receiver_ids:
            raise ValidationError("at least one receiver is required")
        if sender_id in receiver_ids:
            raise ValidationError("cannot send a message to yourself")
        if self.content_filter.should_hide(text):
            logger.info("Rejected message from %s: keyword match", sender_id)
            raise ContentRejected("Message contains a blocked keyword")

        now = ensure_utc(now or utcnow())
        expires_at = (
            message_expires_at(now, expiry_days) if expiry_days is not None else None
        )

        for attempt in range(1, APPEND_ATTEMPTS + 1):
            try:
                messages = [
                    SentMessage(
                        sender_id=sender_id,
                        receiver_id=receiver_id,
                        text=text,
                        is_hidden=False,
                        expires_at=expires_at,
                        created_at=now,
                    )
                    for receiver_id in receiver_ids
                ]
                self.db.add_all(messages)
                self.aggregates.on_send(text, sender_id, now)
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                if attempt == APPEND_ATTEMPTS:
                    raise
                logger.info("Aggregate insert race on %r, retrying", text)
                continue
            except Exception:
                self.db.rollback()
                raise
            for message in messages:
                self.db.refresh(message)
            logger.info(
                "Appended %d message(s) from %s text=%r", len(messages), sender_id, text
            )
            return messages
        raise RuntimeError("unreachable")

    def get_message(self, message_id: UUID) -> Optional[SentMessage]:
        return self.db.query(SentMessage).filter(SentMessage.id == message_id).first()

    def cancel(self, message_ids: Sequence[UUID], requesting_user_id: str) -> int:
        """Delete the caller's own unmatched messages. Returns the number removed."""
        result = self._moderation().delete_unmatched(
            message_ids, requesting_user_id=requesting_user_id
        )
        return result.affected

    def hide(self, message_ids: Sequence[UUID]) -> ModerationResult:
        return self._moderation().hide_unmatched(message_ids)

    def unhide(self, message_ids: Sequence[UUID]) -> ModerationResult:
        return self._moderation().unhide(message_ids)

    def unmatched_for_receiver_query(
        self, user_id: str, now: Optional[datetime] = None
    ) -> Query[SentMessage]:
        """
        Messages addressed to ``user_id`` that can still become a match.

        Liveness is decided by the text's aggregate ``last_sent_at``.
        """
        boundary = match_expiry_boundary(now or utcnow(), self.expiry_hours)
        return (
            self.db.query(SentMessage)
            .join(PresetAggregate, PresetAggregate.text == SentMessage.text)
            .filter(
                SentMessage.receiver_id == user_id,
                SentMessage.is_hidden.is_(False),
                ~match_exists_clause(),
                PresetAggregate.last_sent_at >= boundary,
            )
            .order_by(SentMessage.created_at.desc())
        )

    def list_unmatched_for_receiver(
        self, user_id: str, now: Optional[datetime] = None
    ) -> List[SentMessage]:
        return self.unmatched_for_receiver_query(user_id, now).all()

    def count_unmatched_for_receiver(
        self, user_id: str, now: Optional[datetime] = None
    ) -> int:
        return self.unmatched_for_receiver_query(user_id, now).count()

    def get_sent_history(
        self, user_id: str, now: Optional[datetime] = None
    ) -> List[SentHistoryEntry]:
        """The caller's visible sent messages flagged matched / expired."""
        now = now or utcnow()
        messages = (
            self.db.query(SentMessage)
            .filter(SentMessage.sender_id == user_id, SentMessage.is_hidden.is_(False))
            .order_by(SentMessage.created_at.desc())
            .all()
        )
        pairs = (
            self.db.query(MatchPair)
            .filter(or_(MatchPair.user1_id == user_id, MatchPair.user2_id == user_id))
            .all()
        )
        matched_keys = {(p.text, p.partner_of(user_id)) for p in pairs}
        texts = {m.text for m in messages}
        last_sent = {}
        if texts:
            last_sent = dict(
                self.db.query(PresetAggregate.text, PresetAggregate.last_sent_at)
                .filter(PresetAggregate.text.in_(texts))
                .all()
            )
        return [
            SentHistoryEntry(
                message=m,
                is_matched=(m.text, m.receiver_id) in matched_keys,
                is_expired=(
                    m.text in last_sent
                    and is_match_expired(last_sent[m.text], now, self.expiry_hours)
                ),
            )
            for m in messages
        ]

    def search_unmatched(
        self,
        text: Optional[str] = None,
        user_id: Optional[str] = None,
        include_hidden: bool = False,
        limit: int = 50,
    ) -> List[SentMessage]:
        """Admin search over messages without a match pair, newest first."""
        query = self.db.query(SentMessage).filter(~match_exists_clause())
        if text:
            query = query.filter(SentMessage.text.contains(text, autoescape=True))
        if user_id:
            query = query.filter(
                or_(SentMessage.sender_id == user_id, SentMessage.receiver_id == user_id)
            )
        if not include_hidden:
            query = query.filter(SentMessage.is_hidden.is_(False))
        return query.order_by(SentMessage.created_at.desc()).limit(limit).all()

    def _moderation(self) -> MessageModerationService:
        return MessageModerationService(self.db, aggregate_service=self.aggregates)
