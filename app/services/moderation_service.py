"""
Cancellation and moderation pipeline.

Every operation is one transaction: load the targets, keep the ones without a
match pair (matched messages only leave through ``delete_match`` and
``hide_match``), mutate the ledger, then recompute the aggregates of every
touched text. Any error rolls the whole operation back.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Callable, List, Optional, Sequence, Tuple, TypeVar
from uuid import UUID

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from app.config import get_settings
from app.core.content_filter import ContentFilter
from app.core.errors import Conflict, Forbidden, NotFound, ValidationError
from app.core.expiry import ensure_utc
from app.infra.logging_config import get_logger
from app.models.match_pair import MatchPair
from app.models.sent_message import SentMessage
from app.schemas.admin import AggregateUpdate, ModerationResult
from app.services.match_service import match_exists_clause, pair_between_clause
from app.services.preset_aggregate_service import PresetAggregateService

logger = get_logger("moderation")

T = TypeVar("T")

ALL_MATCHED_REASON = "all_matched"
KEYWORD_SWEEP_SAMPLE_SIZE = 10


class MessageModerationService:
    """Delete, hide and unhide ledger rows while keeping aggregates exact."""

    def __init__(
        self,
        db: Session,
        aggregate_service: Optional[PresetAggregateService] = None,
    ) -> None:
        self.db = db
        self.aggregates = aggregate_service or PresetAggregateService(db)

    def delete_unmatched(
        self,
        message_ids: Sequence[UUID],
        requesting_user_id: Optional[str] = None,
    ) -> ModerationResult:
        """
        Delete unmatched messages.

        With ``requesting_user_id`` this is a user cancellation: every target must
        belong to that sender or nothing happens (Forbidden).
        """

        def _delete() -> ModerationResult:
            messages = self._load(message_ids)
            if requesting_user_id is not None:
                foreign = [m.id for m in messages if m.sender_id != requesting_user_id]
                if foreign:
                    raise Forbidden("Cannot cancel messages sent by another user")
            unmatched, matched = self._split_matched(messages)
            self._refuse_if_all_matched(unmatched, "delete")
            texts = [m.text for m in unmatched]
            for message in unmatched:
                self.db.delete(message)
            updates = self.aggregates.recompute_many(texts)
            return ModerationResult(
                affected=len(unmatched),
                message_ids=[m.id for m in unmatched],
                skipped_matched=[m.id for m in matched],
                aggregate_updates=updates,
            )

        result = self._transaction(_delete)
        logger.info(
            "Deleted %d unmatched message(s) requested_by=%s",
            result.affected,
            requesting_user_id or "admin",
        )
        return result

    def hide_unmatched(self, message_ids: Sequence[UUID]) -> ModerationResult:
        """Hide unmatched messages. Already hidden targets are left as they are."""

        def _hide() -> ModerationResult:
            messages = self._load(message_ids)
            unmatched, matched = self._split_matched(messages)
            self._refuse_if_all_matched(unmatched, "hide")
            flipped = [m for m in unmatched if not m.is_hidden]
            for message in flipped:
                message.is_hidden = True
            updates = self.aggregates.recompute_many(m.text for m in flipped)
            return ModerationResult(
                affected=len(flipped),
                message_ids=[m.id for m in flipped],
                skipped_matched=[m.id for m in matched],
                aggregate_updates=updates,
            )

        result = self._transaction(_hide)
        logger.info("Hid %d message(s)", result.affected)
        return result

    def unhide(self, message_ids: Sequence[UUID]) -> ModerationResult:
        """Make hidden messages visible again. Visible targets are left as they are."""

        def _unhide() -> ModerationResult:
            messages = self._load(message_ids)
            flipped = [m for m in messages if m.is_hidden]
            for message in flipped:
                message.is_hidden = False
            updates = self.aggregates.recompute_many(m.text for m in flipped)
            return ModerationResult(
                affected=len(flipped),
                message_ids=[m.id for m in flipped],
                aggregate_updates=updates,
            )

        result = self._transaction(_unhide)
        logger.info("Unhid %d message(s)", result.affected)
        return result

    def hide_matching_keywords(
        self,
        keywords: Optional[Sequence[str]] = None,
        dry_run: bool = False,
    ) -> Tuple[List[SentMessage], int]:
        """
        Hide every visible message containing one of ``keywords``.

        This is content moderation, so match status is not considered. Returns
        (matching messages, number hidden); a dry run hides nothing.
        """
        content_filter = ContentFilter(
            keywords if keywords is not None else get_settings().hidden_keyword_list
        )
        if not content_filter.enabled:
            raise ValidationError("No hidden keywords are configured")

        def _sweep() -> Tuple[List[SentMessage], int]:
            conditions = [
                SentMessage.text.icontains(keyword, autoescape=True)
                for keyword in content_filter.keywords
            ]
            found = (
                self.db.query(SentMessage)
                .filter(SentMessage.is_hidden.is_(False), or_(*conditions))
                .order_by(SentMessage.created_at.desc())
                .all()
            )
            # SQL case folding is ASCII only on some backends; confirm in Python.
            found = [m for m in found if content_filter.should_hide(m.text)]
            if dry_run:
                return found, 0
            for message in found:
                message.is_hidden = True
            self.aggregates.recompute_many(m.text for m in found)
            return found, len(found)

        if dry_run:
            return _sweep()

        found, hidden = self._transaction(_sweep)
        logger.info(
            "Keyword sweep hid %d message(s) for %d keyword(s)",
            hidden,
            len(content_filter.keywords),
        )
        return found, hidden

    def delete_match(
        self,
        match_pair_id: Optional[UUID] = None,
        text: Optional[str] = None,
        user_ids: Optional[Sequence[str]] = None,
        window_minutes: Optional[int] = None,
    ) -> Tuple[List[MatchPair], int, List[AggregateUpdate]]:
        """
        Remove match pairs and the messages that formed them.

        Targets are one pair by id, or every pair on ``text`` between the two
        ``user_ids``. Messages of the pair sent within ``window_minutes`` of
        ``matched_at`` (either direction) are deleted with it.
        """
        self._require_pair_target(match_pair_id, text, user_ids)
        if window_minutes is None:
            window_minutes = get_settings().match_deletion_window_minutes
        window = timedelta(minutes=window_minutes)

        def _delete() -> Tuple[List[MatchPair], int, List[AggregateUpdate]]:
            pairs = self._find_pairs(match_pair_id, text, user_ids)
            messages: dict[UUID, SentMessage] = {}
            for pair in pairs:
                matched_at = ensure_utc(pair.matched_at)
                rows = (
                    self.db.query(SentMessage)
                    .filter(
                        _pair_messages_clause(pair),
                        SentMessage.created_at >= matched_at - window,
                        SentMessage.created_at <= matched_at + window,
                    )
                    .with_for_update()
                    .all()
                )
                for row in rows:
                    messages[row.id] = row

            for pair in pairs:
                self.db.delete(pair)
            for message in messages.values():
                self.db.delete(message)
            updates = self.aggregates.recompute_many(m.text for m in messages.values())
            return pairs, len(messages), updates

        pairs, deleted, updates = self._transaction(_delete)
        logger.info(
            "Deleted %d match pair(s) and %d message(s)", len(pairs), deleted
        )
        return pairs, deleted, updates

    def hide_match(
        self,
        match_pair_id: Optional[UUID] = None,
        text: Optional[str] = None,
        user_ids: Optional[Sequence[str]] = None,
    ) -> Tuple[List[MatchPair], List[UUID], List[AggregateUpdate]]:
        """
        Hide the messages behind match pairs, leaving the pairs in place.

        Targets pairs the same way as ``delete_match``. Every visible message
        of the pair's text between its two users is hidden, in both
        directions. Returns (pairs, hidden message ids, aggregate updates).
        """
        self._require_pair_target(match_pair_id, text, user_ids)

        def _hide() -> Tuple[List[MatchPair], List[UUID], List[AggregateUpdate]]:
            pairs = self._find_pairs(match_pair_id, text, user_ids)
            messages: dict[UUID, SentMessage] = {}
            for pair in pairs:
                rows = (
                    self.db.query(SentMessage)
                    .filter(_pair_messages_clause(pair), SentMessage.is_hidden.is_(False))
                    .order_by(SentMessage.id)
                    .with_for_update()
                    .all()
                )
                for row in rows:
                    messages[row.id] = row

            for message in messages.values():
                message.is_hidden = True
            updates = self.aggregates.recompute_many(m.text for m in messages.values())
            return pairs, list(messages), updates

        pairs, hidden_ids, updates = self._transaction(_hide)
        logger.info(
            "Hid %d message(s) behind %d match pair(s)", len(hidden_ids), len(pairs)
        )
        return pairs, hidden_ids, updates

    def _require_pair_target(
        self,
        match_pair_id: Optional[UUID],
        text: Optional[str],
        user_ids: Optional[Sequence[str]],
    ) -> None:
        if match_pair_id is None and (not text or not user_ids or len(user_ids) != 2):
            raise ValidationError(
                "match_pair_id or (text and user_ids with 2 elements) is required"
            )

    def _find_pairs(
        self,
        match_pair_id: Optional[UUID],
        text: Optional[str],
        user_ids: Optional[Sequence[str]],
    ) -> List[MatchPair]:
        if match_pair_id is not None:
            pairs = self.db.query(MatchPair).filter(MatchPair.id == match_pair_id).all()
        else:
            pairs = (
                self.db.query(MatchPair)
                .filter(
                    MatchPair.text == text,
                    pair_between_clause(user_ids[0], user_ids[1]),
                )
                .all()
            )
        if not pairs:
            raise NotFound("Match pair not found")
        return pairs

    def _load(self, message_ids: Sequence[UUID]) -> List[SentMessage]:
        """Lock every target. All ids must exist, otherwise nothing is touched."""
        if not message_ids:
            raise ValidationError("message_id or message_ids is required")
        wanted = set(message_ids)
        messages = (
            self.db.query(SentMessage)
            .filter(SentMessage.id.in_(list(wanted)))
            .order_by(SentMessage.id)
            .with_for_update()
            .all()
        )
        missing = wanted - {m.id for m in messages}
        if missing:
            raise NotFound(
                "Messages not found: " + ", ".join(sorted(str(i) for i in missing))
            )
        return messages

    def _split_matched(
        self, messages: List[SentMessage]
    ) -> Tuple[List[SentMessage], List[SentMessage]]:
        ids = [m.id for m in messages]
        matched_ids = {
            row[0]
            for row in self.db.query(SentMessage.id)
            .filter(SentMessage.id.in_(ids), match_exists_clause())
            .all()
        }
        unmatched = [m for m in messages if m.id not in matched_ids]
        matched = [m for m in messages if m.id in matched_ids]
        return unmatched, matched

    def _refuse_if_all_matched(self, unmatched: List[SentMessage], action: str) -> None:
        if not unmatched:
            raise Conflict(
                f"All specified messages are already matched; cannot {action} them "
                "here. Use the match deletion endpoint instead.",
                reason=ALL_MATCHED_REASON,
            )

    def _transaction(self, work: Callable[[], T]) -> T:
        try:
            result = work()
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return result


def _pair_messages_clause(pair: MatchPair):
    """Messages of the pair's text sent between its two users, either direction."""
    return and_(
        SentMessage.text == pair.text,
        or_(
            and_(
                SentMessage.sender_id == pair.user1_id,
                SentMessage.receiver_id == pair.user2_id,
            ),
            and_(
                SentMessage.sender_id == pair.user2_id,
                SentMessage.receiver_id == pair.user1_id,
            ),
        ),
    )
