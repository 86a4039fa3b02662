"""
Match detection.

A match exists when a user sends a text back to someone who already sent them
that exact text. Every satisfied check appends a MatchPair (duplicates are
kept unless ``allow_duplicate_matches`` is off) and notifies both people.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Protocol, Tuple

from sqlalchemy import and_, exists, or_
from sqlalchemy.orm import Session

from app.config import get_settings
from app.core.expiry import (
    ensure_utc,
    is_message_expired,
    match_expiry_boundary,
    utcnow,
)
from app.infra.logging_config import get_logger
from app.models.match_pair import MatchPair
from app.models.preset_aggregate import PresetAggregate
from app.models.sent_message import SentMessage
from app.schemas.push import NotificationEvent, NotificationKind

logger = get_logger("match")


class Notifier(Protocol):
    def notify(self, event: NotificationEvent, target_user_id: str) -> object: ...


def match_exists_clause():
    """Correlated EXISTS: a MatchPair links this SentMessage's text, sender and receiver."""
    return exists().where(
        MatchPair.text == SentMessage.text,
        or_(
            and_(
                MatchPair.user1_id == SentMessage.sender_id,
                MatchPair.user2_id == SentMessage.receiver_id,
            ),
            and_(
                MatchPair.user1_id == SentMessage.receiver_id,
                MatchPair.user2_id == SentMessage.sender_id,
            ),
        ),
    )


def pair_between_clause(user_a: str, user_b: str):
    return or_(
        and_(MatchPair.user1_id == user_a, MatchPair.user2_id == user_b),
        and_(MatchPair.user1_id == user_b, MatchPair.user2_id == user_a),
    )


def build_match_events(pair: MatchPair) -> List[NotificationEvent]:
    """One event per participant, each naming the other as ``matched_user_id``."""
    matched_at = ensure_utc(pair.matched_at)
    return [
        NotificationEvent(
            kind=NotificationKind.MATCH,
            target_user_id=target,
            matched_user_id=other,
            match_id=pair.id,
            text=pair.text,
            occurred_at=matched_at,
        )
        for target, other in (
            (pair.user1_id, pair.user2_id),
            (pair.user2_id, pair.user1_id),
        )
    ]


class MatchService:
    """Creates match pairs and answers match queries."""

    def __init__(
        self,
        db: Session,
        notifier: Optional[Notifier] = None,
        allow_duplicate_matches: Optional[bool] = None,
        expiry_hours: Optional[int] = None,
    ) -> None:
        settings = get_settings()
        self.db = db
        self.notifier = notifier
        self.allow_duplicate_matches = (
            settings.allow_duplicate_matches
            if allow_duplicate_matches is None
            else allow_duplicate_matches
        )
        self.expiry_hours = expiry_hours or settings.match_expiry_hours

    def check_match(
        self,
        sender_id: str,
        text: str,
        now: Optional[datetime] = None,
    ) -> List[MatchPair]:
        """
        Create a MatchPair for every live message ``text`` addressed to ``sender_id``.

        Returns the new pairs (possibly empty). Notifications go out after commit
        and never raise.
        """
        now = ensure_utc(now or utcnow())
        candidates = self.find_candidates(sender_id, text, now)

        pairs: List[MatchPair] = []
        matched_users: set[str] = set()
        for candidate in candidates:
            other_id = candidate.sender_id
            if not self.allow_duplicate_matches and (
                other_id in matched_users or self.pair_exists(sender_id, other_id, text)
            ):
                continue
            pair = MatchPair(
                user1_id=sender_id,
                user2_id=other_id,
                text=text,
                matched_at=now,
            )
            self.db.add(pair)
            pairs.append(pair)
            matched_users.add(other_id)

        if not pairs:
            return []

        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        for pair in pairs:
            self.db.refresh(pair)
            logger.info(
                "Match created id=%s user1=%s user2=%s", pair.id, pair.user1_id, pair.user2_id
            )

        self._notify(pairs)
        return pairs

    def find_candidates(
        self, sender_id: str, text: str, now: datetime
    ) -> List[SentMessage]:
        """Visible, unexpired messages with ``text`` sent to ``sender_id``."""
        boundary = match_expiry_boundary(now, self.expiry_hours)
        rows = (
            self.db.query(SentMessage)
            .join(PresetAggregate, PresetAggregate.text == SentMessage.text)
            .filter(
                SentMessage.receiver_id == sender_id,
                SentMessage.text == text,
                SentMessage.sender_id != sender_id,
                SentMessage.is_hidden.is_(False),
                PresetAggregate.last_sent_at >= boundary,
            )
            .order_by(SentMessage.created_at.asc())
            .all()
        )
        return [m for m in rows if not is_message_expired(m.expires_at, now)]

    def pair_exists(self, user_a: str, user_b: str, text: str) -> bool:
        return (
            self.db.query(MatchPair.id)
            .filter(MatchPair.text == text, pair_between_clause(user_a, user_b))
            .first()
            is not None
        )

    def get_pairs_for_user(self, user_id: str) -> List[MatchPair]:
        return (
            self.db.query(MatchPair)
            .filter(or_(MatchPair.user1_id == user_id, MatchPair.user2_id == user_id))
            .order_by(MatchPair.matched_at.desc())
            .all()
        )

    def get_pending_matches(
        self, user_id: str, since: Optional[datetime] = None
    ) -> List[Tuple[MatchPair, str]]:
        """Pairs involving ``user_id`` matched after ``since``, oldest first, with the partner id."""
        query = self.db.query(MatchPair).filter(
            or_(MatchPair.user1_id == user_id, MatchPair.user2_id == user_id)
        )
        if since is not None:
            query = query.filter(MatchPair.matched_at > ensure_utc(since))
        pairs = query.order_by(MatchPair.matched_at.asc()).all()
        return [(pair, pair.partner_of(user_id)) for pair in pairs]

    def search(
        self,
        text: Optional[str] = None,
        user_id: Optional[str] = None,
        limit: int = 50,
    ) -> List[MatchPair]:
        """Admin search: substring on text, optional participant, newest first."""
        query = self.db.query(MatchPair)
        if text:
            query = query.filter(MatchPair.text.contains(text, autoescape=True))
        if user_id:
            query = query.filter(
                or_(MatchPair.user1_id == user_id, MatchPair.user2_id == user_id)
            )
        return query.order_by(MatchPair.matched_at.desc()).limit(limit).all()

    def _notify(self, pairs: List[MatchPair]) -> None:
        if self.notifier is None:
            return
        for pair in pairs:
            for event in build_match_events(pair):
                try:
                    self.notifier.notify(event, event.target_user_id)
                except Exception:
                    logger.exception(
                        "Match notification failed match=%s target=%s",
                        pair.id,
                        event.target_user_id,
                    )
