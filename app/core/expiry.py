"""
Expiry rules for matching.

Two independent clocks exist:

* the match window: a received message stays "live" (counts toward possible
  matches and unread tallies) while the most recent send of its text by anyone
  is younger than ``MATCH_EXPIRY_HOURS``. Liveness follows the text's
  aggregate ``last_sent_at``, not the message's own ``created_at``.
* the sender's expiry preference: 1, 7 or 14 days, stored on the message as
  ``expires_at``.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

MATCH_EXPIRY_HOURS = 24
VALID_EXPIRY_DAYS = (1, 7, 14)
DEFAULT_EXPIRY_DAYS = 1


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; everything stored is UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def match_expiry_boundary(
    now: datetime, expiry_hours: int = MATCH_EXPIRY_HOURS
) -> datetime:
    """Oldest ``last_sent_at`` that still keeps a text live."""
    return ensure_utc(now) - timedelta(hours=expiry_hours)


def is_text_live(
    last_sent_at: Optional[datetime],
    now: datetime,
    expiry_hours: int = MATCH_EXPIRY_HOURS,
) -> bool:
    """True when the text was sent by anyone within the window (boundary inclusive)."""
    if last_sent_at is None:
        return False
    return ensure_utc(last_sent_at) >= match_expiry_boundary(now, expiry_hours)


def is_match_expired(
    last_sent_at: Optional[datetime],
    now: datetime,
    expiry_hours: int = MATCH_EXPIRY_HOURS,
) -> bool:
    return not is_text_live(last_sent_at, now, expiry_hours)


def is_valid_expiry_days(days: object) -> bool:
    return isinstance(days, int) and not isinstance(days, bool) and days in VALID_EXPIRY_DAYS


def normalize_expiry_days(days: object) -> int:
    """Fail closed: anything outside {1, 7, 14} becomes the 1 day default."""
    return days if is_valid_expiry_days(days) else DEFAULT_EXPIRY_DAYS  # type: ignore[return-value]


def message_expires_at(now: datetime, days: object) -> datetime:
    return ensure_utc(now) + timedelta(days=normalize_expiry_days(days))


def is_message_expired(expires_at: Optional[datetime], now: datetime) -> bool:
    """A message without its own expiry never expires by this rule."""
    if expires_at is None:
        return False
    return ensure_utc(expires_at) < ensure_utc(now)
