"""Tests for match window and per-message expiry rules."""

from datetime import datetime, timedelta, timezone

import pytest

from app.core.expiry import (
    DEFAULT_EXPIRY_DAYS,
    ensure_utc,
    is_match_expired,
    is_message_expired,
    is_text_live,
    is_valid_expiry_days,
    match_expiry_boundary,
    message_expires_at,
    normalize_expiry_days,
)

NOW = datetime(2026, 10, 17, 12, 0, 0, tzinfo=timezone.utc)


def test_boundary_is_24_hours_back():
    assert match_expiry_boundary(NOW) == NOW - timedelta(hours=24)


def test_text_live_just_inside_window():
    last_sent = NOW - timedelta(hours=24) + timedelta(milliseconds=1)
    assert is_text_live(last_sent, NOW)
    assert not is_match_expired(last_sent, NOW)


def test_text_expired_just_outside_window():
    last_sent = NOW - timedelta(hours=24) - timedelta(milliseconds=1)
    assert not is_text_live(last_sent, NOW)
    assert is_match_expired(last_sent, NOW)


def test_boundary_itself_is_live():
    assert is_text_live(NOW - timedelta(hours=24), NOW)


def test_missing_last_sent_is_not_live():
    assert not is_text_live(None, NOW)


def test_naive_datetimes_are_treated_as_utc():
    naive = datetime(2026, 10, 17, 12, 0, 0)
    assert ensure_utc(naive) == NOW


@pytest.mark.parametrize("days", [1, 7, 14])
def test_valid_expiry_days(days):
    assert is_valid_expiry_days(days)
    assert normalize_expiry_days(days) == days


@pytest.mark.parametrize("days", [0, 2, 30, -1, None, "7", True, 7.0])
def test_invalid_expiry_days_fail_closed(days):
    assert not is_valid_expiry_days(days)
    assert normalize_expiry_days(days) == DEFAULT_EXPIRY_DAYS


def test_message_expires_at_uses_normalized_days():
    assert message_expires_at(NOW, 7) == NOW + timedelta(days=7)
    assert message_expires_at(NOW, 3) == NOW + timedelta(days=1)


def test_message_without_expiry_never_expires():
    assert not is_message_expired(None, NOW)
    assert is_message_expired(NOW - timedelta(seconds=1), NOW)
    assert not is_message_expired(NOW, NOW)
