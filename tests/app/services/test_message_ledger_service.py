"""Tests for MessageLedgerService."""

from datetime import timedelta

import pytest
from sqlalchemy.exc import IntegrityError

from app.core.content_filter import ContentFilter
from app.core.errors import ContentRejected, ValidationError
from app.core.expiry import ensure_utc
from app.models.preset_aggregate import PresetAggregate
from app.models.sent_message import SentMessage
from app.services.message_ledger_service import MessageLedgerService


def test_append_creates_row_and_aggregate(db, ledger, aggregates, users, now):
    a, b, _ = users
    message = ledger.append(a, b, "good morning", now=now)

    assert message.id is not None
    assert message.sender_id == a
    assert message.receiver_id == b
    assert message.is_hidden is False
    assert message.expires_at is None

    aggregate = aggregates.get_by_text("good morning")
    assert aggregate.total_send_count == 1
    assert aggregate.distinct_sender_count == 1
    assert aggregate.created_by == a
    assert ensure_utc(aggregate.last_sent_at) == now


def test_append_strips_text(ledger, users, now):
    a, b, _ = users
    message = ledger.append(a, b, "  hi there  ", now=now)
    assert message.text == "hi there"


def test_append_many_records_one_row_per_receiver(db, ledger, aggregates, users, now):
    a, b, c = users
    messages = ledger.append_many(a, [b, c], "see you", now=now)

    assert {m.receiver_id for m in messages} == {b, c}
    aggregate = aggregates.get_by_text("see you")
    assert aggregate.total_send_count == 2
    assert aggregate.distinct_sender_count == 1


def test_append_records_expiry_preference(ledger, users, now):
    a, b, _ = users
    message = ledger.append(a, b, "later", now=now, expiry_days=7)
    assert ensure_utc(message.expires_at) == now + timedelta(days=7)


def test_append_invalid_expiry_falls_back_to_one_day(ledger, users, now):
    a, b, _ = users
    message = ledger.append(a, b, "later", now=now, expiry_days=30)
    assert ensure_utc(message.expires_at) == now + timedelta(days=1)


@pytest.mark.parametrize(
    "sender, receivers, text",
    [
        ("", ["b"], "hi"),
        ("a", ["b"], "   "),
        ("a", [], "hi"),
        ("a", ["a"], "hi"),
    ],
)
def test_append_rejects_invalid_input(db, ledger, sender, receivers, text, now):
    with pytest.raises(ValidationError):
        ledger.append_many(sender, receivers, text, now=now)
    assert db.query(SentMessage).count() == 0


def test_append_rejects_filtered_content(db, users, now):
    a, b, _ = users
    ledger = MessageLedgerService(db, content_filter=ContentFilter(["casino"]))

    with pytest.raises(ContentRejected):
        ledger.append(a, b, "Best CASINO in town", now=now)

    assert db.query(SentMessage).count() == 0
    assert db.query(PresetAggregate).count() == 0


def test_append_retries_once_after_aggregate_insert_race(
    db, ledger, aggregates, users, now, monkeypatch
):
    a, b, _ = users
    real_on_send = aggregates.on_send
    calls = {"n": 0}

    def flaky_on_send(text, sender_id, at):
        calls["n"] += 1
        if calls["n"] == 1:
            raise IntegrityError("INSERT INTO preset_aggregates", {}, Exception("dup"))
        return real_on_send(text, sender_id, at)

    ledger.aggregates = aggregates
    monkeypatch.setattr(aggregates, "on_send", flaky_on_send)

    message = ledger.append(a, b, "race", now=now)

    assert calls["n"] == 2
    assert db.query(SentMessage).filter(SentMessage.text == "race").count() == 1
    assert message.text == "race"


def test_directionality_rows_are_independent(db, ledger, users, now):
    a, b, _ = users
    a_to_b = ledger.append(a, b, "same words", now=now)
    b_to_a = ledger.append(b, a, "same words", now=now)

    assert ledger.cancel([a_to_b.id], requesting_user_id=a) == 1

    remaining = db.query(SentMessage).all()
    assert [m.id for m in remaining] == [b_to_a.id]
    assert remaining[0].sender_id == b
    assert remaining[0].is_hidden is False


def test_unmatched_count_expiry_boundary(ledger, users, now):
    a, b, _ = users
    ledger.append(a, b, "old", now=now - timedelta(hours=24, milliseconds=1))
    ledger.append(a, b, "fresh", now=now - timedelta(hours=24) + timedelta(milliseconds=1))

    unmatched = ledger.list_unmatched_for_receiver(b, now=now)
    assert [m.text for m in unmatched] == ["fresh"]
    assert ledger.count_unmatched_for_receiver(b, now=now) == 1


def test_liveness_follows_latest_send_of_the_text(ledger, users, now):
    """An old message stays live while anyone keeps sending its text."""
    a, b, c = users
    ledger.append(a, b, "popular", now=now - timedelta(hours=30))
    assert ledger.count_unmatched_for_receiver(b, now=now) == 0

    ledger.append(c, a, "popular", now=now - timedelta(hours=1))
    assert ledger.count_unmatched_for_receiver(b, now=now) == 1


def test_hidden_messages_are_not_counted(db, ledger, users, now):
    a, b, _ = users
    message = ledger.append(a, b, "psst", now=now)
    ledger.hide([message.id])
    assert ledger.count_unmatched_for_receiver(b, now=now) == 0


def test_sent_history_flags(ledger, matcher, users, now):
    a, b, c = users
    ledger.append(a, b, "matched words", now=now)
    ledger.append(b, a, "matched words", now=now)
    matcher.check_match(b, "matched words", now=now)
    ledger.append(a, c, "stale words", now=now - timedelta(hours=30))

    history = {e.message.text: e for e in ledger.get_sent_history(a, now=now)}

    assert history["matched words"].is_matched is True
    assert history["matched words"].is_expired is False
    assert history["stale words"].is_matched is False
    assert history["stale words"].is_expired is True


def test_search_unmatched_filters(ledger, users, now):
    a, b, c = users
    ledger.append(a, b, "Coffee tomorrow?", now=now)
    hidden = ledger.append(c, b, "coffee at noon", now=now)
    ledger.hide([hidden.id])
    ledger.append(c, a, "tea time", now=now)

    results = ledger.search_unmatched(text="offee")
    assert [m.text for m in results] == ["Coffee tomorrow?"]

    with_hidden = ledger.search_unmatched(text="offee", include_hidden=True)
    assert len(with_hidden) == 2

    by_user = ledger.search_unmatched(user_id=c, include_hidden=True)
    assert {m.text for m in by_user} == {"coffee at noon", "tea time"}


def test_search_unmatched_escapes_like_wildcards(ledger, users, now):
    a, b, _ = users
    ledger.append(a, b, "100% sure", now=now)
    ledger.append(a, b, "1000 times", now=now)
    assert [m.text for m in ledger.search_unmatched(text="0%")] == ["100% sure"]
