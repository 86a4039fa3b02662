"""Tests for request schemas and notification payloads."""

from datetime import datetime, timezone
from uuid import uuid4

import pytest
from pydantic import ValidationError

from app.schemas.admin import DeleteMatchRequest, KeywordSweepRequest
from app.schemas.match import MatchPairRead
from app.schemas.message import MessageIdsRequest, SendMessageRequest, SentMessageRead
from app.schemas.push import NotificationEvent, NotificationKind
from app.services.notification_service import build_digest_event


def test_send_request_accepts_client_field_names():
    req = SendMessageRequest.model_validate(
        {"receiverIds": [" b ", "c", "b"], "message": "  hi  ", "expiryDays": 7}
    )
    assert req.receiver_ids == ["b", "c"]
    assert req.text == "hi"
    assert req.expiry_days == 7


@pytest.mark.parametrize(
    "payload",
    [
        {"receiver_ids": [], "text": "hi"},
        {"receiver_ids": ["  "], "text": "hi"},
        {"receiver_ids": ["b"], "text": "   "},
        {"receiver_ids": ["b"]},
    ],
)
def test_send_request_rejects_bad_payloads(payload):
    with pytest.raises(ValidationError):
        SendMessageRequest.model_validate(payload)


def test_message_ids_request_merges_single_and_many():
    one, two = uuid4(), uuid4()
    req = MessageIdsRequest.model_validate(
        {"messageId": str(one), "messageIds": [str(two), str(one)]}
    )
    assert req.ids() == [two, one]
    assert MessageIdsRequest().ids() == []


def test_admin_request_aliases():
    assert KeywordSweepRequest.model_validate({"dryRun": True}).dry_run is True
    req = DeleteMatchRequest.model_validate({"message": "hi", "userIds": ["a", "b"]})
    assert (req.text, req.user_ids, req.match_pair_id) == ("hi", ["a", "b"], None)


def test_message_event_payloads():
    message_id = uuid4()
    event = NotificationEvent(
        kind=NotificationKind.MESSAGE,
        target_user_id="b",
        text="hello",
        occurred_at=datetime(2026, 10, 17, 12, tzinfo=timezone.utc),
        message_id=message_id,
    )
    realtime = event.realtime_payload()
    assert realtime["event"] == "newMessage"
    assert realtime["messageId"] == str(message_id)
    assert "matchId" not in realtime
    assert event.push_payload()["type"] == "message"


@pytest.mark.parametrize(
    "count, body",
    [
        (1, "Someone sent you a message in the last 24 hours"),
        (4, "Several messages arrived for you in the last 24 hours"),
    ],
)
def test_digest_event_payloads(count, body):
    event = build_digest_event("a", count, datetime(2026, 10, 17, 8, tzinfo=timezone.utc))

    push = event.push_payload()
    assert (push["type"], push["body"], push["unmatchedCount"]) == ("digest_unmatched", body, count)
    realtime = event.realtime_payload()
    assert realtime["event"] == "unmatchedDigest"
    assert realtime["unmatchedCount"] == count


def test_sent_message_read_marks_naive_timestamps_as_utc():
    naive = datetime(2026, 10, 17, 12, 0)
    read = SentMessageRead.model_validate(
        {
            "id": uuid4(),
            "sender_id": "a",
            "receiver_id": "b",
            "text": "hi",
            "is_hidden": False,
            "expires_at": naive,
            "created_at": naive,
        }
    )

    assert read.created_at.tzinfo == timezone.utc
    assert read.expires_at == naive.replace(tzinfo=timezone.utc)
    assert read.model_dump(mode="json")["created_at"].endswith("Z")


def test_match_pair_read_marks_naive_matched_at_as_utc():
    pair = MatchPairRead.model_validate(
        {
            "id": uuid4(),
            "user1_id": "a",
            "user2_id": "b",
            "text": "hi",
            "matched_at": datetime(2026, 10, 17, 12, 0),
        }
    )
    assert pair.matched_at.tzinfo == timezone.utc
