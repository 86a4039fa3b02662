"""Tests for PushSubscriptionService and NotificationDispatcher."""

from datetime import timezone

from app.models.push_subscription import PushSubscription
from app.schemas.push import DeliveryResult, NotificationKind
from app.services.match_service import build_match_events
from app.services.notification_service import (
    NotificationDispatcher,
    PushSubscriptionService,
    build_message_events,
)
from tests.fixtures.notification_fixtures import (
    FakePushTransport,
    FakeRealtimeRelay,
    make_subscription_info,
)


def test_subscribe_upserts_by_endpoint(db, users, faker):
    a, b, _ = users
    svc = PushSubscriptionService(db)
    info = make_subscription_info(faker)

    first = svc.subscribe(a, info)
    svc.unsubscribe(a, info.endpoint)
    assert svc.count_active(a) == 0

    again = svc.subscribe(b, info, user_agent="Firefox")
    assert again.id == first.id
    assert again.user_id == b
    assert again.is_active is True
    assert again.subscription["keys"]["auth"] == info.keys.auth
    assert db.query(PushSubscription).count() == 1
    assert svc.count_active(b) == 1


def test_unsubscribe_unknown_endpoint(db, users):
    assert PushSubscriptionService(db).unsubscribe(users[0], "https://nope") is False


def test_dispatch_delivers_push_and_realtime(
    db, setup_match, setup_push_subscription, push_transport, realtime_relay, users
):
    pair, _, _ = setup_match
    a = users[0]
    dispatcher = NotificationDispatcher(
        db, push_transport=push_transport, realtime=realtime_relay
    )
    event = next(e for e in build_match_events(pair) if e.target_user_id == a)

    report = dispatcher.notify(event, a)

    assert report.realtime_published is True
    assert report.delivered == 1
    topic, payload = realtime_relay.published[0]
    assert topic == f"user-{a}"
    assert payload["event"] == "matchEstablished"
    assert payload["matchedUserId"] == users[1]
    endpoint, push_payload = push_transport.sent[0]
    assert endpoint == setup_push_subscription.endpoint
    assert push_payload["type"] == "match"


def test_gone_endpoint_is_deactivated(db, setup_match, users, faker):
    pair, _, _ = setup_match
    a = users[0]
    svc = PushSubscriptionService(db)
    gone = svc.subscribe(a, make_subscription_info(faker))
    flaky = svc.subscribe(a, make_subscription_info(faker))
    transport = FakePushTransport(
        {
            gone.endpoint: DeliveryResult.GONE,
            flaky.endpoint: DeliveryResult.TRANSIENT_ERROR,
        }
    )
    dispatcher = NotificationDispatcher(db, push_transport=transport)

    report = dispatcher.notify(build_match_events(pair)[0], a)

    assert (report.delivered, report.gone, report.failed) == (0, 1, 1)
    db.refresh(gone)
    db.refresh(flaky)
    assert gone.is_active is False
    assert flaky.is_active is True


def test_realtime_failure_does_not_block_push(
    db, setup_match, setup_push_subscription, push_transport, users
):
    pair, _, _ = setup_match
    dispatcher = NotificationDispatcher(
        db, push_transport=push_transport, realtime=FakeRealtimeRelay(fail=True)
    )

    report = dispatcher.notify(build_match_events(pair)[0], users[0])

    assert report.realtime_published is False
    assert report.delivered == 1


def test_push_transport_exception_counts_as_failure(db, setup_match, setup_push_subscription, users):
    pair, _, _ = setup_match

    class ExplodingTransport(FakePushTransport):
        def send(self, subscription, payload):
            raise TimeoutError("slow endpoint")

    dispatcher = NotificationDispatcher(db, push_transport=ExplodingTransport())
    report = dispatcher.notify(build_match_events(pair)[0], users[0])

    assert report.failed == 1
    db.refresh(setup_push_subscription)
    assert setup_push_subscription.is_active is True


def test_message_events_target_each_receiver(ledger, users, now):
    a, b, c = users
    messages = ledger.append_many(a, [b, c], "ping", now=now)

    events = build_message_events(messages)

    assert {e.target_user_id for e in events} == {b, c}
    assert all(e.kind == NotificationKind.MESSAGE for e in events)
    assert events[0].occurred_at.tzinfo == timezone.utc
    assert events[0].realtime_payload()["event"] == "newMessage"
    assert events[0].push_payload()["messageId"] == str(events[0].message_id)
