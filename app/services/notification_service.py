"""
Notification dispatch: push subscriptions plus the fan-out of match and
message events to realtime and Web Push transports.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from app.adapters.base import BasePushTransport, BaseRealtimeRelay
from app.adapters.realtime import RedisRealtimeRelay
from app.adapters.webpush import WebPushTransport
from app.config import get_settings
from app.core.errors import UpstreamDeliveryError, ValidationError
from app.core.expiry import ensure_utc
from app.infra.logging_config import get_logger
from app.models.push_subscription import PushSubscription
from app.models.sent_message import SentMessage
from app.schemas.push import (
    DeliveryResult,
    NotificationEvent,
    NotificationKind,
    PushSubscriptionInfo,
)

logger = get_logger("notifications")


def user_topic(user_id: str) -> str:
    return f"user-{user_id}"


def build_message_events(messages: Iterable[SentMessage]) -> List[NotificationEvent]:
    """One ``newMessage`` event per receiver of a fresh send."""
    return [
        NotificationEvent(
            kind=NotificationKind.MESSAGE,
            target_user_id=m.receiver_id,
            text=m.text,
            occurred_at=ensure_utc(m.created_at),
            message_id=m.id,
        )
        for m in messages
    ]


def build_digest_event(
    user_id: str, unmatched_count: int, now: datetime
) -> NotificationEvent:
    """How many unmatched messages are waiting for ``user_id``."""
    return NotificationEvent(
        kind=NotificationKind.DIGEST,
        target_user_id=user_id,
        text="",
        occurred_at=now,
        unmatched_count=unmatched_count,
    )


class PushSubscriptionService:
    """Stores browser push endpoints per user."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def subscribe(
        self,
        user_id: str,
        subscription: PushSubscriptionInfo,
        user_agent: Optional[str] = None,
    ) -> PushSubscription:
        """
        Register an endpoint for ``user_id``.

        Endpoints are unique: re-subscribing an existing one moves it to this
        user, refreshes its keys and reactivates it.
        """
        if not user_id:
            raise ValidationError("user_id is required")
        data = subscription.model_dump(exclude_none=True)
        row = (
            self.db.query(PushSubscription)
            .filter(PushSubscription.endpoint == subscription.endpoint)
            .first()
        )
        if row is None:
            row = PushSubscription(endpoint=subscription.endpoint)
            self.db.add(row)
        row.user_id = user_id
        row.subscription = data
        row.user_agent = user_agent
        row.is_active = True
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(row)
        logger.info("Push subscription saved for %s", user_id)
        return row

    def unsubscribe(self, user_id: str, endpoint: str) -> bool:
        """Deactivate the caller's endpoint. Returns False when it was not registered."""
        row = (
            self.db.query(PushSubscription)
            .filter(
                PushSubscription.user_id == user_id,
                PushSubscription.endpoint == endpoint,
            )
            .first()
        )
        if row is None:
            return False
        row.is_active = False
        self.db.commit()
        logger.info("Push subscription deactivated for %s", user_id)
        return True

    def get_active_subscriptions(self, user_id: str) -> List[PushSubscription]:
        return (
            self.db.query(PushSubscription)
            .filter(
                PushSubscription.user_id == user_id,
                PushSubscription.is_active.is_(True),
            )
            .order_by(PushSubscription.created_at)
            .all()
        )

    def active_user_ids(self) -> List[str]:
        """Users holding at least one active endpoint, in id order."""
        rows = (
            self.db.query(PushSubscription.user_id)
            .filter(PushSubscription.is_active.is_(True))
            .distinct()
            .order_by(PushSubscription.user_id)
            .all()
        )
        return [row[0] for row in rows]

    def count_active(self, user_id: str) -> int:
        return (
            self.db.query(PushSubscription)
            .filter(
                PushSubscription.user_id == user_id,
                PushSubscription.is_active.is_(True),
            )
            .count()
        )

    def deactivate(self, subscription: PushSubscription) -> None:
        """Mark an endpoint gone. Flushes only; the caller commits."""
        subscription.is_active = False
        self.db.flush()


@dataclass
class DispatchReport:
    realtime_published: bool = False
    delivered: int = 0
    gone: int = 0
    failed: int = 0


class NotificationDispatcher:
    """
    Sends one event to one user over every configured transport.

    Delivery is best effort: transport failures are logged and counted, never
    raised, and one transport failing does not stop the other.
    """

    def __init__(
        self,
        db: Session,
        push_transport: Optional[BasePushTransport] = None,
        realtime: Optional[BaseRealtimeRelay] = None,
        subscription_service: Optional[PushSubscriptionService] = None,
    ) -> None:
        self.db = db
        self.push_transport = push_transport
        self.realtime = realtime
        self.subscriptions = subscription_service or PushSubscriptionService(db)

    @classmethod
    def from_settings(cls, db: Session) -> "NotificationDispatcher":
        """Build a dispatcher with the transports the environment configures."""
        settings = get_settings()
        push_transport = None
        if settings.vapid_private_key:
            push_transport = WebPushTransport(
                vapid_private_key=settings.vapid_private_key,
                vapid_subject=settings.vapid_subject,
                timeout=settings.push_timeout_seconds,
            )
        realtime = None
        if settings.realtime_enabled:
            realtime = RedisRealtimeRelay.from_settings(
                host=settings.redis_host,
                port=settings.redis_port,
                namespace=settings.redis_namespace,
                timeout=settings.push_timeout_seconds,
            )
        return cls(db, push_transport=push_transport, realtime=realtime)

    def notify(self, event: NotificationEvent, target_user_id: str) -> DispatchReport:
        report = DispatchReport()
        self._publish_realtime(event, target_user_id, report)
        self._deliver_push(event, target_user_id, report)
        logger.info(
            "Dispatched %s to %s realtime=%s delivered=%d gone=%d failed=%d",
            event.kind.value,
            target_user_id,
            report.realtime_published,
            report.delivered,
            report.gone,
            report.failed,
        )
        return report

    def _publish_realtime(
        self, event: NotificationEvent, target_user_id: str, report: DispatchReport
    ) -> None:
        if self.realtime is None:
            return
        try:
            self.realtime.publish(user_topic(target_user_id), event.realtime_payload())
            report.realtime_published = True
        except UpstreamDeliveryError as e:
            logger.warning("Realtime publish failed for %s: %s", target_user_id, e)
        except Exception:
            logger.exception("Unexpected realtime relay error for %s", target_user_id)

    def _deliver_push(
        self, event: NotificationEvent, target_user_id: str, report: DispatchReport
    ) -> None:
        if self.push_transport is None:
            return
        payload = event.push_payload()
        for subscription in self.subscriptions.get_active_subscriptions(target_user_id):
            try:
                result = self.push_transport.send(subscription.subscription, payload)
            except Exception as e:
                logger.warning("Push transport raised for %s: %s", target_user_id, e)
                result = DeliveryResult.TRANSIENT_ERROR

            if result == DeliveryResult.OK:
                report.delivered += 1
            elif result == DeliveryResult.GONE:
                self.subscriptions.deactivate(subscription)
                report.gone += 1
            else:
                report.failed += 1

        if report.gone:
            try:
                self.db.commit()
            except Exception:
                self.db.rollback()
                logger.exception("Failed to deactivate gone push subscriptions")
