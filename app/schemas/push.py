"""Pydantic schemas for push subscriptions and notification events."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class PushSubscriptionKeys(BaseModel):
    p256dh: str
    auth: str


class PushSubscriptionInfo(BaseModel):
    """Browser PushSubscription.toJSON() shape."""

    endpoint: str = Field(..., min_length=1)
    expirationTime: Optional[float] = None
    keys: PushSubscriptionKeys


class PushSubscribeRequest(BaseModel):
    subscription: PushSubscriptionInfo
    user_agent: Optional[str] = Field(None, max_length=255)


class PushUnsubscribeRequest(BaseModel):
    endpoint: str = Field(..., min_length=1)


class PushStatusRead(BaseModel):
    active_subscriptions: int
    enabled: bool
    vapid_public_key: Optional[str] = None


class DeliveryResult(str, Enum):
    """Outcome of a single push delivery."""

    OK = "ok"
    GONE = "gone"  # endpoint answered 404/410; deactivate it
    TRANSIENT_ERROR = "transient_error"


class NotificationKind(str, Enum):
    MATCH = "match"
    MESSAGE = "message"
    DIGEST = "digest"


REALTIME_EVENT_NAMES = {
    NotificationKind.MATCH: "matchEstablished",
    NotificationKind.MESSAGE: "newMessage",
    NotificationKind.DIGEST: "unmatchedDigest",
}


class NotificationEvent(BaseModel):
    """One event addressed to one user."""

    kind: NotificationKind
    target_user_id: str
    text: str
    occurred_at: datetime
    match_id: Optional[UUID] = None
    matched_user_id: Optional[str] = None
    message_id: Optional[UUID] = None
    unmatched_count: Optional[int] = None

    def realtime_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "event": REALTIME_EVENT_NAMES[self.kind],
            "message": self.text,
            "targetUserId": self.target_user_id,
            "occurredAt": self.occurred_at.isoformat(),
        }
        if self.kind == NotificationKind.MATCH:
            payload["matchId"] = str(self.match_id)
            payload["matchedUserId"] = self.matched_user_id
            payload["matchedAt"] = self.occurred_at.isoformat()
        elif self.kind == NotificationKind.DIGEST:
            payload["unmatchedCount"] = self.unmatched_count
        elif self.message_id is not None:
            payload["messageId"] = str(self.message_id)
        return payload

    def push_payload(self) -> dict[str, Any]:
        if self.kind == NotificationKind.MATCH:
            return {
                "type": "match",
                "title": "It's a match!",
                "body": f"You matched on “{self.text}”",
                "url": "/notifications",
                "matchId": str(self.match_id),
                "matchedUserId": self.matched_user_id,
            }
        if self.kind == NotificationKind.DIGEST:
            if self.unmatched_count == 1:
                body = "Someone sent you a message in the last 24 hours"
            else:
                body = "Several messages arrived for you in the last 24 hours"
            return {
                "type": "digest_unmatched",
                "title": "New messages",
                "body": body,
                "url": "/notifications",
                "unmatchedCount": self.unmatched_count,
            }
        return {
            "type": "message",
            "title": "New message",
            "body": "Someone sent you a message. Send the same words back to match!",
            "url": "/main",
            "messageId": str(self.message_id) if self.message_id else None,
        }
