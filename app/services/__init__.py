from app.services.match_service import MatchService
from app.services.message_ledger_service import MessageLedgerService
from app.services.moderation_service import MessageModerationService
from app.services.notification_service import (
    NotificationDispatcher,
    PushSubscriptionService,
)
from app.services.preset_aggregate_service import PresetAggregateService

__all__ = [
    "MatchService",
    "MessageLedgerService",
    "MessageModerationService",
    "NotificationDispatcher",
    "PresetAggregateService",
    "PushSubscriptionService",
]
