"""Celery task for the scheduled unmatched-message digest push."""

from __future__ import annotations

from dataclasses import asdict, dataclass

from app.config import get_settings
from app.core.expiry import utcnow
from app.db import db_manager
from app.infra.celery_app import celery_app
from app.infra.logging_config import get_logger
from app.services.message_ledger_service import MessageLedgerService
from app.services.notification_service import (
    NotificationDispatcher,
    PushSubscriptionService,
    build_digest_event,
)

logger = get_logger("digest_task")


@dataclass
class DigestStats:
    users_checked: int = 0
    users_notified: int = 0
    delivered: int = 0
    deactivated: int = 0
    failed: int = 0


@celery_app.task(name="app.tasks.digest_task.send_unmatched_digest_task")
def send_unmatched_digest_task() -> dict[str, int]:
    """
    Tell every user with an active push endpoint how many unmatched messages
    are waiting for them inside the match window.

    Users are processed in batches of DIGEST_BATCH_SIZE; each batch commits
    on its own so dead endpoints found early stay deactivated if a later
    batch fails. Users with nothing waiting are skipped.
    """
    settings = get_settings()
    now = utcnow()
    stats = DigestStats()
    with db_manager.db_session() as db:
        ledger = MessageLedgerService(db)
        dispatcher = NotificationDispatcher.from_settings(db)
        user_ids = PushSubscriptionService(db).active_user_ids()
        batch_size = settings.digest_batch_size

        for start in range(0, len(user_ids), batch_size):
            for user_id in user_ids[start : start + batch_size]:
                stats.users_checked += 1
                count = ledger.count_unmatched_for_receiver(user_id, now=now)
                if not count:
                    continue
                event = build_digest_event(user_id, count, now)
                report = dispatcher.notify(event, user_id)
                stats.users_notified += 1
                stats.delivered += report.delivered
                stats.deactivated += report.gone
                stats.failed += report.failed
            db.commit()

    logger.info(
        "Unmatched digest: checked=%d notified=%d delivered=%d deactivated=%d failed=%d",
        stats.users_checked,
        stats.users_notified,
        stats.delivered,
        stats.deactivated,
        stats.failed,
    )
    return asdict(stats)
