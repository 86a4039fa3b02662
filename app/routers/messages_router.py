"""Messages API: send, match check, cancel, and the caller's inbox/history."""

from typing import List

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from app.core.content_filter import ContentFilter
from app.db import get_db
from app.infra.logging_config import get_logger
from app.routers.utils.dependencies import (
    get_content_filter,
    get_current_user_id,
    get_notifier,
)
from app.schemas.message import (
    CancelResult,
    CheckMatchRequest,
    CheckMatchResult,
    MessageIdsRequest,
    NotificationsRead,
    SendMessageRequest,
    SendMessageResult,
    SentHistoryItem,
    SentMessageRead,
    UnmatchedCountRead,
)
from app.services.match_service import MatchService, Notifier
from app.services.message_ledger_service import MessageLedgerService
from app.services.notification_service import build_message_events

logger = get_logger("messages")

router = APIRouter(
    prefix="",
    tags=["messages"],
    responses={404: {"description": "Not found"}},
)


@router.post("/messages", response_model=SendMessageResult, status_code=201)
def send_message(
    data: SendMessageRequest,
    user_id: str = Depends(get_current_user_id),
    content_filter: ContentFilter = Depends(get_content_filter),
    notifier: Notifier = Depends(get_notifier),
    db: Session = Depends(get_db),
) -> SendMessageResult:
    """Send one text to each receiver, then check whether it completes a match."""
    ledger = MessageLedgerService(db, content_filter=content_filter)
    messages = ledger.append_many(
        user_id, data.receiver_ids, data.text, expiry_days=data.expiry_days
    )

    for event in build_message_events(messages):
        try:
            notifier.notify(event, event.target_user_id)
        except Exception:
            logger.exception("Message notification failed for %s", event.target_user_id)

    pairs = MatchService(db, notifier=notifier).check_match(user_id, data.text)
    return SendMessageResult(messages=messages, matches=pairs)


@router.post("/check-match", response_model=CheckMatchResult)
def check_match(
    data: CheckMatchRequest,
    user_id: str = Depends(get_current_user_id),
    notifier: Notifier = Depends(get_notifier),
    db: Session = Depends(get_db),
) -> CheckMatchResult:
    """Create match pairs for live messages with this text addressed to the caller."""
    pairs = MatchService(db, notifier=notifier).check_match(user_id, data.text.strip())
    return CheckMatchResult(matches=pairs)


@router.delete("/messages", response_model=CancelResult)
def cancel_messages(
    data: MessageIdsRequest = Body(...),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> CancelResult:
    """Cancel the caller's own unmatched messages."""
    cancelled = MessageLedgerService(db).cancel(data.ids(), requesting_user_id=user_id)
    return CancelResult(cancelled=cancelled)


@router.get("/messages/unmatched", response_model=List[SentMessageRead])
def list_unmatched(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> List[SentMessageRead]:
    """Live messages addressed to the caller that have not matched yet."""
    return MessageLedgerService(db).list_unmatched_for_receiver(user_id)


@router.get("/messages/unmatched/count", response_model=UnmatchedCountRead)
def count_unmatched(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> UnmatchedCountRead:
    return UnmatchedCountRead(
        count=MessageLedgerService(db).count_unmatched_for_receiver(user_id)
    )


@router.get("/notifications", response_model=NotificationsRead)
def get_notifications(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> NotificationsRead:
    """The caller's sent history and match pairs."""
    history = MessageLedgerService(db).get_sent_history(user_id)
    pairs = MatchService(db).get_pairs_for_user(user_id)
    items = [
        SentHistoryItem(
            **SentMessageRead.model_validate(entry.message).model_dump(),
            is_matched=entry.is_matched,
            is_expired=entry.is_expired,
        )
        for entry in history
    ]
    return NotificationsRead(sent_messages=items, matched_pairs=pairs)
