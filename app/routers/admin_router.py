"""Admin moderation API. Every route requires the admin bearer token."""

from typing import Optional

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.orm import Session

from app.config import get_settings
from app.db import get_db
from app.routers.utils.dependencies import require_admin
from app.schemas.admin import (
    DeleteMatchRequest,
    DeleteMatchResult,
    HideMatchResult,
    KeywordSweepRequest,
    KeywordSweepResult,
    MatchedSearchRead,
    ModerationResult,
    UnmatchedSearchRead,
)
from app.schemas.message import MessageIdsRequest
from app.services.match_service import MatchService
from app.services.message_ledger_service import MessageLedgerService
from app.services.moderation_service import (
    KEYWORD_SWEEP_SAMPLE_SIZE,
    MessageModerationService,
)

router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    dependencies=[Depends(require_admin)],
    responses={404: {"description": "Not found"}},
)


@router.delete("/messages", response_model=ModerationResult)
def delete_messages(
    data: MessageIdsRequest = Body(...),
    db: Session = Depends(get_db),
) -> ModerationResult:
    """Delete unmatched messages. Matched ones are skipped (409 when all are matched)."""
    return MessageModerationService(db).delete_unmatched(data.ids())


@router.post("/messages/hide", response_model=ModerationResult)
def hide_messages(
    data: MessageIdsRequest,
    db: Session = Depends(get_db),
) -> ModerationResult:
    return MessageModerationService(db).hide_unmatched(data.ids())


@router.post("/messages/unhide", response_model=ModerationResult)
def unhide_messages(
    data: MessageIdsRequest,
    db: Session = Depends(get_db),
) -> ModerationResult:
    return MessageModerationService(db).unhide(data.ids())


@router.get("/messages/unmatched", response_model=UnmatchedSearchRead)
def search_unmatched_messages(
    message: Optional[str] = Query(None),
    user_id: Optional[str] = Query(None),
    include_hidden: bool = Query(False),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
) -> UnmatchedSearchRead:
    """Unmatched messages by text substring and/or participant, newest first."""
    items = MessageLedgerService(db).search_unmatched(
        text=message, user_id=user_id, include_hidden=include_hidden, limit=limit
    )
    return UnmatchedSearchRead(count=len(items), items=items)


@router.get("/matches", response_model=MatchedSearchRead)
def search_matches(
    message: Optional[str] = Query(None),
    user_id: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
) -> MatchedSearchRead:
    items = MatchService(db).search(text=message, user_id=user_id, limit=limit)
    return MatchedSearchRead(count=len(items), items=items)


@router.post("/messages/hide-by-keywords", response_model=KeywordSweepResult)
def hide_by_keywords(
    data: Optional[KeywordSweepRequest] = Body(None),
    db: Session = Depends(get_db),
) -> KeywordSweepResult:
    """Hide every visible message containing a configured HIDDEN_KEYWORDS entry."""
    dry_run = data.dry_run if data is not None else False
    keywords = get_settings().hidden_keyword_list
    found, hidden = MessageModerationService(db).hide_matching_keywords(
        keywords, dry_run=dry_run
    )
    return KeywordSweepResult(
        dry_run=dry_run,
        keywords=keywords,
        matched=len(found),
        hidden=hidden,
        sample=found[:KEYWORD_SWEEP_SAMPLE_SIZE],
    )


@router.delete("/matches", response_model=DeleteMatchResult)
def delete_match(
    data: DeleteMatchRequest = Body(...),
    db: Session = Depends(get_db),
) -> DeleteMatchResult:
    """Remove a match pair together with the messages that formed it."""
    pairs, deleted, updates = MessageModerationService(db).delete_match(
        match_pair_id=data.match_pair_id,
        text=data.text,
        user_ids=data.user_ids,
    )
    return DeleteMatchResult(
        deleted_match_pairs=pairs,
        deleted_sent_messages=deleted,
        aggregate_updates=updates,
    )


@router.post("/matches/hide", response_model=HideMatchResult)
def hide_match(
    data: DeleteMatchRequest,
    db: Session = Depends(get_db),
) -> HideMatchResult:
    """Hide both directions' messages of a match pair; the pair itself stays."""
    pairs, hidden_ids, updates = MessageModerationService(db).hide_match(
        match_pair_id=data.match_pair_id,
        text=data.text,
        user_ids=data.user_ids,
    )
    return HideMatchResult(
        match_pairs=pairs,
        hidden_sent_messages=len(hidden_ids),
        message_ids=hidden_ids,
        aggregate_updates=updates,
    )
