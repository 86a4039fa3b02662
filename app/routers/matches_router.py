"""Matches API: pending matches for polling clients."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.db import get_db
from app.routers.utils.dependencies import get_current_user_id
from app.schemas.match import PendingMatchesRead, PendingMatchItem
from app.services.match_service import MatchService

router = APIRouter(
    prefix="/matches",
    tags=["matches"],
    responses={404: {"description": "Not found"}},
)


@router.get("/pending", response_model=PendingMatchesRead)
def get_pending_matches(
    since: Optional[datetime] = Query(None),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> PendingMatchesRead:
    """Matches involving the caller after ``since``, oldest first."""
    pending = MatchService(db).get_pending_matches(user_id, since)
    return PendingMatchesRead(
        items=[
            PendingMatchItem(
                match_id=pair.id,
                matched_at=pair.matched_at,
                text=pair.text,
                matched_user_id=partner,
            )
            for pair, partner in pending
        ]
    )
