"""Push subscription API."""

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from app.config import get_settings
from app.core.errors import NotFound
from app.db import get_db
from app.routers.utils.dependencies import get_current_user_id
from app.schemas.push import (
    PushStatusRead,
    PushSubscribeRequest,
    PushUnsubscribeRequest,
)
from app.services.notification_service import PushSubscriptionService

router = APIRouter(
    prefix="/push",
    tags=["push"],
    responses={404: {"description": "Not found"}},
)


@router.post("/subscribe", response_model=PushStatusRead, status_code=201)
def subscribe(
    data: PushSubscribeRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> PushStatusRead:
    """Register (or reactivate) a browser push endpoint for the caller."""
    svc = PushSubscriptionService(db)
    svc.subscribe(user_id, data.subscription, user_agent=data.user_agent)
    return PushStatusRead(
        active_subscriptions=svc.count_active(user_id),
        **_push_config(),
    )


@router.delete("/subscribe", status_code=204)
def unsubscribe(
    data: PushUnsubscribeRequest = Body(...),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> None:
    if not PushSubscriptionService(db).unsubscribe(user_id, data.endpoint):
        raise NotFound("Push subscription not found")


@router.get("/status", response_model=PushStatusRead)
def get_status(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> PushStatusRead:
    return PushStatusRead(
        active_subscriptions=PushSubscriptionService(db).count_active(user_id),
        **_push_config(),
    )


def _push_config() -> dict:
    """Whether push is configured, plus the public key clients subscribe with."""
    settings = get_settings()
    return {
        "enabled": bool(settings.vapid_private_key),
        "vapid_public_key": settings.vapid_public_key,
    }
