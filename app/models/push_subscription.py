"""PushSubscription model: one browser Web Push endpoint per row."""

from __future__ import annotations

import uuid

from sqlalchemy import JSON, Boolean, Column, String, Text, Uuid

from app.db import Base
from app.models.mixins import TimestampMixin


class PushSubscription(Base, TimestampMixin):
    """Endpoints answering 404/410 are deactivated, not deleted."""

    __tablename__ = "push_subscriptions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(String(64), nullable=False, index=True)
    endpoint = Column(Text, unique=True, nullable=False)
    subscription = Column(JSON, nullable=False)  # {endpoint, keys: {p256dh, auth}}
    user_agent = Column(String(255), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
