"""Pydantic schemas for preset aggregates."""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator

from app.core.expiry import ensure_utc


class PresetAggregateRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    text: str
    total_send_count: int
    distinct_sender_count: int
    last_sent_at: datetime
    created_by: str
    link_title: Optional[str] = None
    link_image: Optional[str] = None
    created_at: datetime

    @field_validator("last_sent_at", "created_at")
    @classmethod
    def validate_timestamps(cls, v: datetime) -> datetime:
        return ensure_utc(v)
