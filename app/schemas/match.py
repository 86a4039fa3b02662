"""Pydantic schemas for match pairs."""

from __future__ import annotations

from datetime import datetime
from typing import List
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator

from app.core.expiry import ensure_utc


class MatchPairRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user1_id: str
    user2_id: str
    text: str
    matched_at: datetime

    @field_validator("matched_at")
    @classmethod
    def validate_matched_at(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class PendingMatchItem(BaseModel):
    match_id: UUID
    matched_at: datetime
    text: str
    matched_user_id: str


class PendingMatchesRead(BaseModel):
    items: List[PendingMatchItem]
