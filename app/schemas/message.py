"""Pydantic schemas for sending, cancelling and listing sent messages."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from app.core.expiry import ensure_utc
from app.models.sent_message import MAX_TEXT_LENGTH
from app.schemas.match import MatchPairRead


class SendMessageRequest(BaseModel):
    """Send one text to one or more receivers."""

    receiver_ids: List[str] = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("receiver_ids", "receiverIds"),
    )
    text: str = Field(
        ...,
        min_length=1,
        max_length=MAX_TEXT_LENGTH,
        validation_alias=AliasChoices("text", "message"),
    )
    expiry_days: Optional[int] = Field(
        None, validation_alias=AliasChoices("expiry_days", "expiryDays")
    )

    @field_validator("text")
    @classmethod
    def validate_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("text must not be blank")
        return v

    @field_validator("receiver_ids")
    @classmethod
    def validate_receiver_ids(cls, v: List[str]) -> List[str]:
        cleaned = [r.strip() for r in v if r and r.strip()]
        if not cleaned:
            raise ValueError("receiver_ids must contain at least one id")
        # keep first occurrence order, drop repeats
        return list(dict.fromkeys(cleaned))


class SentMessageRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    sender_id: str
    receiver_id: str
    text: str
    is_hidden: bool
    expires_at: Optional[datetime] = None
    created_at: datetime

    @field_validator("expires_at", "created_at")
    @classmethod
    def validate_timestamps(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v) if v is not None else None


class SendMessageResult(BaseModel):
    messages: List[SentMessageRead]
    matches: List[MatchPairRead] = Field(default_factory=list)


class CheckMatchRequest(BaseModel):
    text: str = Field(
        ...,
        min_length=1,
        max_length=MAX_TEXT_LENGTH,
        validation_alias=AliasChoices("text", "message"),
    )


class CheckMatchResult(BaseModel):
    matches: List[MatchPairRead] = Field(default_factory=list)


class MessageIdsRequest(BaseModel):
    """
    Body accepting either ``message_id`` or ``message_ids`` (camelCase too).

    Routers call :meth:`ids` right away so services only ever see a list.
    """

    message_id: Optional[UUID] = Field(
        None, validation_alias=AliasChoices("message_id", "messageId")
    )
    message_ids: Optional[List[UUID]] = Field(
        None, validation_alias=AliasChoices("message_ids", "messageIds")
    )

    def ids(self) -> List[UUID]:
        raw: List[UUID] = list(self.message_ids or [])
        if self.message_id is not None:
            raw.append(self.message_id)
        return list(dict.fromkeys(raw))


class CancelResult(BaseModel):
    cancelled: int


class UnmatchedCountRead(BaseModel):
    count: int


class SentHistoryItem(SentMessageRead):
    """A caller's own sent message with derived state."""

    is_matched: bool
    is_expired: bool


class NotificationsRead(BaseModel):
    sent_messages: List[SentHistoryItem]
    matched_pairs: List[MatchPairRead]
