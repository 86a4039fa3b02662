"""Pydantic schemas for the admin moderation surface."""

from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from pydantic import AliasChoices, BaseModel, Field

from app.schemas.match import MatchPairRead
from app.schemas.message import SentMessageRead


class AggregateUpdate(BaseModel):
    text: str
    total_send_count: int
    distinct_sender_count: int
    deleted: bool


class ModerationResult(BaseModel):
    """Outcome of one moderation transaction."""

    affected: int
    message_ids: List[UUID]
    skipped_matched: List[UUID] = Field(default_factory=list)
    aggregate_updates: List[AggregateUpdate] = Field(default_factory=list)


class KeywordSweepRequest(BaseModel):
    dry_run: bool = Field(False, validation_alias=AliasChoices("dry_run", "dryRun"))


class KeywordSweepResult(BaseModel):
    dry_run: bool
    keywords: List[str]
    matched: int
    hidden: int
    sample: List[SentMessageRead] = Field(default_factory=list)


class DeleteMatchRequest(BaseModel):
    """Either a pair id, or a text plus the two user ids of the pair."""

    match_pair_id: Optional[UUID] = Field(
        None, validation_alias=AliasChoices("match_pair_id", "matchPairId")
    )
    text: Optional[str] = Field(None, validation_alias=AliasChoices("text", "message"))
    user_ids: Optional[List[str]] = Field(
        None, validation_alias=AliasChoices("user_ids", "userIds")
    )


class DeleteMatchResult(BaseModel):
    deleted_match_pairs: List[MatchPairRead]
    deleted_sent_messages: int
    aggregate_updates: List[AggregateUpdate] = Field(default_factory=list)


class HideMatchResult(BaseModel):
    match_pairs: List[MatchPairRead]
    hidden_sent_messages: int
    message_ids: List[UUID]
    aggregate_updates: List[AggregateUpdate] = Field(default_factory=list)


class UnmatchedSearchRead(BaseModel):
    count: int
    items: List[SentMessageRead]


class MatchedSearchRead(BaseModel):
    count: int
    items: List[MatchPairRead]
