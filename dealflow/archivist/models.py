"""
Database models using SQLModel (SQLAlchemy + Pydantic).

Schema:
- Deal: One row per novel submission (unique source_hash)
- EventLog: Append-only audit trail of triage decisions
- NotificationRecord: Outbound chat notifications and their delivery time
"""

from datetime import datetime
from typing import Optional
import uuid

from sqlmodel import SQLModel, Field
from sqlalchemy import JSON, CheckConstraint, Column, DateTime, Index, Text, text
from sqlalchemy.dialects.postgresql import JSONB

from ..analyst.schemas import DealStatus
from ..common.clock import utc_now

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")

_STATUS_VALUES = ", ".join(f"'{s.value}'" for s in DealStatus)


class Deal(SQLModel, table=True):
    """A triaged startup submission."""
    __tablename__ = "deals"
    __table_args__ = (
        CheckConstraint(f"status IN ({_STATUS_VALUES})", name="ck_deals_status"),
        CheckConstraint("fit_score >= 0 AND fit_score <= 100", name="ck_deals_fit_score"),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)

    # Submission fields (trimmed, otherwise as submitted)
    company_name: str
    website: str
    sector: str
    stage: str
    geography: str
    pitch: str = Field(sa_column=Column(Text, nullable=False))

    # Normalized website for duplicate detection (see common.url_utils)
    website_key: str = Field(index=True)

    # Idempotency key: SHA-256 of the canonical form
    # Unique constraint is the authoritative guard against concurrent replays
    source_hash: str = Field(max_length=64, unique=True, index=True)

    normalized_payload: Optional[dict] = Field(default=None, sa_column=Column(JSONType))
    memo: Optional[dict] = Field(default=None, sa_column=Column(JSONType))
    fit_score: Optional[int] = None
    fit_reasoning: Optional[str] = Field(default=None, sa_column=Column(Text))
    status: str = Field(index=True)  # Qualified, Review, Pass, LLM_Error

    owner: Optional[str] = None  # partner assigned to the deal; set outside triage

    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False, index=True),
    )
    updated_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )


class EventLog(SQLModel, table=True):
    """Audit record. Never updated or deleted by the application."""
    __tablename__ = "event_logs"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    deal_id: Optional[uuid.UUID] = Field(
        default=None, foreign_key="deals.id", index=True, ondelete="SET NULL"
    )
    event_type: str = Field(index=True)
    source_hash: Optional[str] = Field(default=None, max_length=64)
    payload: Optional[dict] = Field(default=None, sa_column=Column(JSONType))
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )


class NotificationRecord(SQLModel, table=True):
    """Outbound notification; sent_at stays NULL until delivery succeeds."""
    __tablename__ = "notifications_queue"
    __table_args__ = (
        Index(
            "idx_notifications_queue_unsent",
            "sent_at",
            postgresql_where=text("sent_at IS NULL"),
        ),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    deal_id: Optional[uuid.UUID] = Field(
        default=None, foreign_key="deals.id", ondelete="SET NULL"
    )
    channel: str = Field(default="slack")
    message: str = Field(sa_column=Column(Text, nullable=False))
    sent_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=True)))
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
