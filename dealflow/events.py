"""
Audit events for every triage decision point.

Stages build EventLogEntry values; the EventEmitter hands them to the
persistence collaborator. Emission is best-effort: a failed write is logged
and reported as False, never raised into deal processing.
"""

import logging
import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Protocol

from pydantic import BaseModel, ConfigDict, Field

from .common.clock import utc_now

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    """Fixed event vocabulary stored in event_logs.event_type."""
    INTAKE_RECEIVED = "intake_received"
    IDEMPOTENT_REPLAY = "idempotent_replay"
    DUPLICATE_DETECTED = "duplicate_detected"
    SCORE_CONSISTENCY_FIX = "score_consistency_fix"
    FORCE_FIT_SCORE_USED = "force_fit_score_used"
    DEAL_CREATED = "deal_created"


class EventLogEntry(BaseModel):
    """Append-only audit record."""
    model_config = ConfigDict(frozen=True)

    event_type: EventType
    source_hash: str
    deal_id: Optional[uuid.UUID] = None
    payload: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utc_now)

    def for_deal(self, deal_id: uuid.UUID) -> "EventLogEntry":
        """Copy of this entry attached to a deal (entries are never mutated)."""
        return self.model_copy(update={"deal_id": deal_id})


def build_event(
    event_type: EventType,
    source_hash: str,
    payload: Optional[Dict[str, Any]] = None,
    deal_id: Optional[uuid.UUID] = None,
) -> EventLogEntry:
    return EventLogEntry(
        event_type=event_type,
        source_hash=source_hash,
        deal_id=deal_id,
        payload=payload or {},
    )


class EventSink(Protocol):
    async def record_event(self, entry: EventLogEntry) -> None: ...


class EventEmitter:
    """Fire-and-forget wrapper around an event sink."""

    def __init__(self, sink: EventSink):
        self._sink = sink

    async def emit(self, entry: EventLogEntry) -> bool:
        """Persist one entry. Returns True on success."""
        try:
            await self._sink.record_event(entry)
            return True
        except Exception as e:
            # Audit trail is best-effort; the deal outcome must not depend on it
            logger.error(
                f"Failed to record {entry.event_type.value} event for {entry.source_hash[:12]}: {e}",
                exc_info=True,
            )
            return False

    async def emit_all(self, entries) -> int:
        """Emit entries in order. Returns how many were recorded."""
        recorded = 0
        for entry in entries:
            if await self.emit(entry):
                recorded += 1
        return recorded
