"""
Collaborator contracts used by the pipeline driver.

The driver depends only on these protocols; archivist.storage.SQLDealStore
and notifier.notifications.SlackNotifier are the production implementations,
tests/conftest.py provides in-memory fakes.
"""

import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol

from ..analyst.schemas import DealStatus
from ..events import EventLogEntry
from ..intake.resolver import DealRef


class DuplicateSourceHashError(Exception):
    """The store's unique constraint rejected a deal whose source_hash already exists."""

    def __init__(self, source_hash: str):
        super().__init__(f"Deal with source_hash {source_hash} already exists")
        self.source_hash = source_hash

    def to_dict(self) -> dict:
        return {"error": "duplicate_source_hash", "source_hash": self.source_hash}


@dataclass(frozen=True)
class DealDraft:
    """Everything needed to insert a new deal row."""
    company_name: str
    website: str
    website_key: str
    sector: str
    stage: str
    geography: str
    pitch: str
    source_hash: str
    status: DealStatus
    normalized_payload: Dict[str, Any] = field(default_factory=dict)
    memo: Optional[Dict[str, Any]] = None
    fit_score: Optional[int] = None
    fit_reasoning: Optional[str] = None


class DealStore(Protocol):
    async def find_by_source_hash(self, source_hash: str) -> Optional[DealRef]: ...

    async def find_by_website(self, website_key: str) -> Optional[DealRef]: ...

    async def touch_deal(self, deal_id: uuid.UUID) -> bool: ...

    async def create_deal(self, draft: DealDraft) -> DealRef: ...

    async def record_event(self, entry: EventLogEntry) -> None: ...


class Notifier(Protocol):
    async def notify(self, message: dict, deal_id: Optional[uuid.UUID] = None) -> bool: ...
