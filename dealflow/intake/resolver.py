"""
Replay and duplicate resolution.

Order is fixed: an exact source_hash match (replay) always wins over a
website match (duplicate). A replay must never be downgraded to a
duplicate-with-timestamp-bump, otherwise the idempotent response is lost.

resolve_submission() is pure. lookup_and_resolve() performs the lookups in
the same order and only queries by website when the hash lookup misses.
"""

import logging
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol

from ..common.url_utils import normalize_website_key
from ..events import EventLogEntry, EventType, build_event

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DealRef:
    """The minimum the resolver needs to know about a persisted deal."""
    id: uuid.UUID
    source_hash: str
    website: str


class DealLookup(Protocol):
    async def find_by_source_hash(self, source_hash: str) -> Optional[DealRef]: ...

    async def find_by_website(self, website_key: str) -> Optional[DealRef]: ...


class Resolution(str, Enum):
    NOVEL = "novel"
    REPLAY = "replay"
    DUPLICATE = "duplicate"


@dataclass(frozen=True)
class ResolverDecision:
    """
    Outcome of replay/duplicate resolution.

    touch_updated_at is set only for duplicates: the caller refreshes
    updated_at on `existing` and changes nothing else.
    """
    resolution: Resolution
    source_hash: str
    existing: Optional[DealRef] = None
    event: Optional[EventLogEntry] = None

    @property
    def is_terminal(self) -> bool:
        return self.resolution is not Resolution.NOVEL

    @property
    def touch_updated_at(self) -> bool:
        return self.resolution is Resolution.DUPLICATE


def resolve_submission(
    source_hash: str,
    website: str,
    by_hash: Optional[DealRef],
    by_website: Optional[DealRef],
) -> ResolverDecision:
    """
    Decide replay / duplicate / novel for a fingerprinted submission.

    Args:
        source_hash: Fingerprint of the incoming submission
        website: Website as submitted (used for audit payloads)
        by_hash: Deal found with the same source_hash, if any
        by_website: Deal found with the same website key, if any

    Returns:
        ResolverDecision; terminal decisions carry their audit event
    """
    if by_hash is not None:
        return ResolverDecision(
            resolution=Resolution.REPLAY,
            source_hash=source_hash,
            existing=by_hash,
            event=build_event(
                EventType.IDEMPOTENT_REPLAY,
                source_hash,
                payload={"existing_deal_id": str(by_hash.id)},
                deal_id=by_hash.id,
            ),
        )

    if by_website is not None:
        return ResolverDecision(
            resolution=Resolution.DUPLICATE,
            source_hash=source_hash,
            existing=by_website,
            event=build_event(
                EventType.DUPLICATE_DETECTED,
                source_hash,
                payload={
                    "existing_deal_id": str(by_website.id),
                    "existing_source_hash": by_website.source_hash,
                    "website": website,
                    "website_key": normalize_website_key(website),
                },
                deal_id=by_website.id,
            ),
        )

    return ResolverDecision(resolution=Resolution.NOVEL, source_hash=source_hash)


async def lookup_and_resolve(lookup: DealLookup, source_hash: str, website: str) -> ResolverDecision:
    """Query the lookup collaborator (hash first) and resolve."""
    by_hash = await lookup.find_by_source_hash(source_hash)
    by_website = None
    if by_hash is None:
        by_website = await lookup.find_by_website(normalize_website_key(website))

    decision = resolve_submission(source_hash, website, by_hash, by_website)
    if decision.is_terminal:
        logger.info(
            f"Submission {source_hash[:12]} resolved as {decision.resolution.value} "
            f"of deal {decision.existing.id}"
        )
    return decision
