"""
Storage pipeline for persisting triaged deals, audit events and notifications.

Module-level functions take an AsyncSession (caller owns the transaction).
SQLDealStore wraps them behind the DealStore protocol used by the pipeline
driver, opening one committed session per call.
"""

import logging
import uuid
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..common.clock import utc_now
from ..events import EventLogEntry
from ..intake.resolver import DealRef
from ..pipeline.ports import DealDraft, DuplicateSourceHashError
from .database import get_session
from .models import Deal, EventLog, NotificationRecord

logger = logging.getLogger(__name__)


def to_deal_ref(deal: Deal) -> DealRef:
    return DealRef(id=deal.id, source_hash=deal.source_hash, website=deal.website)


async def find_deal_by_source_hash(session: AsyncSession, source_hash: str) -> Optional[Deal]:
    result = await session.execute(select(Deal).where(Deal.source_hash == source_hash))
    return result.scalars().first()


async def find_deal_by_website_key(session: AsyncSession, website_key: str) -> Optional[Deal]:
    """Oldest deal for a website key (duplicates are tolerated, so there may be several)."""
    if not website_key:
        return None
    result = await session.execute(
        select(Deal)
        .where(Deal.website_key == website_key)
        .order_by(Deal.created_at.asc())
        .limit(1)
    )
    return result.scalars().first()


async def touch_deal(session: AsyncSession, deal_id: uuid.UUID) -> bool:
    """Refresh updated_at only. Returns False if the deal does not exist."""
    result = await session.execute(
        update(Deal).where(Deal.id == deal_id).values(updated_at=utc_now())
    )
    return (result.rowcount or 0) > 0


async def create_deal(session: AsyncSession, draft: DealDraft) -> Deal:
    """
    Insert a new deal.

    Raises:
        DuplicateSourceHashError: if another deal already holds draft.source_hash
            (concurrent identical submissions; the unique constraint decides)
    """
    deal = Deal(
        company_name=draft.company_name,
        website=draft.website,
        website_key=draft.website_key,
        sector=draft.sector,
        stage=draft.stage,
        geography=draft.geography,
        pitch=draft.pitch,
        source_hash=draft.source_hash,
        normalized_payload=dict(draft.normalized_payload),
        memo=draft.memo,
        fit_score=draft.fit_score,
        fit_reasoning=draft.fit_reasoning,
        status=draft.status.value,
    )
    session.add(deal)
    try:
        await session.flush()
    except IntegrityError as e:
        await session.rollback()
        if await find_deal_by_source_hash(session, draft.source_hash) is not None:
            logger.info(f"Lost insert race for source_hash {draft.source_hash[:12]}")
            raise DuplicateSourceHashError(draft.source_hash) from e
        raise

    logger.info(f"Created deal {deal.id}: {deal.company_name} ({deal.status})")
    return deal


async def record_event(session: AsyncSession, entry: EventLogEntry) -> EventLog:
    row = EventLog(
        deal_id=entry.deal_id,
        event_type=entry.event_type.value,
        source_hash=entry.source_hash,
        payload=entry.payload,
        created_at=entry.created_at,
    )
    session.add(row)
    await session.flush()
    return row


async def enqueue_notification(
    session: AsyncSession,
    message: str,
    deal_id: Optional[uuid.UUID] = None,
    channel: str = "slack",
) -> NotificationRecord:
    record = NotificationRecord(deal_id=deal_id, channel=channel, message=message)
    session.add(record)
    await session.flush()
    return record


async def mark_notification_sent(session: AsyncSession, notification_id: uuid.UUID) -> bool:
    result = await session.execute(
        update(NotificationRecord)
        .where(NotificationRecord.id == notification_id)
        .values(sent_at=utc_now())
    )
    return (result.rowcount or 0) > 0


async def get_deals(
    session: AsyncSession,
    status: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> List[Deal]:
    """Deals, newest first, optionally filtered by status."""
    query = select(Deal)
    if status:
        query = query.where(Deal.status == status)
    query = query.order_by(Deal.created_at.desc()).offset(offset).limit(limit)
    result = await session.execute(query)
    return list(result.scalars().all())


async def get_deal(session: AsyncSession, deal_id: uuid.UUID) -> Optional[Deal]:
    return await session.get(Deal, deal_id)


async def get_deal_events(session: AsyncSession, deal_id: uuid.UUID) -> List[EventLog]:
    """Audit trail for a deal, oldest first."""
    result = await session.execute(
        select(EventLog)
        .where(EventLog.deal_id == deal_id)
        .order_by(EventLog.created_at.asc())
    )
    return list(result.scalars().all())


class SQLDealStore:
    """DealStore backed by SQLAlchemy; one committed session per operation."""

    def __init__(self, session_factory: Optional[async_sessionmaker] = None):
        self._session_factory = session_factory

    async def find_by_source_hash(self, source_hash: str) -> Optional[DealRef]:
        async with get_session(self._session_factory) as session:
            deal = await find_deal_by_source_hash(session, source_hash)
            return to_deal_ref(deal) if deal else None

    async def find_by_website(self, website_key: str) -> Optional[DealRef]:
        async with get_session(self._session_factory) as session:
            deal = await find_deal_by_website_key(session, website_key)
            return to_deal_ref(deal) if deal else None

    async def touch_deal(self, deal_id: uuid.UUID) -> bool:
        async with get_session(self._session_factory) as session:
            return await touch_deal(session, deal_id)

    async def create_deal(self, draft: DealDraft) -> DealRef:
        async with get_session(self._session_factory) as session:
            deal = await create_deal(session, draft)
            return to_deal_ref(deal)

    async def record_event(self, entry: EventLogEntry) -> None:
        async with get_session(self._session_factory) as session:
            await record_event(session, entry)

    async def enqueue_notification(
        self, message: str, deal_id: Optional[uuid.UUID] = None, channel: str = "slack"
    ) -> uuid.UUID:
        async with get_session(self._session_factory) as session:
            record = await enqueue_notification(session, message, deal_id=deal_id, channel=channel)
            return record.id

    async def mark_notification_sent(self, notification_id: uuid.UUID) -> bool:
        async with get_session(self._session_factory) as session:
            return await mark_notification_sent(session, notification_id)
