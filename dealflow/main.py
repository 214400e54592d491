"""
Deal Flow Triage - Main Application Entry Point

Receives startup submissions over a webhook, runs the triage pipeline and
exposes the resulting deals and their audit trail.
"""

import logging
import subprocess
import sys
import uuid
from contextlib import asynccontextmanager
from datetime import datetime
from functools import lru_cache
from typing import Any, Dict, List, Optional

from fastapi import Body, Depends, FastAPI, HTTPException, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from .analyst.generator import AnalysisGenerationError, AnthropicMemoGenerator, MemoGenerator
from .analyst.schemas import DealStatus
from .archivist import close_db, get_db, get_deal, get_deal_events, get_deals, init_db
from .archivist.storage import SQLDealStore
from .config import TriageConfig, settings
from .intake.validation import IntakeValidationError
from .notifier.notifications import SlackNotifier
from .pipeline.driver import OutcomeKind, process_submission
from .pipeline.ports import DealStore, Notifier

logger = logging.getLogger(__name__)


def run_migrations():
    """Run Alembic migrations on startup, falling back to create_all if Alembic fails."""
    try:
        result = subprocess.run(
            [sys.executable, "-m", "alembic", "upgrade", "head"],
            capture_output=True,
            text=True,
            timeout=120,
        )
        if result.returncode == 0:
            logger.info("Database migrations completed successfully")
            return True
        logger.warning(f"Migration warning: {result.stderr[-500:]}")
    except subprocess.TimeoutExpired:
        logger.warning("Migration timed out (database may be unavailable)")
    return False


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logging.basicConfig(level=settings.log_level.upper())
    logger.info("Starting Deal Flow Triage...")

    if not run_migrations():
        try:
            await init_db()
            logger.info("Database tables created without Alembic")
        except Exception as e:
            logger.error(f"Could not initialize database: {e}")

    yield

    logger.info("Shutting down...")
    await close_db()


app = FastAPI(
    title="Deal Flow Triage",
    description="Fingerprint, de-duplicate, score and classify inbound startup submissions",
    version="0.1.0",
    lifespan=lifespan,
)


# ----- Collaborator dependencies (overridden in tests) -----

def get_store() -> DealStore:
    return SQLDealStore()


@lru_cache
def get_generator() -> MemoGenerator:
    return AnthropicMemoGenerator()


def get_notifier(store: DealStore = Depends(get_store)) -> Optional[Notifier]:
    return SlackNotifier(outbox=store)


@lru_cache
def get_triage_config() -> TriageConfig:
    return TriageConfig.from_settings(settings)


# ----- Response Models -----

class DealResponse(BaseModel):
    id: uuid.UUID
    company_name: str
    website: str
    sector: str
    stage: str
    geography: str
    pitch: str
    normalized_payload: Optional[Dict[str, Any]] = None
    memo: Optional[Dict[str, Any]] = None
    fit_score: Optional[int] = None
    fit_reasoning: Optional[str] = None
    status: str
    owner: Optional[str] = None
    source_hash: str
    created_at: datetime
    updated_at: datetime


class EventResponse(BaseModel):
    id: uuid.UUID
    deal_id: Optional[uuid.UUID] = None
    event_type: str
    source_hash: Optional[str] = None
    payload: Optional[Dict[str, Any]] = None
    created_at: datetime


class HealthResponse(BaseModel):
    status: str
    version: str


_OUTCOME_STATUS_CODES = {
    OutcomeKind.SUCCESS: 201,
    OutcomeKind.REPLAY: 200,
    OutcomeKind.DUPLICATE: 200,
    OutcomeKind.SCHEMA_ERROR: 502,
}


# ----- Endpoints -----

@app.get("/health", response_model=HealthResponse)
async def health_check():
    return HealthResponse(status="ok", version=app.version)


@app.post("/webhook/deal-intake")
async def deal_intake(
    payload: Any = Body(...),
    store: DealStore = Depends(get_store),
    generator: MemoGenerator = Depends(get_generator),
    notifier: Optional[Notifier] = Depends(get_notifier),
    config: TriageConfig = Depends(get_triage_config),
):
    """Triage one submission. Replays and duplicates are successful, idempotent responses."""
    try:
        outcome = await process_submission(
            payload,
            store=store,
            generator=generator,
            config=config,
            notifier=notifier,
        )
    except IntakeValidationError as e:
        return JSONResponse(status_code=422, content=e.to_dict())
    except AnalysisGenerationError as e:
        logger.error(f"Analysis generation failed: {e}")
        return JSONResponse(status_code=502, content=e.to_dict())
    except Exception as e:
        logger.error(f"Error triaging submission: {type(e).__name__}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error")

    return JSONResponse(status_code=_OUTCOME_STATUS_CODES[outcome.kind], content=outcome.to_dict())


@app.get("/deals", response_model=List[DealResponse])
async def list_deals(
    status: Optional[DealStatus] = Query(None, description="Filter by status"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    session: AsyncSession = Depends(get_db),
):
    deals = await get_deals(session, status=status.value if status else None, limit=limit, offset=offset)
    return [DealResponse.model_validate(deal, from_attributes=True) for deal in deals]


@app.get("/deals/{deal_id}", response_model=DealResponse)
async def get_deal_endpoint(deal_id: uuid.UUID, session: AsyncSession = Depends(get_db)):
    deal = await get_deal(session, deal_id)
    if deal is None:
        raise HTTPException(status_code=404, detail=f"Deal {deal_id} not found")
    return DealResponse.model_validate(deal, from_attributes=True)


@app.get("/deals/{deal_id}/events", response_model=List[EventResponse])
async def get_deal_events_endpoint(deal_id: uuid.UUID, session: AsyncSession = Depends(get_db)):
    deal = await get_deal(session, deal_id)
    if deal is None:
        raise HTTPException(status_code=404, detail=f"Deal {deal_id} not found")
    events = await get_deal_events(session, deal_id)
    return [EventResponse.model_validate(event, from_attributes=True) for event in events]
