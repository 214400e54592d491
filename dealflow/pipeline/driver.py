"""
Triage pipeline driver.

Runs the stages in a fixed order and stops at the first terminal outcome:

    intake validation -> canonical hash -> replay/duplicate resolution
    -> memo generation -> memo schema validation
    -> guardrail OR override -> thesis match -> persist -> notify

Every deterministic stage is a pure function; this module is the only place
that talks to collaborators (store, generator, notifier). Collaborator
failures propagate untouched, except event and notification writes which are
best-effort.
"""

import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from ..analyst.generator import MemoGenerator
from ..analyst.guardrail import apply_score_guardrail
from ..analyst.override import apply_score_override
from ..analyst.schemas import DealStatus, Memo, MemoSchemaError, ThesisDisposition, validate_memo
from ..analyst.thesis import match_thesis
from ..common.url_utils import normalize_website_key
from ..config.triage import GuardrailConfig, TriageConfig
from ..events import EventEmitter, EventLogEntry, EventType, build_event
from ..intake.canonical import CanonicalSubmission, canonicalize
from ..intake.resolver import DealRef, Resolution, lookup_and_resolve
from ..intake.validation import Submission, validate_submission
from ..notifier.notifications import build_deal_message, build_schema_error_message
from .ports import DealDraft, DealStore, DuplicateSourceHashError, Notifier

logger = logging.getLogger(__name__)


class OutcomeKind(str, Enum):
    SUCCESS = "success"
    REPLAY = "replay"
    DUPLICATE = "duplicate"
    SCHEMA_ERROR = "schema_error"


@dataclass(frozen=True)
class TriageOutcome:
    """Terminal result of one submission."""
    kind: OutcomeKind
    source_hash: str
    deal_id: Optional[uuid.UUID] = None
    status: Optional[DealStatus] = None
    disposition: Optional[ThesisDisposition] = None
    fit_score: Optional[int] = None
    error: Optional[dict] = None

    def to_dict(self) -> dict:
        return {
            "outcome": self.kind.value,
            "source_hash": self.source_hash,
            "deal_id": str(self.deal_id) if self.deal_id else None,
            "status": self.status.value if self.status else None,
            "disposition": self.disposition.value if self.disposition else None,
            "fit_score": self.fit_score,
            "error": self.error,
        }


@dataclass(frozen=True)
class ScoredMemo:
    """Memo after the guardrail or override stage, plus the events they produced."""
    memo: Memo
    events: List[EventLogEntry] = field(default_factory=list)


def score_memo(
    memo: Memo,
    force_fit_score: Optional[int],
    guardrail: GuardrailConfig,
    source_hash: str,
) -> ScoredMemo:
    """
    Settle the final fit_score.

    An override replaces the score and the guardrail does not run; otherwise
    the guardrail may lift a contradictory score to its floor.
    """
    if force_fit_score is not None:
        result = apply_score_override(memo, force_fit_score, source_hash)
        return ScoredMemo(memo=result.memo, events=[result.event])

    result = apply_score_guardrail(memo, guardrail, source_hash)
    return ScoredMemo(memo=result.memo, events=[result.event] if result.event else [])


def build_draft(
    submission: Submission,
    canonical: CanonicalSubmission,
    memo: Optional[Memo],
    status: DealStatus,
) -> DealDraft:
    """Row contents for a new deal; memo is None for an LLM_Error deal."""
    return DealDraft(
        company_name=submission.company_name,
        website=submission.website,
        website_key=normalize_website_key(submission.website),
        sector=submission.sector,
        stage=submission.stage,
        geography=submission.geography,
        pitch=submission.pitch,
        source_hash=canonical.source_hash,
        status=status,
        normalized_payload=canonical.normalized_payload(),
        memo=memo.model_dump(mode="json") if memo is not None else None,
        fit_score=memo.fit_score if memo is not None else None,
        fit_reasoning=memo.fit_reasoning if memo is not None else None,
    )


async def _notify(notifier: Optional[Notifier], message: dict, deal_id: Optional[uuid.UUID] = None) -> None:
    if notifier is None:
        return
    try:
        await notifier.notify(message, deal_id)
    except Exception as e:
        logger.error(f"Notifier raised while sending: {e}", exc_info=True)


async def _replay_outcome(emitter: EventEmitter, source_hash: str, existing: DealRef) -> TriageOutcome:
    await emitter.emit(build_event(
        EventType.IDEMPOTENT_REPLAY,
        source_hash,
        payload={"existing_deal_id": str(existing.id), "race": True},
        deal_id=existing.id,
    ))
    return TriageOutcome(kind=OutcomeKind.REPLAY, source_hash=source_hash, deal_id=existing.id)


async def _insert_deal(store: DealStore, draft: DealDraft) -> Tuple[DealRef, bool]:
    """Insert a deal. On a lost source_hash race, return the winning deal and True."""
    try:
        return await store.create_deal(draft), False
    except DuplicateSourceHashError:
        winner = await store.find_by_source_hash(draft.source_hash)
        if winner is None:
            raise
        return winner, True


async def process_submission(
    raw: object,
    *,
    store: DealStore,
    generator: MemoGenerator,
    config: TriageConfig,
    notifier: Optional[Notifier] = None,
) -> TriageOutcome:
    """
    Triage one raw submission end to end.

    Args:
        raw: Untyped submission payload (decoded request body)
        store: Deal lookup / persistence collaborator
        generator: Analysis (memo) generator
        config: Thesis and guardrail configuration
        notifier: Optional chat notifier

    Returns:
        TriageOutcome tagged success / replay / duplicate / schema_error

    Raises:
        IntakeValidationError: the submission is malformed (nothing persisted)
        Exception: collaborator failures (lookup, generation, persistence) propagate
    """
    submission = validate_submission(raw)
    canonical = canonicalize(submission)
    source_hash = canonical.source_hash
    emitter = EventEmitter(store)

    await emitter.emit(build_event(
        EventType.INTAKE_RECEIVED,
        source_hash,
        payload={
            "company_name": submission.company_name,
            "website": submission.website,
            "force_fit_score": submission.force_fit_score,
        },
    ))

    decision = await lookup_and_resolve(store, source_hash, submission.website)

    if decision.resolution is Resolution.REPLAY:
        await emitter.emit(decision.event)
        return TriageOutcome(kind=OutcomeKind.REPLAY, source_hash=source_hash, deal_id=decision.existing.id)

    if decision.touch_updated_at:
        if not await store.touch_deal(decision.existing.id):
            logger.warning(
                f"Duplicate of deal {decision.existing.id} for {source_hash[:12]}, "
                f"but the deal was gone before updated_at could be refreshed"
            )
        await emitter.emit(decision.event)
        return TriageOutcome(kind=OutcomeKind.DUPLICATE, source_hash=source_hash, deal_id=decision.existing.id)

    raw_memo = await generator.generate(submission)

    try:
        memo = validate_memo(raw_memo)
    except MemoSchemaError as e:
        logger.warning(f"Schema failure for {submission.company_name} ({source_hash[:12]}): {e}")
        deal, lost_race = await _insert_deal(
            store, build_draft(submission, canonical, None, DealStatus.LLM_ERROR)
        )
        if lost_race:
            return await _replay_outcome(emitter, source_hash, deal)

        await emitter.emit(build_event(
            EventType.DEAL_CREATED,
            source_hash,
            payload={
                "status": DealStatus.LLM_ERROR.value,
                "fit_score": None,
                "error": {"field": e.field, "kind": e.kind},
            },
            deal_id=deal.id,
        ))
        await _notify(notifier, build_schema_error_message(submission, e), deal.id)
        return TriageOutcome(
            kind=OutcomeKind.SCHEMA_ERROR,
            source_hash=source_hash,
            deal_id=deal.id,
            status=DealStatus.LLM_ERROR,
            error=e.to_dict(),
        )

    scored = score_memo(memo, submission.force_fit_score, config.guardrail, source_hash)
    disposition = match_thesis(submission.sector, submission.stage, scored.memo.fit_score, config.thesis)
    status = DealStatus.from_disposition(disposition)

    deal, lost_race = await _insert_deal(store, build_draft(submission, canonical, scored.memo, status))
    if lost_race:
        return await _replay_outcome(emitter, source_hash, deal)

    await emitter.emit_all(event.for_deal(deal.id) for event in scored.events)
    await emitter.emit(build_event(
        EventType.DEAL_CREATED,
        source_hash,
        payload={
            "status": status.value,
            "fit_score": scored.memo.fit_score,
            "original_fit_score": memo.fit_score,
        },
        deal_id=deal.id,
    ))

    logger.info(f"Deal {deal.id} created for {submission.company_name}: {status.value} ({scored.memo.fit_score})")
    await _notify(notifier, build_deal_message(submission, scored.memo, status), deal.id)

    return TriageOutcome(
        kind=OutcomeKind.SUCCESS,
        source_hash=source_hash,
        deal_id=deal.id,
        status=status,
        disposition=disposition,
        fit_score=scored.memo.fit_score,
    )
