"""
Score consistency guardrail.

The model sometimes writes glowing reasoning ("very strong team",
"compelling market") next to a mediocre number. When the reasoning contains
a configured high-confidence phrase and the score is below the floor, the
score is set to exactly the floor. It never lowers a score and never raises
one above the floor.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from ..config.triage import GuardrailConfig
from ..events import EventLogEntry, EventType, build_event
from .schemas import Memo

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GuardrailResult:
    memo: Memo
    event: Optional[EventLogEntry] = None

    @property
    def corrected(self) -> bool:
        return self.event is not None


def find_high_confidence_phrases(reasoning: str, phrases: Tuple[str, ...]) -> list[str]:
    """Return configured phrases found in the reasoning (case-insensitive substring)."""
    haystack = reasoning.lower()
    return [phrase for phrase in phrases if phrase in haystack]


def apply_score_guardrail(memo: Memo, config: GuardrailConfig, source_hash: str) -> GuardrailResult:
    """
    Reconcile fit_reasoning with fit_score.

    Args:
        memo: Validated memo
        config: Phrase list and floor score
        source_hash: Fingerprint of the submission (for the audit event)

    Returns:
        GuardrailResult with the possibly adjusted memo and, when adjusted,
        a score_consistency_fix event
    """
    if memo.fit_score >= config.floor_score:
        return GuardrailResult(memo=memo)

    matched = find_high_confidence_phrases(memo.fit_reasoning, config.phrases)
    if not matched:
        return GuardrailResult(memo=memo)

    corrected = memo.model_copy(update={"fit_score": config.floor_score})
    logger.info(
        f"Score consistency fix for {source_hash[:12]}: "
        f"{memo.fit_score} -> {config.floor_score} (matched {matched})"
    )
    event = build_event(
        EventType.SCORE_CONSISTENCY_FIX,
        source_hash,
        payload={
            "original_score": memo.fit_score,
            "corrected_score": config.floor_score,
            "matched_phrases": matched,
        },
    )
    return GuardrailResult(memo=corrected, event=event)
