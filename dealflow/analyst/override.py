"""
Caller-supplied score override.

force_fit_score exists for deterministic end-to-end testing of the thesis
engine. It replaces the model's score outright, the guardrail does not run,
and the replacement is always recorded as a force_fit_score_used event.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from ..events import EventLogEntry, EventType, build_event
from .schemas import Memo

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OverrideResult:
    memo: Memo
    event: Optional[EventLogEntry] = None

    @property
    def overridden(self) -> bool:
        return self.event is not None


def apply_score_override(memo: Memo, force_fit_score: Optional[int], source_hash: str) -> OverrideResult:
    """Replace fit_score with the validated override, if one was supplied."""
    if force_fit_score is None:
        return OverrideResult(memo=memo)

    logger.info(
        f"force_fit_score used for {source_hash[:12]}: {memo.fit_score} -> {force_fit_score}"
    )
    event = build_event(
        EventType.FORCE_FIT_SCORE_USED,
        source_hash,
        payload={
            "override_score": force_fit_score,
            "replaced_score": memo.fit_score,
        },
    )
    return OverrideResult(memo=memo.model_copy(update={"fit_score": force_fit_score}), event=event)
