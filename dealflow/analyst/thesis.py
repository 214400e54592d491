"""
Thesis matching engine.

Maps (sector, stage, fit_score) to a disposition with ordered rules where
the first match wins:

1. Qualified - sector and stage are both targeted AND score > threshold
2. Review    - score inside the review band (inclusive), any sector/stage
3. Pass      - everything else

A targeted deal scoring inside the review band is Review: the Qualified
conjunction fails first, then band membership is checked as a whole. With
the default thesis a score of exactly 65 is Review, 66 is Qualified.
"""

from typing import Callable, Tuple

from ..config.triage import ThesisConfig, normalize_label
from .schemas import ThesisDisposition


def is_thesis_target(sector: str, stage: str, thesis: ThesisConfig) -> bool:
    return (
        normalize_label(sector) in thesis.target_sectors
        and normalize_label(stage) in thesis.target_stages
    )


def _qualifies(sector: str, stage: str, fit_score: int, thesis: ThesisConfig) -> bool:
    return is_thesis_target(sector, stage, thesis) and fit_score > thesis.qualification_threshold


def _in_review_band(sector: str, stage: str, fit_score: int, thesis: ThesisConfig) -> bool:
    return thesis.review_low <= fit_score <= thesis.review_high


# Evaluation order is part of the contract
DISPOSITION_RULES: Tuple[Tuple[ThesisDisposition, Callable[[str, str, int, ThesisConfig], bool]], ...] = (
    (ThesisDisposition.QUALIFIED, _qualifies),
    (ThesisDisposition.REVIEW, _in_review_band),
)


def match_thesis(sector: str, stage: str, fit_score: int, thesis: ThesisConfig) -> ThesisDisposition:
    """Classify a deal against the thesis."""
    for disposition, predicate in DISPOSITION_RULES:
        if predicate(sector, stage, fit_score, thesis):
            return disposition
    return ThesisDisposition.PASS
