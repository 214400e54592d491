"""
Triage configuration values passed explicitly into each pipeline stage.

Thesis targets, thresholds and guardrail phrases are plain frozen values so
every stage can be unit tested in isolation with its own configuration.
Production values are built from environment settings via
TriageConfig.from_settings().
"""

from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, Optional

from .settings import Settings


def normalize_label(value: str) -> str:
    """Collapse whitespace and lower-case a sector/stage label for comparison."""
    return " ".join(value.split()).lower()


@dataclass(frozen=True)
class ThesisConfig:
    """Investment thesis: what we target and where the score cut-offs sit."""
    target_sectors: FrozenSet[str]
    target_stages: FrozenSet[str]
    qualification_threshold: int = 65  # exclusive lower bound
    review_low: int = 50  # inclusive
    review_high: int = 65  # inclusive

    def __post_init__(self):
        if not self.target_sectors:
            raise ValueError("ThesisConfig requires at least one target sector")
        if not self.target_stages:
            raise ValueError("ThesisConfig requires at least one target stage")
        for name in ("qualification_threshold", "review_low", "review_high"):
            value = getattr(self, name)
            if not 0 <= value <= 100:
                raise ValueError(f"{name} must be within 0-100, got {value}")
        if self.review_low > self.review_high:
            raise ValueError(
                f"review band is empty: low={self.review_low} > high={self.review_high}"
            )
        # Store normalized labels so membership checks ignore case/spacing
        object.__setattr__(
            self, "target_sectors", frozenset(normalize_label(s) for s in self.target_sectors)
        )
        object.__setattr__(
            self, "target_stages", frozenset(normalize_label(s) for s in self.target_stages)
        )

    @classmethod
    def build(
        cls,
        sectors: Iterable[str],
        stages: Iterable[str],
        qualification_threshold: int = 65,
        review_low: int = 50,
        review_high: int = 65,
    ) -> "ThesisConfig":
        return cls(
            target_sectors=frozenset(sectors),
            target_stages=frozenset(stages),
            qualification_threshold=qualification_threshold,
            review_low=review_low,
            review_high=review_high,
        )


@dataclass(frozen=True)
class GuardrailConfig:
    """High-confidence phrases and the score floor they imply."""
    phrases: tuple[str, ...] = ("very strong", "compelling", "exceptional")
    floor_score: int = 70

    def __post_init__(self):
        if not 0 <= self.floor_score <= 100:
            raise ValueError(f"floor_score must be within 0-100, got {self.floor_score}")
        cleaned = tuple(p.strip().lower() for p in self.phrases if p and p.strip())
        object.__setattr__(self, "phrases", cleaned)


@dataclass(frozen=True)
class TriageConfig:
    """Everything the deterministic stages need, bundled for the pipeline driver."""
    thesis: ThesisConfig
    guardrail: GuardrailConfig = field(default_factory=GuardrailConfig)

    @classmethod
    def from_settings(cls, source: Optional[Settings] = None) -> "TriageConfig":
        if source is None:
            from .settings import settings as source
        thesis = ThesisConfig.build(
            sectors=source.target_sectors,
            stages=source.target_stages,
            qualification_threshold=source.thesis_qualification_threshold,
            review_low=source.thesis_review_low,
            review_high=source.thesis_review_high,
        )
        guardrail = GuardrailConfig(
            phrases=tuple(source.high_confidence_phrases),
            floor_score=source.guardrail_floor_score,
        )
        return cls(thesis=thesis, guardrail=guardrail)
