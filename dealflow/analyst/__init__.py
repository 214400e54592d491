from .schemas import (
    DealStatus,
    Memo,
    MemoSchemaError,
    ThesisDisposition,
    validate_memo,
)
from .guardrail import GuardrailResult, apply_score_guardrail
from .override import OverrideResult, apply_score_override
from .thesis import match_thesis
from .generator import AnalysisGenerationError, AnthropicMemoGenerator, MemoGenerator

__all__ = [
    "DealStatus",
    "Memo",
    "MemoSchemaError",
    "ThesisDisposition",
    "validate_memo",
    "GuardrailResult",
    "apply_score_guardrail",
    "OverrideResult",
    "apply_score_override",
    "match_thesis",
    "AnalysisGenerationError",
    "AnthropicMemoGenerator",
    "MemoGenerator",
]
