"""
Pydantic schemas for the externally generated investment memo.

The memo comes back from the LLM as untyped JSON. It is validated in strict
mode: a numeric string for fit_score, a float, a bool, or a non-string list
element is a failure, never a silent conversion.
"""

from enum import Enum
from typing import Any, List, Mapping
import logging

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..common.validation import (
    ValidationIssue,
    WRONG_TYPE,
    describe_value,
    issues_from_pydantic,
)

logger = logging.getLogger(__name__)


class ThesisDisposition(str, Enum):
    """Classification of a deal against the investment thesis."""
    QUALIFIED = "Qualified"
    REVIEW = "Review"
    PASS = "Pass"


class DealStatus(str, Enum):
    """Stored deal status: a thesis disposition, or LLM_Error on memo schema failure."""
    QUALIFIED = "Qualified"
    REVIEW = "Review"
    PASS = "Pass"
    LLM_ERROR = "LLM_Error"

    @classmethod
    def from_disposition(cls, disposition: ThesisDisposition) -> "DealStatus":
        return cls(disposition.value)


class MemoSchemaError(Exception):
    """
    The analysis document violates the memo contract.

    `field` and `kind` describe the first violation; `issues` lists all of them.
    """

    def __init__(self, issues: List[ValidationIssue]):
        if not issues:
            raise ValueError("MemoSchemaError requires at least one issue")
        self.issues = list(issues)
        first = self.issues[0]
        self.field = first.field
        self.kind = first.kind
        super().__init__(f"Memo schema violation: {first.field} ({first.kind})")

    def to_dict(self) -> dict:
        return {
            "error": "memo_schema_error",
            "field": self.field,
            "kind": self.kind,
            "issues": [issue.to_dict() for issue in self.issues],
        }


class Memo(BaseModel):
    """
    Structured investment memo.

    Unknown extra keys from the model are ignored; every declared field is required.
    """
    model_config = ConfigDict(strict=True, frozen=True, extra="ignore")

    fit_score: int = Field(ge=0, le=100, description="Thesis fit score (0-100)")
    executive_summary: str = Field(description="Two to four sentence summary of the opportunity")
    strengths: List[str] = Field(description="Key strengths, most important first")
    risks: List[str] = Field(description="Key risks, most important first")
    diligence_questions: List[str] = Field(description="Open questions for diligence")
    fit_reasoning: str = Field(description="Why the deal got this fit_score")


def validate_memo(raw: Any) -> Memo:
    """
    Validate raw generator output against the memo contract.

    Args:
        raw: Untyped output of the analysis generator

    Returns:
        Memo holding the input values unchanged

    Raises:
        MemoSchemaError: naming the offending field(s) and violation kind
    """
    if not isinstance(raw, Mapping):
        raise MemoSchemaError([
            ValidationIssue(
                field="memo",
                kind=WRONG_TYPE,
                message=f"expected an object, got {describe_value(raw)}",
            )
        ])

    try:
        return Memo.model_validate(dict(raw))
    except ValidationError as e:
        error = MemoSchemaError(issues_from_pydantic(e, root="memo"))
        logger.warning(f"Memo failed schema validation: {error.to_dict()['issues']}")
        raise error from e
