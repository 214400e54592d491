"""
Intake validation for raw deal submissions.

Runs before fingerprinting: every required text field must be present and
non-blank after trimming, and an optional force_fit_score must be a real
integer in 0-100. Nothing is persisted and no event is emitted on failure.
"""

import logging
from typing import Any, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..common.validation import (
    ValidationIssue,
    WRONG_TYPE,
    describe_value,
    issues_from_pydantic,
)

logger = logging.getLogger(__name__)

# Fixed order: also the canonical field order used for hashing
REQUIRED_FIELDS = (
    "company_name",
    "website",
    "sector",
    "stage",
    "geography",
    "pitch",
)


class IntakeValidationError(Exception):
    """Raw submission is malformed. Carries every offending field."""

    def __init__(self, issues: List[ValidationIssue]):
        self.issues = list(issues)
        summary = ", ".join(f"{i.field} ({i.kind})" for i in self.issues)
        super().__init__(f"Invalid submission: {summary}")

    @property
    def fields(self) -> List[str]:
        return [issue.field for issue in self.issues]

    def to_dict(self) -> dict:
        return {
            "error": "intake_validation_error",
            "issues": [issue.to_dict() for issue in self.issues],
        }


class Submission(BaseModel):
    """A validated inbound deal submission."""
    model_config = ConfigDict(strict=True, frozen=True, extra="ignore")

    company_name: str
    website: str
    sector: str
    stage: str
    geography: str
    pitch: str
    force_fit_score: Optional[int] = Field(default=None, ge=0, le=100)

    @field_validator(*REQUIRED_FIELDS)
    @classmethod
    def require_non_blank(cls, v: str) -> str:
        """Trim and reject blank values (absence is never defaulted)."""
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    def text_fields(self) -> dict[str, str]:
        """Required text fields in canonical order."""
        return {name: getattr(self, name) for name in REQUIRED_FIELDS}


def validate_submission(raw: Any) -> Submission:
    """
    Validate a raw submission payload.

    Args:
        raw: Untyped payload (normally the decoded JSON request body)

    Returns:
        Submission with trimmed text fields

    Raises:
        IntakeValidationError: listing every offending field
    """
    if not isinstance(raw, Mapping):
        raise IntakeValidationError([
            ValidationIssue(
                field="submission",
                kind=WRONG_TYPE,
                message=f"expected an object, got {describe_value(raw)}",
            )
        ])

    try:
        return Submission.model_validate(dict(raw))
    except ValidationError as e:
        issues = issues_from_pydantic(e, root="submission")
        logger.info(f"Rejected submission: {[i.field for i in issues]}")
        raise IntakeValidationError(issues) from e
