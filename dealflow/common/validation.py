"""
Field-level validation issues shared by the intake and memo validators.

Both validators run Pydantic in strict mode and translate its error list into
ValidationIssue values with a small, machine-readable kind vocabulary.
"""

from dataclasses import dataclass
from typing import Any, List, Sequence, Union

from pydantic import ValidationError

MISSING = "missing"
WRONG_TYPE = "wrong_type"
OUT_OF_RANGE = "out_of_range"
BLANK = "blank"

_RANGE_ERROR_TYPES = frozenset({
    "greater_than", "greater_than_equal", "less_than", "less_than_equal",
})


@dataclass(frozen=True)
class ValidationIssue:
    """One offending field and what is wrong with it."""
    field: str
    kind: str
    message: str = ""

    def to_dict(self) -> dict:
        return {"field": self.field, "kind": self.kind, "message": self.message}


def format_loc(loc: Sequence[Union[str, int]]) -> str:
    """Render a Pydantic error location: ("strengths", 2) -> "strengths[2]"."""
    path = ""
    for part in loc:
        if isinstance(part, int):
            path += f"[{part}]"
        elif path:
            path += f".{part}"
        else:
            path = str(part)
    return path


def _kind_for(error_type: str) -> str:
    if error_type == "missing":
        return MISSING
    if error_type in _RANGE_ERROR_TYPES:
        return OUT_OF_RANGE
    if error_type == "value_error":
        return BLANK
    return WRONG_TYPE


def issues_from_pydantic(exc: ValidationError, root: str) -> List[ValidationIssue]:
    """Translate a Pydantic ValidationError into ValidationIssue values."""
    issues = []
    for error in exc.errors():
        field = format_loc(error.get("loc", ())) or root
        issues.append(ValidationIssue(
            field=field,
            kind=_kind_for(error.get("type", "")),
            message=error.get("msg", ""),
        ))
    return issues


def describe_value(value: Any) -> str:
    return type(value).__name__
