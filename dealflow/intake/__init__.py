"""Submission intake: validation, canonical fingerprinting, replay/duplicate resolution."""

from .validation import (
    REQUIRED_FIELDS,
    IntakeValidationError,
    Submission,
    validate_submission,
)
from .canonical import CanonicalSubmission, canonicalize, normalize_text
from .resolver import (
    DealLookup,
    DealRef,
    Resolution,
    ResolverDecision,
    lookup_and_resolve,
    resolve_submission,
)

__all__ = [
    "REQUIRED_FIELDS",
    "IntakeValidationError",
    "Submission",
    "validate_submission",
    "CanonicalSubmission",
    "canonicalize",
    "normalize_text",
    "DealLookup",
    "DealRef",
    "Resolution",
    "ResolverDecision",
    "lookup_and_resolve",
    "resolve_submission",
]
