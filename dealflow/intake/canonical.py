"""
Canonical form and source hash for submissions.

The source hash is the idempotency key: two submissions that differ only in
letter case or incidental whitespace must hash identically, and it must be
stable across restarts and platforms.

Normalization per field:
- split on any Unicode whitespace and rejoin with one space (trims + collapses)
- lower-case with str.lower() (locale independent)

Fields are joined in REQUIRED_FIELDS order with the ASCII unit separator.
The separator is itself whitespace to str.split(), so it can never survive
normalization inside a field value.
"""

import hashlib
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

from .validation import REQUIRED_FIELDS, Submission

FIELD_SEPARATOR = "\x1f"


def normalize_text(value: str) -> str:
    """Trim, collapse internal whitespace runs, and lower-case."""
    return " ".join(value.split()).lower()


@dataclass(frozen=True)
class CanonicalSubmission:
    """Canonical bytes, their SHA-256 hex digest, and the normalized fields."""
    canonical_form: bytes
    source_hash: str
    normalized: Mapping[str, str]

    def normalized_payload(self) -> dict[str, str]:
        """JSON-ready snapshot persisted with the deal."""
        return dict(self.normalized)


def make_canonical_form(fields: Mapping[str, str]) -> bytes:
    """Join normalized fields in the fixed order and encode as UTF-8."""
    joined = FIELD_SEPARATOR.join(normalize_text(fields[name]) for name in REQUIRED_FIELDS)
    return joined.encode("utf-8")


def make_source_hash(canonical_form: bytes) -> str:
    """
    Generate the source hash for a canonical form.

    Returns:
        A 64-character hex string (SHA-256)
    """
    return hashlib.sha256(canonical_form).hexdigest()


def canonicalize(submission: Submission) -> CanonicalSubmission:
    """Derive the canonical form and source hash for a validated submission."""
    fields = submission.text_fields()
    normalized = {name: normalize_text(fields[name]) for name in REQUIRED_FIELDS}
    canonical_form = make_canonical_form(fields)
    return CanonicalSubmission(
        canonical_form=canonical_form,
        source_hash=make_source_hash(canonical_form),
        normalized=MappingProxyType(normalized),
    )
