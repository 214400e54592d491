"""Triage pipeline: collaborator contracts and the driver that composes the stages."""

from .ports import DealDraft, DealStore, DuplicateSourceHashError, Notifier
from .driver import OutcomeKind, TriageOutcome, process_submission, score_memo

__all__ = [
    "DealDraft",
    "DealStore",
    "DuplicateSourceHashError",
    "Notifier",
    "OutcomeKind",
    "TriageOutcome",
    "process_submission",
    "score_memo",
]
