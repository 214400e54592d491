"""
Pytest fixtures for test infrastructure.

This module is automatically loaded by pytest and provides shared fixtures.
For the in-memory collaborators and skip markers, see test_helpers.py.
"""

from typing import Any, Dict

import pytest

from dealflow.config.triage import GuardrailConfig, ThesisConfig, TriageConfig
from tests.test_helpers import InMemoryDealStore, RecordingNotifier


# =============================================================================
# Shared fixtures
# =============================================================================
@pytest.fixture
def sample_submission() -> Dict[str, Any]:
    """A valid raw submission as it arrives on the webhook."""
    return {
        "company_name": "Acme Analytics",
        "website": "https://acme-analytics.io",
        "sector": "B2B SaaS",
        "stage": "Seed",
        "geography": "Berlin, Germany",
        "pitch": "Acme turns   warehouse data into\nrevenue forecasts for mid-market finance teams.",
    }


@pytest.fixture
def sample_memo() -> Dict[str, Any]:
    """A valid analysis document as the generator would return it."""
    return {
        "fit_score": 78,
        "executive_summary": "Acme sells forecasting software to mid-market CFOs.",
        "strengths": ["Experienced founders", "Early paying customers"],
        "risks": ["Crowded market"],
        "diligence_questions": ["What is net revenue retention?"],
        "fit_reasoning": "Good thesis fit with a credible go-to-market.",
    }


@pytest.fixture
def thesis() -> ThesisConfig:
    return ThesisConfig.build(
        sectors=["B2B SaaS", "Fintech", "AI/ML"],
        stages=["Pre-Seed", "Seed"],
        qualification_threshold=65,
        review_low=50,
        review_high=65,
    )


@pytest.fixture
def guardrail() -> GuardrailConfig:
    return GuardrailConfig(phrases=("very strong", "compelling", "exceptional"), floor_score=70)


@pytest.fixture
def triage_config(thesis, guardrail) -> TriageConfig:
    return TriageConfig(thesis=thesis, guardrail=guardrail)


@pytest.fixture
def store() -> InMemoryDealStore:
    return InMemoryDealStore()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()
