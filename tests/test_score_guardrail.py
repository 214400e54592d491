"""
Tests for the score consistency guardrail.

A high-confidence phrase in fit_reasoning lifts a score below the floor to
exactly the floor. It never lowers a score.
"""

import pytest

from dealflow.analyst.guardrail import apply_score_guardrail, find_high_confidence_phrases
from dealflow.analyst.schemas import validate_memo
from dealflow.config.triage import GuardrailConfig
from dealflow.events import EventType

SOURCE_HASH = "f" * 64


def _memo(sample_memo, score, reasoning):
    return validate_memo(dict(sample_memo, fit_score=score, fit_reasoning=reasoning))


class TestFindHighConfidencePhrases:
    def test_case_insensitive_substring(self):
        phrases = ("very strong", "compelling")
        assert find_high_confidence_phrases("A VERY STRONG team, Compelling wedge", phrases) == [
            "very strong", "compelling",
        ]

    def test_no_match(self):
        assert find_high_confidence_phrases("Average team", ("exceptional",)) == []


class TestApplyScoreGuardrail:
    """Score correction rules."""

    def test_lifts_to_floor(self, sample_memo, guardrail):
        memo = _memo(sample_memo, 40, "Very strong founders in a compelling market.")

        result = apply_score_guardrail(memo, guardrail, SOURCE_HASH)

        assert result.corrected
        assert result.memo.fit_score == 70
        assert result.event.event_type is EventType.SCORE_CONSISTENCY_FIX
        assert result.event.payload == {
            "original_score": 40,
            "corrected_score": 70,
            "matched_phrases": ["very strong", "compelling"],
        }

    def test_does_not_touch_other_fields(self, sample_memo, guardrail):
        memo = _memo(sample_memo, 40, "Exceptional distribution.")

        result = apply_score_guardrail(memo, guardrail, SOURCE_HASH)

        assert result.memo.model_dump(exclude={"fit_score"}) == memo.model_dump(exclude={"fit_score"})
        assert memo.fit_score == 40

    @pytest.mark.parametrize("score", [70, 85, 100])
    def test_never_lowers(self, sample_memo, guardrail, score):
        memo = _memo(sample_memo, score, "Exceptional team.")

        result = apply_score_guardrail(memo, guardrail, SOURCE_HASH)

        assert not result.corrected
        assert result.memo.fit_score == score

    def test_no_phrase_no_change(self, sample_memo, guardrail):
        memo = _memo(sample_memo, 30, "Weak traction and unclear market.")

        result = apply_score_guardrail(memo, guardrail, SOURCE_HASH)

        assert not result.corrected
        assert result.memo is memo

    def test_just_below_floor(self, sample_memo, guardrail):
        memo = _memo(sample_memo, 69, "Compelling.")
        assert apply_score_guardrail(memo, guardrail, SOURCE_HASH).memo.fit_score == 70

    def test_custom_floor_and_phrases(self, sample_memo):
        config = GuardrailConfig(phrases=(" Outstanding ",), floor_score=80)
        memo = _memo(sample_memo, 75, "An outstanding wedge.")

        result = apply_score_guardrail(memo, config, SOURCE_HASH)

        assert result.memo.fit_score == 80
        assert result.event.payload["matched_phrases"] == ["outstanding"]


class TestGuardrailConfig:
    def test_rejects_out_of_range_floor(self):
        with pytest.raises(ValueError):
            GuardrailConfig(floor_score=101)

    def test_drops_blank_phrases(self):
        assert GuardrailConfig(phrases=("", "  ", "Compelling")).phrases == ("compelling",)
