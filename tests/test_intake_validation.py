"""
Tests for intake validation of raw submissions.

Every required field must be present and non-blank after trimming, and an
optional force_fit_score must be a real integer in 0-100. All offending
fields are reported together.
"""

import pytest

from dealflow.intake.validation import (
    REQUIRED_FIELDS,
    IntakeValidationError,
    validate_submission,
)


class TestValidSubmissions:
    """Submissions that should pass."""

    def test_valid_submission_is_trimmed(self, sample_submission):
        sample_submission["company_name"] = "  Acme Analytics \n"
        submission = validate_submission(sample_submission)

        assert submission.company_name == "Acme Analytics"
        assert submission.force_fit_score is None

    def test_force_fit_score_bounds_accepted(self, sample_submission):
        for value in (0, 85, 100):
            sample_submission["force_fit_score"] = value
            assert validate_submission(sample_submission).force_fit_score == value

    def test_explicit_null_override_is_absent(self, sample_submission):
        sample_submission["force_fit_score"] = None
        assert validate_submission(sample_submission).force_fit_score is None

    def test_unknown_keys_ignored(self, sample_submission):
        sample_submission["utm_source"] = "newsletter"
        submission = validate_submission(sample_submission)
        assert not hasattr(submission, "utm_source")


class TestMissingAndBlankFields:
    """Absence is a failure, never a defaulted value."""

    @pytest.mark.parametrize("field", REQUIRED_FIELDS)
    def test_missing_field(self, sample_submission, field):
        del sample_submission[field]

        with pytest.raises(IntakeValidationError) as exc_info:
            validate_submission(sample_submission)

        assert exc_info.value.fields == [field]
        assert exc_info.value.issues[0].kind == "missing"

    @pytest.mark.parametrize("blank", ["", "   ", "\t\n"])
    def test_blank_field(self, sample_submission, blank):
        sample_submission["pitch"] = blank

        with pytest.raises(IntakeValidationError) as exc_info:
            validate_submission(sample_submission)

        assert exc_info.value.fields == ["pitch"]
        assert exc_info.value.issues[0].kind == "blank"

    def test_non_string_field(self, sample_submission):
        sample_submission["sector"] = 42

        with pytest.raises(IntakeValidationError) as exc_info:
            validate_submission(sample_submission)

        assert exc_info.value.issues[0].field == "sector"
        assert exc_info.value.issues[0].kind == "wrong_type"

    def test_all_offending_fields_reported(self, sample_submission):
        del sample_submission["website"]
        sample_submission["stage"] = " "
        sample_submission["geography"] = None

        with pytest.raises(IntakeValidationError) as exc_info:
            validate_submission(sample_submission)

        assert set(exc_info.value.fields) == {"website", "stage", "geography"}

    def test_non_mapping_payload(self):
        with pytest.raises(IntakeValidationError) as exc_info:
            validate_submission(["not", "an", "object"])

        assert exc_info.value.fields == ["submission"]
        assert exc_info.value.issues[0].kind == "wrong_type"


class TestForceFitScore:
    """force_fit_score must be an integer in [0, 100]."""

    @pytest.mark.parametrize("value", [-1, 101, 1000])
    def test_out_of_range(self, sample_submission, value):
        sample_submission["force_fit_score"] = value

        with pytest.raises(IntakeValidationError) as exc_info:
            validate_submission(sample_submission)

        assert exc_info.value.fields == ["force_fit_score"]
        assert exc_info.value.issues[0].kind == "out_of_range"

    @pytest.mark.parametrize("value", ["85", 85.0, 85.5, True])
    def test_non_integer(self, sample_submission, value):
        sample_submission["force_fit_score"] = value

        with pytest.raises(IntakeValidationError) as exc_info:
            validate_submission(sample_submission)

        assert exc_info.value.fields == ["force_fit_score"]
        assert exc_info.value.issues[0].kind == "wrong_type"


class TestErrorShape:
    def test_to_dict_is_machine_readable(self, sample_submission):
        del sample_submission["company_name"]

        with pytest.raises(IntakeValidationError) as exc_info:
            validate_submission(sample_submission)

        payload = exc_info.value.to_dict()
        assert payload["error"] == "intake_validation_error"
        assert payload["issues"][0]["field"] == "company_name"
        assert payload["issues"][0]["kind"] == "missing"
