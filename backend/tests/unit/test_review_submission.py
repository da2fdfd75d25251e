"""Validation rules for the structured film review payload."""

from pydantic import ValidationError
import pytest

from app.schemas.film_review import StructuredReviewSubmission, is_allowed_supplemental_url


def _payload(**overrides):
    payload = {
        "overall_assessment": "A" * 200,
        "strengths": "S" * 100,
        "areas_for_improvement": "I" * 100,
        "recommended_drills": "D" * 100,
    }
    payload.update(overrides)
    return payload


class TestMinimums:
    def test_exact_minimums_pass(self):
        submission = StructuredReviewSubmission(**_payload())

        assert len(submission.overall_assessment) == 200
        assert submission.key_timestamps is None
        assert submission.supplemental_url is None

    @pytest.mark.parametrize(
        "field,minimum",
        [
            ("overall_assessment", 200),
            ("strengths", 100),
            ("areas_for_improvement", 100),
            ("recommended_drills", 100),
        ],
    )
    def test_one_short_is_rejected(self, field, minimum):
        with pytest.raises(ValidationError) as exc_info:
            StructuredReviewSubmission(**_payload(**{field: "x" * (minimum - 1)}))

        assert f"{field} must be at least {minimum} characters (got {minimum - 1})" in str(exc_info.value)

    def test_whitespace_does_not_count(self):
        padded = "   " + "A" * 150 + " " * 80

        with pytest.raises(ValidationError) as exc_info:
            StructuredReviewSubmission(**_payload(overall_assessment=padded))

        assert "(got 150)" in str(exc_info.value)

    def test_values_are_trimmed(self):
        submission = StructuredReviewSubmission(**_payload(strengths="  " + "S" * 100 + "\n"))

        assert submission.strengths == "S" * 100

    def test_missing_section_is_rejected(self):
        payload = _payload()
        del payload["recommended_drills"]

        with pytest.raises(ValidationError):
            StructuredReviewSubmission(**payload)


class TestOptionalFields:
    def test_blank_timestamps_become_none(self):
        assert StructuredReviewSubmission(**_payload(key_timestamps="   ")).key_timestamps is None

    def test_timestamps_kept(self):
        submission = StructuredReviewSubmission(**_payload(key_timestamps=" 0:42 stride "))

        assert submission.key_timestamps == "0:42 stride"

    def test_blank_url_becomes_none(self):
        assert StructuredReviewSubmission(**_payload(supplemental_url=" ")).supplemental_url is None

    def test_disallowed_url_rejected(self):
        with pytest.raises(ValidationError):
            StructuredReviewSubmission(**_payload(supplemental_url="https://example.com/notes.docx"))

    def test_unknown_field_rejected(self):
        with pytest.raises(ValidationError):
            StructuredReviewSubmission(**_payload(rating=5))


class TestSupplementalUrlAllowList:
    @pytest.mark.parametrize(
        "url",
        [
            "https://docs.google.com/document/d/abc",
            "https://drive.google.com/file/d/abc/view",
            "https://www.dropbox.com/s/abc/drills.mov",
            "https://www.notion.so/coach/plan",
            "https://www.loom.com/share/abc",
            "https://youtu.be/abc",
            "https://m.youtube.com/watch?v=abc",
            "https://vimeo.com/12345",
            "https://files.example.com/breakdown.PDF",
        ],
    )
    def test_allowed(self, url):
        assert is_allowed_supplemental_url(url) is True

    @pytest.mark.parametrize(
        "url",
        [
            "http://files.example.com/breakdown.pdf",
            "https://evilyoutube.com/watch",
            "https://youtube.com.evil.io/watch",
            "ftp://docs.google.com/doc",
            "not a url",
        ],
    )
    def test_rejected(self, url):
        assert is_allowed_supplemental_url(url) is False
