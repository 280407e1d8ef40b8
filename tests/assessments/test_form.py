"""Tests for the assessment form state container."""

from datetime import datetime

import pytest

from src.assessments.form import (
    AssessmentForm,
    FormMode,
    MissingClientError,
    ReadOnlyFormError,
)
from src.assessments.home_safety import SafetyPhotoError
from src.assessments.sections import REQUIRED_FIELDS, UnknownSectionError
from src.models.assessment import Assessment, AssessmentStatus


class TestEditing:
    """Field updates and derived state."""

    def test_update_field_recomputes_section(self) -> None:
        form = AssessmentForm(assessment_id=1)
        state = form.update_field("directives", "has_poa", True)

        assert state.data == {"has_poa": True}
        assert state.completion_percentage == 33
        assert state.is_complete is False
        assert state.last_updated is not None
        assert form.has_unsaved_changes is True

    def test_section_complete_at_threshold(self) -> None:
        form = AssessmentForm()
        fields = REQUIRED_FIELDS["health_symptoms"]
        # 3 of 4 fields is 75%, 4 of 4 is 100%
        form.update_section("health_symptoms", {name: "good" for name in fields[:3]})
        assert form.sections["health_symptoms"].is_complete is False
        form.update_field("health_symptoms", fields[3], "good")
        assert form.sections["health_symptoms"].is_complete is True

    def test_none_clears_a_field(self) -> None:
        form = AssessmentForm()
        form.update_field("medical", "allergies", "Penicillin")
        form.update_field("medical", "allergies", None)
        assert "allergies" not in form.sections["medical"].data
        assert form.sections["medical"].completion_percentage == 0

    def test_overall_completion_is_mean_of_sections(self) -> None:
        form = AssessmentForm()
        form.update_section("hobbies", {name: "yes" for name in REQUIRED_FIELDS["hobbies"]})
        form.update_section(
            "directives", {name: True for name in REQUIRED_FIELDS["directives"]}
        )
        # (100 + 100) / 15 = 13.3
        assert form.completion_percentage == 13

    def test_client_id_follows_basic_section(self) -> None:
        form = AssessmentForm()
        form.update_field("basic", "clientId", "12")
        assert form.client_id == 12
        form.update_field("basic", "clientId", None)
        assert form.client_id is None

    def test_invalid_client_id_rejected(self) -> None:
        form = AssessmentForm()
        with pytest.raises(ValueError, match="clientId"):
            form.update_field("basic", "clientId", "abc")

    def test_unknown_section_rejected(self) -> None:
        with pytest.raises(UnknownSectionError):
            AssessmentForm().update_field("billing", "amount", 1)

    def test_view_mode_is_read_only(self) -> None:
        form = AssessmentForm(mode=FormMode.VIEW)
        with pytest.raises(ReadOnlyFormError):
            form.update_field("medical", "allergies", "None")

    def test_too_many_safety_photos(self) -> None:
        form = AssessmentForm()
        with pytest.raises(SafetyPhotoError):
            form.update_field("safety", "home_safety_photos", ["p.jpg"] * 6)
        assert form.sections["safety"].data == {}


class TestDerivedScores:
    """Instrument scores written back into sections."""

    def test_slums_scored_on_edit(self) -> None:
        form = AssessmentForm()
        form.update_section(
            "slums",
            {"slums_q5_spent_answer": "23", "slums_q5_left_answer": "77"},
        )
        data = form.sections["slums"].data
        assert data["slums_q5_score"] == 3
        assert data["cognitive_slums_total_score"] == 3
        assert data["cognitive_slums_interpretation"] == "Dementia"

    def test_assessment_date_rescores_slums(self) -> None:
        form = AssessmentForm()
        form.update_field("basic", "assessmentDate", "2026-03-04")
        form.update_field("slums", "slums_q2_year_answer", "2026")
        assert form.sections["slums"].data["slums_q2_score"] == 1

        form.update_field("basic", "assessmentDate", "2025-06-01")
        assert form.sections["slums"].data["slums_q2_score"] == 0

    def test_gds_fields_follow_answers(self) -> None:
        form = AssessmentForm()
        form.update_field("mental", "gds_q2", True)
        assert form.sections["mental"].data["gds_total_score"] == 1
        form.update_field("mental", "gds_q2", None)
        assert "gds_total_score" not in form.sections["mental"].data

    def test_safety_flags_counted(self) -> None:
        form = AssessmentForm()
        form.update_field("safety", "trip_hazards_safety_flag", True)
        assert form.sections["safety"].data["safety_flag_count"] == 1


class TestSavingAndSerialization:
    """Audit entries, save markers and payload round trips."""

    def test_require_client(self) -> None:
        with pytest.raises(MissingClientError) as exc_info:
            AssessmentForm().require_client()
        assert str(exc_info.value) == "Please select a client before saving the assessment"
        assert AssessmentForm(client_id=5).require_client() == 5

    def test_mark_saved_clears_unsaved_flag(self) -> None:
        form = AssessmentForm()
        form.update_field("medical", "allergies", "None")
        stamp = datetime(2026, 3, 4, 10, 0)
        form.mark_saved(autosave=True, at=stamp)
        assert form.has_unsaved_changes is False
        assert form.last_saved == stamp
        assert form.last_autosave == stamp

    def test_drain_audit_entries(self) -> None:
        form = AssessmentForm()
        form.add_audit_entry("saved", "Saved", user_id=3)
        entries = form.drain_audit_entries()
        assert [entry.action for entry in entries] == ["saved"]
        assert form.drain_audit_entries() == []

    def test_payload_keeps_pending_state(self) -> None:
        form = AssessmentForm(assessment_id=9, client_id=4, created_by=2)
        form.update_field("medical", "allergies", "Sulfa")
        form.set_current_section("medical")
        form.add_audit_entry("saved", "Saved", user_id=2)

        restored = AssessmentForm.from_payload(form.to_payload())

        assert restored.assessment_id == 9
        assert restored.client_id == 4
        assert restored.current_section == "medical"
        assert restored.has_unsaved_changes is True
        assert restored.sections["medical"].data == {"allergies": "Sulfa"}
        assert restored.pending_audit[0].user_id == 2

    def test_from_record_and_record_fields(self) -> None:
        form = AssessmentForm(client_id=4)
        form.update_field("directives", "has_poa", True)
        record = Assessment(
            id=11,
            created_by=1,
            status=AssessmentStatus.COMPLETE,
            **form.to_record_fields(),
        )

        loaded = AssessmentForm.from_record(record, mode=FormMode.PRINT)

        assert loaded.assessment_id == 11
        assert loaded.status is AssessmentStatus.COMPLETE
        assert loaded.mode is FormMode.PRINT
        assert loaded.sections["directives"].completion_percentage == 33
        assert loaded.has_unsaved_changes is False

    def test_validate_all_lists_only_invalid_sections(self) -> None:
        form = AssessmentForm()
        form.update_section(
            "directives", {name: True for name in REQUIRED_FIELDS["directives"]}
        )
        errors = form.validate_all()
        assert "directives" not in errors
        assert "medical" in errors
        # Sections without required fields never fail validation
        assert "providers" not in errors

    def test_reset(self) -> None:
        form = AssessmentForm(status=AssessmentStatus.COMPLETE)
        form.update_field("medical", "allergies", "None")
        form.reset()
        assert form.sections["medical"].data == {}
        assert form.status is AssessmentStatus.DRAFT
        assert form.has_unsaved_changes is False
