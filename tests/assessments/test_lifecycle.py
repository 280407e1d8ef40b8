"""Tests for the assessment status state machine."""

import pytest

from src.assessments.form import MissingClientError
from src.assessments.lifecycle import AssessmentLifecycle, TransitionNotAllowed
from src.models.assessment import Assessment, AssessmentStatus


def _assessment(status: AssessmentStatus, client_id: int | None = 1) -> Assessment:
    return Assessment(id=1, client_id=client_id, status=status, version=1)


def test_starts_from_stored_status() -> None:
    machine = AssessmentLifecycle(_assessment(AssessmentStatus.COMPLETE))
    assert machine.current_state == machine.complete


def test_finalize_marks_complete() -> None:
    assessment = _assessment(AssessmentStatus.DRAFT)
    AssessmentLifecycle(assessment).finalize()

    assert assessment.status is AssessmentStatus.COMPLETE
    assert assessment.completed_at is not None


def test_finalize_requires_client() -> None:
    assessment = _assessment(AssessmentStatus.DRAFT, client_id=None)
    with pytest.raises(MissingClientError):
        AssessmentLifecycle(assessment).finalize()
    assert assessment.status is AssessmentStatus.DRAFT


def test_cannot_finalize_twice() -> None:
    assessment = _assessment(AssessmentStatus.COMPLETE)
    with pytest.raises(TransitionNotAllowed):
        AssessmentLifecycle(assessment).finalize()


def test_reopen_bumps_version() -> None:
    assessment = _assessment(AssessmentStatus.DRAFT)
    AssessmentLifecycle(assessment).finalize()
    AssessmentLifecycle(assessment).reopen()

    assert assessment.status is AssessmentStatus.DRAFT
    assert assessment.completed_at is None
    assert assessment.version == 2


def test_cannot_reopen_draft() -> None:
    with pytest.raises(TransitionNotAllowed):
        AssessmentLifecycle(_assessment(AssessmentStatus.DRAFT)).reopen()
