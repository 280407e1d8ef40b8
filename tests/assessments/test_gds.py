"""Tests for GDS-15 scoring."""

import pytest

from src.assessments.gds import (
    QUESTION_COUNT,
    REVERSE_SCORED,
    indicative_answer,
    interpret_gds,
    score_gds,
)


def _all_answers(indicative: bool) -> dict[str, object]:
    """Answer every question with (or against) the indicative response."""
    return {
        f"gds_q{number}": indicative_answer(number) if indicative else not indicative_answer(number)
        for number in range(1, QUESTION_COUNT + 1)
    }


def test_reverse_scored_questions_point_on_no() -> None:
    for number in REVERSE_SCORED:
        assert indicative_answer(number) is False
    assert indicative_answer(2) is True


def test_no_answers() -> None:
    result = score_gds({})
    assert result.total == 0
    assert result.answered == 0
    assert result.interpretation is None
    assert result.is_complete is False


def test_all_indicative_is_fifteen() -> None:
    result = score_gds(_all_answers(indicative=True))
    assert result.total == 15
    assert result.is_complete is True
    assert result.interpretation == "Moderate to severe depression suggested"


def test_no_indicative_answers_is_zero() -> None:
    result = score_gds(_all_answers(indicative=False))
    assert result.total == 0
    assert result.interpretation == "Normal"


def test_string_answers_are_normalized() -> None:
    result = score_gds({"gds_q1": "No", "gds_q2": "yes", "gds_q3": "maybe"})
    assert result.answered == 2
    assert result.total == 2


@pytest.mark.parametrize(
    ("total", "expected"),
    [
        (5, "Normal"),
        (6, "Mild depression suggested"),
        (9, "Mild depression suggested"),
        (10, "Moderate to severe depression suggested"),
    ],
)
def test_band_boundaries(total: int, expected: str) -> None:
    assert interpret_gds(total) == expected


def test_derived_fields() -> None:
    fields = score_gds({"gds_q2": True}).derived_fields()
    assert fields == {"gds_total_score": 1, "gds_interpretation": "Normal"}
