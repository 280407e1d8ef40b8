"""Saint Louis University Mental Status (SLUMS) examination scoring.

Eleven questions, 30 points in total. Every question has a fixed check
against the answer recorded by the care manager and a fixed point value;
a question contributes 0 unless its check holds.

Interpretation depends on education level:

    High School Graduate     27-30 Normal, 21-26 MNCD, 0-20 Dementia
    Less than High School    25-30 Normal, 20-24 MNCD, 0-19 Dementia

Unknown or missing education level uses the "Less than High School" bands.
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from src.core.config import settings

EDUCATION_HIGH_SCHOOL = "High School Graduate"
EDUCATION_LESS_THAN_HIGH_SCHOOL = "Less than High School"
EDUCATION_LEVELS = (EDUCATION_HIGH_SCHOOL, EDUCATION_LESS_THAN_HIGH_SCHOOL)

NORMAL = "Normal"
MILD_NEUROCOGNITIVE_DISORDER = "Mild Neurocognitive Disorder"
DEMENTIA = "Dementia"

# (low, high, label), inclusive
HIGH_SCHOOL_BANDS = [
    (27, 30, NORMAL),
    (21, 26, MILD_NEUROCOGNITIVE_DISORDER),
    (0, 20, DEMENTIA),
]
LESS_THAN_HIGH_SCHOOL_BANDS = [
    (25, 30, NORMAL),
    (20, 24, MILD_NEUROCOGNITIVE_DISORDER),
    (0, 19, DEMENTIA),
]

# Objects the client is asked to remember in question 4 and recall in 7
RECALL_OBJECTS = ("apple", "pen", "tie", "house", "car")

# Animal naming fluency (question 6): (low, high, points), inclusive
ANIMAL_BANDS = [
    (0, 4, 0),
    (5, 9, 1),
    (10, 14, 2),
    (15, None, 3),
]

# Question 11 story ("Jill was a very successful stockbroker...")
STORY_KEYWORDS = {
    "slums_q11_name_answer": "jill",
    "slums_q11_work_answer": "stock",
    "slums_q11_when_answer": "teen",
    "slums_q11_state_answer": "illinois",
}

WEEKDAYS = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)

MAX_SCORE = 30


@dataclass(frozen=True)
class SlumsQuestion:
    """Static description of one SLUMS question."""

    number: int
    title: str
    max_points: int


QUESTIONS: tuple[SlumsQuestion, ...] = (
    SlumsQuestion(1, "What day of the week is it?", 1),
    SlumsQuestion(2, "What is the year?", 1),
    SlumsQuestion(3, "What state are we in?", 1),
    SlumsQuestion(4, "Remember these five objects", 0),
    SlumsQuestion(5, "Money: spent and left over", 3),
    SlumsQuestion(6, "Name as many animals as you can in one minute", 3),
    SlumsQuestion(7, "Recall the five objects", 5),
    SlumsQuestion(8, "Say these numbers backwards", 2),
    SlumsQuestion(9, "Clock drawing", 4),
    SlumsQuestion(10, "Place an X in the triangle; which figure is largest?", 2),
    SlumsQuestion(11, "Story recall", 8),
)


@dataclass
class SlumsResult:
    """Scored SLUMS examination.

    Attributes:
        question_scores: Points per question number (1-11).
        total: Sum of question scores, 0..30.
        interpretation: Band label for ``total`` and the education level.
        education_level: Education level the bands were chosen for.
    """

    question_scores: dict[int, int] = field(default_factory=dict)
    total: int = 0
    interpretation: str = DEMENTIA
    education_level: str | None = None

    def derived_fields(self) -> dict[str, Any]:
        """Fields written back into the ``slums`` section."""
        fields: dict[str, Any] = {
            f"slums_q{number}_score": score
            for number, score in self.question_scores.items()
        }
        fields["cognitive_slums_total_score"] = self.total
        fields["cognitive_slums_interpretation"] = self.interpretation
        return fields


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip().lower()


def _digits(value: Any) -> str:
    return re.sub(r"\D", "", _text(value))


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    digits = _digits(value)
    if not digits:
        return None
    try:
        return int(digits)
    except ValueError:
        # Beyond the interpreter's int string-conversion limit
        return None


def score_day(answer: Any, on: date) -> int:
    """Question 1: the weekday of the assessment date."""
    return 1 if _text(answer) == WEEKDAYS[on.weekday()] else 0


def score_year(answer: Any, on: date) -> int:
    """Question 2: the current year."""
    return 1 if str(on.year) in _text(answer) else 0


def score_state(answer: Any, accepted_states: Iterable[str]) -> int:
    """Question 3: the state the assessment takes place in."""
    text = _text(answer)
    if not text:
        return 0
    return 1 if any(state.lower() in text for state in accepted_states) else 0


def score_money(spent: Any, left: Any) -> int:
    """Question 5: $23 spent (1 point) and $77 left (2 points)."""
    score = 0
    if "23" in _text(spent):
        score += 1
    if "77" in _text(left):
        score += 2
    return score


def score_animals(count: Any) -> int:
    """Question 6: animals named in one minute."""
    number = _as_int(count)
    if number is None or number < 0:
        return 0
    for low, high, points in ANIMAL_BANDS:
        if number >= low and (high is None or number <= high):
            return points
    return 0


def score_recall(recalled: Any) -> int:
    """Question 7: one point per object recalled.

    Accepts either a count or a list of the object names.
    """
    if isinstance(recalled, (list, tuple, set)):
        named = {_text(item) for item in recalled}
        return sum(1 for obj in RECALL_OBJECTS if obj in named)
    number = _as_int(recalled)
    if number is None:
        return 0
    return max(0, min(number, len(RECALL_OBJECTS)))


def score_backwards(answer_649: Any, answer_8537: Any) -> int:
    """Question 8: 649 backwards is 946; 8537 backwards is 7358."""
    score = 0
    if _digits(answer_649) == "946":
        score += 1
    if _digits(answer_8537) == "7358":
        score += 1
    return score


def score_clock(hour_markers_correct: Any, time_correct: Any) -> int:
    """Question 9: hour markers placed (2) and ten to eleven shown (2)."""
    return (2 if hour_markers_correct is True else 0) + (2 if time_correct is True else 0)


def score_shapes(x_correct: Any, largest_correct: Any) -> int:
    """Question 10: X placed in the triangle (1) and largest figure named (1)."""
    return (1 if x_correct is True else 0) + (1 if largest_correct is True else 0)


def score_story(data: Mapping[str, Any]) -> int:
    """Question 11: two points for each story detail remembered."""
    return sum(
        2 for field_name, keyword in STORY_KEYWORDS.items()
        if keyword in _text(data.get(field_name))
    )


def interpret_slums(total: int, education_level: str | None) -> str:
    """Return the interpretation band for a total score."""
    bands = (
        HIGH_SCHOOL_BANDS
        if education_level == EDUCATION_HIGH_SCHOOL
        else LESS_THAN_HIGH_SCHOOL_BANDS
    )
    for low, high, label in bands:
        if low <= total <= high:
            return label
    return NORMAL if total > MAX_SCORE else DEMENTIA


def score_slums(
    data: Mapping[str, Any],
    assessment_date: date | None = None,
    accepted_states: Iterable[str] | None = None,
) -> SlumsResult:
    """Score a SLUMS section.

    Args:
        data: The ``slums`` section fields.
        assessment_date: Date the exam was given. Defaults to today.
        accepted_states: Correct answers for question 3. Defaults to
            settings.slums_accepted_states.

    Returns:
        SlumsResult with per-question points, total and interpretation.
    """
    on = assessment_date or date.today()
    states = list(accepted_states) if accepted_states is not None else settings.slums_accepted_states
    education_level = data.get("cognitive_education_level") or None

    scores = {
        1: score_day(data.get("slums_q1_day_answer"), on),
        2: score_year(data.get("slums_q2_year_answer"), on),
        3: score_state(data.get("slums_q3_state_answer"), states),
        4: 0,
        5: score_money(data.get("slums_q5_spent_answer"), data.get("slums_q5_left_answer")),
        6: score_animals(data.get("slums_q6_animals_count")),
        7: score_recall(data.get("slums_q7_objects_recalled")),
        8: score_backwards(data.get("slums_q8_649_answer"), data.get("slums_q8_8537_answer")),
        9: score_clock(
            data.get("slums_q9_hour_markers_correct"),
            data.get("slums_q9_time_correct"),
        ),
        10: score_shapes(
            data.get("slums_q10_x_correct"),
            data.get("slums_q10_largest_correct"),
        ),
        11: score_story(data),
    }
    total = sum(scores.values())

    return SlumsResult(
        question_scores=scores,
        total=total,
        interpretation=interpret_slums(total, education_level),
        education_level=education_level,
    )
