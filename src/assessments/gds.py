"""Geriatric Depression Scale, short form (GDS-15).

One point per answer matching the depression-indicative response. Questions
1, 5, 7, 11 and 13 point toward depression when answered "no"; the rest
when answered "yes".
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

QUESTION_COUNT = 15

# Questions where "no" is the depression-indicative answer
REVERSE_SCORED = frozenset({1, 5, 7, 11, 13})

GDS_BANDS = [
    (0, 5, "Normal"),
    (6, 9, "Mild depression suggested"),
    (10, 15, "Moderate to severe depression suggested"),
]


@dataclass(frozen=True)
class GdsResult:
    """Scored GDS-15.

    ``answered`` counts questions with a usable yes/no answer; the total is
    only meaningful once all fifteen are answered.
    """

    total: int
    answered: int
    interpretation: str | None

    @property
    def is_complete(self) -> bool:
        return self.answered == QUESTION_COUNT

    def derived_fields(self) -> dict[str, Any]:
        return {
            "gds_total_score": self.total,
            "gds_interpretation": self.interpretation,
        }


def _normalize_answer(value: Any) -> bool | None:
    """Accept bool or yes/no style strings."""
    if isinstance(value, bool):
        return value
    if value is None:
        return None
    text = str(value).strip().lower()
    if text in {"y", "yes", "true", "1"}:
        return True
    if text in {"n", "no", "false", "0"}:
        return False
    return None


def indicative_answer(question: int) -> bool:
    """Return the answer that scores a point for ``question``."""
    return question not in REVERSE_SCORED


def interpret_gds(total: int) -> str:
    for low, high, label in GDS_BANDS:
        if low <= total <= high:
            return label
    return GDS_BANDS[-1][2]


def score_gds(data: Mapping[str, Any]) -> GdsResult:
    """Score the ``mental`` section's gds_q1..gds_q15 answers."""
    total = 0
    answered = 0
    for question in range(1, QUESTION_COUNT + 1):
        answer = _normalize_answer(data.get(f"gds_q{question}"))
        if answer is None:
            continue
        answered += 1
        if answer == indicative_answer(question):
            total += 1

    return GdsResult(
        total=total,
        answered=answered,
        interpretation=interpret_gds(total) if answered else None,
    )
