"""Assessment sections, required fields and completion scoring.

Each section of an assessment holds a loose key/value bag. A fixed list of
required fields per section drives the completion percentage shown on the
progress bar:

- percentage = filled required fields / total required fields, rounded
  half-up to an integer
- a section with no required fields is 100 as soon as it holds any key
- a section counts as complete at the configured threshold (80 by default)
- overall completion is the rounded, unweighted mean over all sections

Example:
    >>> section_completion("directives", {"has_poa": True})
    33
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any

from src.core.config import settings

SECTION_ORDER: tuple[str, ...] = (
    "basic",
    "medical",
    "health_symptoms",
    "functional",
    "cognitive",
    "slums",
    "mental",
    "safety",
    "directives",
    "psychosocial",
    "hobbies",
    "providers",
    "care_plan",
    "services",
    "summary",
)

SECTION_TITLES: dict[str, str] = {
    "basic": "Basic Information",
    "medical": "Medical History",
    "health_symptoms": "Health Symptoms",
    "functional": "Functional Assessment",
    "cognitive": "Cognitive Assessment",
    "slums": "SLUMS Examination",
    "mental": "Mental Health",
    "safety": "Home Safety",
    "directives": "Advance Directives",
    "psychosocial": "Psychosocial",
    "hobbies": "Hobbies & Interests",
    "providers": "Healthcare Providers",
    "care_plan": "Care Plan",
    "services": "Services Requested",
    "summary": "Summary",
}

REQUIRED_FIELDS: dict[str, tuple[str, ...]] = {
    "basic": (
        "clientId",
        "assessmentDate",
        "completionDate",
        "consultationReasons",
    ),
    "medical": (
        "allergies",
        "currentMedications",
        "primaryCarePhysicianName",
    ),
    "health_symptoms": (
        "nutrition_status",
        "pain_level",
        "medication_adherence",
        "sleep_quality",
    ),
    "functional": (
        "adl_bathing",
        "adl_dressing",
        "adl_toileting",
        "adl_transferring",
        "adl_continence",
        "adl_feeding",
        "iadl_phone",
        "iadl_shopping",
        "iadl_food_prep",
        "iadl_housekeeping",
        "iadl_laundry",
        "iadl_transportation",
        "iadl_medications",
        "iadl_finances",
    ),
    "cognitive": (
        "memory_concerns",
        "others_concerns",
        "significant_dates",
        "disorientation",
    ),
    "slums": (
        "cognitive_education_level",
        "slums_q1_day_answer",
        "slums_q2_year_answer",
        "slums_q3_state_answer",
        "slums_q5_spent_answer",
        "slums_q5_left_answer",
        "slums_q6_animals_count",
        "slums_q7_objects_recalled",
        "slums_q8_649_answer",
        "slums_q8_8537_answer",
        "slums_q9_clock_drawing",
        "slums_q10_triangle_drawing",
        "slums_q11_name_answer",
        "slums_q11_work_answer",
        "slums_q11_when_answer",
        "slums_q11_state_answer",
    ),
    "mental": tuple(f"gds_q{number}" for number in range(1, 16)),
    "safety": (
        "home_types",
        "floor_plan",
        "safety_concerns_identified",
    ),
    "directives": (
        "has_poa",
        "has_living_will",
        "has_advance_directives",
    ),
    "psychosocial": (
        "regular_support_providers",
        "adequate_support",
        "main_social_supports",
    ),
    "hobbies": (
        "enjoy_for_fun",
        "current_hobbies",
        "social_preference",
    ),
    "providers": (),
    "care_plan": (),
    "services": (
        "services_requested",
        "priority_level",
    ),
    "summary": (
        "additional_comments",
        "assessment_completion_date",
    ),
}

# Fields whose validation message is worded specifically
VALIDATION_MESSAGES: dict[str, str] = {
    "consultationReasons": "At least one reason for consultation must be selected",
}


class UnknownSectionError(KeyError):
    """Raised for a section key outside SECTION_ORDER."""

    def __init__(self, section: str) -> None:
        super().__init__(section)
        self.section = section

    def __str__(self) -> str:
        return f"Unknown assessment section: {self.section}"


def ensure_section(section: str) -> str:
    """Return ``section`` or raise UnknownSectionError."""
    if section not in REQUIRED_FIELDS:
        raise UnknownSectionError(section)
    return section


def round_half_up(value: float) -> int:
    """Round to the nearest integer, .5 going up (not banker's rounding)."""
    return int(math.floor(value + 0.5))


def is_filled(value: Any) -> bool:
    """Return True if a field value counts toward completion.

    - None never counts
    - booleans always count (False is an answer)
    - lists, tuples and sets count when non-empty
    - numbers count when >= 0
    - strings count when non-blank
    - anything else counts
    """
    if value is None:
        return False
    if isinstance(value, bool):
        return True
    if isinstance(value, (list, tuple, set, frozenset)):
        return len(value) > 0
    if isinstance(value, (int, float)):
        return value >= 0
    if isinstance(value, str):
        return len(value.strip()) > 0
    return True


def section_completion(section: str, data: Mapping[str, Any] | None) -> int:
    """Compute a section's completion percentage.

    Args:
        section: Section key from SECTION_ORDER.
        data: The section's field values.

    Returns:
        Integer percentage in [0, 100].
    """
    required = REQUIRED_FIELDS[ensure_section(section)]
    data = data or {}

    if not required:
        return 100 if data else 0

    filled = sum(1 for field in required if is_filled(data.get(field)))
    return round_half_up(filled / len(required) * 100)


def is_section_complete(percentage: int, threshold: int | None = None) -> bool:
    """Return True when ``percentage`` reaches the completion threshold."""
    if threshold is None:
        threshold = settings.section_complete_threshold
    return percentage >= threshold


def overall_completion(percentages: Mapping[str, int]) -> int:
    """Average section percentages over every section.

    Sections absent from ``percentages`` count as 0.
    """
    total = sum(percentages.get(section, 0) for section in SECTION_ORDER)
    return round_half_up(total / len(SECTION_ORDER))


def field_label(field: str) -> str:
    """Turn ``primaryCarePhysicianName`` or ``pain_level`` into words."""
    words: list[str] = []
    current = ""
    for char in field.replace("_", " "):
        if char.isupper() and current and not current.endswith(" "):
            words.append(current)
            current = char
        else:
            current += char
    words.append(current)
    text = " ".join(word.strip() for word in words if word.strip())
    return text[:1].upper() + text[1:].lower()


def validate_section(section: str, data: Mapping[str, Any] | None) -> dict[str, str]:
    """Return a field -> message mapping for every unfilled required field."""
    data = data or {}
    errors: dict[str, str] = {}
    for field in REQUIRED_FIELDS[ensure_section(section)]:
        if is_filled(data.get(field)):
            continue
        errors[field] = VALIDATION_MESSAGES.get(field, f"{field_label(field)} is required")
    return errors
