"""Tests for care-plan templates and catalogs."""

from datetime import date

import pytest

from src.library.care_plans import (
    UnknownRecommendationError,
    build_plan_entry,
    merge_plan,
    normalize_recommendations,
)
from src.library.catalogs import (
    CARE_PLAN_CATEGORIES,
    DIAGNOSIS_CATEGORIES,
    canonical_diagnosis_category,
    concerns_for,
    is_care_plan_category,
)

TEMPLATE = {
    "category": "Safety",
    "concern": "Fall Risk",
    "goal": "No falls in the next 90 days",
    "barrier": "Cluttered walkways",
    "target_date": date(2026, 12, 31),
    "is_ongoing": False,
    "recommendations": [
        {"id": "r1", "text": "Install grab bars", "priority": "high"},
        {"id": "r2", "text": "Remove loose rugs", "priority": "medium"},
    ],
}


class TestCatalogs:
    """Fixed category lists."""

    def test_diagnosis_categories(self) -> None:
        assert len(DIAGNOSIS_CATEGORIES) == 11
        assert canonical_diagnosis_category(" respiratory ") == "Respiratory"
        assert canonical_diagnosis_category("Lungs") is None

    def test_care_plan_categories(self) -> None:
        assert len(CARE_PLAN_CATEGORIES) == 16
        assert CARE_PLAN_CATEGORIES[-1] == "Other"
        assert is_care_plan_category("Safety") is True
        assert is_care_plan_category("safety") is False
        assert "Fall Risk" in concerns_for("Safety")
        assert concerns_for("Unknown") == ()


class TestNormalizeRecommendations:
    """Recommendation clean-up."""

    def test_ids_and_priorities(self) -> None:
        result = normalize_recommendations(
            [
                {"id": "keep", "text": " Check smoke alarms ", "priority": "HIGH"},
                {"text": "Review medications"},
                {"text": "   "},
            ]
        )
        assert len(result) == 2
        assert result[0] == {"id": "keep", "text": "Check smoke alarms", "priority": "high"}
        assert result[1]["priority"] == "medium"
        assert result[1]["id"]

    def test_repeated_ids_are_replaced(self) -> None:
        result = normalize_recommendations(
            [{"id": "same", "text": "One"}, {"id": "same", "text": "Two"}]
        )
        assert result[0]["id"] == "same"
        assert result[1]["id"] != "same"

    def test_invalid_priority(self) -> None:
        with pytest.raises(ValueError, match="urgent"):
            normalize_recommendations([{"text": "Call", "priority": "urgent"}])


class TestBuildPlanEntry:
    """Copying a template into an assessment."""

    def test_keeps_all_recommendations_by_default(self) -> None:
        entry = build_plan_entry(7, TEMPLATE)
        assert entry["template_id"] == 7
        assert entry["target_date"] == "2026-12-31"
        assert [item["id"] for item in entry["recommendations"]] == ["r1", "r2"]

    def test_keeps_only_picked_recommendations(self) -> None:
        entry = build_plan_entry(7, TEMPLATE, ["r2"])
        assert entry["recommendations"] == [
            {"id": "r2", "text": "Remove loose rugs", "priority": "medium"}
        ]

    def test_unknown_recommendation(self) -> None:
        with pytest.raises(UnknownRecommendationError) as exc_info:
            build_plan_entry(7, TEMPLATE, ["r2", "nope"])
        assert exc_info.value.missing == ["nope"]

    def test_ongoing_has_no_target_date(self) -> None:
        entry = build_plan_entry(7, {**TEMPLATE, "is_ongoing": True})
        assert entry["target_date"] is None
        assert entry["is_ongoing"] is True


class TestMergePlan:
    """Applying a template twice replaces the earlier copy."""

    def test_append_then_replace(self) -> None:
        first = build_plan_entry(7, TEMPLATE)
        plans = merge_plan(None, first)
        plans = merge_plan(plans, build_plan_entry(8, {**TEMPLATE, "concern": "Driving Safety"}))
        assert [plan["template_id"] for plan in plans] == [7, 8]

        replaced = merge_plan(plans, build_plan_entry(7, TEMPLATE, ["r1"]))
        assert [plan["template_id"] for plan in replaced] == [7, 8]
        assert len(replaced[0]["recommendations"]) == 1
        # Input list is left untouched
        assert len(plans[0]["recommendations"]) == 2
