"""Care-plan templates and how they are applied to an assessment.

A template names a concern within a category, the goal for it, the
barrier standing in the way and a list of prioritised recommendations.
Applying a template copies it into the assessment's ``care_plan``
section under ``concern_plans``, keeping only the recommendations the
care manager picked. Applying the same template again replaces the
earlier copy instead of adding a second one.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable, Mapping, Sequence
from datetime import date
from typing import Any

from src.library.catalogs import RECOMMENDATION_PRIORITIES

PLANS_FIELD = "concern_plans"
DEFAULT_PRIORITY = "medium"


class UnknownRecommendationError(ValueError):
    """Raised when a picked recommendation is not part of the template."""

    def __init__(self, missing: Iterable[str]) -> None:
        self.missing = sorted(missing)
        super().__init__(f"Unknown recommendation ids: {', '.join(self.missing)}")


def new_recommendation_id() -> str:
    return uuid.uuid4().hex[:12]


def normalize_recommendations(
    recommendations: Iterable[Mapping[str, Any]],
) -> list[dict[str, str]]:
    """Trim text, drop blank entries and give every entry an id and priority.

    Ids already present are kept so selections made against an earlier
    version of the template stay valid.

    Raises:
        ValueError: If a priority is not high, medium or low.
    """
    normalized = []
    seen: set[str] = set()
    for item in recommendations:
        text = str(item.get("text") or "").strip()
        if not text:
            continue
        priority = str(item.get("priority") or DEFAULT_PRIORITY).strip().lower()
        if priority not in RECOMMENDATION_PRIORITIES:
            raise ValueError(f"Invalid recommendation priority: {priority}")
        rec_id = str(item.get("id") or "").strip()
        if not rec_id or rec_id in seen:
            rec_id = new_recommendation_id()
        seen.add(rec_id)
        normalized.append(
            {
                "id": rec_id,
                "text": text,
                "priority": priority,
            }
        )
    return normalized


def build_plan_entry(
    template_id: int,
    template: Mapping[str, Any],
    recommendation_ids: Sequence[str] | None = None,
) -> dict[str, Any]:
    """Copy a template into the shape stored in the care_plan section.

    Args:
        template_id: Template primary key, used to find earlier copies.
        template: Template column values.
        recommendation_ids: Recommendations to keep. ``None`` keeps all.

    Raises:
        UnknownRecommendationError: If an id is not in the template.
    """
    recommendations = list(template.get("recommendations") or [])
    if recommendation_ids is not None:
        known = {item["id"] for item in recommendations}
        missing = set(recommendation_ids) - known
        if missing:
            raise UnknownRecommendationError(missing)
        wanted = set(recommendation_ids)
        recommendations = [item for item in recommendations if item["id"] in wanted]

    target_date = template.get("target_date")
    if isinstance(target_date, date):
        target_date = target_date.isoformat()
    is_ongoing = bool(template.get("is_ongoing"))

    return {
        "template_id": template_id,
        "category": template.get("category"),
        "concern": template.get("concern"),
        "goal": template.get("goal"),
        "barrier": template.get("barrier"),
        "target_date": None if is_ongoing else target_date,
        "is_ongoing": is_ongoing,
        "recommendations": [dict(item) for item in recommendations],
    }


def merge_plan(
    existing: Iterable[Mapping[str, Any]] | None, entry: Mapping[str, Any]
) -> list[dict[str, Any]]:
    """Return the plan list with ``entry`` replacing any copy of the same template."""
    plans = [dict(plan) for plan in existing or [] if isinstance(plan, Mapping)]
    for index, plan in enumerate(plans):
        if plan.get("template_id") == entry["template_id"]:
            plans[index] = dict(entry)
            return plans
    plans.append(dict(entry))
    return plans
