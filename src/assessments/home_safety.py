"""Home safety checklist."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

HOME_TYPES = (
    "Single Family",
    "Apartment",
    "Retirement/Senior Community",
    "Assisted Living Facility (ALF)",
    "Skilled Nursing Facility (SNF)",
)

FLOOR_PLANS = ("Single Level", "Multiple Floors")

# key -> label shown on the checklist
SAFETY_ITEMS: dict[str, str] = {
    "steps_handrails": "Steps have sturdy handrails",
    "driveway_accessible": "Driveway is accessible",
    "adequate_parking": "Adequate parking",
    "garage_automatic": "Garage door is automatic",
    "landscaping_clear": "Landscaping is clear of walkways",
    "doorbell_audible": "Doorbell is audible throughout the home",
    "basement_attic": "Basement or attic access is safe",
    "handicapped_access": "Handicapped access available",
    "doorways_accessible": "Doorways accommodate walker or wheelchair",
    "doors_windows_operable": "Doors and windows open easily",
    "clutter_hoarding": "Free of clutter or hoarding",
    "trip_hazards": "Free of trip hazards (rugs, cords)",
    "nonslip_flooring": "Non-slip flooring in wet areas",
    "entry_lighting": "Entryways are well lit",
    "smoke_co2_detectors": "Working smoke and CO2 detectors",
    "fire_extinguisher": "Fire extinguisher available",
}

MAX_PHOTOS = 5


class SafetyPhotoError(ValueError):
    """Raised for a malformed or oversized photo list."""


def flagged_items(data: Mapping[str, Any]) -> list[str]:
    """Return checklist keys whose ``<key>_safety_flag`` is set, in checklist order."""
    return [key for key in SAFETY_ITEMS if data.get(f"{key}_safety_flag")]


def check_photos(photos: Any) -> list[Any]:
    """Validate the photo list attached to the safety section."""
    if photos is None:
        return []
    if not isinstance(photos, list):
        raise SafetyPhotoError("home_safety_photos must be a list")
    if len(photos) > MAX_PHOTOS:
        raise SafetyPhotoError(f"At most {MAX_PHOTOS} home safety photos are allowed")
    return photos


def derived_fields(data: Mapping[str, Any]) -> dict[str, Any]:
    items = flagged_items(data)
    return {
        "safety_flagged_items": items,
        "safety_flag_count": len(items),
    }
