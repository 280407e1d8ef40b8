"""Fixed category lists for the clinical libraries and care-plan templates."""

DIAGNOSIS_CATEGORIES: tuple[str, ...] = (
    "Cardiovascular",
    "Respiratory",
    "Neurological & Mental Health",
    "Musculoskeletal",
    "Endocrine & Metabolic",
    "Gastrointestinal",
    "Urological & Renal",
    "Cancer & Hematological",
    "Dermatological",
    "Sensory & Miscellaneous",
    "Other",
)

# Category -> suggested concerns, in display order
CARE_PLAN_CONCERNS: dict[str, tuple[str, ...]] = {
    "Behavioral and Emotional Concerns": (
        "Depression/Anxiety",
        "Grief and Loss",
        "Behavioral Changes",
        "Sleep Disturbances",
        "Emotional Support",
        "Agitation",
        "Confusion",
        "Wandering",
    ),
    "Cognitive": (
        "Memory Loss",
        "Confusion",
        "Decision Making",
        "Safety Awareness",
        "Communication Difficulties",
        "Orientation Issues",
    ),
    "Daily habits and routines": (
        "Activities of Daily Living",
        "Instrumental Activities",
        "Mobility Issues",
        "Personal Hygiene",
        "Meal Preparation",
        "Household Management",
    ),
    "End of life": (
        "Advance Directives",
        "Comfort Care",
        "Pain Management",
        "Family Communication",
        "Spiritual Support",
        "Hospice Services",
    ),
    "Family and Caregiver Support": (
        "Caregiver Burden",
        "Family Communication",
        "Support Network Development",
        "Respite Care",
        "Education and Training",
        "Stress Management",
    ),
    "Financial": (
        "Budget Management",
        "Healthcare Costs",
        "Insurance Coverage",
        "Benefits Access",
        "Financial Exploitation Prevention",
        "Money Management",
    ),
    "Healthcare Navigation": (
        "Healthcare Team Communication",
        "Appointment Scheduling",
        "Medical Records Management",
        "Insurance Coordination",
        "Provider Communication",
        "Health System Navigation",
    ),
    "Housing": (
        "Home Modifications",
        "Accessibility Issues",
        "Housing Stability",
        "Environmental Safety",
        "Relocation Planning",
        "Independent Living",
    ),
    "Legal": (
        "Healthcare Directives",
        "Power of Attorney",
        "Legal Documentation",
        "Guardianship Issues",
        "Rights Protection",
        "Estate Planning",
    ),
    "Medical/health status": (
        "Chronic Disease Management",
        "Symptom Monitoring",
        "Healthcare Appointments",
        "Emergency Response Plan",
        "Health Maintenance",
        "Preventive Care",
    ),
    "Medications": (
        "Medication Adherence",
        "Polypharmacy",
        "Side Effects",
        "Medication Storage",
        "Medication Management",
        "Drug Interactions",
    ),
    "Nutrition": (
        "Poor Appetite",
        "Weight Loss/Gain",
        "Swallowing Difficulties",
        "Dietary Restrictions",
        "Malnutrition",
        "Hydration",
    ),
    "Psychosocial": (
        "Social Isolation",
        "Community Engagement",
        "Mental Health",
        "Relationships",
        "Recreation",
        "Quality of Life",
    ),
    "Safety": (
        "Fall Risk",
        "Home Safety Hazards",
        "Driving Safety",
        "Emergency Preparedness",
        "Medication Safety",
        "Cognitive Safety",
    ),
    "Support services": (
        "Service Coordination",
        "Resource Access",
        "Transportation",
        "Home Care Services",
        "Community Programs",
        "Emergency Services",
    ),
    "Other": (
        "Communication",
        "Technology",
        "Cultural/Spiritual",
        "Pet Care",
        "Miscellaneous",
    ),
}

CARE_PLAN_CATEGORIES: tuple[str, ...] = tuple(CARE_PLAN_CONCERNS)

RECOMMENDATION_PRIORITIES: tuple[str, ...] = ("high", "medium", "low")


def canonical_diagnosis_category(value: str) -> str | None:
    """Return the category's canonical spelling, or None if unknown."""
    wanted = value.strip().lower()
    for category in DIAGNOSIS_CATEGORIES:
        if category.lower() == wanted:
            return category
    return None


def is_care_plan_category(value: str) -> bool:
    return value in CARE_PLAN_CONCERNS


def concerns_for(category: str) -> tuple[str, ...]:
    """Suggested concerns for a care-plan category; empty when unknown.

    Templates may still use a concern that is not suggested here.
    """
    return CARE_PLAN_CONCERNS.get(category, ())
