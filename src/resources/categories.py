"""Resource directory categories and product catalog categories."""

from collections.abc import Iterable

OTHER_CATEGORY = "Other"
CUSTOM_GROUP = "Custom Categories"

# Group -> resource types, in display order
CATEGORY_HIERARCHY: dict[str, tuple[str, ...]] = {
    "Living & Housing Options": (
        "Independent Living Communities (IL)",
        "Assisted Living Facilities (ALF)",
        "Memory Care Facilities",
        "Continuing Care Retirement Communities (CCRC)",
        "Other Living & Housing Options",
    ),
    "Medical Facilities": (
        "Local Hospitals",
        "Skilled Nursing Facilities (SNF)",
        "Inpatient Rehabilitation Centers",
        "Rehabilitation Hospitals",
        "Other Medical Facilities",
    ),
    "In-Home & Community-Based Care": (
        "In-Home Care Providers (Non-Medical)",
        "Home Health Agencies (Skilled Nursing)",
        "Hospice & Palliative Care Providers",
        "Respite Care Services",
        "Patient Advocacy Services",
        "Volunteer & Companion Services",
        "Volunteer Driver Programs",
        "Other In-Home & Community-Based Care",
    ),
    "Support Services & Programs": (
        "Adult Day Care Centers",
        "Senior Centers with Workshops",
        "Senior Visitor Programs",
        "Family Caregiver Training Programs",
        "Caregiver Support Groups",
        "Bereavement & Grief Support Groups",
        "Dementia & Alzheimer's Support Groups",
        "Faith-Based Support Services",
        "Support Hotlines & Helplines",
        "Other Support Services & Programs",
    ),
    "Medical & Clinical Providers": (
        "Primary Care Physicians (Geriatricians)",
        "Specialty Physicians",
        "Cardiologists",
        "Dentists",
        "Dermatologists",
        "Endocrinologists",
        "Eye Care Providers",
        "Gastroenterologists",
        "Neurologists",
        "Oncologists",
        "Orthopedic Surgeons",
        "Pharmacies",
        "Podiatrists",
        "Pulmonologists",
        "Rheumatologists",
        "Urologists",
        "Other Specialty Physicians",
        "Specialty Treatment Centers",
        "Memory Clinics",
        "Mental Health & Counseling Services",
        "Occupational Therapy Providers",
        "Physical Therapy Providers",
        "Speech Therapy Providers",
        "Other Medical & Clinical Providers",
    ),
    "Financial, Legal & Insurance": (
        "Attorneys",
        "Elder Law Attorneys",
        "Estate Planning Attorneys",
        "Guardianship & Conservatorship",
        "Other Attorneys",
        "Financial Planners for Seniors",
        "Medicaid & Medicare Advisors",
        "Medicare Counselors",
        "Medicaid Application Assistance",
        "Long-Term Care Insurance Providers",
        "Veteran's Benefit Navigators",
        "Veterans' Benefits Counselors",
        "Other Financial, Legal & Insurance",
    ),
    "Equipment & Home Safety": (
        "Durable Medical Equipment (DME)",
        "Mobility Equipment Suppliers",
        "Medical Alert & Monitoring Systems",
        "Safety & Fall Prevention Equipment",
        "Home Modification Contractors",
        "Other Equipment & Home Safety",
    ),
    "Transportation & Delivery": (
        "Non-Emergency Medical Transportation (NEMT)",
        "Senior Ride Programs",
        "Grocery Delivery Programs",
        "Meal Delivery Services",
        "Other Transportation & Delivery",
    ),
    "Community Resources & Government Programs": (
        "Area Agency on Aging Programs",
        "Other Community Resources & Government Programs",
    ),
}

RESOURCE_CATEGORIES: tuple[str, ...] = tuple(
    category for group in CATEGORY_HIERARCHY.values() for category in group
)

PRODUCT_CATEGORIES: tuple[str, ...] = (
    "Bathroom Safety",
    "Communication Devices",
    "Comfort & Positioning",
    "Daily Living Aids",
    "Dementia & Memory Care Aids",
    "Exercise & Fitness",
    "Fall Prevention",
    "Home Safety & Security",
    "Incontinence Products",
    "Medical Alert Systems",
    "Medication Management",
    "Mobility Aids",
    "Monitoring Devices",
    "Nutrition & Hydration",
    "Other",
    "Personal Care & Grooming",
    "Rehabilitation & Therapy",
    "Sleep & Bedding",
    "Transportation Aids",
    "Vision & Hearing Aids",
    "Wound Care",
)


def group_for(category: str) -> str | None:
    """Return the hierarchy group a built-in category belongs to."""
    for group, categories in CATEGORY_HIERARCHY.items():
        if category in categories:
            return group
    return None


def is_known_category(category: str, custom: Iterable[str] = ()) -> bool:
    """True for built-in categories, "Other" and admin-defined ones."""
    return (
        category in RESOURCE_CATEGORIES
        or category == OTHER_CATEGORY
        or category in set(custom)
    )


def build_hierarchy(custom: Iterable[str] = ()) -> dict[str, list[str]]:
    """Full group -> categories mapping including custom categories.

    Custom names that duplicate a built-in category are skipped.
    """
    hierarchy = {group: list(categories) for group, categories in CATEGORY_HIERARCHY.items()}
    extra = sorted({name for name in custom if name not in RESOURCE_CATEGORIES})
    if extra:
        hierarchy[CUSTOM_GROUP] = extra
    return hierarchy
