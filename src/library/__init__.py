"""Medication and diagnosis libraries and care-plan template catalogs."""

from src.library.catalogs import (
    CARE_PLAN_CATEGORIES,
    CARE_PLAN_CONCERNS,
    DIAGNOSIS_CATEGORIES,
    RECOMMENDATION_PRIORITIES,
    concerns_for,
)
from src.library.csv_io import (
    LibraryImportResult,
    export_diagnoses_csv,
    export_medications_csv,
    plan_diagnosis_import,
    plan_medication_import,
    read_diagnosis_rows,
    read_medication_rows,
)

__all__ = [
    "CARE_PLAN_CATEGORIES",
    "CARE_PLAN_CONCERNS",
    "DIAGNOSIS_CATEGORIES",
    "LibraryImportResult",
    "RECOMMENDATION_PRIORITIES",
    "concerns_for",
    "export_diagnoses_csv",
    "export_medications_csv",
    "plan_diagnosis_import",
    "plan_medication_import",
    "read_diagnosis_rows",
    "read_medication_rows",
]
