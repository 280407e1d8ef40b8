"""Assessment form state, completion scoring and clinical instruments."""

from src.assessments.autosave import AutosaveScheduler
from src.assessments.drafts import DraftStore
from src.assessments.form import (
    AssessmentForm,
    FormMode,
    MissingClientError,
    ReadOnlyFormError,
    SectionState,
)
from src.assessments.gds import GdsResult, score_gds
from src.assessments.lifecycle import AssessmentLifecycle
from src.assessments.sections import (
    REQUIRED_FIELDS,
    SECTION_ORDER,
    UnknownSectionError,
    is_filled,
    overall_completion,
    section_completion,
    validate_section,
)
from src.assessments.slums import SlumsResult, interpret_slums, score_slums

__all__ = [
    "AssessmentForm",
    "AssessmentLifecycle",
    "AutosaveScheduler",
    "DraftStore",
    "FormMode",
    "GdsResult",
    "MissingClientError",
    "REQUIRED_FIELDS",
    "ReadOnlyFormError",
    "SECTION_ORDER",
    "SectionState",
    "SlumsResult",
    "UnknownSectionError",
    "interpret_slums",
    "is_filled",
    "overall_completion",
    "score_gds",
    "score_slums",
    "section_completion",
    "validate_section",
]
