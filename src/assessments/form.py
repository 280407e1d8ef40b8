"""In-memory state container for one assessment being edited.

Every field edit goes through ``AssessmentForm.update_field`` which keeps
the derived state consistent:

- the section's completion percentage and complete flag
- instrument scores written back into the section (SLUMS, GDS-15,
  home safety flags)
- the assessment's ``client_id`` when ``basic.clientId`` changes
- the unsaved-changes flag that drives autosave

The form serializes to a JSON-safe payload for the Redis draft buffer and
to column values for the ``assessments`` table.
"""

from __future__ import annotations

import enum
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from src.assessments import gds, home_safety, slums
from src.assessments.sections import (
    SECTION_ORDER,
    ensure_section,
    is_section_complete,
    overall_completion,
    section_completion,
    validate_section,
)
from src.models.assessment import AssessmentStatus

if TYPE_CHECKING:
    from src.models.assessment import Assessment


class FormMode(enum.Enum):
    """How the form is being used."""

    EDIT = "edit"
    VIEW = "view"
    PRINT = "print"


class ReadOnlyFormError(RuntimeError):
    """Raised when editing a form opened in view or print mode."""


class MissingClientError(ValueError):
    """Raised when saving an assessment that has no client selected."""

    def __init__(self) -> None:
        super().__init__("Please select a client before saving the assessment")


@dataclass
class SectionState:
    """One section's field values plus derived completion."""

    data: dict[str, Any] = field(default_factory=dict)
    completion_percentage: int = 0
    is_complete: bool = False
    last_updated: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "data": dict(self.data),
            "completion_percentage": self.completion_percentage,
            "is_complete": self.is_complete,
            "last_updated": self.last_updated.isoformat() if self.last_updated else None,
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any] | None) -> SectionState:
        raw = raw or {}
        last_updated = raw.get("last_updated")
        return cls(
            data=dict(raw.get("data") or {}),
            completion_percentage=int(raw.get("completion_percentage") or 0),
            is_complete=bool(raw.get("is_complete", False)),
            last_updated=datetime.fromisoformat(last_updated) if last_updated else None,
        )


@dataclass
class AuditEntry:
    """A pending audit trail entry, persisted with the next save."""

    action: str
    description: str
    user_id: int | None = None
    created_at: datetime = field(default_factory=datetime.utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "action": self.action,
            "description": self.description,
            "user_id": self.user_id,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> AuditEntry:
        return cls(
            action=raw["action"],
            description=raw.get("description", ""),
            user_id=raw.get("user_id"),
            created_at=datetime.fromisoformat(raw["created_at"]),
        )


def _coerce_client_id(value: Any) -> int | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValueError("clientId must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError("clientId must be an integer") from exc


def _parse_date(value: Any) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            return None
    return None


class AssessmentForm:
    """Editable state of a single assessment."""

    def __init__(
        self,
        assessment_id: int | None = None,
        client_id: int | None = None,
        created_by: int | None = None,
        status: AssessmentStatus = AssessmentStatus.DRAFT,
        version: int = 1,
        sections: Mapping[str, SectionState] | None = None,
        current_section: str = "basic",
        mode: FormMode = FormMode.EDIT,
    ) -> None:
        self.assessment_id = assessment_id
        self.client_id = client_id
        self.created_by = created_by
        self.status = status
        self.version = version
        self.current_section = ensure_section(current_section)
        self.mode = mode
        self.sections: dict[str, SectionState] = {
            key: SectionState() for key in SECTION_ORDER
        }
        if sections:
            for key, state in sections.items():
                self.sections[ensure_section(key)] = state
        self.pending_audit: list[AuditEntry] = []
        self.has_unsaved_changes = False
        self.last_saved: datetime | None = None
        self.last_autosave: datetime | None = None

    # -- editing ---------------------------------------------------------

    def _ensure_editable(self) -> None:
        if self.mode is not FormMode.EDIT:
            raise ReadOnlyFormError(
                f"Assessment is open in {self.mode.value} mode and cannot be edited"
            )

    def update_field(
        self,
        section: str,
        field_name: str,
        value: Any,
        at: datetime | None = None,
    ) -> SectionState:
        """Set one field and recompute everything derived from it.

        Args:
            section: Section key.
            field_name: Field within the section.
            value: New value. ``None`` clears the field.
            at: Edit timestamp. Defaults to now (UTC).

        Returns:
            The updated section state.
        """
        return self.update_section(section, {field_name: value}, at=at)

    def update_section(
        self,
        section: str,
        values: Mapping[str, Any],
        at: datetime | None = None,
    ) -> SectionState:
        """Merge several fields into a section in one step."""
        self._ensure_editable()
        ensure_section(section)
        if section == "safety" and "home_safety_photos" in values:
            home_safety.check_photos(values["home_safety_photos"])
        if section == "basic" and "clientId" in values:
            self.client_id = _coerce_client_id(values["clientId"])

        state = self.sections[section]
        data = dict(state.data)
        for key, value in values.items():
            if value is None:
                data.pop(key, None)
            else:
                data[key] = value
        state.data = data
        state.last_updated = at or datetime.utcnow()

        self._refresh_derived(section)
        # The assessment date feeds SLUMS questions 1 and 2
        if section == "basic" and "assessmentDate" in values and self.sections["slums"].data:
            self._refresh_derived("slums")

        self.has_unsaved_changes = True
        return state

    def set_current_section(self, section: str) -> None:
        self.current_section = ensure_section(section)

    def _refresh_derived(self, section: str) -> None:
        state = self.sections[section]
        data = state.data
        if section == "slums" and data:
            result = slums.score_slums(data, assessment_date=self.assessment_date)
            data.update(result.derived_fields())
        elif section == "mental":
            result = gds.score_gds(data)
            if result.answered:
                data.update(result.derived_fields())
            else:
                for key in result.derived_fields():
                    data.pop(key, None)
        elif section == "safety" and data:
            data.update(home_safety.derived_fields(data))

        state.completion_percentage = section_completion(section, data)
        state.is_complete = is_section_complete(state.completion_percentage)

    # -- derived views ---------------------------------------------------

    @property
    def assessment_date(self) -> date | None:
        return _parse_date(self.sections["basic"].data.get("assessmentDate"))

    def section_percentages(self) -> dict[str, int]:
        return {
            key: state.completion_percentage for key, state in self.sections.items()
        }

    @property
    def completion_percentage(self) -> int:
        return overall_completion(self.section_percentages())

    def validate_section(self, section: str) -> dict[str, str]:
        return validate_section(section, self.sections[ensure_section(section)].data)

    def validate_all(self) -> dict[str, dict[str, str]]:
        """Return validation errors keyed by section, omitting valid sections."""
        errors: dict[str, dict[str, str]] = {}
        for key in SECTION_ORDER:
            section_errors = self.validate_section(key)
            if section_errors:
                errors[key] = section_errors
        return errors

    # -- saving ----------------------------------------------------------

    def require_client(self) -> int:
        if self.client_id is None:
            raise MissingClientError()
        return self.client_id

    def add_audit_entry(
        self, action: str, description: str, user_id: int | None = None
    ) -> AuditEntry:
        entry = AuditEntry(action=action, description=description, user_id=user_id)
        self.pending_audit.append(entry)
        return entry

    def drain_audit_entries(self) -> list[AuditEntry]:
        """Hand over pending audit entries for persistence."""
        entries, self.pending_audit = self.pending_audit, []
        return entries

    def mark_saved(self, autosave: bool = False, at: datetime | None = None) -> None:
        now = at or datetime.utcnow()
        self.has_unsaved_changes = False
        self.last_saved = now
        if autosave:
            self.last_autosave = now

    def reset(self) -> None:
        """Clear all sections and return to a fresh draft."""
        self.sections = {key: SectionState() for key in SECTION_ORDER}
        self.status = AssessmentStatus.DRAFT
        self.current_section = "basic"
        self.pending_audit = []
        self.has_unsaved_changes = False

    # -- serialization ---------------------------------------------------

    def sections_payload(self) -> dict[str, Any]:
        return {key: state.to_dict() for key, state in self.sections.items()}

    def to_payload(self) -> dict[str, Any]:
        """JSON-safe snapshot used by the draft buffer."""
        return {
            "assessment_id": self.assessment_id,
            "client_id": self.client_id,
            "created_by": self.created_by,
            "status": self.status.value,
            "version": self.version,
            "current_section": self.current_section,
            "sections": self.sections_payload(),
            "pending_audit": [entry.to_dict() for entry in self.pending_audit],
            "has_unsaved_changes": self.has_unsaved_changes,
            "last_autosave": self.last_autosave.isoformat() if self.last_autosave else None,
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> AssessmentForm:
        form = cls(
            assessment_id=payload.get("assessment_id"),
            client_id=payload.get("client_id"),
            created_by=payload.get("created_by"),
            status=AssessmentStatus(payload.get("status", AssessmentStatus.DRAFT.value)),
            version=payload.get("version", 1),
            sections={
                key: SectionState.from_dict(raw)
                for key, raw in (payload.get("sections") or {}).items()
            },
            current_section=payload.get("current_section", "basic"),
        )
        form.pending_audit = [
            AuditEntry.from_dict(raw) for raw in payload.get("pending_audit") or []
        ]
        form.has_unsaved_changes = bool(payload.get("has_unsaved_changes", False))
        last_autosave = payload.get("last_autosave")
        form.last_autosave = datetime.fromisoformat(last_autosave) if last_autosave else None
        return form

    @classmethod
    def from_record(
        cls, assessment: Assessment, mode: FormMode = FormMode.EDIT
    ) -> AssessmentForm:
        return cls(
            assessment_id=assessment.id,
            client_id=assessment.client_id,
            created_by=assessment.created_by,
            status=assessment.status,
            version=assessment.version,
            sections={
                key: SectionState.from_dict(raw)
                for key, raw in (assessment.sections or {}).items()
                if key in SECTION_ORDER
            },
            current_section=assessment.current_section or "basic",
            mode=mode,
        )

    def to_record_fields(self) -> dict[str, Any]:
        """Column values for the ``assessments`` row."""
        return {
            "client_id": self.client_id,
            "version": self.version,
            "current_section": self.current_section,
            "sections": self.sections_payload(),
            "completion_percentage": self.completion_percentage,
        }
