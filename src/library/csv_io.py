"""CSV import and export for the medication and diagnosis libraries.

List columns (doses, frequencies, symptoms, risk factors) hold several
values separated by semicolons, since commas already separate columns.
Header names are matched loosely: case, spaces and underscores are
ignored, so ``Common Symptoms``, ``common_symptoms`` and
``commonsymptoms`` are the same column and exports re-import cleanly.
"""

from __future__ import annotations

import csv
import io
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from src.library.catalogs import canonical_diagnosis_category
from src.resources.importer import CSVFormatError

LIST_SEPARATOR = ";"

MEDICATION_COLUMNS: tuple[str, ...] = (
    "name",
    "doses",
    "frequencies",
    "used_for",
    "potential_side_effects",
    "description",
)

DIAGNOSIS_COLUMNS: tuple[str, ...] = (
    "code",
    "name",
    "category",
    "description",
    "common_symptoms",
    "risk_factors",
)

DIAGNOSIS_REQUIRED_COLUMNS: tuple[str, ...] = ("code", "name", "category")

_HEADER_ALIASES = {
    "medication": "name",
    "medication_name": "name",
    "medicationname": "name",
    "usedfor": "used_for",
    "potentialsideeffects": "potential_side_effects",
    "side_effects": "potential_side_effects",
    "commonsymptoms": "common_symptoms",
    "riskfactors": "risk_factors",
}

MEDICATION_TEMPLATE_ROWS: tuple[dict[str, Any], ...] = (
    {
        "name": "Lisinopril",
        "doses": ["10 mg", "20 mg"],
        "frequencies": ["Once daily"],
        "used_for": "High blood pressure",
        "potential_side_effects": "Dizziness, dry cough",
        "description": "",
    },
    {"name": "Metformin"},
    {"name": "Atorvastatin"},
)

DIAGNOSIS_TEMPLATE_ROWS: tuple[dict[str, Any], ...] = (
    {
        "code": "I10",
        "name": "Essential (primary) hypertension",
        "category": "Cardiovascular",
        "description": "Persistently raised arterial blood pressure",
        "common_symptoms": ["Headache", "Dizziness"],
        "risk_factors": ["Age", "Obesity", "High sodium diet"],
    },
    {
        "code": "E11.9",
        "name": "Type 2 diabetes mellitus without complications",
        "category": "Endocrine & Metabolic",
    },
)


@dataclass
class LibraryImportResult:
    """Outcome of a library CSV import.

    Attributes:
        success: Rows accepted for insertion.
        failed: Rows skipped because they were invalid or already present.
        errors: Row-numbered messages for the skipped rows.
        records: Column values for the accepted rows.
    """

    success: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)
    records: list[dict[str, Any]] = field(default_factory=list)

    def skip(self, row_number: int, message: str) -> None:
        self.failed += 1
        self.errors.append(f"Row {row_number}: {message}")


def _clean(value: Any) -> str:
    return str(value).strip() if value is not None else ""


def normalize_header(column: str) -> str:
    key = "_".join(_clean(column).lower().replace("-", " ").split())
    return _HEADER_ALIASES.get(key, _HEADER_ALIASES.get(key.replace("_", ""), key))


def split_list(raw: Any) -> list[str]:
    if isinstance(raw, (list, tuple)):
        return [_clean(item) for item in raw if _clean(item)]
    return [item.strip() for item in _clean(raw).split(LIST_SEPARATOR) if item.strip()]


def _read(text: str) -> list[tuple[int, list[str]]]:
    reader = csv.reader(io.StringIO(text.lstrip("\ufeff")))
    return [
        (line_number, row)
        for line_number, row in enumerate(reader, start=1)
        if any(cell.strip() for cell in row)
    ]


def _keyed(
    header: list[str], lines: list[tuple[int, list[str]]]
) -> list[tuple[int, dict[str, str]]]:
    return [(number, dict(zip(header, row))) for number, row in lines]


def read_medication_rows(text: str) -> list[tuple[int, dict[str, str]]]:
    """Parse medication CSV text into ``(row number, row)`` pairs.

    A header row is optional; without one the first column is taken as
    the medication name and the rest is ignored.

    Raises:
        CSVFormatError: If the file has no rows at all.
    """
    lines = _read(text)
    if not lines:
        raise CSVFormatError("CSV file is empty")

    first = [cell.strip().lower() for cell in lines[0][1]]
    if not any("name" in cell or "medication" in cell for cell in first):
        return _keyed(["name"], lines)

    header = [normalize_header(cell) for cell in lines[0][1]]
    if "name" not in header:
        header[0] = "name"
    return _keyed(header, lines[1:])


def read_diagnosis_rows(text: str) -> list[tuple[int, dict[str, str]]]:
    """Parse diagnosis CSV text into ``(row number, row)`` pairs.

    Raises:
        CSVFormatError: If the file is empty or lacks a required column.
    """
    lines = _read(text)
    if not lines:
        raise CSVFormatError("CSV file is empty")

    header = [normalize_header(cell) for cell in lines[0][1]]
    missing = [column for column in DIAGNOSIS_REQUIRED_COLUMNS if column not in header]
    if missing:
        raise CSVFormatError(f"Missing required columns: {', '.join(missing)}")
    return _keyed(header, lines[1:])


def plan_medication_import(
    rows: Iterable[tuple[int, Mapping[str, Any]]],
    existing_names: Iterable[str] = (),
) -> LibraryImportResult:
    """Pick out medications to insert; names are unique case-insensitively.

    Imported medications may have no doses or frequencies yet; those are
    filled in later by editing.
    """
    result = LibraryImportResult()
    seen = {_clean(name).lower() for name in existing_names}

    for row_number, row in rows:
        name = _clean(row.get("name"))
        if not name:
            result.skip(row_number, "Medication name is required")
            continue
        if name.lower() in seen:
            result.skip(row_number, f"{name} already exists")
            continue

        seen.add(name.lower())
        result.records.append(
            {
                "name": name,
                "doses": split_list(row.get("doses")),
                "frequencies": split_list(row.get("frequencies")),
                "used_for": _clean(row.get("used_for")) or None,
                "potential_side_effects": _clean(row.get("potential_side_effects")) or None,
                "description": _clean(row.get("description")) or None,
            }
        )
        result.success += 1

    return result


def plan_diagnosis_import(
    rows: Iterable[tuple[int, Mapping[str, Any]]],
    existing_codes: Iterable[str] = (),
) -> LibraryImportResult:
    """Validate diagnosis rows; codes are unique case-insensitively."""
    result = LibraryImportResult()
    seen = {_clean(code).lower() for code in existing_codes}

    for row_number, row in rows:
        code = _clean(row.get("code"))
        name = _clean(row.get("name"))
        raw_category = _clean(row.get("category"))
        category = canonical_diagnosis_category(raw_category) if raw_category else None

        problems = []
        if not code:
            problems.append("Code is required")
        if not name:
            problems.append("Name is required")
        if not raw_category:
            problems.append("Category is required")
        elif category is None:
            problems.append(f"Invalid category: {raw_category}")
        if problems:
            result.skip(row_number, ", ".join(problems))
            continue

        if code.lower() in seen:
            result.skip(row_number, f"Diagnosis code {code} already exists")
            continue

        seen.add(code.lower())
        result.records.append(
            {
                "code": code,
                "name": name,
                "category": category,
                "description": _clean(row.get("description")) or None,
                "common_symptoms": split_list(row.get("common_symptoms")),
                "risk_factors": split_list(row.get("risk_factors")),
            }
        )
        result.success += 1

    return result


def _export_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return f"{LIST_SEPARATOR} ".join(str(item) for item in value)
    return str(value)


def _export(columns: tuple[str, ...], records: Iterable[Mapping[str, Any]]) -> str:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=columns, lineterminator="\n")
    writer.writeheader()
    for record in records:
        writer.writerow({column: _export_value(record.get(column)) for column in columns})
    return buffer.getvalue()


def export_medications_csv(records: Iterable[Mapping[str, Any]]) -> str:
    return _export(MEDICATION_COLUMNS, records)


def export_diagnoses_csv(records: Iterable[Mapping[str, Any]]) -> str:
    return _export(DIAGNOSIS_COLUMNS, records)


def medication_template_csv() -> str:
    return export_medications_csv(MEDICATION_TEMPLATE_ROWS)


def diagnosis_template_csv() -> str:
    return export_diagnoses_csv(DIAGNOSIS_TEMPLATE_ROWS)
