"""CSV import and export for the resource directory.

The import format has a fixed header::

    name,type,subcategory,address,phone,email,website,contact_person,
    description,tags,service_area

Rows are validated one by one. Invalid rows and duplicates (same name and
address, case-insensitive, either already stored or earlier in the file)
are reported with their spreadsheet row number and skipped; the rest are
returned ready to insert. Imported resources always start unverified.
"""

from __future__ import annotations

import csv
import io
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from src.resources.categories import OTHER_CATEGORY, is_known_category

CSV_COLUMNS: tuple[str, ...] = (
    "name",
    "type",
    "subcategory",
    "address",
    "phone",
    "email",
    "website",
    "contact_person",
    "description",
    "tags",
    "service_area",
)

REQUIRED_COLUMNS: tuple[str, ...] = ("name", "type")

EMAIL_PATTERN = re.compile(r"^\S+@\S+$")

TEMPLATE_ROWS: tuple[dict[str, str], ...] = (
    {
        "name": "Sample Senior Center",
        "type": "Senior Centers with Workshops",
        "subcategory": "Educational Programs",
        "address": "123 Main St, City, State 12345",
        "phone": "(555) 123-4567",
        "email": "info@seniorcenter.com",
        "website": "https://seniorcenter.com",
        "contact_person": "John Smith",
        "description": "Community center offering workshops and activities for seniors",
        "tags": "senior activities, workshops, community",
        "service_area": "Citywide",
    },
    {
        "name": "Memory Care Facility",
        "type": "Memory Care Facilities",
        "subcategory": "Alzheimer's Care",
        "address": "456 Oak Ave, City, State 12345",
        "phone": "(555) 987-6543",
        "email": "contact@memorycare.com",
        "website": "https://memorycare.com",
        "contact_person": "Sarah Johnson",
        "description": "Specialized memory care facility for dementia and Alzheimer's patients",
        "tags": "memory care, alzheimer's, dementia, specialized care",
        "service_area": "Regional",
    },
    {
        "name": "Custom Service Provider",
        "type": OTHER_CATEGORY,
        "subcategory": "Specialized Care",
        "address": "789 Pine St, City, State 12345",
        "phone": "(555) 555-0123",
        "email": "info@customservice.com",
        "website": "https://customservice.com",
        "contact_person": "Mike Davis",
        "description": "Custom service provider for specialized elder care needs",
        "tags": "custom, specialized, elder care",
        "service_area": "Local",
    },
)


class CSVFormatError(ValueError):
    """Raised when the file cannot be read as a resource CSV at all."""


@dataclass
class ImportResult:
    """Outcome of a CSV import.

    Attributes:
        success: Rows accepted for insertion.
        duplicates: Rows skipped as duplicates.
        errors: Row-numbered messages, duplicates included.
        resources: Field dicts for the accepted rows.
    """

    success: int = 0
    duplicates: int = 0
    errors: list[str] = field(default_factory=list)
    resources: list[dict[str, Any]] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        """Errors that are not duplicates."""
        return len(self.errors) - self.duplicates


def _clean(value: Any) -> str:
    return str(value).strip() if value is not None else ""


def duplicate_key(name: str | None, address: str | None) -> tuple[str, str]:
    return (_clean(name).lower(), _clean(address).lower())


def split_tags(raw: str | None) -> list[str]:
    return [tag.strip() for tag in _clean(raw).split(",") if tag.strip()]


def read_rows(text: str) -> list[dict[str, str]]:
    """Parse CSV text into rows keyed by header name.

    Raises:
        CSVFormatError: If the header lacks a required column.
    """
    reader = csv.DictReader(io.StringIO(text.lstrip("\ufeff")))
    header = [column.strip() for column in reader.fieldnames or []]
    missing = [column for column in REQUIRED_COLUMNS if column not in header]
    if missing:
        raise CSVFormatError(f"CSV is missing required columns: {', '.join(missing)}")

    rows = []
    for raw in reader:
        row = {
            (key or "").strip(): value
            for key, value in raw.items()
            if key is not None
        }
        if not any(_clean(value) for value in row.values()):
            continue
        rows.append(row)
    return rows


def validate_row(row: Mapping[str, Any], custom_categories: Iterable[str] = ()) -> list[str]:
    """Return every problem with a row; empty when it can be imported."""
    errors: list[str] = []
    name = _clean(row.get("name"))
    resource_type = _clean(row.get("type"))
    email = _clean(row.get("email"))
    website = _clean(row.get("website"))

    if not name:
        errors.append("Name is required")
    if not resource_type:
        errors.append("Type is required")
    elif not is_known_category(resource_type, custom_categories):
        errors.append(
            f'Invalid type: {resource_type}. Must be one of the predefined categories or "Other"'
        )
    if email and not EMAIL_PATTERN.match(email):
        errors.append("Invalid email format")
    if website and not website.startswith("http"):
        errors.append("Website must start with http:// or https://")
    return errors


def row_to_resource(row: Mapping[str, Any]) -> dict[str, Any]:
    """Map a validated CSV row onto Resource column values."""
    return {
        "name": _clean(row.get("name")),
        "type": _clean(row.get("type")),
        "subcategory": _clean(row.get("subcategory")) or None,
        "address": _clean(row.get("address")) or None,
        "phone": _clean(row.get("phone")) or None,
        "email": _clean(row.get("email")) or None,
        "website": _clean(row.get("website")) or None,
        "contact_person": _clean(row.get("contact_person")) or None,
        "description": _clean(row.get("description")) or None,
        "tags": split_tags(row.get("tags")),
        "service_area": _clean(row.get("service_area")) or None,
        "verified": False,
    }


def plan_import(
    rows: Iterable[Mapping[str, Any]],
    existing_keys: Iterable[tuple[str, str]] = (),
    custom_categories: Iterable[str] = (),
) -> ImportResult:
    """Validate rows and pick out the ones to insert.

    Args:
        rows: Parsed CSV rows in file order.
        existing_keys: duplicate_key() of every stored resource.
        custom_categories: Admin-defined categories accepted as types.

    Returns:
        ImportResult whose ``resources`` are ready to persist.
    """
    result = ImportResult()
    seen = set(existing_keys)
    custom = list(custom_categories)

    for index, row in enumerate(rows):
        # Spreadsheet numbering: header is row 1
        row_number = index + 2
        problems = validate_row(row, custom)
        if problems:
            result.errors.append(f"Row {row_number}: {', '.join(problems)}")
            continue

        key = duplicate_key(row.get("name"), row.get("address"))
        if key in seen:
            result.duplicates += 1
            result.errors.append(
                f"Row {row_number}: Duplicate resource "
                f"({_clean(row.get('name'))} at {_clean(row.get('address'))})"
            )
            continue

        seen.add(key)
        result.resources.append(row_to_resource(row))
        result.success += 1

    return result


def _export_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ", ".join(str(item) for item in value)
    return str(value)


def export_csv(resources: Iterable[Mapping[str, Any]]) -> str:
    """Render resources in the import format, so exports can be re-imported."""
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=CSV_COLUMNS, lineterminator="\n")
    writer.writeheader()
    for resource in resources:
        writer.writerow({column: _export_value(resource.get(column)) for column in CSV_COLUMNS})
    return buffer.getvalue()


def template_csv() -> str:
    return export_csv(TEMPLATE_ROWS)
