"""Resource directory categories and CSV import/export."""

from src.resources.categories import (
    CATEGORY_HIERARCHY,
    PRODUCT_CATEGORIES,
    RESOURCE_CATEGORIES,
    build_hierarchy,
    is_known_category,
)
from src.resources.importer import (
    CSVFormatError,
    ImportResult,
    export_csv,
    plan_import,
    read_rows,
    template_csv,
)

__all__ = [
    "CATEGORY_HIERARCHY",
    "CSVFormatError",
    "ImportResult",
    "PRODUCT_CATEGORIES",
    "RESOURCE_CATEGORIES",
    "build_hierarchy",
    "export_csv",
    "is_known_category",
    "plan_import",
    "read_rows",
    "template_csv",
]
