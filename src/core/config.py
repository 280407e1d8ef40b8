"""Application configuration using Pydantic Settings."""

import json
from collections.abc import Iterable
from pathlib import Path
from typing import Annotated

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


DEFAULT_ALLOWED_UPLOAD_TYPES = [
    "image/jpeg",
    "image/png",
    "image/jpg",
    "image/gif",
    "image/webp",
]

DEFAULT_SLUMS_ACCEPTED_STATES = ["Missouri"]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Database
    database_url: str = "postgresql+asyncpg://localhost:5432/eldercare"
    """PostgreSQL connection URL (asyncpg driver)."""

    # Redis
    redis_url: str = "redis://localhost:6379/0"
    """Redis connection URL for the assessment draft buffer."""

    # Error Tracking
    sentry_dsn: str | None = None
    """Sentry DSN for error tracking. Optional."""

    # Environment
    environment: str = "development"
    """Current environment (development, staging, production)."""

    debug: bool = False
    """Enable debug mode."""

    log_format: str | None = None
    """Logging format override (json or console). Defaults by environment."""

    cors_origins: Annotated[list[str], NoDecode] = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]
    """Origins allowed to call the API from a browser."""

    # Storage
    default_storage_url: str = "/tmp/storage"
    """Storage URL for resource logos (file://, s3://, gs://, or local)."""

    max_upload_bytes: int = 5 * 1024 * 1024
    """Maximum upload size in bytes for logos."""

    # NoDecode prevents pydantic-settings from forcing JSON parsing at the
    # env-source layer, so we can accept either JSON arrays or CSV strings.
    allowed_upload_types: Annotated[list[str], NoDecode] = DEFAULT_ALLOWED_UPLOAD_TYPES
    """Allowed content types for logo uploads."""

    # Assessments
    autosave_delay_seconds: float = 30.0
    """Quiet period after the last edit before a draft is written to the database."""

    draft_ttl_seconds: int = 24 * 60 * 60
    """Lifetime of a buffered draft in Redis."""

    section_complete_threshold: int = 80
    """Section completion percentage at which a section counts as complete."""

    slums_accepted_states: Annotated[list[str], NoDecode] = DEFAULT_SLUMS_ACCEPTED_STATES
    """State names accepted as correct for SLUMS question 3."""

    # Accounts
    access_code_ttl_days: int = 90
    """Validity period of a client portal access code."""

    staff_email_domain: str | None = None
    """If set, staff accounts must use an address in this domain."""

    @field_validator("allowed_upload_types", mode="before")
    @classmethod
    def parse_allowed_upload_types(cls, value: object) -> list[str]:
        """Parse allowed upload types from JSON array, CSV, or list."""
        parsed = _parse_list(value, "ALLOWED_UPLOAD_TYPES")
        normalized = _normalize(parsed, lower=True)
        return normalized or DEFAULT_ALLOWED_UPLOAD_TYPES.copy()

    @field_validator("slums_accepted_states", mode="before")
    @classmethod
    def parse_slums_accepted_states(cls, value: object) -> list[str]:
        """Parse accepted state names from JSON array, CSV, or list."""
        parsed = _parse_list(value, "SLUMS_ACCEPTED_STATES")
        return _normalize(parsed) or DEFAULT_SLUMS_ACCEPTED_STATES.copy()

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, value: object) -> list[str]:
        """Parse CORS origins from JSON array, CSV, or list."""
        return _normalize(_parse_list(value, "CORS_ORIGINS"))


def _parse_list(value: object, env_name: str) -> list[object]:
    """Accept a JSON array, a comma-separated string, or a sequence."""
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return []

        try:
            decoded = json.loads(text)
        except json.JSONDecodeError:
            decoded = None

        if isinstance(decoded, list):
            return decoded
        if isinstance(decoded, str):
            text = decoded
        elif decoded is not None:
            raise ValueError(
                f"{env_name} must be a JSON array or comma-separated string."
            )

        # Fallback: comma-separated values
        return [item.strip() for item in text.split(",")]

    if isinstance(value, (list, tuple, set)):
        return list(value)

    raise ValueError(f"{env_name} must be a string, list, tuple, or set.")


def _normalize(values: Iterable[object], lower: bool = False) -> list[str]:
    """Strip quotes and dedupe while preserving declaration order."""
    normalized: list[str] = []
    seen: set[str] = set()
    for raw_item in values:
        item = str(raw_item).strip().strip("'").strip('"')
        if not item:
            continue
        if lower:
            item = item.lower()
        if item in seen:
            continue
        normalized.append(item)
        seen.add(item)
    return normalized


try:
    settings = Settings()
except Exception as exc:
    env_file = Path(".env")
    root_error = str(exc)
    suggestions = [
        "Ensure DATABASE_URL points at a PostgreSQL database.",
        "List settings (ALLOWED_UPLOAD_TYPES, SLUMS_ACCEPTED_STATES, CORS_ORIGINS) accept:",
        '  1) ["image/jpeg","image/png"]',
        "  2) image/jpeg,image/png",
    ]

    raise RuntimeError(
        "Failed to initialize application settings. "
        f"Check environment variables in {env_file.resolve() if env_file.exists() else '.env'}.\n"
        + f"Error: {root_error}\n"
        + "\n".join(suggestions)
    ) from exc
