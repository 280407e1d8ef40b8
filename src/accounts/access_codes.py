"""Client portal access codes.

A code is eight characters from A-Z and 0-9, issued per client and valid
for ``settings.access_code_ttl_days``. Clients log in with the code plus
their first name, last name and date of birth.
"""

import secrets
import string
from datetime import date, datetime, timedelta

from src.core.config import settings

ACCESS_CODE_ALPHABET = string.ascii_uppercase + string.digits
ACCESS_CODE_LENGTH = 8


def generate_access_code(length: int = ACCESS_CODE_LENGTH) -> str:
    return "".join(secrets.choice(ACCESS_CODE_ALPHABET) for _ in range(length))


def access_code_expiry(issued_at: datetime | None = None, ttl_days: int | None = None) -> datetime:
    issued = issued_at or datetime.utcnow()
    days = settings.access_code_ttl_days if ttl_days is None else ttl_days
    return issued + timedelta(days=days)


def normalize_code(code: str) -> str:
    return code.strip().upper()


def is_code_valid(
    stored_code: str | None,
    expires_at: datetime | None,
    presented: str,
    now: datetime | None = None,
) -> bool:
    """Compare a presented code in constant time and check expiry."""
    if not stored_code or not presented:
        return False
    if expires_at is not None and expires_at < (now or datetime.utcnow()):
        return False
    return secrets.compare_digest(normalize_code(stored_code), normalize_code(presented))


def identity_matches(
    first_name: str,
    last_name: str,
    date_of_birth: date | None,
    presented_first: str,
    presented_last: str,
    presented_dob: date,
) -> bool:
    """Name comparison ignores case and surrounding whitespace."""
    return (
        first_name.strip().lower() == presented_first.strip().lower()
        and last_name.strip().lower() == presented_last.strip().lower()
        and date_of_birth == presented_dob
    )
