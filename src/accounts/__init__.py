"""Staff and client portal account helpers."""

from src.accounts.access_codes import (
    access_code_expiry,
    generate_access_code,
    identity_matches,
    is_code_valid,
)
from src.accounts.verification import (
    generate_verification_token,
    is_staff_email_allowed,
    send_verification_email,
)

__all__ = [
    "access_code_expiry",
    "generate_access_code",
    "generate_verification_token",
    "identity_matches",
    "is_code_valid",
    "is_staff_email_allowed",
    "send_verification_email",
]
