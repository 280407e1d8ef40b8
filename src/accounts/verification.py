"""Email verification tokens and staff address rules.

Outgoing mail is not wired up; verification messages are logged so an
operator can forward the link.
"""

import secrets
from datetime import datetime

from src.core.config import settings
from src.core.logging import get_logger

logger = get_logger(__name__)


def generate_verification_token() -> str:
    return secrets.token_urlsafe(32)


def is_staff_email_allowed(email: str, domain: str | None = None) -> bool:
    """Check the staff domain restriction, if one is configured."""
    required = domain if domain is not None else settings.staff_email_domain
    if not required:
        return True
    return email.strip().lower().endswith("@" + required.strip().lstrip("@").lower())


def send_verification_email(email: str, full_name: str, token: str, account_type: str) -> datetime:
    """Record a verification message for ``email``.

    Returns:
        Time the message was issued.
    """
    sent_at = datetime.utcnow()
    logger.info(
        "verification_email_issued",
        email=email,
        full_name=full_name,
        account_type=account_type,
        token_prefix=token[:6],
    )
    return sent_at
