"""
Shared-secret checks for the admin and cron endpoints.

The cron secret (CRON_SECRET_TOKEN) is accepted in three places, matching
the callers that use it:

1. ``?secret=`` query parameter on ``/admin/cron``
2. ``Authorization: Bearer <secret>`` from the external cron runner
3. ``x-cron-secret`` header on internal calls

All comparisons go through ``hmac.compare_digest``. An unset secret never
matches anything.
"""

import hmac
import logging
from typing import Optional

from ..domain.errors import UnauthorizedError
from .config import Settings

logger = logging.getLogger(__name__)

BEARER_PREFIX = "bearer "


def secrets_match(candidate: Optional[str], expected: Optional[str]) -> bool:
    """Constant-time comparison; False when either side is empty."""
    if not candidate or not expected:
        return False
    return hmac.compare_digest(candidate.encode(), expected.encode())


def extract_bearer(authorization: Optional[str]) -> Optional[str]:
    """Return the token from an ``Authorization: Bearer ...`` header value."""
    if not authorization:
        return None
    if not authorization.lower().startswith(BEARER_PREFIX):
        return None
    return authorization[len(BEARER_PREFIX):].strip() or None


def verify_cron_secret(candidate: Optional[str], settings: Settings) -> None:
    """Raise UnauthorizedError unless *candidate* equals the cron secret."""
    if not settings.cron_secret_token:
        logger.warning("Cron secret requested but CRON_SECRET_TOKEN is not configured")
        raise UnauthorizedError("Cron secret not configured")
    if not secrets_match(candidate, settings.cron_secret_token):
        raise UnauthorizedError("Invalid secret")


def verify_bearer_or_dev(authorization: Optional[str], settings: Settings) -> None:
    """Development mode bypasses the check; otherwise require the bearer secret."""
    if settings.is_development:
        return
    verify_cron_secret(extract_bearer(authorization), settings)
