"""Rate limiting configuration for the public lead intake endpoint."""

import os

from slowapi import Limiter
from slowapi.util import get_remote_address

from admissions.core.config import settings

IS_TESTING = os.getenv("TESTING", "").lower() in ("1", "true", "yes")

limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    enabled=not IS_TESTING and settings.RATE_LIMIT_PUBLIC > 0,
)


def public_intake_limit() -> str:
    return f"{settings.RATE_LIMIT_PUBLIC}/minute"
