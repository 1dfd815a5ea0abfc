"""Utility modules."""

from admissions.utils.datetime_utils import (
    attendance_day,
    ensure_utc,
    minutes_between,
    start_of_day,
    utc_now,
)
from admissions.utils.normalization import (
    normalize_email,
    normalize_language,
    normalize_name,
    normalize_phone,
)

__all__ = [
    # Datetime
    "attendance_day",
    "ensure_utc",
    "minutes_between",
    "start_of_day",
    "utc_now",
    # Normalization
    "normalize_email",
    "normalize_language",
    "normalize_name",
    "normalize_phone",
]
