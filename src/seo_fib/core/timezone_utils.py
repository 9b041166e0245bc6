"""
Timezone utilities for SEO-Fib report timestamps
"""

from datetime import datetime
from typing import Optional

import pytz

from .validators import REPORT_TIMEZONE


UTC_TZ = pytz.UTC


def resolve_timezone(tz_name: Optional[str] = None):
    """
    Look up a timezone by name

    Args:
        tz_name: IANA timezone name (defaults to REPORT_TIMEZONE)

    Returns:
        pytz timezone object

    Raises:
        ValueError: If the name is unknown
    """
    name = tz_name or REPORT_TIMEZONE
    try:
        return pytz.timezone(name)
    except pytz.UnknownTimeZoneError as exc:
        raise ValueError(f"Unknown timezone: {name}") from exc


def get_report_now(tz_name: Optional[str] = None) -> datetime:
    """Current time in the report timezone"""
    return datetime.now(UTC_TZ).astimezone(resolve_timezone(tz_name))
