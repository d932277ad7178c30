"""
Timezone utility functions for the spreads league
"""

from datetime import timezone

import pytz
from flask import current_app, has_app_context


def get_app_timezone():
    """Get the application's configured timezone"""
    timezone_name = "UTC"
    if has_app_context():
        timezone_name = current_app.config.get("TIMEZONE", "UTC")
    try:
        return pytz.timezone(timezone_name)
    except pytz.UnknownTimeZoneError:
        # Fallback to UTC if timezone is invalid
        return pytz.UTC


def convert_to_timezone(dt, tz=None):
    """Convert a datetime to the given (or the application's) timezone"""
    if dt is None:
        return None

    tz = tz or get_app_timezone()

    # If datetime is naive, assume it's UTC
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(tz)


def format_kickoff(dt, tz=None, format_str="%a %m/%d at %I:%M %p"):
    """Format a kickoff time in the application's timezone"""
    if dt is None:
        return "TBD"

    return convert_to_timezone(dt, tz).strftime(format_str)
