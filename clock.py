"""Calendar 'today' for the disclosure engine, resolved in the configured timezone."""

from __future__ import annotations

from datetime import date, datetime, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from flask import current_app, has_app_context

DEFAULT_TIMEZONE = "UTC"


def disclosure_timezone() -> tzinfo:
    name = DEFAULT_TIMEZONE
    if has_app_context():
        name = current_app.config.get("DISCLOSURE_TIMEZONE") or DEFAULT_TIMEZONE
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        if has_app_context():
            current_app.logger.warning("Unknown DISCLOSURE_TIMEZONE %r, falling back to UTC", name)
        return ZoneInfo(DEFAULT_TIMEZONE)


def local_today() -> date:
    return datetime.now(disclosure_timezone()).date()
