"""Formatting helpers shared by email merge data and legacy templates"""

import html
from datetime import datetime, timezone
from typing import Any, Optional

from dateutil import parser as date_parser


def fmt_time(value: Optional[str]) -> str:
    """
    Format a 24-hour time string ("14:30") as 12-hour clock ("2:30 PM").
    Anything that does not parse is returned unchanged.
    """
    if not value:
        return ""
    try:
        hours_str, minutes_str = value.split(":")[:2]
        hours, minutes = int(hours_str), int(minutes_str)
    except (ValueError, AttributeError):
        return value
    suffix = "PM" if hours >= 12 else "AM"
    return f"{hours % 12 or 12}:{minutes:02d} {suffix}"


def format_long_date(value: Optional[str]) -> str:
    """Format a YYYY-MM-DD date as "Sunday, 15 March 2026" """
    if not value:
        return ""
    try:
        parsed = date_parser.isoparse(value)
    except (ValueError, TypeError):
        return value
    return f"{parsed.strftime('%A')}, {parsed.day} {parsed.strftime('%B %Y')}"


def booking_reference(booking_id: str) -> str:
    """Short display code for a booking, never used as a key"""
    return (booking_id or "")[:8].upper()


def escape_html(value: Any) -> str:
    """Escape a value for safe interpolation into HTML"""
    if value is None:
        return ""
    return html.escape(str(value), quote=True)


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def to_cents(amount: Any) -> int:
    """Convert a dollar amount to integer cents"""
    return int(round(float(amount or 0) * 100))
