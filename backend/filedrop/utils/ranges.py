"""HTTP ``Range`` and conditional-request helpers for downloads."""

from __future__ import annotations

from datetime import datetime
from email.utils import format_datetime, parsedate_to_datetime


class RangeNotSatisfiable(Exception):
    """Range starts past the end of the file."""


def parse_range(header: str | None, size: int) -> tuple[int, int] | None:
    """Parse a single ``bytes=`` range into an inclusive ``(start, end)``.

    Returns None when the whole file should be sent: no header, a unit other
    than bytes, several ranges, or a syntactically invalid spec.
    """
    if not header:
        return None
    unit, sep, spec = header.partition("=")
    if not sep or unit.strip().lower() != "bytes" or "," in spec:
        return None

    first, sep, last = spec.strip().partition("-")
    first, last = first.strip(), last.strip()
    if not sep or (first and not first.isdigit()) or (last and not last.isdigit()):
        return None

    if not first:
        # Suffix form: the last N bytes
        if not last:
            return None
        suffix = int(last)
        if suffix == 0 or size == 0:
            raise RangeNotSatisfiable(header)
        return max(size - suffix, 0), size - 1

    start = int(first)
    end = int(last) if last else size - 1
    if end < start:
        return None
    if start >= size:
        raise RangeNotSatisfiable(header)
    return start, min(end, size - 1)


def http_date(value: datetime) -> str:
    return format_datetime(value, usegmt=True)


def not_modified_since(header: str | None, modified_at: datetime) -> bool:
    """True when ``If-Modified-Since`` is at or after ``modified_at``."""
    if not header:
        return False
    try:
        since = parsedate_to_datetime(header)
    except (TypeError, ValueError):
        return False
    if since.tzinfo is None:
        return False
    # HTTP dates have one-second resolution
    return modified_at.replace(microsecond=0) <= since
