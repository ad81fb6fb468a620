"""Lenient publish-date parsing for scraped pages.

Structured extraction returns whatever date string the page carried
("2024-03-01", "Fri, 01 Mar 2024 10:00:00 GMT", "March 1st, 2024", "last
week" ...).  :func:`parse_published_at` accepts only strings it can turn
into a real datetime and returns ``None`` for everything else.  It never
raises.
"""

from __future__ import annotations

import contextlib
import re
from datetime import date, datetime, timezone

from dateutil import parser as dateutil_parser

# "1st", "22nd" -> "1", "22"; dateutil rejects ordinal suffixes.
_ORDINAL_RE = re.compile(r"(\d+)(st|nd|rd|th)\b", re.IGNORECASE)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)  # noqa: UP017
    return value.astimezone(timezone.utc)  # noqa: UP017


def parse_published_at(raw: object) -> datetime | None:
    """Parse *raw* into a timezone-aware UTC datetime, or return ``None``.

    Accepts ``datetime``/``date`` objects as-is.  Strings are tried as
    ISO-8601 (including a trailing ``Z``) first, then through dateutil's
    parser, which covers RFC 2822 and most human-readable layouts.
    Naive values are taken to be UTC.
    """
    if raw is None:
        return None
    if isinstance(raw, datetime):
        with contextlib.suppress(OverflowError):
            return _as_utc(raw)
        return None
    if isinstance(raw, date):
        return datetime(raw.year, raw.month, raw.day, tzinfo=timezone.utc)  # noqa: UP017
    if not isinstance(raw, str):
        return None

    text = raw.strip()
    if not text:
        return None

    with contextlib.suppress(ValueError, OverflowError):
        return _as_utc(datetime.fromisoformat(text.replace("Z", "+00:00")))

    cleaned = _ORDINAL_RE.sub(r"\1", text)
    with contextlib.suppress(ValueError, OverflowError):
        return _as_utc(dateutil_parser.parse(cleaned))

    return None
