"""Calendar day helpers.

Every streak comparison happens on ``YYYY-MM-DD`` strings observed in one
reference timezone, so members in different timezones agree on which day a
completion belongs to. Older records may hold long-form dates such as
``"Wed Dec 11 2025"``; those are accepted and normalized here.
"""
from __future__ import annotations

import re
from datetime import date, datetime

import pytz
from dateutil import parser as date_parser

from ..infra.config import get_config
from .errors import InvalidDate

CANONICAL_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def reference_tz(name: str | None = None) -> pytz.BaseTzInfo:
    """Return the timezone used to decide the current day."""
    return pytz.timezone(name or get_config().timezone)


def today(now: datetime | None = None, tz: str | None = None) -> str:
    """Return the current day as ``YYYY-MM-DD`` in the reference timezone."""
    zone = reference_tz(tz)
    if now is None:
        local = datetime.now(zone)
    elif now.tzinfo is None:
        local = pytz.utc.localize(now).astimezone(zone)
    else:
        local = now.astimezone(zone)
    return local.date().isoformat()


def parse_day(value: str) -> date:
    """Parse a canonical or legacy date string into a :class:`date`."""
    if not isinstance(value, str) or not value.strip():
        raise InvalidDate(value)
    text = value.strip()
    if CANONICAL_RE.match(text):
        try:
            return date.fromisoformat(text)
        except ValueError as exc:
            raise InvalidDate(value) from exc
    try:
        return date_parser.parse(text).date()
    except (ValueError, OverflowError) as exc:
        raise InvalidDate(value) from exc


def normalize_day(value: str) -> str:
    """Return the canonical form of *value*."""
    return parse_day(value).isoformat()


def day_distance(a: str, b: str) -> int:
    """Return ``b - a`` in whole calendar days."""
    return (parse_day(b) - parse_day(a)).days
