"""Default date collaborator: free-text feed dates to ISO-8601 UTC strings."""

from __future__ import annotations

import datetime
import logging
import re
from email.utils import parsedate_to_datetime
from functools import lru_cache
from typing import Optional

from dateutil import parser as dateutil_parser

logger = logging.getLogger(__name__)

_UTC = datetime.timezone.utc

_RE_WHITESPACE = re.compile(r"\s+")
_RE_INVALID_LEAP_DAY = re.compile(r"(\d{4})-02-29")
_RE_HOUR_24 = re.compile(r"(\d{4}-\d{2}-\d{2})[T ]24:(\d{2}):(\d{2})")
_RE_OFFSET_NO_COLON = re.compile(r"([+-]\d{2})(\d{2})$")
_RE_OFFSET_HOUR_ONLY = re.compile(r"([+-]\d{2})$")
_RE_LONG_FRACTION = re.compile(r"\.(\d{7,})(?=(?:[+-]\d{2}:?\d{2}|Z|$))", re.I)
_RE_RFC822 = re.compile(
    r"(?:\w{3},\s+)?(\d{1,2})\s+(\w{3})\s+(\d{4})\s+"
    r"(\d{2}):(\d{2}):(\d{2})\s+([+-]\d{4}|[A-Z]{2,5})"
)

_MONTHS = {
    name: number
    for number, name in enumerate(
        ("jan", "feb", "mar", "apr", "may", "jun",
         "jul", "aug", "sep", "oct", "nov", "dec"),
        start=1,
    )
}  # fmt: skip

# Offsets in seconds for abbreviations that show up in real feeds.
TIMEZONE_OFFSETS: dict[str, int] = {
    "UT": 0,
    "UTC": 0,
    "GMT": 0,
    "Z": 0,
    "WET": 0,
    "BST": 3600,
    "CET": 3600,
    "CEST": 7200,
    "EET": 7200,
    "EEST": 10800,
    "MSK": 10800,
    "IST": 19800,
    "SGT": 28800,
    "AWST": 28800,
    "JST": 32400,
    "KST": 32400,
    "ACST": 34200,
    "AEST": 36000,
    "AEDT": 39600,
    "NZST": 43200,
    "NZDT": 46800,
    "HST": -36000,
    "AKST": -32400,
    "AKDT": -28800,
    "PST": -28800,
    "PDT": -25200,
    "MST": -25200,
    "MDT": -21600,
    "CST": -21600,
    "CDT": -18000,
    "EST": -18000,
    "EDT": -14400,
}

_DATEPARSER_SETTINGS = {
    "TIMEZONE": "UTC",
    "RETURN_AS_TIMEZONE_AWARE": True,
}


def _to_utc(dt: Optional[datetime.datetime]) -> Optional[str]:
    if dt is None:
        return None
    try:
        utc = dt.replace(tzinfo=_UTC) if dt.tzinfo is None else dt.astimezone(_UTC)
    except (ValueError, OverflowError):
        return None
    return utc.isoformat()


def _repair(value: str) -> str:
    """Fix the impossible dates publishers emit: Feb 29 in common years, hour 24."""
    if "-02-29" in value:
        match = _RE_INVALID_LEAP_DAY.match(value)
        if match:
            year = int(match.group(1))
            if not (year % 4 == 0 and (year % 100 != 0 or year % 400 == 0)):
                value = value.replace(f"{year}-02-29", f"{year}-02-28")

    match = _RE_HOUR_24.search(value)
    if match:
        try:
            day = datetime.date.fromisoformat(match.group(1))
        except ValueError:
            return value
        next_day = day + datetime.timedelta(days=1)
        value = (
            value[: match.start()]
            + f"{next_day}T00:{match.group(2)}:{match.group(3)}"
            + value[match.end() :]
        )
    return value


def _normalize_iso(value: str) -> str:
    """Massage ISO-8601 variants into what datetime.fromisoformat accepts."""
    upper = value.upper()
    for suffix in (" UTC", " GMT", " Z", "Z"):
        if upper.endswith(suffix):
            value = value[: -len(suffix)].rstrip() + "+00:00"
            break

    if " " in value and "T" not in value[:11]:
        date_part, rest = value.split(" ", 1)
        if rest[:1].isdigit():
            value = f"{date_part}T{rest}"

    match = _RE_OFFSET_NO_COLON.search(value)
    if match:
        value = value[:-5] + f"{match.group(1)}:{match.group(2)}"
    else:
        match = _RE_OFFSET_HOUR_ONLY.search(value)
        if match and "T" in value:
            value = value[:-3] + f"{match.group(1)}:00"

    return _RE_LONG_FRACTION.sub(lambda m: "." + m.group(1)[:6], value, count=1)


def _parse_iso(value: str) -> Optional[datetime.datetime]:
    try:
        return datetime.datetime.fromisoformat(_normalize_iso(value))
    except ValueError:
        return None


def _parse_rfc822(value: str) -> Optional[datetime.datetime]:
    match = _RE_RFC822.match(value)
    if not match:
        return None
    day, month_name, year, hour, minute, second, zone = match.groups()
    month = _MONTHS.get(month_name.lower())
    if month is None:
        return None
    if zone[0] in "+-":
        offset = int(zone[1:3]) * 3600 + int(zone[3:5]) * 60
        if zone[0] == "-":
            offset = -offset
    else:
        offset = TIMEZONE_OFFSETS.get(zone)
        if offset is None:
            return None
    if not -86400 < offset < 86400:
        return None

    tz = datetime.timezone(datetime.timedelta(seconds=offset))
    extra_day = 0
    hours = int(hour)
    if hours == 24:
        hours, extra_day = 0, 1
    try:
        dt = datetime.datetime(
            int(year), month, int(day), hours, int(minute), int(second), tzinfo=tz
        )
    except ValueError:
        return None
    return dt + datetime.timedelta(days=extra_day)


def _parse_email_date(value: str) -> Optional[datetime.datetime]:
    try:
        return parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return None


def _parse_dateutil(value: str) -> Optional[datetime.datetime]:
    try:
        return dateutil_parser.parse(value, tzinfos=TIMEZONE_OFFSETS)
    except (ValueError, TypeError, OverflowError):
        return None


def _parse_dateparser(value: str) -> Optional[datetime.datetime]:
    try:
        import dateparser  # optional dependency
    except ImportError:
        return None
    try:
        return dateparser.parse(value, languages=["en"], settings=_DATEPARSER_SETTINGS)
    except (ValueError, TypeError):
        return None


@lru_cache(maxsize=8192)
def parse_date(text: Optional[str]) -> Optional[str]:
    """Parse a feed date and return it as an ISO-8601 UTC string.

    Tries ISO-8601 and RFC-822 directly, then :mod:`email.utils`, then
    python-dateutil, then dateparser when it is installed.

    Args:
        text: Date string in any common format

    Returns:
        ISO-8601 formatted UTC date string, or None when parsing fails
    """
    if not text:
        return None
    value = _RE_WHITESPACE.sub(" ", text).strip()
    if not value:
        return None
    value = _repair(value)

    if len(value) >= 10 and value[4] == "-" and value[:4].isdigit():
        result = _to_utc(_parse_iso(value))
        if result is not None:
            return result

    for strategy in (
        _parse_rfc822,
        _parse_email_date,
        _parse_dateutil,
        _parse_dateparser,
    ):
        result = _to_utc(strategy(value))
        if result is not None:
            return result

    logger.debug("Unparseable date %r", value)
    return None
