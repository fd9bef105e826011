# convert.py
"""
User tokens -> rule constants

Weekday: "monday" | "mo" | "1" (ISO, Monday=1)
Month:   "february" | "feb" | "2"
Frequency: full name only ("weekly")
By-weekday: optional signed prefix + weekday ("-1FR", "2tuesday")

All lookups are trimmed and case-insensitive; failures raise ConversionError
carrying the normalized literal.
"""

from __future__ import annotations

import re

from .errors import ConversionError
from .rule import MONTH_NAMES, WEEKDAY_CODES, WEEKDAY_NAMES, Frequency, Weekday

WEEKDAY_MAP = {}
for _i, (_code, _name) in enumerate(zip(WEEKDAY_CODES, WEEKDAY_NAMES), start=1):
    WEEKDAY_MAP[str(_i)] = _i
    WEEKDAY_MAP[_code.lower()] = _i
    WEEKDAY_MAP[_name.lower()] = _i

MONTH_MAP = {}
for _i, _name in enumerate(MONTH_NAMES, start=1):
    MONTH_MAP[str(_i)] = _i
    MONTH_MAP[_name.lower()] = _i
    MONTH_MAP[_name[:3].lower()] = _i
# legacy spelling accepted by earlier releases
MONTH_MAP["ma"] = 3

FREQUENCY_MAP = {freq.name.lower(): freq for freq in Frequency}

_BY_WEEKDAY_RE = re.compile(r"^([+-]?\d+)?\s*([a-z]+)$")


def _clean(token: str) -> str:
    return str(token).strip().lower()


def _key(literal: str) -> str:
    # "02" and "2" name the same code
    return str(int(literal)) if literal.isdecimal() else literal


def convert_weekday(token: str) -> Weekday:
    literal = _clean(token)
    try:
        return Weekday(WEEKDAY_MAP[_key(literal)])
    except KeyError:
        raise ConversionError(literal, "weekday") from None


def convert_month(token: str) -> int:
    literal = _clean(token)
    try:
        return MONTH_MAP[_key(literal)]
    except KeyError:
        raise ConversionError(literal, "month") from None


def convert_frequency(token: str) -> Frequency:
    literal = _clean(token)
    try:
        return FREQUENCY_MAP[literal]
    except KeyError:
        raise ConversionError(literal, "frequency") from None


def convert_by_weekday(token: str) -> Weekday:
    """Weekday with an optional nth-occurrence prefix, e.g. "-1FR" -> last Friday."""
    literal = _clean(token)
    if literal.isdecimal():
        return convert_weekday(literal)
    m = _BY_WEEKDAY_RE.match(literal)
    if not m:
        raise ConversionError(literal, "weekday")
    try:
        weekday = convert_weekday(m.group(2))
    except ConversionError:
        raise ConversionError(literal, "weekday") from None
    if m.group(1) is None:
        return weekday
    return weekday(int(m.group(1)))
