# parser.py
"""
RRULE text -> RuleOptions / RecurrenceRule / RuleSet

Public API:
  - parse_options(text) -> RuleOptions
  - parse_rule(text, now=None) -> RecurrenceRule
  - rrulestr(text, forceset=False, now=None) -> RecurrenceRule | RuleSet

Accepted text:
  FREQ=WEEKLY;INTERVAL=2;BYDAY=TU
  DTSTART;TZID=Europe/Paris:20240102T090000
  RRULE:FREQ=WEEKLY;COUNT=3
  EXRULE:FREQ=MONTHLY;BYMONTHDAY=1
  RDATE:20240105T090000Z,20240106T090000Z
  EXDATE;TZID=Europe/Paris:20240116T090000
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dateutil.parser import isoparse

from .convert import convert_by_weekday, convert_frequency, convert_weekday
from .errors import ConversionError, ParseError, ParseErrorKind, ValidationError
from .query import align
from .rule import RecurrenceRule, RuleOptions, normalize
from .ruleset import RuleSet

logger = logging.getLogger(__name__)

_INT_RE = re.compile(r"^[+-]?\d+$")
_LINE_RE = re.compile(r"^([A-Za-z-]+)[;:]")
_LINE_NAMES = {"DTSTART", "RRULE", "EXRULE", "RDATE", "EXDATE"}


def _malformed(fragment: str) -> ParseError:
    return ParseError(ParseErrorKind.MALFORMED_VALUE, fragment)


def _int(value: str) -> int:
    value = value.strip()
    if not _INT_RE.match(value):
        raise _malformed(value)
    return int(value)


def _int_list(value: str) -> List[int]:
    return [_int(item) for item in value.split(",")]


def _converted(convert: Callable[[str], object]) -> Callable[[str], object]:
    def parse(value: str) -> object:
        try:
            return convert(value)
        except ConversionError as exc:
            raise _malformed(value.strip()) from exc
    return parse


def _converted_list(convert: Callable[[str], object]) -> Callable[[str], List[object]]:
    one = _converted(convert)
    return lambda value: [one(item) for item in value.split(",")]


def parse_stamp(value: str, tzid: Optional[str] = None) -> datetime:
    """ISO-8601 stamp, basic or extended; naive stamps take `tzid` when given."""
    value = value.strip()
    try:
        when = isoparse(value)
    except ValueError as exc:
        raise _malformed(value) from exc
    if tzid and when.tzinfo is None:
        when = when.replace(tzinfo=_zone(tzid))
    return when


def _zone(tzid: str) -> ZoneInfo:
    try:
        return ZoneInfo(tzid)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValidationError("timezone", tzid, "unknown time zone") from exc


# key -> (RuleOptions attribute, value parser)
_KEYS: Dict[str, Tuple[str, Callable[[str], object]]] = {
    "FREQ": ("frequency", _converted(convert_frequency)),
    "INTERVAL": ("interval", _int),
    "COUNT": ("count", _int),
    "UNTIL": ("until", parse_stamp),
    "WKST": ("week_start", _converted(convert_weekday)),
    "BYSETPOS": ("by_set_pos", _int_list),
    "BYMONTH": ("by_month", _int_list),
    "BYMONTHDAY": ("by_month_day", _int_list),
    "BYYEARDAY": ("by_year_day", _int_list),
    "BYWEEKNO": ("by_week_no", _int_list),
    "BYDAY": ("by_weekday", _converted_list(convert_by_weekday)),
    "BYHOUR": ("by_hour", _int_list),
    "BYMINUTE": ("by_minute", _int_list),
    "BYSECOND": ("by_second", _int_list),
}


def parse_body(body: str) -> RuleOptions:
    """Parse `KEY=VALUE;...` (without the RRULE: prefix)."""
    options = RuleOptions()
    seen = set()
    for component in body.strip().strip(";").split(";"):
        key, sep, value = component.partition("=")
        key = key.strip().upper()
        if not sep or not key:
            raise _malformed(component)
        if key not in _KEYS:
            raise ParseError(ParseErrorKind.UNKNOWN_KEY, key)
        if key in seen or not value.strip():
            raise _malformed(component)
        seen.add(key)
        attr, parse = _KEYS[key]
        setattr(options, attr, parse(value))
    return options


@dataclass
class _Lines:
    anchor: Optional[datetime] = None
    timezone: Optional[str] = None
    rrules: List[RuleOptions] = field(default_factory=list)
    exrules: List[RuleOptions] = field(default_factory=list)
    rdates: List[datetime] = field(default_factory=list)
    exdates: List[datetime] = field(default_factory=list)

    @property
    def single(self) -> bool:
        return len(self.rrules) == 1 and not (self.exrules or self.rdates or self.exdates)


def _params(header: str) -> Tuple[str, Dict[str, str]]:
    name, *raw = header.split(";")
    params = {}
    for item in raw:
        key, sep, value = item.partition("=")
        key = key.strip().upper()
        if key not in {"TZID", "VALUE"}:
            raise ParseError(ParseErrorKind.UNKNOWN_KEY, key)
        if not sep or not value.strip():
            raise _malformed(item)
        params[key] = value.strip()
    return name.strip().upper(), params


def _parse_lines(text: str) -> _Lines:
    parsed = _Lines()
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    if not lines:
        raise _malformed(text)
    for line in lines:
        m = _LINE_RE.match(line)
        if not m or m.group(1).upper() not in _LINE_NAMES:
            if "=" not in line:
                raise ParseError(ParseErrorKind.UNKNOWN_KEY, line.split(":")[0])
            parsed.rrules.append(parse_body(line))
            continue
        header, _, value = line.partition(":")
        name, params = _params(header)
        tzid = params.get("TZID")
        if name == "DTSTART":
            parsed.anchor = parse_stamp(value)
            parsed.timezone = tzid
        elif name == "RRULE":
            parsed.rrules.append(parse_body(value))
        elif name == "EXRULE":
            parsed.exrules.append(parse_body(value))
        elif name == "RDATE":
            parsed.rdates.extend(parse_stamp(v, tzid) for v in value.split(","))
        else:
            parsed.exdates.extend(parse_stamp(v, tzid) for v in value.split(","))

    for options in parsed.rrules + parsed.exrules:
        options.anchor = parsed.anchor
        options.timezone = parsed.timezone
    return parsed


def parse_options(text: str) -> RuleOptions:
    """Options of a single rule, with DTSTART folded in as anchor/timezone."""
    parsed = _parse_lines(text)
    if not parsed.single:
        raise _malformed(text.strip())
    return parsed.rrules[0]


def parse_rule(text: str, now: Optional[datetime] = None) -> RecurrenceRule:
    return normalize(parse_options(text), now=now)


def rrulestr(text: str, forceset: bool = False, now: Optional[datetime] = None) -> Union[RecurrenceRule, RuleSet]:
    """Parse a rule or a set of rule lines; one bare RRULE yields a RecurrenceRule."""
    parsed = _parse_lines(text)
    if parsed.single and not forceset:
        return normalize(parsed.rrules[0], now=now)

    rrules: List[RecurrenceRule] = []
    for options in parsed.rrules + parsed.exrules:
        rule = normalize(options, now=now)
        # every rule of a set shares the first rule's defaulted anchor
        now = now or rule.anchor
        rrules.append(rule)
    exrules = rrules[len(parsed.rrules):]
    rrules = rrules[:len(parsed.rrules)]

    tz = rrules[0].tzinfo if rrules else (exrules[0].tzinfo if exrules else None)
    if rrules or exrules:
        rdates = [align(when, tz) for when in parsed.rdates]
        exdates = [align(when, tz) for when in parsed.exdates]
    else:
        rdates, exdates = parsed.rdates, parsed.exdates
    logger.debug(
        "parsed rule set: %d rrules, %d exrules, %d rdates, %d exdates",
        len(rrules), len(exrules), len(rdates), len(exdates),
    )
    return RuleSet(rrules=tuple(rrules), exrules=tuple(exrules), rdates=tuple(rdates), exdates=tuple(exdates))
