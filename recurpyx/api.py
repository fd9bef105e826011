# api.py
"""
String-in / string-out operations over the rule engine

Public API:
  - create_rrule(frequency, ...) -> str
  - modify_rrule(rrule, ...) -> str
  - all_occurrences(rrule, limit=None) -> list[str]
  - between(rrule, after, before, limit=None, include=False) -> list[str]
  - first(rrule) / after(rrule, date, include=False) / before(...) -> str | None
  - to_text(rrule) / is_fully_convertible_to_text(rrule) / from_text(text)
  - frequencies() -> list[str]

User tokens (weekday, month, frequency names) go through convert.py. Dates
are datetimes or ISO-8601 strings; occurrences come back as ISO-8601 strings.
`limit` defaults to the config's default_limit and is silently capped at
max_occurrences.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Iterable, List, Optional, Union

from dateutil.parser import isoparse

from . import en
from .convert import convert_by_weekday, convert_frequency, convert_month, convert_weekday
from .engine import DEFAULT_CONFIG, GeneratorConfig
from .errors import ValidationError
from .parser import parse_options, rrulestr
from .render import to_string
from .rule import Frequency, RecurrenceRule, RuleOptions, normalize
from .ruleset import RuleSet

DateInput = Union[datetime, date, str]
Numbers = Optional[Iterable[Union[int, float]]]
Tokens = Optional[Iterable[str]]


def _date(name: str, value: Optional[DateInput]) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    try:
        return isoparse(value)
    except ValueError as exc:
        raise ValidationError(name, value, "expected an ISO-8601 date") from exc


def _int(name: str, value: Optional[Union[int, float]]) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, float):
        if not value.is_integer():
            raise ValidationError(name, value, "expected a whole number")
        return int(value)
    return value


def _ints(name: str, values: Numbers) -> Optional[List[int]]:
    if values is None:
        return None
    return [_int(name, v) for v in values]


def _options(
    frequency: Optional[str] = None,
    dtstart: Optional[DateInput] = None,
    interval: Optional[Union[int, float]] = None,
    wkst: Optional[str] = None,
    count: Optional[Union[int, float]] = None,
    until: Optional[DateInput] = None,
    timezone: Optional[str] = None,
    bysetpos: Numbers = None,
    bymonth: Tokens = None,
    bymonthday: Numbers = None,
    byyearday: Numbers = None,
    byweekno: Numbers = None,
    byweekday: Tokens = None,
    byhour: Numbers = None,
    byminute: Numbers = None,
    bysecond: Numbers = None,
) -> RuleOptions:
    return RuleOptions(
        frequency=convert_frequency(frequency) if frequency is not None else None,
        anchor=_date("dtstart", dtstart),
        interval=_int("interval", interval),
        week_start=convert_weekday(wkst) if wkst is not None else None,
        count=_int("count", count),
        until=_date("until", until),
        timezone=timezone,
        by_set_pos=_ints("by_set_pos", bysetpos),
        by_month=[convert_month(m) for m in bymonth] if bymonth is not None else None,
        by_month_day=_ints("by_month_day", bymonthday),
        by_year_day=_ints("by_year_day", byyearday),
        by_week_no=_ints("by_week_no", byweekno),
        by_weekday=[convert_by_weekday(w) for w in byweekday] if byweekday is not None else None,
        by_hour=_ints("by_hour", byhour),
        by_minute=_ints("by_minute", byminute),
        by_second=_ints("by_second", bysecond),
    )


def create_rrule(frequency: str, **options: Any) -> str:
    rule = normalize(_options(frequency, **options))
    return to_string(rule)


def modify_rrule(rrule: str, **options: Any) -> str:
    """Re-parse `rrule`, overlay the given options and build a new rule."""
    merged = parse_options(rrule).overlay(_options(**options))
    return to_string(normalize(merged))


def _load(rrule: str) -> Union[RecurrenceRule, RuleSet]:
    return rrulestr(rrule)


def _limit(limit: Optional[Union[int, float]], config: GeneratorConfig) -> int:
    if limit is None:
        limit = config.default_limit
    limit = _int("limit", limit)
    if config.max_occurrences is None:
        return limit
    return min(limit, config.max_occurrences)


def _iso(when: Optional[datetime]) -> Optional[str]:
    return when.isoformat() if when is not None else None


def all_occurrences(
    rrule: str, limit: Optional[Union[int, float]] = None, config: GeneratorConfig = DEFAULT_CONFIG
) -> List[str]:
    cap = _limit(limit, config)
    found = _load(rrule).all(lambda when, i: i < cap, config=config)
    return [when.isoformat() for when in found]


def between(
    rrule: str,
    after: DateInput,
    before: DateInput,
    limit: Optional[Union[int, float]] = None,
    include: bool = False,
    config: GeneratorConfig = DEFAULT_CONFIG,
) -> List[str]:
    cap = _limit(limit, config)
    found = _load(rrule).between(
        _date("after", after), _date("before", before), include, lambda when, i: i < cap, config=config
    )
    return [when.isoformat() for when in found]


def first(rrule: str, config: GeneratorConfig = DEFAULT_CONFIG) -> Optional[str]:
    return _iso(_load(rrule).first(config=config))


def after(rrule: str, date: DateInput, include: bool = False, config: GeneratorConfig = DEFAULT_CONFIG) -> Optional[str]:
    return _iso(_load(rrule).after(_date("date", date), include, config=config))


def before(rrule: str, date: DateInput, include: bool = False, config: GeneratorConfig = DEFAULT_CONFIG) -> Optional[str]:
    return _iso(_load(rrule).before(_date("date", date), include, config=config))


def _single(rrule: str) -> RecurrenceRule:
    return normalize(parse_options(rrule))


def to_text(rrule: str) -> str:
    return en.to_text(_single(rrule))


def is_fully_convertible_to_text(rrule: str) -> bool:
    return en.is_fully_convertible(_single(rrule))


def from_text(text: str) -> str:
    return to_string(en.from_text(text))


def frequencies() -> List[str]:
    return [freq.name.capitalize() for freq in Frequency]
