# rule.py
"""
Rule data model + normalizer

Public API:
  - Frequency, Weekday, MO..SU
  - RuleOptions: parsed, all-optional option values
  - RecurrenceRule: immutable, validated rule
  - normalize(options, now=None) -> RecurrenceRule | raises ValidationError
  - build_rule(frequency, **options) -> RecurrenceRule
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields, replace
from datetime import date, datetime, timezone, tzinfo as TzInfo
from enum import IntEnum
from typing import Any, Iterable, Optional, Sequence, Tuple, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .errors import ValidationError
from .query import Occurrences, Queryable

logger = logging.getLogger(__name__)


class Frequency(IntEnum):
    YEARLY = 0
    MONTHLY = 1
    WEEKLY = 2
    DAILY = 3
    HOURLY = 4
    MINUTELY = 5
    SECONDLY = 6


YEARLY = Frequency.YEARLY
MONTHLY = Frequency.MONTHLY
WEEKLY = Frequency.WEEKLY
DAILY = Frequency.DAILY
HOURLY = Frequency.HOURLY
MINUTELY = Frequency.MINUTELY
SECONDLY = Frequency.SECONDLY

WEEKDAY_CODES = ("MO", "TU", "WE", "TH", "FR", "SA", "SU")
WEEKDAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")
MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)


@dataclass(frozen=True)
class Weekday:
    """ISO weekday (Monday=1..Sunday=7) with an optional nth-occurrence modifier."""

    day: int
    n: Optional[int] = None

    def __call__(self, n: Optional[int]) -> "Weekday":
        return Weekday(self.day, n)

    @property
    def code(self) -> str:
        return WEEKDAY_CODES[self.day - 1]

    @property
    def name(self) -> str:
        return WEEKDAY_NAMES[self.day - 1]

    def plain(self) -> "Weekday":
        return Weekday(self.day) if self.n is not None else self

    def __str__(self) -> str:
        if self.n is None:
            return self.code
        return f"{self.n}{self.code}"


MO, TU, WE, TH, FR, SA, SU = (Weekday(day) for day in range(1, 8))

WeekdayLike = Union[Weekday, int]
DateLike = Union[datetime, date]


# ------------------ options (parsed, not yet validated) ------------------

@dataclass
class RuleOptions:
    frequency: Optional[Frequency] = None
    anchor: Optional[DateLike] = None
    interval: Optional[int] = None
    week_start: Optional[WeekdayLike] = None
    count: Optional[int] = None
    until: Optional[DateLike] = None
    timezone: Optional[str] = None
    by_set_pos: Optional[Sequence[int]] = None
    by_month: Optional[Sequence[int]] = None
    by_month_day: Optional[Sequence[int]] = None
    by_year_day: Optional[Sequence[int]] = None
    by_week_no: Optional[Sequence[int]] = None
    by_weekday: Optional[Sequence[WeekdayLike]] = None
    by_hour: Optional[Sequence[int]] = None
    by_minute: Optional[Sequence[int]] = None
    by_second: Optional[Sequence[int]] = None

    def overlay(self, other: "RuleOptions") -> "RuleOptions":
        """Return new options where every value set on `other` wins.

        A newly set `count` drops an inherited `until` and vice versa;
        setting both on `other` is left for `normalize` to reject.
        """
        changes = {f.name: getattr(other, f.name) for f in fields(other) if getattr(other, f.name) is not None}
        if "count" in changes and "until" not in changes:
            changes["until"] = None
        if "until" in changes and "count" not in changes:
            changes["count"] = None
        return replace(self, **changes)


# ------------------ normalized rule ------------------

@dataclass(frozen=True)
class RecurrenceRule(Queryable):
    frequency: Frequency
    anchor: datetime
    interval: int = 1
    week_start: int = 1
    count: Optional[int] = None
    until: Optional[datetime] = None
    timezone: Optional[str] = None
    by_set_pos: Optional[Tuple[int, ...]] = None
    by_month: Optional[Tuple[int, ...]] = None
    by_month_day: Optional[Tuple[int, ...]] = None
    by_year_day: Optional[Tuple[int, ...]] = None
    by_week_no: Optional[Tuple[int, ...]] = None
    by_weekday: Optional[Tuple[Weekday, ...]] = None
    by_hour: Optional[Tuple[int, ...]] = None
    by_minute: Optional[Tuple[int, ...]] = None
    by_second: Optional[Tuple[int, ...]] = None

    @property
    def tzinfo(self) -> Optional[TzInfo]:
        return self.anchor.tzinfo

    def occurrences(self, config: Any = None) -> Occurrences:
        from .engine import DEFAULT_CONFIG, OccurrenceGenerator

        generator = OccurrenceGenerator(self, config or DEFAULT_CONFIG)
        return Occurrences(generator.__iter__)

    def to_string(self) -> str:
        from .render import to_string

        return to_string(self)

    def __str__(self) -> str:
        return self.to_string()


BY_FIELDS = (
    "by_set_pos",
    "by_month",
    "by_month_day",
    "by_year_day",
    "by_week_no",
    "by_weekday",
    "by_hour",
    "by_minute",
    "by_second",
)

# field -> (smallest magnitude, largest magnitude, signed)
_BY_RANGES = {
    "by_set_pos": (1, 366, True),
    "by_month": (1, 12, False),
    "by_month_day": (1, 31, True),
    "by_year_day": (1, 366, True),
    "by_week_no": (1, 53, True),
    "by_hour": (0, 23, False),
    "by_minute": (0, 59, False),
    "by_second": (0, 59, False),
}


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _as_datetime(name: str, value: DateLike) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    raise ValidationError(name, value, "expected a date or datetime")


def _int_values(name: str, values: Optional[Iterable[Any]]) -> Optional[Tuple[int, ...]]:
    if values is None:
        return None
    if _is_int(values):
        values = [values]
    low, high, signed = _BY_RANGES[name]
    result = set()
    for v in values:
        if not _is_int(v):
            raise ValidationError(name, v, "expected an integer")
        magnitude = abs(v) if signed else v
        if not (low <= magnitude <= high) or (not signed and v < 0):
            bounds = f"±{low}..{high}" if signed else f"{low}..{high}"
            raise ValidationError(name, v, f"expected {bounds}")
        result.add(v)
    return tuple(sorted(result)) if result else None


def _weekday(name: str, value: WeekdayLike) -> Weekday:
    if isinstance(value, Weekday):
        wd = value
    elif _is_int(value):
        wd = Weekday(value)
    else:
        raise ValidationError(name, value, "expected a weekday")
    if not (1 <= wd.day <= 7):
        raise ValidationError(name, value, "weekday must be 1..7")
    if wd.n is not None and (wd.n == 0 or abs(wd.n) > 53):
        raise ValidationError(name, value, "weekday occurrence must be ±1..53")
    return wd


def _weekday_values(values: Optional[Iterable[WeekdayLike]]) -> Optional[Tuple[Weekday, ...]]:
    if values is None:
        return None
    if isinstance(values, Weekday) or _is_int(values):
        values = [values]
    result = {_weekday("by_weekday", v) for v in values}
    if not result:
        return None
    return tuple(sorted(result, key=lambda wd: (wd.day, wd.n or 0)))


def _zone(name: Optional[str]) -> Optional[ZoneInfo]:
    if not name:
        return None
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValidationError("timezone", name, "unknown time zone") from exc


def normalize(options: RuleOptions, now: Optional[datetime] = None) -> RecurrenceRule:
    """Apply defaults and validate `options` into an immutable rule.

    The anchor defaults to `now` (or the current time) here, at construction,
    so that repeated queries against the returned rule are reproducible.
    """
    if options.frequency is None:
        raise ValidationError("frequency", None, "frequency is required")
    try:
        frequency = Frequency(options.frequency)
    except ValueError as exc:
        raise ValidationError("frequency", options.frequency) from exc

    interval = 1 if options.interval is None else options.interval
    if not _is_int(interval) or interval < 1:
        raise ValidationError("interval", interval, "expected a positive integer")

    count = options.count
    if count is not None and (not _is_int(count) or count < 0):
        raise ValidationError("count", count, "expected a non-negative integer")
    if count is not None and options.until is not None:
        raise ValidationError("until", options.until, "count and until are mutually exclusive")

    week_start = _weekday("week_start", options.week_start if options.week_start is not None else MO)
    if week_start.n is not None:
        raise ValidationError("week_start", options.week_start, "week start takes no occurrence")

    zone_name = options.timezone or None
    zone = _zone(zone_name)
    if options.anchor is None:
        anchor = now if now is not None else datetime.now(zone)
    else:
        anchor = _as_datetime("anchor", options.anchor)
    if zone is not None:
        anchor = anchor.replace(tzinfo=zone) if anchor.tzinfo is None else anchor.astimezone(zone)
    anchor = anchor.replace(microsecond=0)

    until = None
    if options.until is not None:
        until = _as_datetime("until", options.until)
        if anchor.tzinfo is not None and until.tzinfo is None:
            until = until.replace(tzinfo=anchor.tzinfo)
        elif anchor.tzinfo is None and until.tzinfo is not None:
            until = until.replace(tzinfo=None)

    if zone is None and anchor.tzinfo is not None:
        key = anchor.tzinfo.key if isinstance(anchor.tzinfo, ZoneInfo) else None
        if key:
            zone_name = key
        else:
            # no IANA id to write as TZID: the rule walks UTC wall time, matching its Z stamp
            anchor = anchor.astimezone(timezone.utc)

    by_values = {name: _int_values(name, getattr(options, name)) for name in _BY_RANGES}
    rule = RecurrenceRule(
        frequency=frequency,
        anchor=anchor,
        interval=interval,
        week_start=week_start.day,
        count=count,
        until=until,
        timezone=zone_name,
        by_weekday=_weekday_values(options.by_weekday),
        **by_values,
    )
    logger.debug("normalized rule %s", rule.frequency.name)
    return rule


def build_rule(frequency: Frequency, **options: Any) -> RecurrenceRule:
    now = options.pop("now", None)
    return normalize(RuleOptions(frequency=frequency, **options), now=now)
