# engine.py
"""
RecurrenceRule -> occurrences

Public API:
  - GeneratorConfig / DEFAULT_CONFIG
  - Effect, GRANULARITY: (frequency, by-field) -> expand | limit | ignore
  - OccurrenceGenerator(rule, config): restartable lazy iterable of datetimes

Periods are walked in civil (wall-clock) time from the anchor's period; each
period's candidates are resolved into the rule's zone only when emitted.
"""

from __future__ import annotations

import calendar
import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from enum import Enum
from typing import Dict, FrozenSet, Iterator, List, Optional, Sequence, Set, Tuple
from zoneinfo import ZoneInfo

from dateutil.relativedelta import relativedelta

from .rule import (
    DAILY, HOURLY, MINUTELY, MONTHLY, SECONDLY, WEEKLY, YEARLY,
    Frequency, RecurrenceRule,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GeneratorConfig:
    # hard ceiling on occurrences produced by one sequence; None for no ceiling
    max_occurrences: Optional[int] = 1000
    # limit used by callers that do not ask for one
    default_limit: int = 100
    # consecutive periods without any candidate before giving up
    max_idle_periods: int = 50_000


DEFAULT_CONFIG = GeneratorConfig()


class Effect(Enum):
    EXPAND = "expand"
    LIMIT = "limit"
    IGNORE = "ignore"


_E, _L, _N = Effect.EXPAND, Effect.LIMIT, Effect.IGNORE

# RFC 5545 section 3.3.10 by-rule table; cells the RFC leaves undefined are ignored.
#                YEARLY MONTHLY WEEKLY DAILY HOURLY MINUTELY SECONDLY
_TABLE = {
    "by_month":     (_E, _L, _L, _L, _L, _L, _L),
    "by_week_no":   (_E, _N, _N, _N, _N, _N, _N),
    "by_year_day":  (_E, _N, _N, _N, _L, _L, _L),
    "by_month_day": (_E, _E, _N, _L, _L, _L, _L),
    "by_weekday":   (_E, _E, _E, _L, _L, _L, _L),
    "by_hour":      (_E, _E, _E, _E, _L, _L, _L),
    "by_minute":    (_E, _E, _E, _E, _E, _L, _L),
    "by_second":    (_E, _E, _E, _E, _E, _E, _L),
}

GRANULARITY: Dict[Tuple[Frequency, str], Effect] = {
    (freq, name): row[freq] for name, row in _TABLE.items() for freq in Frequency
}


def _last_day_of_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def _days_in_year(year: int) -> int:
    return 366 if calendar.isleap(year) else 365


def _week_one_start(year: int, week_start: int) -> date:
    jan1 = date(year, 1, 1)
    offset = (jan1.isoweekday() - week_start) % 7
    start = jan1 - timedelta(days=offset)
    # week 1 is the first week holding at least four days of the year
    if 7 - offset < 4:
        start += timedelta(days=7)
    return start


def week_number(d: date, week_start: int = 1) -> Tuple[int, int]:
    """Return (week number, weeks in that week-numbering year) for `d`."""
    year = d.year
    start = _week_one_start(year, week_start)
    if d < start:
        year -= 1
        start = _week_one_start(year, week_start)
    else:
        following = _week_one_start(year + 1, week_start)
        if d >= following:
            year += 1
            start = following
    weeks = (_week_one_start(year + 1, week_start) - start).days // 7
    return (d - start).days // 7 + 1, weeks


def _nth_weekday(first: date, last: date, day: int, n: int) -> Optional[date]:
    if n > 0:
        found = first + timedelta(days=(day - first.isoweekday()) % 7 + 7 * (n - 1))
    else:
        found = last - timedelta(days=(last.isoweekday() - day) % 7 + 7 * (-n - 1))
    return found if first <= found <= last else None


def select_positions(candidates: Sequence[datetime], positions: Sequence[int]) -> List[datetime]:
    """Pick 1-based positions (negative counts from the end) out of sorted candidates."""
    size = len(candidates)
    picked = set()
    for pos in positions:
        idx = pos - 1 if pos > 0 else size + pos
        if 0 <= idx < size:
            picked.add(candidates[idx])
    return sorted(picked)


def _ceil_steps(cursor: datetime, boundary: datetime, step: timedelta) -> int:
    return max(1, -((cursor - boundary) // step))


@dataclass(frozen=True)
class _Filters:
    """By-field values in effect for one rule after defaults and the granularity table."""

    months: Optional[FrozenSet[int]]
    week_nos: Optional[FrozenSet[int]]
    year_days: Optional[FrozenSet[int]]
    month_days: Optional[FrozenSet[int]]
    weekdays: FrozenSet[int]
    nth_weekdays: Tuple[Tuple[int, int], ...]
    hours: Optional[Tuple[int, ...]]
    minutes: Optional[Tuple[int, ...]]
    seconds: Optional[Tuple[int, ...]]

    @property
    def has_weekday(self) -> bool:
        return bool(self.weekdays or self.nth_weekdays)


class OccurrenceGenerator:
    """Lazy, restartable occurrence sequence for one rule.

    Each call to `iter()` starts again from the anchor; nothing on the rule or
    the generator is mutated while iterating.
    """

    def __init__(self, rule: RecurrenceRule, config: GeneratorConfig = DEFAULT_CONFIG) -> None:
        self.rule = rule
        self.config = config
        self._freq = rule.frequency
        self._start = rule.anchor.replace(tzinfo=None)
        self._tzinfo = rule.anchor.tzinfo
        self._filters = self._effective_filters()
        self._step = {
            DAILY: timedelta(days=rule.interval),
            HOURLY: timedelta(hours=rule.interval),
            MINUTELY: timedelta(minutes=rule.interval),
            SECONDLY: timedelta(seconds=rule.interval),
        }.get(self._freq)

    def effect(self, name: str) -> Effect:
        return GRANULARITY[(self._freq, name)]

    # ---------------- setup ----------------

    def _effective_filters(self) -> _Filters:
        rule, freq, start = self.rule, self._freq, self._start

        def pick(name: str) -> Optional[Tuple[int, ...]]:
            values = getattr(rule, name)
            if values is None or self.effect(name) is Effect.IGNORE:
                return None
            return values

        months = pick("by_month")
        week_nos = pick("by_week_no")
        year_days = pick("by_year_day")
        month_days = pick("by_month_day")
        by_weekday = rule.by_weekday if self.effect("by_weekday") is not Effect.IGNORE else None

        # RFC 5545 defaults taken from the anchor when no day selector is given
        if not (week_nos or year_days or month_days or by_weekday):
            if freq == YEARLY:
                if not months:
                    months = (start.month,)
                month_days = (start.day,)
            elif freq == MONTHLY:
                month_days = (start.day,)
            elif freq == WEEKLY:
                by_weekday = (rule.anchor.isoweekday(),)

        weekdays: Set[int] = set()
        nth: List[Tuple[int, int]] = []
        honour_nth = freq == MONTHLY or (freq == YEARLY and not week_nos)
        for wd in by_weekday or ():
            if isinstance(wd, int):
                weekdays.add(wd)
            elif wd.n is not None and honour_nth:
                nth.append((wd.day, wd.n))
            else:
                # occurrence modifiers are a pass-through below monthly
                weekdays.add(wd.day)

        def time_values(name: str, default: int) -> Optional[Tuple[int, ...]]:
            values = getattr(rule, name)
            if self.effect(name) is Effect.EXPAND:
                return values or (default,)
            return values

        return _Filters(
            months=frozenset(months) if months else None,
            week_nos=frozenset(week_nos) if week_nos else None,
            year_days=frozenset(year_days) if year_days else None,
            month_days=frozenset(month_days) if month_days else None,
            weekdays=frozenset(weekdays),
            nth_weekdays=tuple(nth),
            hours=time_values("by_hour", start.hour),
            minutes=time_values("by_minute", start.minute),
            seconds=time_values("by_second", start.second),
        )

    # ---------------- day filtering ----------------

    def _day_matches(self, d: date, nth_dates: FrozenSet[date] = frozenset()) -> bool:
        f = self._filters
        if f.months and d.month not in f.months:
            return False
        if f.week_nos:
            weekno, weeks = week_number(d, self.rule.week_start)
            if weekno not in f.week_nos and weekno - weeks - 1 not in f.week_nos:
                return False
        if f.year_days:
            yday = d.timetuple().tm_yday
            if yday not in f.year_days and yday - _days_in_year(d.year) - 1 not in f.year_days:
                return False
        if f.month_days:
            last = _last_day_of_month(d.year, d.month)
            if d.day not in f.month_days and d.day - last - 1 not in f.month_days:
                return False
        if f.has_weekday and d.isoweekday() not in f.weekdays and d not in nth_dates:
            return False
        return True

    def _nth_dates(self, scopes: Sequence[Tuple[date, date]]) -> FrozenSet[date]:
        found = set()
        for first, last in scopes:
            for day, n in self._filters.nth_weekdays:
                hit = _nth_weekday(first, last, day, n)
                if hit is not None:
                    found.add(hit)
        return frozenset(found)

    def _month_scope(self, year: int, month: int) -> Tuple[date, date]:
        return date(year, month, 1), date(year, month, _last_day_of_month(year, month))

    # ---------------- periods ----------------

    def _coarse_days(self, index: int) -> List[date]:
        """Matching days of the index-th yearly, monthly or weekly period."""
        rule, start, f = self.rule, self._start, self._filters
        offset = index * rule.interval
        if self._freq == YEARLY:
            year = start.year + offset
            if year > date.max.year:
                raise OverflowError("year out of range")
            months = sorted(f.months) if f.months else range(1, 13)
            month_scopes = [self._month_scope(year, m) for m in months]
            # nth weekdays count within each month when months are given, else within the year
            scopes = month_scopes if f.months else [(date(year, 1, 1), date(year, 12, 31))]
            days: List[date] = []
            for first, last in month_scopes:
                days.extend(first + timedelta(days=i) for i in range(last.day))
        elif self._freq == MONTHLY:
            first = date(start.year, start.month, 1) + relativedelta(months=offset)
            first, last = self._month_scope(first.year, first.month)
            scopes = [(first, last)]
            days = [first + timedelta(days=i) for i in range(last.day)]
        else:
            week0 = start.date() - timedelta(days=(start.isoweekday() - rule.week_start) % 7)
            first = week0 + timedelta(weeks=offset)
            scopes = []
            days = [first + timedelta(days=i) for i in range(7)]
        nth_dates = self._nth_dates(scopes) if f.nth_weekdays else frozenset()
        return [d for d in days if self._day_matches(d, nth_dates)]

    def _coarse_periods(self) -> Iterator[List[datetime]]:
        f = self._filters
        times = sorted(time(h, m, s) for h in f.hours for m in f.minutes for s in f.seconds)
        index = 0
        while True:
            days = self._coarse_days(index)
            yield [datetime.combine(d, t) for d in days for t in times]
            index += 1

    def _fine_periods(self) -> Iterator[List[datetime]]:
        """Daily and finer: one cursor instant per period, skipping whole
        months, days, hours or minutes that a limiting field rules out."""
        f, freq, step = self._filters, self._freq, self._step
        start = self._start
        if freq == DAILY:
            cursor = datetime.combine(start.date(), time())
        elif freq == HOURLY:
            cursor = start.replace(minute=0, second=0)
        elif freq == MINUTELY:
            cursor = start.replace(second=0)
        else:
            cursor = start
        while True:
            d = cursor.date()
            boundary = None
            if f.months and d.month not in f.months:
                boundary = datetime(d.year, d.month, 1) + relativedelta(months=1)
            elif not self._day_matches(d):
                boundary = datetime.combine(d + timedelta(days=1), time())
            elif freq >= HOURLY and f.hours is not None and self.effect("by_hour") is Effect.LIMIT \
                    and cursor.hour not in f.hours:
                boundary = cursor.replace(minute=0, second=0) + timedelta(hours=1)
            elif freq >= MINUTELY and f.minutes is not None and self.effect("by_minute") is Effect.LIMIT \
                    and cursor.minute not in f.minutes:
                boundary = cursor.replace(second=0) + timedelta(minutes=1)
            elif freq == SECONDLY and f.seconds is not None and cursor.second not in f.seconds:
                boundary = cursor + timedelta(seconds=1)

            if boundary is not None:
                yield []
                cursor += step * _ceil_steps(cursor, boundary, step)
                continue

            yield self._fine_candidates(cursor)
            cursor += step

    def _fine_candidates(self, cursor: datetime) -> List[datetime]:
        f = self._filters

        def values(name: str, current: int, expanded: Optional[Tuple[int, ...]]) -> Tuple[int, ...]:
            if self.effect(name) is Effect.EXPAND:
                return expanded or (current,)
            return (current,)

        d = cursor.date()
        if self._freq == DAILY:
            hours, minutes, seconds = f.hours, f.minutes, f.seconds
        else:
            hours = values("by_hour", cursor.hour, f.hours)
            minutes = values("by_minute", cursor.minute, f.minutes)
            seconds = values("by_second", cursor.second, f.seconds)
        return sorted(datetime.combine(d, time(h, m, s)) for h in hours for m in minutes for s in seconds)

    # ---------------- resolution ----------------

    def _resolve(self, civil: datetime) -> datetime:
        tz = self._tzinfo
        if tz is None:
            return civil
        aware = civil.replace(tzinfo=tz)
        if isinstance(tz, ZoneInfo):
            # wall times skipped by a transition move forward; ambiguous ones take the first instant
            return aware.astimezone(timezone.utc).astimezone(tz)
        return aware

    # ---------------- iteration ----------------

    def __iter__(self) -> Iterator[datetime]:
        return self._generate()

    def _generate(self) -> Iterator[datetime]:
        rule, config = self.rule, self.config
        cap = config.max_occurrences
        if rule.count == 0 or (cap is not None and cap <= 0):
            return
        periods = self._coarse_periods() if self._freq < DAILY else self._fine_periods()
        emitted = 0
        idle = 0
        last: Optional[datetime] = None
        try:
            for candidates in periods:
                if not candidates:
                    idle += 1
                    if idle > config.max_idle_periods:
                        logger.debug("no candidate in %d periods, ending sequence", config.max_idle_periods)
                        return
                    continue
                idle = 0
                if rule.by_set_pos:
                    candidates = select_positions(candidates, rule.by_set_pos)
                resolved = sorted(self._resolve(c) for c in candidates if c >= self._start)
                for when in resolved:
                    if last is not None and when <= last:
                        continue
                    if rule.until is not None and when > rule.until:
                        return
                    yield when
                    last = when
                    emitted += 1
                    if rule.count is not None and emitted >= rule.count:
                        return
                    if cap is not None and emitted >= cap:
                        logger.debug("occurrence cap of %d reached, truncating", cap)
                        return
        except (OverflowError, ValueError):
            # walked past the last representable date
            logger.debug("date range exhausted after %d occurrences", emitted)
            return
