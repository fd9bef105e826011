# en.py
"""
EN <-> RecurrenceRule

Public API:
  - parse_text(text) -> RuleOptions
  - from_text(text, now=None) -> RecurrenceRule
  - to_text(rule) -> str
  - is_fully_convertible(rule) -> bool

Phrase repertoire (both directions):
  every [N|other] <second|minute|hour|day|week|month|year>[s]
  every weekday | every <weekday list>
    on <weekday list>              on Monday, Wednesday and Friday
    on the <ordinal list>          on the 1st and last day / on the 2nd last Friday
    in <month list>                in January and July
    at <hour list>                 at 9 and 17
    for N times
    until <date>                   until January 5, 2025

Notes:
- Suffix clauses are stripped from the end in any order.
- Rendering drops whatever the repertoire cannot say (year days, week
  numbers, minutes, seconds, other set positions); is_fully_convertible
  reports whether anything was dropped.
"""

from __future__ import annotations

import re
from datetime import datetime, time
from typing import List, Optional, Tuple

from dateutil.parser import ParserError, parse as parse_date

from .convert import convert_month, convert_weekday
from .errors import ConversionError, ParseError, ParseErrorKind
from .rule import (
    DAILY, FR, HOURLY, MINUTELY, MO, MONTH_NAMES, MONTHLY, SECONDLY, TH, TU, WE, WEEKLY, YEARLY,
    RecurrenceRule, RuleOptions, Weekday, normalize,
)

NOUNS = {
    YEARLY: "year",
    MONTHLY: "month",
    WEEKLY: "week",
    DAILY: "day",
    HOURLY: "hour",
    MINUTELY: "minute",
    SECONDLY: "second",
}
NOUN_MAP = {noun: freq for freq, noun in NOUNS.items()}

ORDINAL = {
    "first": 1,
    "second": 2,
    "third": 3,
    "fourth": 4,
    "fifth": 5,
}

WORKWEEK = (MO, TU, WE, TH, FR)

_LIST_SEP = re.compile(r"\s*,\s*(?:and\s+)?|\s+and\s+")
_ITEM_RE = re.compile(
    r"(?:(?P<num>\d+)(?:st|nd|rd|th)?|(?P<word>first|second|third|fourth|fifth))?\s*"
    r"(?P<last>last)?\s*(?P<rest>[a-z]*)"
)
_HEAD_RE = re.compile(r"every(?:\s+(\d+|other))?\s+([a-z]+?)s?")


def _unrecognized(fragment: str) -> ParseError:
    return ParseError(ParseErrorKind.UNRECOGNIZED, fragment)


# ------------------ rendering ------------------

def ordinal(n: int) -> str:
    if n == -1:
        return "last"
    if n < 0:
        return f"{ordinal(-n)} last"
    if 10 <= n % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"


def _join(items: List[str]) -> str:
    if len(items) == 1:
        return items[0]
    return ", ".join(items[:-1]) + " and " + items[-1]


def _render(rule: RecurrenceRule) -> Tuple[str, bool]:
    complete = True
    freq = rule.frequency
    weekdays = tuple(rule.by_weekday or ())
    set_pos = tuple(rule.by_set_pos or ())
    parts = ["every"]

    if freq == WEEKLY and rule.interval == 1 and weekdays == WORKWEEK and not set_pos:
        parts.append("weekday")
        weekdays = ()
    else:
        noun = NOUNS[freq]
        parts.append(noun if rule.interval == 1 else f"{rule.interval} {noun}s")

    if set_pos:
        if len(weekdays) == 1 and len(set_pos) == 1 and weekdays[0].n is None:
            parts.append(f"on the {ordinal(set_pos[0])} {weekdays[0].name}")
            weekdays = ()
        else:
            complete = False

    if weekdays:
        if any(wd.n is not None for wd in weekdays):
            names = [wd.name if wd.n is None else f"{ordinal(wd.n)} {wd.name}" for wd in weekdays]
            parts.append("on the " + _join(names))
        else:
            parts.append("on " + _join([wd.name for wd in weekdays]))

    if rule.by_month_day:
        days = [ordinal(d) if d > 0 else f"{ordinal(d)} day" for d in rule.by_month_day]
        parts.append("on the " + _join(days))

    if rule.by_month:
        parts.append("in " + _join([MONTH_NAMES[m - 1] for m in rule.by_month]))

    if rule.by_hour:
        if freq <= DAILY:
            parts.append("at " + _join([str(h) for h in rule.by_hour]))
        else:
            complete = False

    if rule.by_year_day or rule.by_week_no or rule.by_minute or rule.by_second:
        complete = False

    if rule.count is not None:
        parts.append(f"for {rule.count} time" + ("" if rule.count == 1 else "s"))
    elif rule.until is not None:
        until = rule.until
        stamp = f"{MONTH_NAMES[until.month - 1]} {until.day}, {until.year}"
        if until.time() != time():
            stamp += until.strftime(" %H:%M:%S")
        parts.append(f"until {stamp}")

    return " ".join(parts), complete


def to_text(rule: RecurrenceRule) -> str:
    return _render(rule)[0]


def is_fully_convertible(rule: RecurrenceRule) -> bool:
    return _render(rule)[1]


# ------------------ parsing ------------------

def _split_list(text: str) -> List[str]:
    return [item for item in _LIST_SEP.split(text.strip()) if item]


def _weekday_name(token: str) -> Weekday:
    try:
        return convert_weekday(token)
    except ConversionError:
        if token.endswith("s"):
            return convert_weekday(token[:-1])
        raise


def _on_items(text: str) -> Tuple[List[Weekday], List[int]]:
    weekdays: List[Weekday] = []
    month_days: List[int] = []
    for item in _split_list(text):
        m = _ITEM_RE.fullmatch(item)
        if not m:
            raise _unrecognized(item)
        n: Optional[int] = None
        if m.group("num"):
            n = int(m.group("num"))
        elif m.group("word"):
            n = ORDINAL[m.group("word")]
        if m.group("last"):
            n = -(n or 1)
        rest = m.group("rest")
        if rest in {"", "day"}:
            if n is None:
                raise _unrecognized(item)
            month_days.append(n)
            continue
        try:
            weekday = _weekday_name(rest)
        except ConversionError:
            raise _unrecognized(item) from None
        weekdays.append(weekday(n) if n is not None else weekday)
    return weekdays, month_days


def parse_text(text: str) -> RuleOptions:
    s = " ".join(text.strip().split()).lower().rstrip(".")
    options = RuleOptions()
    weekdays: List[Weekday] = []
    month_days: List[int] = []

    # ---- strip suffix clauses in ANY order (loop until nothing changes) ----
    while True:
        m = re.fullmatch(r"(.*)\s+for\s+(\d+)\s+times?", s)
        if m and options.count is None:
            options.count = int(m.group(2))
            s = m.group(1)
            continue

        m = re.fullmatch(r"(.*)\s+until\s+(.+)", s)
        if m and options.until is None:
            try:
                options.until = parse_date(m.group(2))
            except (ParserError, OverflowError):
                raise _unrecognized(m.group(2)) from None
            s = m.group(1)
            continue

        m = re.fullmatch(r"(.*)\s+at\s+(\d{1,2}(?:(?:\s*,\s*|\s+and\s+)\d{1,2})*)", s)
        if m and options.by_hour is None:
            options.by_hour = [int(h) for h in _split_list(m.group(2))]
            s = m.group(1)
            continue

        m = re.fullmatch(r"(.*)\s+in\s+([a-z]+(?:(?:\s*,\s*|\s+and\s+)[a-z]+)*)", s)
        if m and options.by_month is None:
            try:
                options.by_month = [convert_month(t) for t in _split_list(m.group(2))]
            except ConversionError as exc:
                raise _unrecognized(exc.literal) from None
            s = m.group(1)
            continue

        m = re.fullmatch(r"(.*)\s+on\s+(?:the\s+)?(.+)", s)
        if m:
            found_weekdays, found_days = _on_items(m.group(2))
            weekdays = found_weekdays + weekdays
            month_days = found_days + month_days
            s = m.group(1)
            continue

        break

    # ---- head: every [N|other] <noun> ----
    m = _HEAD_RE.fullmatch(s)
    if m and (m.group(2) in NOUN_MAP or m.group(2) == "weekday"):
        count = m.group(1)
        options.interval = 2 if count == "other" else int(count) if count else None
        if m.group(2) == "weekday":
            options.frequency = WEEKLY
            weekdays = list(WORKWEEK) + weekdays
        else:
            options.frequency = NOUN_MAP[m.group(2)]
    else:
        m = re.fullmatch(r"every\s+(.+)", s)
        if not m:
            raise _unrecognized(s)
        try:
            head_days = [_weekday_name(token) for token in _split_list(m.group(1))]
        except ConversionError:
            raise _unrecognized(s) from None
        options.frequency = WEEKLY
        weekdays = head_days + weekdays

    if weekdays:
        options.by_weekday = weekdays
    if month_days:
        options.by_month_day = month_days
    return options


def from_text(text: str, now: Optional[datetime] = None) -> RecurrenceRule:
    return normalize(parse_text(text), now=now)
