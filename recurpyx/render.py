# render.py
"""
RecurrenceRule / RuleSet -> RRULE text

Fields are always emitted in the same order so that rendering, parsing and
rendering again is stable:
  FREQ, INTERVAL (!= 1), COUNT | UNTIL, WKST (!= MO),
  BYSETPOS, BYMONTH, BYMONTHDAY, BYYEARDAY, BYWEEKNO, BYDAY, BYHOUR, BYMINUTE, BYSECOND
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Iterable, List

from .rule import WEEKDAY_CODES, RecurrenceRule

if TYPE_CHECKING:
    from .ruleset import RuleSet

_BY_KEYS = (
    ("BYSETPOS", "by_set_pos"),
    ("BYMONTH", "by_month"),
    ("BYMONTHDAY", "by_month_day"),
    ("BYYEARDAY", "by_year_day"),
    ("BYWEEKNO", "by_week_no"),
    ("BYDAY", "by_weekday"),
    ("BYHOUR", "by_hour"),
    ("BYMINUTE", "by_minute"),
    ("BYSECOND", "by_second"),
)


def _civil(when: datetime) -> str:
    return (
        f"{when.year:04d}{when.month:02d}{when.day:02d}"
        f"T{when.hour:02d}{when.minute:02d}{when.second:02d}"
    )


def format_stamp(when: datetime) -> str:
    """Floating stamps stay as-is; aware stamps are written in UTC."""
    if when.tzinfo is None:
        return _civil(when)
    return _civil(when.astimezone(timezone.utc)) + "Z"


def dtstart_line(rule: RecurrenceRule) -> str:
    if rule.timezone:
        return f"DTSTART;TZID={rule.timezone}:{_civil(rule.anchor)}"
    return f"DTSTART:{format_stamp(rule.anchor)}"


def rule_body(rule: RecurrenceRule) -> str:
    parts = [f"FREQ={rule.frequency.name}"]
    if rule.interval != 1:
        parts.append(f"INTERVAL={rule.interval}")
    if rule.count is not None:
        parts.append(f"COUNT={rule.count}")
    elif rule.until is not None:
        parts.append(f"UNTIL={format_stamp(rule.until)}")
    if rule.week_start != 1:
        parts.append(f"WKST={WEEKDAY_CODES[rule.week_start - 1]}")
    for key, name in _BY_KEYS:
        values = getattr(rule, name)
        if values:
            parts.append(f"{key}={','.join(str(v) for v in values)}")
    return ";".join(parts)


def to_string(rule: RecurrenceRule) -> str:
    return f"{dtstart_line(rule)}\nRRULE:{rule_body(rule)}"


def _stamps(name: str, stamps: Iterable[datetime]) -> List[str]:
    stamps = sorted(stamps)
    if not stamps:
        return []
    return [f"{name}:{','.join(format_stamp(s) for s in stamps)}"]


def ruleset_to_string(ruleset: "RuleSet") -> str:
    """All rules are written under the first rule's DTSTART."""
    lines: List[str] = []
    rules = ruleset.rrules + ruleset.exrules
    if rules:
        lines.append(dtstart_line(rules[0]))
    lines.extend(f"RRULE:{rule_body(rule)}" for rule in ruleset.rrules)
    lines.extend(f"EXRULE:{rule_body(rule)}" for rule in ruleset.exrules)
    lines.extend(_stamps("RDATE", ruleset.rdates))
    lines.extend(_stamps("EXDATE", ruleset.exdates))
    return "\n".join(lines)
