from datetime import datetime, timedelta
from typing import List
from zoneinfo import ZoneInfo

import pytest

from recurpyx import DAILY, GeneratorConfig, RuleSet, ValidationError, build_rule, rrulestr

ANCHOR = datetime(2024, 1, 1, 9, 0)

SETS = [
    (
        "rdate-and-exdate",
        "DTSTART:20240101T090000\nRRULE:FREQ=DAILY;COUNT=5\nEXDATE:20240103T090000\nRDATE:20240110T090000",
        ["2024-01-01", "2024-01-02", "2024-01-04", "2024-01-05", "2024-01-10"],
    ),
    (
        "exrule-weekends",
        "DTSTART:20240101T090000\nRRULE:FREQ=DAILY;COUNT=7\nEXRULE:FREQ=WEEKLY;BYDAY=SA,SU",
        ["2024-01-01", "2024-01-02", "2024-01-03", "2024-01-04", "2024-01-05"],
    ),
    (
        "overlapping-rules",
        "DTSTART:20240101T090000\nRRULE:FREQ=DAILY;COUNT=3\nRRULE:FREQ=DAILY;INTERVAL=2;COUNT=3",
        ["2024-01-01", "2024-01-02", "2024-01-03", "2024-01-05"],
    ),
    (
        "exdate-wins-over-rdate",
        "DTSTART:20240101T090000\nRRULE:FREQ=DAILY;COUNT=2\nRDATE:20240105T090000\nEXDATE:20240105T090000",
        ["2024-01-01", "2024-01-02"],
    ),
]


def _dates(values: List[datetime]) -> List[str]:
    return [when.date().isoformat() for when in values]


@pytest.mark.parametrize("name, text, expected", SETS, ids=[case[0] for case in SETS])
def test_ruleset(name: str, text: str, expected: List[str]) -> None:
    ruleset = rrulestr(text)
    assert isinstance(ruleset, RuleSet)
    got = _dates(ruleset.all())
    assert got == expected, f"\nSet:  {text}\nGot:  {got}\nExp:  {expected}"


@pytest.mark.parametrize("name, text, expected", SETS, ids=[case[0] for case in SETS])
def test_ruleset_text_round_trip(name: str, text: str, expected: List[str]) -> None:
    ruleset = rrulestr(text)
    again = rrulestr(str(ruleset))
    assert str(again) == str(ruleset)
    assert again.all() == ruleset.all()


def test_rdates_only() -> None:
    ruleset = RuleSet(rdates=[datetime(2024, 3, 1), datetime(2024, 1, 1), datetime(2024, 3, 1)])
    assert ruleset.all() == [datetime(2024, 1, 1), datetime(2024, 3, 1)]
    assert ruleset.after(datetime(2024, 1, 1)) == datetime(2024, 3, 1)


def test_forceset_wraps_single_rule() -> None:
    text = "DTSTART:20240101T090000\nRRULE:FREQ=DAILY;COUNT=2"
    ruleset = rrulestr(text, forceset=True)
    assert isinstance(ruleset, RuleSet)
    assert ruleset.all() == rrulestr(text).all()


def test_from_rule() -> None:
    rule = build_rule(DAILY, anchor=ANCHOR, count=3)
    assert RuleSet.from_rule(rule).all() == rule.all()


def test_mixed_awareness_is_rejected() -> None:
    with pytest.raises(ValidationError):
        RuleSet(rdates=[datetime(2024, 1, 1), datetime(2024, 1, 2, tzinfo=ZoneInfo("UTC"))])


def test_exdates_are_aligned_to_rule_zone() -> None:
    text = (
        "DTSTART;TZID=Europe/Paris:20240101T090000\n"
        "RRULE:FREQ=DAILY;COUNT=3\n"
        "EXDATE;TZID=Europe/Paris:20240102T090000"
    )
    got = rrulestr(text).all()
    assert _dates(got) == ["2024-01-01", "2024-01-03"]
    assert all(when.utcoffset().total_seconds() == 3600 for when in got)


def test_ruleset_cap() -> None:
    ruleset = RuleSet(rrules=[build_rule(DAILY, anchor=ANCHOR), build_rule(DAILY, anchor=ANCHOR.replace(hour=18))])
    assert len(ruleset.all(config=GeneratorConfig(max_occurrences=7))) == 7


def test_ruleset_between() -> None:
    ruleset = rrulestr(SETS[0][1])
    got = ruleset.between(datetime(2024, 1, 2), datetime(2024, 1, 31))
    assert _dates(got) == ["2024-01-02", "2024-01-04", "2024-01-05", "2024-01-10"]


def test_unbounded_exrule_keeps_excluding() -> None:
    # every Monday is also a day of the exrule, however far the set walks
    text = "DTSTART:20240101T090000\nRRULE:FREQ=WEEKLY;BYDAY=MO\nEXRULE:FREQ=DAILY"
    assert rrulestr(text).all(config=GeneratorConfig(max_idle_periods=200)) == []


def test_exclusions_past_component_cap() -> None:
    text = "DTSTART:20240101T090000\nRRULE:FREQ=DAILY;COUNT=1500\nEXRULE:FREQ=DAILY"
    assert rrulestr(text).all() == []


def test_exclusions_thinning_an_unbounded_rule() -> None:
    ruleset = rrulestr("DTSTART:20240101T090000\nRRULE:FREQ=DAILY\nEXRULE:FREQ=DAILY;INTERVAL=2")
    got = ruleset.all()
    assert len(got) == 1000
    assert got[0] == datetime(2024, 1, 2, 9)
    assert got[-1] == datetime(2024, 1, 2, 9) + timedelta(days=2 * 999)
