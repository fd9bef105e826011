import logging
from datetime import date, datetime
from typing import List

import pytest
from dateutil.rrule import rrulestr as reference_rrulestr

from recurpyx import (
    DAILY, FR, GRANULARITY, MO, MONTHLY, TU, WE, WEEKLY, YEARLY,
    Effect, Frequency, GeneratorConfig, build_rule, rrulestr,
)
from recurpyx.engine import select_positions, week_number
from recurpyx.rule import BY_FIELDS

CASES = [
    # --- Weekly ---
    (
        "DTSTART:20240102T000000\nRRULE:FREQ=WEEKLY;INTERVAL=2;BYDAY=TU;COUNT=3",
        ["2024-01-02T00:00:00", "2024-01-16T00:00:00", "2024-01-30T00:00:00"],
    ),
    (
        "DTSTART:20240103T000000\nRRULE:FREQ=WEEKLY;BYDAY=MO,WE,FR;COUNT=4",
        ["2024-01-03T00:00:00", "2024-01-05T00:00:00", "2024-01-08T00:00:00", "2024-01-10T00:00:00"],
    ),

    # --- Monthly ---
    (
        "DTSTART:20240101T000000\nRRULE:FREQ=MONTHLY;BYDAY=MO,TU,WE,TH,FR;BYSETPOS=-1;COUNT=3",
        ["2024-01-31T00:00:00", "2024-02-29T00:00:00", "2024-03-29T00:00:00"],
    ),
    (
        "DTSTART:20240131T000000\nRRULE:FREQ=MONTHLY;BYMONTHDAY=31;COUNT=3",
        ["2024-01-31T00:00:00", "2024-03-31T00:00:00", "2024-05-31T00:00:00"],
    ),
    (
        "DTSTART:20240101T000000\nRRULE:FREQ=MONTHLY;BYMONTHDAY=-1;COUNT=3",
        ["2024-01-31T00:00:00", "2024-02-29T00:00:00", "2024-03-31T00:00:00"],
    ),
    (
        "DTSTART:20240101T000000\nRRULE:FREQ=MONTHLY;BYDAY=-1FR;COUNT=2",
        ["2024-01-26T00:00:00", "2024-02-23T00:00:00"],
    ),

    # --- Yearly ---
    (
        "DTSTART:20240229T000000\nRRULE:FREQ=YEARLY;COUNT=2",
        ["2024-02-29T00:00:00", "2028-02-29T00:00:00"],
    ),
    (
        "DTSTART:20240115T000000\nRRULE:FREQ=YEARLY;BYMONTH=1,7;COUNT=3",
        ["2024-01-15T00:00:00", "2024-07-15T00:00:00", "2025-01-15T00:00:00"],
    ),
    (
        "DTSTART:20240101T000000\nRRULE:FREQ=YEARLY;BYDAY=20MO;COUNT=1",
        ["2024-05-13T00:00:00"],
    ),
    (
        "DTSTART:20240101T000000\nRRULE:FREQ=YEARLY;BYWEEKNO=1;BYDAY=MO;COUNT=2",
        ["2024-01-01T00:00:00", "2024-12-30T00:00:00"],
    ),
    (
        "DTSTART:20240101T000000\nRRULE:FREQ=YEARLY;BYYEARDAY=-1;COUNT=2",
        ["2024-12-31T00:00:00", "2025-12-31T00:00:00"],
    ),

    # --- Daily and finer ---
    (
        "DTSTART:20240101T090000\nRRULE:FREQ=DAILY;COUNT=3",
        ["2024-01-01T09:00:00", "2024-01-02T09:00:00", "2024-01-03T09:00:00"],
    ),
    (
        "DTSTART:20240101T090000\nRRULE:FREQ=DAILY;UNTIL=20240103T090000",
        ["2024-01-01T09:00:00", "2024-01-02T09:00:00", "2024-01-03T09:00:00"],
    ),
    (
        "DTSTART:20240101T100000\nRRULE:FREQ=DAILY;BYHOUR=9,17;COUNT=3",
        ["2024-01-01T17:00:00", "2024-01-02T09:00:00", "2024-01-02T17:00:00"],
    ),
    (
        "DTSTART:20240101T000000\nRRULE:FREQ=HOURLY;INTERVAL=6;COUNT=4",
        ["2024-01-01T00:00:00", "2024-01-01T06:00:00", "2024-01-01T12:00:00", "2024-01-01T18:00:00"],
    ),
    (
        "DTSTART:20240101T085000\nRRULE:FREQ=MINUTELY;INTERVAL=15;BYHOUR=9;COUNT=3",
        ["2024-01-01T09:05:00", "2024-01-01T09:20:00", "2024-01-01T09:35:00"],
    ),
]

DST_CASES = [
    # skipped wall time moves forward
    (
        "DTSTART;TZID=America/New_York:20240309T023000\nRRULE:FREQ=DAILY;COUNT=3",
        ["2024-03-09T02:30:00-05:00", "2024-03-10T03:30:00-04:00", "2024-03-11T02:30:00-04:00"],
    ),
    # ambiguous wall time takes the first instant
    (
        "DTSTART;TZID=America/New_York:20241102T013000\nRRULE:FREQ=DAILY;COUNT=2",
        ["2024-11-02T01:30:00-04:00", "2024-11-03T01:30:00-04:00"],
    ),
    # an hourly walk never repeats an instant across the gap
    (
        "DTSTART;TZID=America/New_York:20240310T000000\nRRULE:FREQ=HOURLY;COUNT=4",
        [
            "2024-03-10T00:00:00-05:00",
            "2024-03-10T01:00:00-05:00",
            "2024-03-10T03:00:00-04:00",
            "2024-03-10T04:00:00-04:00",
        ],
    ),
]

ANCHOR = datetime(2024, 1, 1, 9, 0)


def _assert_occurrences(rule_text: str, expected: List[str]) -> None:
    got = [when.isoformat() for when in rrulestr(rule_text).all()]
    assert got == expected, f"\nRule: {rule_text}\nGot:  {got}\nExp:  {expected}"


@pytest.mark.parametrize("rule_text, expected", CASES, ids=[case[0].split("RRULE:")[1] for case in CASES])
def test_occurrences(rule_text: str, expected: List[str]) -> None:
    _assert_occurrences(rule_text, expected)


@pytest.mark.parametrize("rule_text, expected", DST_CASES, ids=[case[0] for case in DST_CASES])
def test_occurrences_across_dst(rule_text: str, expected: List[str]) -> None:
    _assert_occurrences(rule_text, expected)


@pytest.mark.parametrize("rule_text", [case[0] for case in CASES], ids=[case[0].split("RRULE:")[1] for case in CASES])
def test_matches_dateutil(rule_text: str) -> None:
    assert rrulestr(rule_text).all() == list(reference_rrulestr(rule_text))


# ------------------ granularity table ------------------

def test_granularity_table_covers_every_cell() -> None:
    fields = [name for name in BY_FIELDS if name != "by_set_pos"]
    assert set(GRANULARITY) == {(freq, name) for freq in Frequency for name in fields}


@pytest.mark.parametrize(
    "freq, name, effect",
    [
        (YEARLY, "by_month", Effect.EXPAND),
        (MONTHLY, "by_month", Effect.LIMIT),
        (MONTHLY, "by_weekday", Effect.EXPAND),
        (WEEKLY, "by_month_day", Effect.IGNORE),
        (DAILY, "by_weekday", Effect.LIMIT),
        (DAILY, "by_hour", Effect.EXPAND),
        (Frequency.HOURLY, "by_hour", Effect.LIMIT),
        (Frequency.HOURLY, "by_year_day", Effect.LIMIT),
        (Frequency.SECONDLY, "by_second", Effect.LIMIT),
    ],
)
def test_granularity(freq: Frequency, name: str, effect: Effect) -> None:
    assert GRANULARITY[(freq, name)] is effect


def test_limiting_weekday_on_daily_rule() -> None:
    rule = build_rule(DAILY, anchor=ANCHOR, by_weekday=[TU, FR], count=3)
    assert [when.date() for when in rule.all()] == [date(2024, 1, 2), date(2024, 1, 5), date(2024, 1, 9)]


def test_nth_modifier_below_monthly_is_plain_weekday() -> None:
    rule = build_rule(WEEKLY, anchor=ANCHOR, by_weekday=[FR(-1)], count=2)
    assert [when.date() for when in rule.all()] == [date(2024, 1, 5), date(2024, 1, 12)]


# ------------------ set positions ------------------

def test_set_position_from_the_end_matches_from_the_start() -> None:
    candidates = [datetime(2024, 1, day) for day in range(1, 6)]
    assert select_positions(candidates, [-1]) == select_positions(candidates, [5]) == [candidates[-1]]
    assert select_positions(candidates, [1, -1]) == [candidates[0], candidates[-1]]
    assert select_positions(candidates, [6]) == []


def test_week_number() -> None:
    assert week_number(date(2024, 12, 30)) == (1, 52)
    assert week_number(date(2021, 1, 1)) == (53, 53)
    assert week_number(date(2024, 1, 1)) == (1, 52)


# ------------------ termination ------------------

def test_count_zero_is_empty() -> None:
    assert build_rule(DAILY, anchor=ANCHOR, count=0).all() == []


def test_occurrence_cap(caplog: pytest.LogCaptureFixture) -> None:
    rule = build_rule(DAILY, anchor=ANCHOR)
    with caplog.at_level(logging.DEBUG, logger="recurpyx.engine"):
        got = rule.all(config=GeneratorConfig(max_occurrences=5))
    assert len(got) == 5
    assert "occurrence cap of 5 reached" in caplog.text


def test_default_cap_bounds_unbounded_rules() -> None:
    assert len(build_rule(Frequency.SECONDLY, anchor=ANCHOR).all()) == 1000


def test_impossible_rule_ends() -> None:
    rule = build_rule(YEARLY, anchor=ANCHOR, by_month=[2], by_month_day=[30])
    assert rule.all(config=GeneratorConfig(max_idle_periods=20)) == []


def test_stop_predicate_excludes_and_ends() -> None:
    rule = build_rule(DAILY, anchor=ANCHOR)
    assert len(rule.all(lambda when, i: i < 2)) == 2
    got = rule.all(lambda when, i: when < datetime(2024, 1, 4))
    assert got == [datetime(2024, 1, day, 9) for day in (1, 2, 3)]


def test_sequence_is_restartable() -> None:
    rule = build_rule(WEEKLY, anchor=ANCHOR, by_weekday=[MO, WE], count=4)
    assert list(rule) == list(rule) == rule.all()


def test_ascending_and_unique() -> None:
    rule = build_rule(MONTHLY, anchor=ANCHOR, by_month_day=[1, 15, -1], by_hour=[9, 18], count=60)
    got = rule.all()
    assert len(got) == 60
    assert all(a < b for a, b in zip(got, got[1:]))


def test_uncapped_config() -> None:
    rule = build_rule(DAILY, anchor=ANCHOR, count=1500)
    assert len(rule.all(config=GeneratorConfig(max_occurrences=None))) == 1500
