import pytest

from recurpyx import (
    FR, MO, SU, TU, WE,
    ConversionError, Frequency,
    convert_by_weekday, convert_frequency, convert_month, convert_weekday,
)


@pytest.mark.parametrize("token", ["Feb", "2", "February", "02", " feb ", "FEBRUARY"])
def test_month_forms_agree(token: str) -> None:
    assert convert_month(token) == 2


def test_legacy_march_spelling() -> None:
    assert convert_month("Ma") == 3


CONVERSION_ERRORS = [
    (convert_month, "Xyz", "month", "xyz"),
    (convert_month, "13", "month", "13"),
    (convert_weekday, "8", "weekday", "8"),
    (convert_weekday, "Mon", "weekday", "mon"),
    (convert_frequency, "week", "frequency", "week"),
    (convert_frequency, " Fortnightly ", "frequency", "fortnightly"),
    (convert_by_weekday, "1XX", "weekday", "1xx"),
    (convert_by_weekday, "-1 fr day", "weekday", "-1 fr day"),
]


@pytest.mark.parametrize(
    "convert, token, field, literal",
    CONVERSION_ERRORS,
    ids=[f"{case[0].__name__}({case[1]!r})" for case in CONVERSION_ERRORS],
)
def test_conversion_errors(convert, token: str, field: str, literal: str) -> None:
    with pytest.raises(ConversionError) as excinfo:
        convert(token)
    assert excinfo.value.field == field
    assert excinfo.value.literal == literal


@pytest.mark.parametrize("token", ["monday", "MO", "1", "01", " Mo ", "Monday"])
def test_weekday_forms_agree(token: str) -> None:
    assert convert_weekday(token) == MO


def test_sunday_is_seven() -> None:
    assert convert_weekday("7") == SU
    assert SU.day == 7


@pytest.mark.parametrize(
    "token, expected",
    [
        ("-1FR", FR(-1)),
        ("2tuesday", TU(2)),
        ("+3WE", WE(3)),
        ("-2 fr", FR(-2)),
        ("fr", FR),
        ("5", FR),
    ],
)
def test_by_weekday(token: str, expected) -> None:
    assert convert_by_weekday(token) == expected


@pytest.mark.parametrize("token", ["weekly", "WEEKLY", " Weekly "])
def test_frequency(token: str) -> None:
    assert convert_frequency(token) is Frequency.WEEKLY


def test_frequency_names_cover_all_codes() -> None:
    assert [convert_frequency(freq.name) for freq in Frequency] == list(Frequency)


@pytest.mark.parametrize("token, expected", [("07", SU), ("005", FR)])
def test_zero_padded_weekday_numbers(token: str, expected) -> None:
    assert convert_weekday(token) == expected
    assert convert_by_weekday(token) == expected
