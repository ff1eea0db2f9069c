import datetime

import pytest

from era_converter import (
    UNSET_ERA_DATE,
    EraDate,
    era_from_date,
    format_era_date,
    format_era_period,
    to_era,
    to_gregorian,
)


@pytest.mark.parametrize("ymd, expected", [
    ((2019, 4, 30), EraDate("平成", 31, 4, 30)),
    ((2019, 5, 1), EraDate("令和", 1, 5, 1)),
    ((1989, 1, 8), EraDate("平成", 1, 1, 8)),
    ((1989, 1, 7), EraDate("昭和", 64, 1, 7)),
    ((2025, 4, 1), EraDate("令和", 7, 4, 1)),
])
def test_era_boundaries(ymd, expected):
    assert to_era(*ymd) == expected


def test_romaji_names():
    assert to_era(2025, 4, 1).romaji == "Reiwa"
    assert to_era(2000, 1, 1).romaji == "Heisei"
    assert to_era(1980, 1, 1).romaji == "Showa"


@pytest.mark.parametrize("ymd", [(2025, 2, 30), (None, 1, 1), ("abc", 1, 1), (2025, 13, 1)])
def test_invalid_input_returns_unset(ymd):
    result = to_era(*ymd)
    assert result == UNSET_ERA_DATE
    assert result.era == "令和"
    assert (result.era_year, result.month, result.day) == ("", "", "")
    assert result.is_unset


def test_round_trip_after_heisei_start():
    """Every sampled date after 1989-01-08 converts back to itself."""
    day = datetime.date(1989, 1, 9)
    last = datetime.date(2026, 1, 1)
    while day < last:
        assert to_gregorian(*to_era(day.year, day.month, day.day)) == day
        day += datetime.timedelta(days=37)


def test_to_gregorian_accepts_romaji():
    assert to_gregorian("Reiwa", 7, 4, 1) == datetime.date(2025, 4, 1)
    assert to_gregorian("平成", 31, 4, 30) == datetime.date(2019, 4, 30)


def test_to_gregorian_unknown_era():
    with pytest.raises(ValueError):
        to_gregorian("大正", 1, 1, 1)


def test_era_from_date_accepts_strings_and_datetimes():
    assert era_from_date("2025-04-01") == EraDate("令和", 7, 4, 1)
    assert era_from_date("2025-04-01T09:30:00") == EraDate("令和", 7, 4, 1)
    assert era_from_date(datetime.datetime(2019, 5, 1, 12)) == EraDate("令和", 1, 5, 1)
    assert era_from_date(None).is_unset
    assert era_from_date("not a date").is_unset


def test_format_era_date():
    assert format_era_date(datetime.date(2025, 4, 1)) == "令和7年4月1日"
    assert format_era_date("2019-04-30") == "平成31年4月30日"
    assert format_era_date(None) == ""


def test_format_era_period():
    assert format_era_period("2025-03-25", "2025-03-31") == "令和7年3月25日 〜 令和7年3月31日"
    assert format_era_period("2025-03-25", None) == ""
