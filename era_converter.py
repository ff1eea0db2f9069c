import datetime
import logging
from typing import Any, NamedTuple, Union

# (era, first day, offset subtracted from the Gregorian year), newest first
ERA_TABLE = [
    ("令和", datetime.date(2019, 5, 1), 2018),
    ("平成", datetime.date(1989, 1, 8), 1988),
    ("昭和", datetime.date.min, 1925),
]

ERA_ROMAJI = {
    "令和": "Reiwa",
    "平成": "Heisei",
    "昭和": "Showa",
}


class EraDate(NamedTuple):
    era: str
    era_year: Union[int, str]
    month: Union[int, str]
    day: Union[int, str]

    @property
    def romaji(self) -> str:
        return ERA_ROMAJI.get(self.era, self.era)

    @property
    def is_unset(self) -> bool:
        return self.era_year == ""


UNSET_ERA_DATE = EraDate("令和", "", "", "")


def to_era(year: Any, month: Any, day: Any) -> EraDate:
    """
    Converts a Gregorian date to its Japanese era form.

    Args:
        year: Gregorian year.
        month: 1-based month.
        day: Day of month.

    Returns:
        EraDate(era, era_year, month, day). Input that is not a real calendar
        date returns UNSET_ERA_DATE so the caller can still render blank cells.
    """
    try:
        target = datetime.date(int(year), int(month), int(day))
    except (TypeError, ValueError) as e:
        logging.debug(f"[era_converter.to_era] Unset era date for ({year!r}, {month!r}, {day!r}): {e}")
        return UNSET_ERA_DATE

    for era, start, offset in ERA_TABLE:
        if target >= start:
            return EraDate(era, target.year - offset, target.month, target.day)
    return UNSET_ERA_DATE


def parse_date(value: Any) -> Union[datetime.date, None]:
    """Accepts date, datetime or an ISO 'YYYY-MM-DD[...]' string. Returns None when unparsable."""
    if value is None:
        return None
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return datetime.date.fromisoformat(text[:10])
    except ValueError:
        logging.debug(f"[era_converter.parse_date] Could not parse date '{text}'.")
        return None


def era_from_date(value: Any) -> EraDate:
    parsed = parse_date(value)
    if parsed is None:
        return UNSET_ERA_DATE
    return to_era(parsed.year, parsed.month, parsed.day)


def format_era_date(value: Any) -> str:
    """Renders a date as e.g. '令和7年4月1日', or '' when the date is missing."""
    era_date = era_from_date(value)
    if era_date.is_unset:
        return ""
    return f"{era_date.era}{era_date.era_year}年{era_date.month}月{era_date.day}日"


def format_era_period(start: Any, end: Any) -> str:
    if parse_date(start) is None or parse_date(end) is None:
        return ""
    return f"{format_era_date(start)} 〜 {format_era_date(end)}"


def to_gregorian(era: str, era_year: int, month: int, day: int) -> datetime.date:
    """Inverse of to_era. Accepts the kanji or romaji era name."""
    names = {romaji: kanji for kanji, romaji in ERA_ROMAJI.items()}
    kanji = names.get(era, era)
    for name, _start, offset in ERA_TABLE:
        if name == kanji:
            return datetime.date(int(era_year) + offset, int(month), int(day))
    raise ValueError(f"Unknown era '{era}'")
