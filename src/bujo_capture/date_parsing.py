"""Multi-format parsing of handwritten and provider-supplied date strings.

Each family is tried in order and the first family that yields a valid date
wins. Numeric formats live in ordered tables of (pattern, field order) rows;
a row only matches when rebuilding the date from its fields gives back the
same day, month and year. Ambiguous numeric dates such as ``03/04/2025`` are
therefore decided by table order (month-first rows come first).
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Callable, Optional, Sequence, Tuple

import pendulum

MIN_YEAR = 1900
MAX_YEAR = 2100

FieldOrder = Tuple[str, str, str]

_NULL_STRINGS = {"", "null", "none", "nil", "n/a", "na", "undefined", "unknown", "-"}

MONTHS = {
    "january": 1,
    "february": 2,
    "march": 3,
    "april": 4,
    "may": 5,
    "june": 6,
    "july": 7,
    "august": 8,
    "september": 9,
    "october": 10,
    "november": 11,
    "december": 12,
}
MONTH_ABBREVIATIONS = {name[:3]: number for name, number in MONTHS.items()}
MONTH_ABBREVIATIONS["sept"] = 9

WEEKDAYS = {
    "monday": 0,
    "tuesday": 1,
    "wednesday": 2,
    "thursday": 3,
    "friday": 4,
    "saturday": 5,
    "sunday": 6,
}
WEEKDAY_ABBREVIATIONS = {
    "mon": 0,
    "tue": 1,
    "tues": 1,
    "wed": 2,
    "thu": 3,
    "thur": 3,
    "thurs": 3,
    "fri": 4,
    "sat": 5,
    "sun": 6,
}

RELATIVE_DAYS = {"today": 0, "tonight": 0, "yesterday": -1, "tomorrow": 1}


@dataclass(frozen=True)
class DateFormat:
    """One numeric layout: a regex with three groups and the order of the fields."""

    name: str
    pattern: re.Pattern[str]
    order: FieldOrder

    def parse(self, text: str) -> Optional[date]:
        match = self.pattern.fullmatch(text)
        if match is None:
            return None
        parts = dict(zip(self.order, match.groups()))
        year = _expand_year(parts["year"])
        month = int(parts["month"])
        day = int(parts["day"])
        return build_date(year, month, day)


def _expand_year(raw: str) -> int:
    year = int(raw)
    if len(raw) <= 2:
        year += 2000
    return year


def build_date(year: int, month: int, day: int) -> Optional[date]:
    """Return the date only when it exists and survives reconstruction."""

    if not MIN_YEAR <= year <= MAX_YEAR:
        return None
    try:
        value = date(year, month, day)
    except ValueError:
        return None
    if (value.year, value.month, value.day) != (year, month, day):
        return None
    return value


def _numeric(name: str, regex: str, order: FieldOrder) -> DateFormat:
    return DateFormat(name=name, pattern=re.compile(regex), order=order)


_SEP = r"[/\-.]"

DELIMITED_FORMATS: Tuple[DateFormat, ...] = (
    _numeric("MM/DD/YYYY", rf"(\d{{1,2}}){_SEP}(\d{{1,2}}){_SEP}(\d{{4}})", ("month", "day", "year")),
    _numeric("DD/MM/YYYY", rf"(\d{{1,2}}){_SEP}(\d{{1,2}}){_SEP}(\d{{4}})", ("day", "month", "year")),
    _numeric("YYYY/MM/DD", rf"(\d{{4}}){_SEP}(\d{{1,2}}){_SEP}(\d{{1,2}})", ("year", "month", "day")),
    _numeric("MM/DD/YY", rf"(\d{{1,2}}){_SEP}(\d{{1,2}}){_SEP}(\d{{2}})", ("month", "day", "year")),
    _numeric("DD/MM/YY", rf"(\d{{1,2}}){_SEP}(\d{{1,2}}){_SEP}(\d{{2}})", ("day", "month", "year")),
)

CONCATENATED_FORMATS: Tuple[DateFormat, ...] = (
    _numeric("YYYYMMDD", r"(\d{4})(\d{2})(\d{2})", ("year", "month", "day")),
    _numeric("MMDDYYYY", r"(\d{2})(\d{2})(\d{4})", ("month", "day", "year")),
    _numeric("DDMMYYYY", r"(\d{2})(\d{2})(\d{4})", ("day", "month", "year")),
    _numeric("MMDDYY", r"(\d{2})(\d{2})(\d{2})", ("month", "day", "year")),
    _numeric("DDMMYY", r"(\d{2})(\d{2})(\d{2})", ("day", "month", "year")),
)

_ISO_PATTERN = re.compile(r"(\d{4})-(\d{2})-(\d{2})(?:[T ][\d:.]+(?:Z|[+-]\d{2}:?\d{2})?)?")
_ORDINAL = r"(\d{1,2})(?:st|nd|rd|th)?"
_MONTH_WORD = r"([a-z]+)\.?"
_MONTH_DAY = re.compile(rf"{_MONTH_WORD}\s+{_ORDINAL}(?:,?\s+(\d{{4}}))?")
_DAY_MONTH = re.compile(rf"{_ORDINAL}(?:\s+of)?\s+{_MONTH_WORD}(?:,?\s+(\d{{4}}))?")
_WEEKDAY = re.compile(r"(?:(?:this|next|on)\s+)?([a-z]+)\.?")


def is_null_date(value: Any) -> bool:
    """True for values that only stand in for a missing date."""

    if value is None:
        return True
    if isinstance(value, str):
        return value.strip().lower() in _NULL_STRINGS
    return False


def parse_iso(text: str, today: date) -> Optional[date]:
    match = _ISO_PATTERN.fullmatch(text)
    if match is None:
        return None
    year, month, day = (int(part) for part in match.groups())
    return build_date(year, month, day)


def _first_of(formats: Sequence[DateFormat]) -> Callable[[str, date], Optional[date]]:
    def _parse(text: str, today: date) -> Optional[date]:
        for fmt in formats:
            value = fmt.parse(text)
            if value is not None:
                return value
        return None

    return _parse


parse_delimited = _first_of(DELIMITED_FORMATS)
parse_concatenated = _first_of(CONCATENATED_FORMATS)


def parse_relative(text: str, today: date) -> Optional[date]:
    offset = RELATIVE_DAYS.get(text.lower())
    if offset is None:
        return None
    return today + timedelta(days=offset)


def parse_weekday(text: str, today: date) -> Optional[date]:
    """Next occurrence of the named weekday, today included."""

    match = _WEEKDAY.fullmatch(text.lower())
    if match is None:
        return None
    name = match.group(1)
    target = WEEKDAYS.get(name, WEEKDAY_ABBREVIATIONS.get(name))
    if target is None:
        return None
    return today + timedelta(days=(target - today.weekday()) % 7)


def _month_number(word: str) -> Optional[int]:
    word = word.lower()
    if word in MONTHS:
        return MONTHS[word]
    return MONTH_ABBREVIATIONS.get(word)


def parse_month_day(text: str, today: date, *, roll_forward: bool = True) -> Optional[date]:
    """``March 15``, ``15th of March``, ``Mar 15, 2025``.

    Without a year the date lands in the current year, or next year once it
    has already passed. ``roll_forward=False`` keeps it in the current year.
    """

    lowered = text.lower()
    match = _MONTH_DAY.fullmatch(lowered)
    if match is not None:
        month_word, day_raw, year_raw = match.groups()
    else:
        match = _DAY_MONTH.fullmatch(lowered)
        if match is None:
            return None
        day_raw, month_word, year_raw = match.groups()

    month = _month_number(month_word)
    if month is None:
        return None
    day = int(day_raw)
    if year_raw:
        return build_date(int(year_raw), month, day)

    value = build_date(today.year, month, day)
    if not roll_forward:
        return value
    if value is None:
        # Feb 29 outside a leap year still belongs to the next one that has it.
        return build_date(today.year + 1, month, day)
    if value < today:
        return build_date(today.year + 1, month, day)
    return value


def parse_free_form(text: str, today: date) -> Optional[date]:
    try:
        parsed = pendulum.parse(text, strict=False)
    except (ValueError, TypeError, OverflowError):
        return None
    if isinstance(parsed, datetime):
        return build_date(parsed.year, parsed.month, parsed.day)
    if isinstance(parsed, date):
        return build_date(parsed.year, parsed.month, parsed.day)
    return None


DATE_PARSERS: Tuple[Tuple[str, Callable[[str, date], Optional[date]]], ...] = (
    ("iso", parse_iso),
    ("delimited", parse_delimited),
    ("concatenated", parse_concatenated),
    ("relative", parse_relative),
    ("weekday", parse_weekday),
    ("month_day", parse_month_day),
    ("free_form", parse_free_form),
)


def parse_date_value(value: Any, *, today: date) -> Optional[date]:
    """Parse strings, dates and datetimes; anything unusable yields None."""

    if is_null_date(value):
        return None
    if isinstance(value, datetime):
        return build_date(value.year, value.month, value.day)
    if isinstance(value, date):
        return build_date(value.year, value.month, value.day)
    if not isinstance(value, str):
        return None

    text = " ".join(value.split())
    for _, parser in DATE_PARSERS:
        result = parser(text, today)
        if result is not None:
            return result
    return None


def format_date(value: date) -> str:
    return value.isoformat()


__all__ = [
    "MIN_YEAR",
    "MAX_YEAR",
    "DateFormat",
    "DELIMITED_FORMATS",
    "CONCATENATED_FORMATS",
    "DATE_PARSERS",
    "build_date",
    "is_null_date",
    "parse_iso",
    "parse_delimited",
    "parse_concatenated",
    "parse_relative",
    "parse_weekday",
    "parse_month_day",
    "parse_free_form",
    "parse_date_value",
    "format_date",
]
