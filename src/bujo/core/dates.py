"""Pure date helpers for month navigation, day input and date-directed bullets."""

import calendar
import re
from dataclasses import dataclass
from datetime import date

MONTH_NAMES = [
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
]
WEEKDAY_NAMES = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]

# "5.3.2024:", "05/03/24", "5.3" - day, 1-based month, optional year
DATE_PREFIX = re.compile(r"^(\d{1,2})[./](\d{1,2})[./]?(\d{4}|\d{2})?:?")


class InvalidInput(ValueError):
    """Raised when user-entered data cannot be used."""

    pass


@dataclass(frozen=True)
class DatePrefix:
    """A date parsed from the start of a bullet value."""

    day: int
    month_index: int
    year: int
    remainder: str


def days_in_month(year: int, month_index: int) -> int:
    """Number of days in a month. month_index is 0-based."""
    return calendar.monthrange(year, month_index + 1)[1]


def month_name(month_index: int) -> str:
    return MONTH_NAMES[month_index]


def previous_month(month_index: int, year: int) -> tuple[int, int]:
    if month_index == 0:
        return 11, year - 1
    return month_index - 1, year


def next_month(month_index: int, year: int) -> tuple[int, int]:
    if month_index == 11:
        return 0, year + 1
    return month_index + 1, year


def is_current_month(month_index: int, year: int, today: date) -> bool:
    return today.month - 1 == month_index and today.year == year


def format_day_header(day_of_month: int, month_index: int, year: int) -> str:
    """Header like '05.03.2024 Tue'."""
    weekday = date(year, month_index + 1, day_of_month).weekday()
    return f"{day_of_month:02d}.{month_index + 1:02d}.{year} {WEEKDAY_NAMES[weekday]}"


def validate_day_input(text: str, month_index: int, year: int) -> int:
    """
    Parse a day number typed by the user.

    Raises InvalidInput with a displayable message when the value is
    empty, not a number or outside the month.
    """
    text = text.strip()
    if not text:
        raise InvalidInput("Please enter a day")
    try:
        day = int(text)
    except ValueError:
        raise InvalidInput("Please enter a valid number") from None
    return validate_day(day, month_index, year)


def validate_day(day: int, month_index: int, year: int) -> int:
    if day <= 0:
        raise InvalidInput("The day has to be greater than 0")
    num_days = days_in_month(year, month_index)
    if day > num_days:
        raise InvalidInput(f"This month only has {num_days} days")
    return day


def parse_date_prefix(value: str, default_year: int) -> DatePrefix | None:
    """
    Parse a leading 'day.month[.year][:]' from a bullet value.

    Returns None when there is no prefix or it does not name a real date,
    in which case the value is plain content.
    """
    value = value.strip()
    match = DATE_PREFIX.match(value)
    if match is None:
        return None

    day = int(match.group(1))
    month = int(match.group(2))
    year_text = match.group(3)
    if year_text is None:
        year = default_year
    elif len(year_text) == 2:
        year = 2000 + int(year_text)
    else:
        year = int(year_text)

    if not 1 <= month <= 12:
        return None
    try:
        validate_day(day, month - 1, year)
    except InvalidInput:
        return None

    return DatePrefix(
        day=day,
        month_index=month - 1,
        year=year,
        remainder=value[match.end():].strip(),
    )


def mood_calendar_rows(month_index: int, year: int) -> list[list[int | None]]:
    """
    Six Monday-first weeks of day numbers for a mood grid.

    Cells outside the month are None.
    """
    first_weekday = date(year, month_index + 1, 1).weekday()
    num_days = days_in_month(year, month_index)
    rows = []
    for week in range(6):
        row = []
        for weekday in range(7):
            day = week * 7 + weekday - first_weekday + 1
            row.append(day if 1 <= day <= num_days else None)
        rows.append(row)
    return rows
