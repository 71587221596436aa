"""
Date parsing and the textual forms a calendar or date field displays.
"""

import re
from datetime import date, datetime
from typing import Optional, Pattern, Tuple, Union

from uciforms.core.types import CalendarCursor
from uciforms.error_handling.exceptions import UnparsableDateError

TargetDate = Union[str, date, datetime]

DAY_FIRST = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
YEAR_FIRST = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")
HEADING = re.compile(r"\b([A-Za-z]{3,})\.?\s+(\d{4})")

# English month names as rendered by en-AU tenants.
MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)
MONTH_ABBREVIATIONS = tuple(name[:3] for name in MONTH_NAMES)


def parse_target_date(raw: TargetDate) -> date:
    """
    Parse ``dd/MM/yyyy``, ``yyyy-MM-dd`` or a date/datetime value.

    Raises:
        UnparsableDateError: Anything else, including impossible dates
    """
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    if not isinstance(raw, str):
        raise UnparsableDateError(raw)

    text = raw.strip()
    day_first = DAY_FIRST.match(text)
    year_first = YEAR_FIRST.match(text)
    try:
        if day_first:
            day, month, year = (int(part) for part in day_first.groups())
            return date(year, month, day)
        if year_first:
            year, month, day = (int(part) for part in year_first.groups())
            return date(year, month, day)
    except ValueError as exc:
        raise UnparsableDateError(raw, cause=exc) from exc
    raise UnparsableDateError(raw)


def format_date_layouts(target: date) -> Tuple[str, str]:
    """The two accepted layouts: day-first and year-first, zero-padded."""
    return target.strftime("%d/%m/%Y"), target.strftime("%Y-%m-%d")


def date_readback_pattern(target: date) -> Pattern[str]:
    """Pattern accepting a displayed value in either layout."""
    day_first, year_first = format_date_layouts(target)
    return re.compile(f"{re.escape(day_first)}|{re.escape(year_first)}")


def month_year_texts(year: int, month: int) -> Tuple[str, str]:
    """Long and abbreviated heading forms, e.g. ``September 2025`` and ``Sep 2025``."""
    return f"{MONTH_NAMES[month - 1]} {year}", f"{MONTH_ABBREVIATIONS[month - 1]} {year}"


def month_number(token: str) -> Optional[int]:
    """Month number for a long or abbreviated English month name."""
    prefix = token[:3].lower()
    for index, abbreviation in enumerate(MONTH_ABBREVIATIONS, start=1):
        if abbreviation.lower() == prefix:
            return index
    return None


def parse_heading(text: Optional[str]) -> Optional[CalendarCursor]:
    """Displayed month and year from a calendar heading, if recognizable."""
    if not text:
        return None
    match = HEADING.search(text)
    if not match:
        return None
    month = month_number(match.group(1))
    if month is None:
        return None
    return CalendarCursor(year=int(match.group(2)), month=month)


def heading_shows(text: Optional[str], target: date) -> bool:
    """Whether a heading already displays the target month, in either form."""
    if not text:
        return False
    lowered = text.lower()
    return any(
        form.lower() in lowered for form in month_year_texts(target.year, target.month)
    )


def month_distance(current: CalendarCursor, target: date) -> int:
    """Signed month hops from the displayed month to the target's month."""
    return current.months_until(target.year, target.month)
