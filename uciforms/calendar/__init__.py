"""
Date parsing and calendar popup navigation.
"""

from uciforms.calendar.dates import (
    MONTH_NAMES,
    date_readback_pattern,
    format_date_layouts,
    heading_shows,
    month_distance,
    month_year_texts,
    parse_heading,
    parse_target_date,
)
from uciforms.calendar.navigator import CalendarNavigator

__all__ = [
    "MONTH_NAMES",
    "CalendarNavigator",
    "date_readback_pattern",
    "format_date_layouts",
    "heading_shows",
    "month_distance",
    "month_year_texts",
    "parse_heading",
    "parse_target_date",
]
