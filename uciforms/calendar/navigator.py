"""
Calendar popup navigation.

The popup's rendered heading is re-read on every hop: a click can fail
silently or re-render late, so local bookkeeping is never trusted.
"""

import re
from datetime import date
from typing import Optional, Tuple

from uciforms.config.settings import get_settings
from uciforms.core.interfaces import Handle, UIDriver
from uciforms.core.types import CalendarCursor
from uciforms.error_handling.exceptions import OptionNotFoundError
from uciforms.monitoring.logger import get_logger
from uciforms.selection.actions import activate, read_text_or_none
from uciforms.calendar.dates import (
    heading_shows,
    month_distance,
    month_year_texts,
    parse_heading,
)

NEXT_MONTH = re.compile(r"next\s+month", re.IGNORECASE)
PREVIOUS_MONTH = re.compile(r"previous\s+month", re.IGNORECASE)


class CalendarNavigator:
    """Walks an open calendar popup to a month and picks the day."""

    def __init__(self, driver: UIDriver) -> None:
        self.driver = driver
        self.settings = get_settings()
        self.logger = get_logger("calendar.navigator")

    def popup(self) -> Handle:
        """Handle for the open calendar: a dialog that contains a grid."""
        return self.driver.query("dialog", has=self.driver.query("grid"))

    async def read_heading(self, popup: Handle) -> Tuple[str, Optional[CalendarCursor]]:
        """Current heading text and the month it shows."""
        heading = self.driver.query("heading", within=popup)
        text = (await read_text_or_none(self.driver, heading) or "").strip()
        return text, parse_heading(text)

    def hop_plan(self, cursor: Optional[CalendarCursor], target: date) -> Tuple[int, bool]:
        """
        Hop budget and direction for reaching the target month.

        Returns:
            (budget, forward); an unknown cursor gets a large budget and
            an optimistic forward direction
        """
        if cursor is None:
            return self.settings.calendar_unknown_hop_budget, True
        diff = month_distance(cursor, target)
        return abs(diff) + self.settings.calendar_safety_margin, diff > 0

    async def navigate(self, popup: Handle, target: date, label: str = "calendar") -> int:
        """
        Move the popup to the target month.

        Returns:
            Number of month hops performed

        Raises:
            OptionNotFoundError: The month was not reached within the hop budget
        """
        text, cursor = await self.read_heading(popup)
        budget, forward = self.hop_plan(cursor, target)

        hops = 0
        while not heading_shows(text, target):
            if hops >= budget:
                long_form, _ = month_year_texts(target.year, target.month)
                raise OptionNotFoundError(label, long_form, stage="calendar_month")
            await self._step(popup, forward)
            hops += 1
            text, _ = await self.read_heading(popup)

        self.logger.debug(
            "Calendar at target month",
            extra={"label": label, "hops": hops, "forward": forward},
        )
        return hops

    async def _step(self, popup: Handle, forward: bool) -> None:
        button = self.driver.query("button", NEXT_MONTH if forward else PREVIOUS_MONTH, within=popup)
        if await self.driver.count(button):
            await self.driver.click(button)
        else:
            await self.driver.press_key(popup, "PageDown" if forward else "PageUp")

    async def pick_day(self, popup: Handle, target: date, label: str = "calendar") -> None:
        """
        Activate the day cell whose text is exactly the day number.

        Exact only: "1" must never pick "10" to "19".
        """
        day = re.compile(f"^{target.day}$")
        probe_ms = self.settings.option_probe_timeout_ms
        for role in ("button", "gridcell"):
            cell = self.driver.query(role, day, within=popup)
            if await self.driver.is_visible(cell, probe_ms):
                await activate(self.driver, cell, self.settings.click_retries)
                return
        raise OptionNotFoundError(label, str(target.day), stage="calendar_day")

    async def select(self, target: date, label: str = "calendar") -> int:
        """
        Navigate an already-opened popup and pick the day.

        Returns:
            Number of month hops performed

        Raises:
            OptionNotFoundError: The popup never appeared, or month/day was not found
        """
        popup = self.popup()
        if not await self.driver.is_visible(popup, self.settings.calendar_open_timeout_ms):
            raise OptionNotFoundError(label, target.isoformat(), stage="calendar_open")
        hops = await self.navigate(popup, target, label)
        await self.pick_day(popup, target, label)
        return hops
