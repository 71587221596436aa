"""
Read-only list views: the record grids that sit in front of every form.
"""

import re
from typing import Dict, Optional

from uciforms.config.settings import get_settings
from uciforms.core.interfaces import Handle, UIDriver
from uciforms.core.types import GridCellQuery
from uciforms.error_handling.exceptions import ControlNotFoundError, OptionNotFoundError
from uciforms.matching.text import exact_pattern
from uciforms.matching.tiered import match_tiers
from uciforms.monitoring.logger import get_logger
from uciforms.selection.actions import activate, clear_input, settle_search
from uciforms.selection.scroll_search import ScrollSearcher

SEARCH_VIEW_BOX = re.compile(r"search\s*this\s*view", re.IGNORECASE)
SELECT_ROW = re.compile(r"select\s*row", re.IGNORECASE)


class GridNavigator:
    """Finds, opens and selects rows in a virtualized grid view."""

    def __init__(self, driver: UIDriver, scroller: Optional[ScrollSearcher] = None) -> None:
        self.driver = driver
        self.settings = get_settings()
        self.scroller = scroller or ScrollSearcher(driver)
        self.logger = get_logger("grid.views")

    def grid(self) -> Handle:
        return self.driver.query("grid")

    async def search_this_view(self, text: str) -> None:
        """
        Filter the current view with its quick-find box.

        Raises:
            ControlNotFoundError: The view has no quick-find box
        """
        box = self.driver.query("textbox", SEARCH_VIEW_BOX)
        if not await self.driver.is_visible(box, self.settings.control_probe_timeout_ms):
            raise ControlNotFoundError("Search this view", ["textbox"])

        await self.driver.click(box)
        await clear_input(self.driver, box)
        await self.driver.fill(box, text)
        await self.driver.press_key(box, "Enter")
        await settle_search(
            self.driver,
            self.settings.search_api_pattern,
            self.settings.network_settle_timeout_ms,
        )
        self.logger.info("View filtered", extra={"value_length": len(text)})

    async def _cell_attributes(self, grid: Handle, query: GridCellQuery) -> Optional[Dict[str, str]]:
        """
        Attributes that pin a gridcell to the requested column.

        A logical name maps straight to the cell's ``data-id``; a header name
        is mapped through the header's ``aria-colindex``.

        Raises:
            ControlNotFoundError: The header is missing or carries no column index
        """
        if query.logical_name:
            return {"data-id": f"cell-{query.logical_name}"}
        if not query.column:
            return None

        header = self.driver.query("columnheader", exact_pattern(query.column).regex, within=grid)
        column_index = None
        if await self.driver.is_visible(header, self.settings.control_probe_timeout_ms):
            column_index = await self.driver.get_attribute(header, "aria-colindex")
        if column_index is None:
            raise ControlNotFoundError(query.column, ["columnheader"])
        return {"aria-colindex": column_index}

    async def _visible_row(
        self,
        grid: Handle,
        query: GridCellQuery,
        cell_attributes: Optional[Dict[str, str]] = None,
    ) -> Optional[Handle]:
        for tier in match_tiers(query.value, query.partial):
            row = self.driver.query(
                "row",
                within=grid,
                has=self.driver.query("gridcell", tier.regex, attributes=cell_attributes),
            )
            if await self.driver.is_visible(row, self.settings.scroll_probe_timeout_ms):
                return row
        return None

    async def find_row(
        self,
        value: str,
        partial: bool = False,
        max_scrolls: Optional[int] = None,
        *,
        column: Optional[str] = None,
        logical_name: Optional[str] = None,
    ) -> Handle:
        """
        Locate the row holding a cell with the value, scrolling the grid forward.

        Args:
            value: Cell text to look for
            partial: Also accept a cell that only starts with the value
            max_scrolls: Scroll bound (defaults to settings)
            column: Only match cells under this column header
            logical_name: Only match cells of this column logical name

        Returns:
            Handle for the matching row

        Raises:
            ControlNotFoundError: The requested column header is not shown
            OptionNotFoundError: No row matched within the scroll bound
        """
        query = GridCellQuery(
            value=value, partial=partial, column=column, logical_name=logical_name
        )
        grid = self.grid()
        cell_attributes = await self._cell_attributes(grid, query)

        row = await self._visible_row(grid, query, cell_attributes)
        if row is not None:
            return row

        body = self.driver.query("rowgroup", within=grid, index=-1)
        container = body if await self.driver.count(body) else grid
        outcome = await self.scroller.search(
            container,
            lambda: self._visible_row(grid, query, cell_attributes),
            self.settings.grid_max_scrolls if max_scrolls is None else max_scrolls,
            delta=self.settings.grid_scroll_step_px,
        )
        if not outcome.found:
            raise OptionNotFoundError(column or logical_name or "grid", value, stage="grid_scroll")

        self.logger.debug("Row found", extra={"scrolls": outcome.scrolls})
        return outcome.match

    async def open_record(self, value: str, partial: bool = False, column: Optional[str] = None) -> None:
        """Open the record behind a row, via its link if it has one."""
        row = await self.find_row(value, partial, column=column)
        link = self.driver.query("link", within=row)
        if await self.driver.count(link):
            await activate(self.driver, link, self.settings.click_retries)
        else:
            await self.driver.double_click(row)

    async def select_row(self, value: str, partial: bool = False, column: Optional[str] = None) -> None:
        """Mark a row selected: its checkbox, a "Select row" button, or the first cell."""
        row = await self.find_row(value, partial, column=column)
        probe_ms = self.settings.option_probe_timeout_ms

        checkbox = self.driver.query("checkbox", within=row)
        if await self.driver.is_visible(checkbox, probe_ms):
            if not await self.driver.is_checked(checkbox):
                await activate(self.driver, checkbox, self.settings.click_retries)
            return

        button = self.driver.query("button", SELECT_ROW, within=row)
        if await self.driver.is_visible(button, probe_ms):
            await activate(self.driver, button, self.settings.click_retries)
            return

        await activate(self.driver, self.driver.query("gridcell", within=row), self.settings.click_retries)
