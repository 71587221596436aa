"""
Lookup dialog escalation: the "look up more records" picker.
"""

import re
from typing import Optional

from uciforms.config.settings import get_settings
from uciforms.core.interfaces import Handle, UIDriver
from uciforms.core.types import ControlHandle
from uciforms.error_handling.exceptions import (
    BrowserError,
    DialogDidNotOpenError,
    OptionNotFoundError,
    SelectionNotCommittedError,
)
from uciforms.matching.text import any_of
from uciforms.matching.tiered import EntryMatch, TieredMatcher
from uciforms.monitoring.logger import get_logger
from uciforms.selection.actions import read_text_or_none

MORE_RECORDS_OPTION = any_of(r"look\s*up\s*more\s*records", r"search\s*for\s*more\s*records")
TRIGGER_BUTTON = any_of(r"look\s*up", r"more\s*records", r"search\s*for\s*more")
DIALOG_TITLE = re.compile(r"look\s*up", re.IGNORECASE)
SEARCH_BOX = re.compile(r"search", re.IGNORECASE)
CONFIRM_BUTTON = re.compile(r"\b(?:add|ok|select)\b", re.IGNORECASE)
OPEN_GESTURE = "Alt+ArrowDown"


class LookupDialogPicker:
    """
    Commits a lookup value through the advanced picker dialog.

    Used only after inline selection and scroll-search are exhausted. Each
    step carries its own bound; a dialog that never opens or never closes is
    reported rather than assumed.
    """

    def __init__(self, driver: UIDriver, matcher: Optional[TieredMatcher] = None) -> None:
        self.driver = driver
        self.matcher = matcher or TieredMatcher(driver)
        self.settings = get_settings()
        self.logger = get_logger("selection.dialog")

    def dialog(self) -> Handle:
        """Handle for the lookup dialog."""
        return self.driver.query("dialog", has_text=DIALOG_TITLE)

    async def trigger(self, control: ControlHandle, listbox: Optional[Handle] = None) -> str:
        """
        Fire the first available gesture that should open the picker.

        Returns:
            Name of the gesture used
        """
        probe_ms = self.settings.dialog_trigger_probe_ms

        if listbox is not None:
            more = self.driver.query("option", MORE_RECORDS_OPTION, within=listbox)
            if await self.driver.is_visible(more, probe_ms):
                await self.driver.click(more)
                return "more_records_option"

        group = self.driver.query("group", has=control.element, index=-1)
        button = self.driver.query("button", TRIGGER_BUTTON, within=group)
        if await self.driver.is_visible(button, probe_ms):
            await self.driver.click(button)
            return "more_records_button"

        # Icon-only renderings hide the button; the keyboard gesture still works.
        try:
            await self.driver.press_key(control.element, OPEN_GESTURE)
        except BrowserError as exc:
            self.logger.debug(f"Open gesture failed: {exc}")
        return "keyboard"

    async def open(
        self,
        control: ControlHandle,
        value: str,
        listbox: Optional[Handle] = None,
    ) -> Handle:
        """
        Trigger the picker and wait for the dialog.

        Raises:
            DialogDidNotOpenError: No dialog within the open bound
        """
        gesture = await self.trigger(control, listbox)
        dialog = self.dialog()
        timeout = self.settings.dialog_open_timeout_ms
        if not await self.driver.is_visible(dialog, timeout):
            raise DialogDidNotOpenError(control.label, value, timeout)

        self.logger.info(
            "Lookup dialog opened",
            extra={"label": control.label, "gesture": gesture},
        )
        return dialog

    async def find_row(
        self,
        dialog: Handle,
        label: str,
        value: str,
        allow_prefix: bool = True,
    ) -> EntryMatch:
        """
        Narrow the dialog's results with its search box and locate the row.

        Raises:
            OptionNotFoundError: No row matched in any tier
        """
        probe_ms = self.settings.dialog_trigger_probe_ms

        search = self.driver.query("textbox", SEARCH_BOX, within=dialog)
        if await self.driver.is_visible(search, probe_ms):
            await self.driver.fill(search, value)
            await self.driver.press_key(search, "Enter")

        grid = self.driver.query("grid", within=dialog)
        scope = grid if await self.driver.is_visible(grid, probe_ms) else dialog

        match = await self.matcher.find(
            scope,
            value,
            entry_role="row",
            allow_prefix=allow_prefix,
            probe_ms=self.settings.dialog_row_timeout_ms,
        )
        if match is None:
            raise OptionNotFoundError(label, value, stage="dialog")
        return match

    async def commit(self, dialog: Handle, row: Handle, label: str, value: str) -> None:
        """
        Commit a row: double-click first, then checkbox plus confirm.

        Raises:
            SelectionNotCommittedError: The dialog did not close afterwards
        """
        try:
            await self.driver.double_click(row)
        except BrowserError as exc:
            self.logger.debug(f"Double-click on row failed: {exc}")
        else:
            if await self.driver.wait_hidden(dialog, self.settings.dialog_commit_probe_ms):
                return

        self.logger.info(
            "Row activation did not close the dialog, using confirm button",
            extra={"label": label},
        )
        probe_ms = self.settings.dialog_trigger_probe_ms
        checkbox = self.driver.query("checkbox", within=row)
        if await self.driver.is_visible(checkbox, probe_ms):
            if not await self.driver.is_checked(checkbox):
                await self.driver.click(checkbox)
        else:
            await self.driver.click(row)

        confirm = self.driver.query("button", CONFIRM_BUTTON, within=dialog)
        if await self.driver.is_visible(confirm, probe_ms):
            await self.driver.click(confirm)

        if not await self.driver.wait_hidden(dialog, self.settings.dialog_close_timeout_ms):
            raise SelectionNotCommittedError(label, value, stage="dialog_close")

    async def pick(
        self,
        control: ControlHandle,
        value: str,
        *,
        allow_prefix: bool = True,
        listbox: Optional[Handle] = None,
    ) -> str:
        """
        Run the whole escalation and return the committed row's text.

        Args:
            control: Resolved lookup control
            value: Target value
            allow_prefix: Whether the row match may fall back to prefix
            listbox: Open inline result list, if any

        Returns:
            Displayed text of the committed row
        """
        dialog = await self.open(control, value, listbox)
        match = await self.find_row(dialog, control.label, value, allow_prefix)
        displayed = ((await read_text_or_none(self.driver, match.handle)) or "").strip() or value
        await self.commit(dialog, match.handle, control.label, value)
        return displayed
