"""
Form session: one entry point per field kind on a model-driven form.
"""

import re
import time
from typing import Optional, Pattern, Sequence, Union

from uciforms.calendar.dates import TargetDate, date_readback_pattern, format_date_layouts, parse_target_date
from uciforms.calendar.navigator import CalendarNavigator
from uciforms.config.settings import get_settings
from uciforms.controls.resolver import ControlResolver
from uciforms.core.interfaces import UIDriver
from uciforms.core.types import ControlHandle, ControlRole, FieldKind, SelectionResult, SelectionState
from uciforms.error_handling.exceptions import (
    BrowserError,
    ControlNotFoundError,
    ExpectationFailedError,
    SelectionNotCommittedError,
)
from uciforms.grid.views import GridNavigator
from uciforms.matching.text import exact_pattern
from uciforms.monitoring.logger import get_logger, log_field_event
from uciforms.selection.actions import activate, clear_input, read_text_or_none
from uciforms.selection.booleans import BooleanDispatcher
from uciforms.selection.orchestrator import SelectionOrchestrator

S = SelectionState

TEXT_ROLES = (ControlRole.TEXTBOX,)
VALUE_ROLES = (ControlRole.TEXTBOX, ControlRole.COMBOBOX)
CALENDAR_BUTTON = re.compile(r"calendar", re.IGNORECASE)
CALENDAR_GESTURE = "Alt+ArrowDown"

DIRECT_PATH = [S.IDLE, S.RESOLVING, S.DIRECT_ENTRY_ATTEMPTED, S.OPTION_VISIBLE]
CALENDAR_PATH = [S.IDLE, S.RESOLVING, S.DIRECT_ENTRY_ATTEMPTED, S.ESCALATING, S.COMMITTED]


def _digits(text: Optional[str]) -> str:
    return re.sub(r"\D", "", text or "")


class FormSession:
    """
    Sets and reads fields on the current form by their visible labels.

    Every call resolves its control afresh; nothing is cached between calls
    because the form re-renders after most commits.
    """

    def __init__(self, driver: UIDriver) -> None:
        self.driver = driver
        self.settings = get_settings()
        self.resolver = ControlResolver(driver)
        self.selection = SelectionOrchestrator(driver, self.resolver)
        self.booleans = BooleanDispatcher(driver, self.resolver)
        self.calendar = CalendarNavigator(driver)
        self.grid = GridNavigator(driver, self.selection.scroller)
        self.logger = get_logger("forms.session")

    # ------------------------------------------------------------ free text

    async def set_text(self, label: str, value: str) -> SelectionResult:
        """Replace a single-line text field's value."""
        return await self._set_editable(label, value, FieldKind.TEXT, lambda shown: shown == value)

    async def set_text_area(self, label: str, value: str) -> SelectionResult:
        """Replace a multi-line text field's value; line endings are normalized."""
        expected = value.replace("\r\n", "\n")
        return await self._set_editable(
            label,
            value,
            FieldKind.TEXT,
            lambda shown: (shown or "").replace("\r\n", "\n") == expected,
        )

    async def set_number(self, label: str, value: Union[int, float, str]) -> SelectionResult:
        """
        Set a numeric field.

        The form reformats numbers with group separators, so only the digits
        of the read-back are compared.
        """
        text = str(value)
        return await self._set_editable(
            label,
            text,
            FieldKind.NUMBER,
            lambda shown: _digits(shown) == _digits(text),
        )

    async def _set_editable(self, label, value, kind, accepts) -> SelectionResult:
        started = time.perf_counter()
        log_field_event(kind.value, label, S.RESOLVING.value, value_length=len(value))

        control = await self.resolver.resolve(label, TEXT_ROLES)
        element = control.element
        await self.driver.scroll_into_view(element)
        await self.driver.click(element)
        await clear_input(self.driver, element)
        await self.driver.fill(element, value)
        await self.driver.blur(element)

        shown = await self.driver.read_value(element)
        if not accepts(shown):
            raise SelectionNotCommittedError(label, value, stage="verify")

        log_field_event(kind.value, label, S.OPTION_VISIBLE.value)
        return SelectionResult(
            label=label,
            kind=kind,
            requested=value,
            committed=shown,
            state=S.OPTION_VISIBLE,
            path=list(DIRECT_PATH),
            elapsed_ms=(time.perf_counter() - started) * 1000,
        )

    async def clear_field(self, label: str) -> bool:
        """
        Empty a text-like field. Clearing an empty field is a no-op.

        Returns:
            True if a value was removed
        """
        control = await self.resolver.resolve(label, VALUE_ROLES)
        cleared = await clear_input(self.driver, control.element)
        if cleared:
            await self.driver.blur(control.element)
        self.logger.info(
            "Field cleared" if cleared else "Field already empty",
            extra={"label": label},
        )
        return cleared

    # ------------------------------------------------------ pick-from-list

    async def set_boolean(self, label: str, value: bool) -> SelectionResult:
        return await self.booleans.set(label, value)

    async def set_option(self, label: str, value: str, *, allow_prefix: bool = False) -> SelectionResult:
        return await self.selection.select_option(label, value, allow_prefix=allow_prefix)

    async def set_multi_option(self, label: str, values: Sequence[str]) -> SelectionResult:
        return await self.selection.select_multi_option(label, values)

    async def set_lookup(
        self,
        label: str,
        value: str,
        *,
        allow_prefix: bool = False,
        dialog_allow_prefix: bool = True,
        scroll_pages: Optional[int] = None,
    ) -> SelectionResult:
        return await self.selection.select_lookup(
            label,
            value,
            allow_prefix=allow_prefix,
            dialog_allow_prefix=dialog_allow_prefix,
            scroll_pages=scroll_pages,
        )

    async def clear_lookup(self, label: str) -> bool:
        return await self.selection.clear_lookup(label)

    async def force_lookup_dialog(
        self,
        label: str,
        value: str,
        *,
        dialog_allow_prefix: bool = True,
    ) -> SelectionResult:
        return await self.selection.force_lookup_dialog(
            label, value, dialog_allow_prefix=dialog_allow_prefix
        )

    # ---------------------------------------------------------------- dates

    async def set_date(self, label: str, value: TargetDate) -> SelectionResult:
        """
        Set a date field, typing first and falling back to the calendar popup.

        Raises:
            UnparsableDateError: The value is in neither accepted layout
            ControlNotFoundError: No textbox or combobox carries the label
            SelectionNotCommittedError: Neither typing nor the calendar stuck
        """
        started = time.perf_counter()
        target = parse_target_date(value)
        day_first, _ = format_date_layouts(target)
        readback = date_readback_pattern(target)

        log_field_event(FieldKind.DATE.value, label, S.RESOLVING.value)
        control = await self.resolver.resolve(label, VALUE_ROLES)
        element = control.element

        await self.driver.scroll_into_view(element)
        await self.driver.click(element)
        await clear_input(self.driver, element)
        await self.driver.type_text(element, day_first, self.settings.type_delay_ms)
        await self.driver.press_key(element, "Enter")
        await self.driver.blur(element)

        shown = await self._shown_date(control, readback)
        path = list(DIRECT_PATH)
        escalated = False
        if shown is None:
            log_field_event(FieldKind.DATE.value, label, S.ESCALATING.value)
            await self._open_calendar(control)
            hops = await self.calendar.select(target, label)
            self.logger.debug("Date picked from calendar", extra={"label": label, "hops": hops})

            shown = await self._shown_date(control, readback)
            if shown is None:
                raise SelectionNotCommittedError(label, day_first, stage="calendar")
            path = list(CALENDAR_PATH)
            escalated = True

        log_field_event(FieldKind.DATE.value, label, path[-1].value)
        return SelectionResult(
            label=label,
            kind=FieldKind.DATE,
            requested=day_first,
            committed=shown.strip(),
            state=path[-1],
            path=path,
            escalated=escalated,
            elapsed_ms=(time.perf_counter() - started) * 1000,
        )

    async def _open_calendar(self, control: ControlHandle) -> None:
        probe_ms = self.settings.dialog_trigger_probe_ms
        group = self.driver.query("group", has=control.element, index=-1)
        for button in (
            self.driver.query("button", CALENDAR_BUTTON, within=group),
            self.driver.query("button", CALENDAR_BUTTON),
        ):
            if await self.driver.is_visible(button, probe_ms):
                await activate(self.driver, button, self.settings.click_retries)
                return
        await self.driver.press_key(control.element, CALENDAR_GESTURE)

    async def _shown_date(self, control: ControlHandle, readback: Pattern[str]) -> Optional[str]:
        """
        The field's displayed date if it matches the target.

        Input-backed controls are read by value; a combobox rendered as a
        plain element has no input value, so its text is read instead.
        """
        try:
            value = await self.driver.read_value(control.element)
        except BrowserError:
            value = None
        if value and readback.search(value):
            return value

        if value is None or control.role is ControlRole.COMBOBOX:
            text = await read_text_or_none(self.driver, control.element)
            if text and readback.search(text):
                return text
        return None

    # ------------------------------------------------------------ page-level

    async def click_command(self, name: str) -> None:
        """
        Click a command-bar button by its exact name.

        Raises:
            ControlNotFoundError: No visible button carries the name
        """
        button = self.driver.query("button", exact_pattern(name).regex)
        if not await self.driver.is_visible(button, self.settings.control_probe_timeout_ms):
            raise ControlNotFoundError(name, ["button"])
        await activate(self.driver, button, self.settings.click_retries)
        self.logger.info(f"Command clicked: {name}")

    async def open_link(self, name: str) -> None:
        """Follow a link by its exact name."""
        link = self.driver.query("link", exact_pattern(name).regex)
        if not await self.driver.is_visible(link, self.settings.control_probe_timeout_ms):
            raise ControlNotFoundError(name, ["link"])
        await activate(self.driver, link, self.settings.click_retries)

    async def expect_toast(
        self,
        pattern: Union[str, Pattern[str]],
        timeout_ms: Optional[int] = None,
    ) -> str:
        """
        Wait for a notification whose text matches.

        Returns:
            The notification text

        Raises:
            ExpectationFailedError: No matching alert appeared in time
        """
        regex = re.compile(pattern, re.IGNORECASE) if isinstance(pattern, str) else pattern
        alert = self.driver.query("alert", has_text=regex)
        if not await self.driver.is_visible(alert, timeout_ms or self.settings.verify_timeout_ms):
            raise ExpectationFailedError("notification", regex.pattern)
        return ((await read_text_or_none(self.driver, alert)) or "").strip()

    async def get_value(self, label: str) -> str:
        """Current value of a field: a textbox's value, else a combobox's text."""
        control = await self.resolver.resolve(label, VALUE_ROLES)
        if control.role is ControlRole.TEXTBOX:
            return await self.driver.read_value(control.element)
        return ((await read_text_or_none(self.driver, control.element)) or "").strip()
