"""
Two-option (boolean) fields.

The same field renders as a Yes/No combobox, a checkbox or a switch. Each
rendering is an independent strategy; they share only label resolution and
are tried in a fixed priority order.
"""

import re
import time
from typing import Awaitable, Callable, List, Optional, Tuple

from uciforms.config.settings import get_settings
from uciforms.controls.resolver import ControlResolver
from uciforms.core.interfaces import UIDriver
from uciforms.core.types import ControlHandle, ControlRole, FieldKind, SelectionResult, SelectionState
from uciforms.error_handling.exceptions import (
    ControlNotFoundError,
    OptionNotFoundError,
    SelectionNotCommittedError,
)
from uciforms.monitoring.logger import get_logger, log_field_event
from uciforms.selection.actions import activate, read_text_or_none

TRUE_OPTION = re.compile(r"^(?:yes|true|on)$", re.IGNORECASE)
FALSE_OPTION = re.compile(r"^(?:no|false|off)$", re.IGNORECASE)

Strategy = Callable[[UIDriver, ControlHandle, bool], Awaitable[str]]


def option_pattern(value: bool) -> re.Pattern:
    """Option names that represent the boolean value."""
    return TRUE_OPTION if value else FALSE_OPTION


async def set_combobox(driver: UIDriver, control: ControlHandle, value: bool) -> str:
    """Pick Yes/No from the combobox's option list."""
    settings = get_settings()
    pattern = option_pattern(value)

    await driver.click(control.element)
    listbox = driver.query("listbox")
    if not await driver.is_visible(listbox, settings.listbox_timeout_ms):
        raise OptionNotFoundError(control.label, str(value), stage="listbox")

    option = driver.query("option", pattern, within=listbox)
    if not await driver.is_visible(option, settings.option_probe_timeout_ms):
        raise OptionNotFoundError(control.label, str(value))
    await activate(driver, option, settings.click_retries)

    displayed = (await read_text_or_none(driver, control.element) or "").strip()
    if not pattern.search(displayed):
        raise SelectionNotCommittedError(control.label, str(value), stage="verify")
    return displayed


async def set_checkbox(driver: UIDriver, control: ControlHandle, value: bool) -> str:
    """Toggle a checkbox only when its state differs."""
    if await driver.is_checked(control.element) != value:
        await activate(driver, control.element, get_settings().click_retries)
    if await driver.is_checked(control.element) != value:
        raise SelectionNotCommittedError(control.label, str(value), stage="verify")
    return "checked" if value else "unchecked"


async def set_switch(driver: UIDriver, control: ControlHandle, value: bool) -> str:
    """Flip a switch only when its aria-checked state differs."""
    expected = "true" if value else "false"
    if (await driver.get_attribute(control.element, "aria-checked")) != expected:
        await activate(driver, control.element, get_settings().click_retries)
    if (await driver.get_attribute(control.element, "aria-checked")) != expected:
        raise SelectionNotCommittedError(control.label, str(value), stage="verify")
    return "on" if value else "off"


BOOLEAN_STRATEGIES: List[Tuple[ControlRole, Strategy]] = [
    (ControlRole.COMBOBOX, set_combobox),
    (ControlRole.CHECKBOX, set_checkbox),
    (ControlRole.SWITCH, set_switch),
]


class BooleanDispatcher:
    """Tries each boolean rendering in priority order."""

    def __init__(
        self,
        driver: UIDriver,
        resolver: Optional[ControlResolver] = None,
        strategies: Optional[List[Tuple[ControlRole, Strategy]]] = None,
    ) -> None:
        self.driver = driver
        self.settings = get_settings()
        self.resolver = resolver or ControlResolver(driver)
        self.strategies = strategies or BOOLEAN_STRATEGIES
        self.logger = get_logger("selection.booleans")

    async def set(self, label: str, value: bool) -> SelectionResult:
        """
        Set a two-option field.

        Raises:
            ControlNotFoundError: None of the renderings is present
        """
        started = time.perf_counter()
        log_field_event(FieldKind.BOOLEAN.value, label, SelectionState.RESOLVING.value)

        for role, strategy in self.strategies:
            control = await self.resolver.probe(
                label, role, timeout_ms=self.settings.option_probe_timeout_ms
            )
            if control is None:
                continue

            displayed = await strategy(self.driver, control, value)
            self.logger.info(
                "Boolean set",
                extra={"label": label, "role": role.value},
            )
            return SelectionResult(
                label=label,
                kind=FieldKind.BOOLEAN,
                requested=str(value),
                committed=displayed,
                state=SelectionState.OPTION_VISIBLE,
                path=[
                    SelectionState.IDLE,
                    SelectionState.RESOLVING,
                    SelectionState.DIRECT_ENTRY_ATTEMPTED,
                    SelectionState.OPTION_VISIBLE,
                ],
                elapsed_ms=(time.perf_counter() - started) * 1000,
            )

        raise ControlNotFoundError(label, [role.value for role, _ in self.strategies])
