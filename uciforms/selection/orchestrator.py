"""
Selection orchestrator: the escalation pipeline behind every pick-from-list field.

Each stage reports a tri-state outcome (success, exhausted, fatal); the
transition tables below are the only place escalation policy is decided.
"""

import re
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

from uciforms.config.settings import get_settings
from uciforms.controls.resolver import ControlResolver
from uciforms.core.interfaces import Handle, UIDriver
from uciforms.core.types import (
    ControlHandle,
    ControlRole,
    FieldKind,
    SelectionResult,
    SelectionState,
    StageOutcome,
    StageResult,
)
from uciforms.error_handling.exceptions import (
    BrowserError,
    FieldError,
    OptionNotFoundError,
    SelectionNotCommittedError,
)
from uciforms.matching.text import MatchPattern, exact_pattern, prefix_pattern
from uciforms.matching.tiered import TieredMatcher
from uciforms.monitoring.logger import get_logger, log_field_event, log_performance_metric
from uciforms.selection.actions import activate, clear_input, read_text_or_none, settle_search
from uciforms.selection.dialog import LookupDialogPicker
from uciforms.selection.scroll_search import ScrollSearcher

S = SelectionState
O = StageOutcome

Transitions = Dict[Tuple[SelectionState, StageOutcome], SelectionState]

# Virtualized lookups: direct entry, then scroll-search, then the dialog.
LOOKUP_TRANSITIONS: Transitions = {
    (S.RESOLVING, O.SUCCESS): S.DIRECT_ENTRY_ATTEMPTED,
    (S.DIRECT_ENTRY_ATTEMPTED, O.SUCCESS): S.OPTION_VISIBLE,
    (S.DIRECT_ENTRY_ATTEMPTED, O.EXHAUSTED): S.NOT_RENDERED,
    (S.NOT_RENDERED, O.SUCCESS): S.SCROLL_SEARCHING,
    (S.SCROLL_SEARCHING, O.SUCCESS): S.FOUND,
    (S.SCROLL_SEARCHING, O.EXHAUSTED): S.EXHAUSTED,
    (S.EXHAUSTED, O.SUCCESS): S.ESCALATING,
    (S.ESCALATING, O.SUCCESS): S.COMMITTED,
}

# Fully rendered option sets: a miss on direct entry is terminal.
OPTION_SET_TRANSITIONS: Transitions = {
    (S.RESOLVING, O.SUCCESS): S.DIRECT_ENTRY_ATTEMPTED,
    (S.DIRECT_ENTRY_ATTEMPTED, O.SUCCESS): S.OPTION_VISIBLE,
}

# Explicit dialog path for lookups.
DIALOG_TRANSITIONS: Transitions = {
    (S.RESOLVING, O.SUCCESS): S.ESCALATING,
    (S.ESCALATING, O.SUCCESS): S.COMMITTED,
}

LOOKUP_ROLES: Sequence[ControlRole] = (ControlRole.COMBOBOX, ControlRole.TEXTBOX)
OPTION_SET_ROLES: Sequence[ControlRole] = (ControlRole.COMBOBOX,)
CLEAR_CHIP_BUTTON = re.compile(r"^(?:clear|delete|remove)\b", re.IGNORECASE)


@dataclass
class SelectionAttempt:
    """Mutable state threaded through one pipeline run."""

    kind: FieldKind
    label: str
    value: str
    roles: Sequence[ControlRole]
    allow_prefix: bool = False
    dialog_allow_prefix: bool = True
    scroll_pages: int = 8
    open_with_arrow_down: bool = True
    control: Optional[ControlHandle] = None
    listbox: Optional[Handle] = None
    option: Optional[Handle] = None
    pattern: Optional[MatchPattern] = None
    displayed: Optional[str] = None
    scrolls: int = 0
    escalated: bool = False
    path: List[SelectionState] = field(default_factory=lambda: [S.IDLE])


Stage = Callable[[SelectionAttempt], Awaitable[StageResult]]


class SelectionOrchestrator:
    """Drives lookups and option sets through resolve, match, scroll and escalate."""

    def __init__(
        self,
        driver: UIDriver,
        resolver: Optional[ControlResolver] = None,
        matcher: Optional[TieredMatcher] = None,
        scroller: Optional[ScrollSearcher] = None,
        picker: Optional[LookupDialogPicker] = None,
    ) -> None:
        self.driver = driver
        self.settings = get_settings()
        self.resolver = resolver or ControlResolver(driver)
        self.matcher = matcher or TieredMatcher(driver)
        self.scroller = scroller or ScrollSearcher(driver, self.matcher)
        self.picker = picker or LookupDialogPicker(driver, self.matcher)
        self.logger = get_logger("selection.orchestrator")

    # ------------------------------------------------------------------ public

    async def select_lookup(
        self,
        label: str,
        value: str,
        *,
        allow_prefix: bool = False,
        dialog_allow_prefix: bool = True,
        scroll_pages: Optional[int] = None,
        open_with_arrow_down: bool = True,
    ) -> SelectionResult:
        """
        Select a value in a lookup (reference) field.

        Args:
            label: Field label
            value: Record name to select
            allow_prefix: Accept an inline option that only starts with the value
            dialog_allow_prefix: Accept a dialog row that only starts with the value
            scroll_pages: Scroll steps before escalating (defaults to settings)
            open_with_arrow_down: Press ArrowDown after typing to reveal the list

        Returns:
            The committed selection

        Raises:
            ControlNotFoundError, OptionNotFoundError, DialogDidNotOpenError,
            SelectionNotCommittedError
        """
        attempt = SelectionAttempt(
            kind=FieldKind.LOOKUP,
            label=label,
            value=value,
            roles=LOOKUP_ROLES,
            allow_prefix=allow_prefix,
            dialog_allow_prefix=dialog_allow_prefix,
            scroll_pages=(
                self.settings.lookup_scroll_pages if scroll_pages is None else scroll_pages
            ),
            open_with_arrow_down=open_with_arrow_down,
        )
        return await self._run(attempt, LOOKUP_TRANSITIONS, {
            S.RESOLVING: self._resolve,
            S.DIRECT_ENTRY_ATTEMPTED: self._lookup_direct_entry,
            S.SCROLL_SEARCHING: self._scroll_search,
            S.ESCALATING: self._escalate,
        })

    async def force_lookup_dialog(
        self,
        label: str,
        value: str,
        *,
        dialog_allow_prefix: bool = True,
    ) -> SelectionResult:
        """Select a lookup value through the dialog without trying the inline list."""
        attempt = SelectionAttempt(
            kind=FieldKind.LOOKUP,
            label=label,
            value=value,
            roles=LOOKUP_ROLES,
            dialog_allow_prefix=dialog_allow_prefix,
        )
        return await self._run(attempt, DIALOG_TRANSITIONS, {
            S.RESOLVING: self._resolve_and_clear,
            S.ESCALATING: self._escalate,
        })

    async def select_option(
        self,
        label: str,
        value: str,
        *,
        allow_prefix: bool = False,
    ) -> SelectionResult:
        """
        Select a value in a single-select option set.

        Raises:
            ControlNotFoundError, OptionNotFoundError, SelectionNotCommittedError
        """
        attempt = SelectionAttempt(
            kind=FieldKind.OPTION_SET,
            label=label,
            value=value,
            roles=OPTION_SET_ROLES,
            allow_prefix=allow_prefix,
        )
        return await self._run(attempt, OPTION_SET_TRANSITIONS, {
            S.RESOLVING: self._resolve,
            S.DIRECT_ENTRY_ATTEMPTED: self._option_direct_entry,
        })

    async def select_multi_option(self, label: str, values: Sequence[str]) -> SelectionResult:
        """
        Ensure every value is selected in a multi-select option set.

        Options already marked selected are left alone. The list is closed
        afterwards and a tag is verified for every value.
        """
        started = time.perf_counter()
        control = await self.resolver.resolve(label, OPTION_SET_ROLES)
        await self.driver.click(control.element)
        listbox = await self._open_listbox(control, ", ".join(values), first=True)

        for value in values:
            option = self.driver.query("option", exact_pattern(value).regex, within=listbox)
            if not await self.driver.is_visible(option, self.settings.option_probe_timeout_ms):
                raise OptionNotFoundError(label, value, stage="multi_option")
            if await self.driver.get_attribute(option, "aria-selected") != "true":
                await activate(self.driver, option, self.settings.click_retries)

        await self.driver.press_key(control.element, "Escape")

        for value in values:
            if await self._read_back(control, exact_pattern(value)) is None:
                raise SelectionNotCommittedError(label, value, stage="verify")

        return SelectionResult(
            label=label,
            kind=FieldKind.MULTI_OPTION_SET,
            requested=", ".join(values),
            committed=", ".join(values),
            state=S.OPTION_VISIBLE,
            path=[S.IDLE, S.RESOLVING, S.DIRECT_ENTRY_ATTEMPTED, S.OPTION_VISIBLE],
            elapsed_ms=(time.perf_counter() - started) * 1000,
        )

    async def clear_lookup(self, label: str) -> bool:
        """
        Remove the selected record from a lookup, if there is one.

        Returns:
            True if a value was removed
        """
        control = await self.resolver.resolve(label, LOOKUP_ROLES)
        removed = await self._clear_chip(control)
        self.logger.info(
            "Lookup cleared" if removed else "Lookup already empty",
            extra={"label": label},
        )
        return removed

    # ----------------------------------------------------------------- engine

    async def _run(
        self,
        attempt: SelectionAttempt,
        transitions: Transitions,
        stages: Dict[SelectionState, Stage],
    ) -> SelectionResult:
        started = time.perf_counter()
        state = S.RESOLVING
        attempt.path.append(state)
        log_field_event(attempt.kind.value, attempt.label, state.value)

        while not state.is_success:
            stage = stages.get(state)
            result = await stage(attempt) if stage else StageResult.success()
            attempt.scrolls += result.scrolls

            next_state = transitions.get((state, result.outcome), S.FAILED)
            if next_state is S.FAILED:
                attempt.path.append(S.FAILED)
                log_field_event(
                    attempt.kind.value,
                    attempt.label,
                    S.FAILED.value,
                    stage=state.value,
                )
                if result.error is not None:
                    raise result.error
                raise OptionNotFoundError(attempt.label, attempt.value, stage=state.value)

            state = next_state
            attempt.path.append(state)
            log_field_event(
                attempt.kind.value,
                attempt.label,
                state.value,
                scrolls=attempt.scrolls,
            )

        if state is not S.COMMITTED:
            await activate(self.driver, attempt.option, self.settings.click_retries)

        committed = await self._read_back(attempt.control, attempt.pattern)
        if committed is None:
            raise SelectionNotCommittedError(attempt.label, attempt.value, stage="verify")

        elapsed_ms = (time.perf_counter() - started) * 1000
        log_performance_metric(
            f"{attempt.kind.value}_selection",
            elapsed_ms,
            context={"label": attempt.label, "state": state.value},
        )
        return SelectionResult(
            label=attempt.label,
            kind=attempt.kind,
            requested=attempt.value,
            committed=committed,
            state=state,
            path=attempt.path,
            scrolls=attempt.scrolls,
            escalated=attempt.escalated,
            elapsed_ms=elapsed_ms,
        )

    # ----------------------------------------------------------------- stages

    async def _resolve(self, attempt: SelectionAttempt) -> StageResult:
        try:
            attempt.control = await self.resolver.resolve(attempt.label, attempt.roles)
        except FieldError as exc:
            return StageResult.fatal(exc)
        return StageResult.success(handle=attempt.control)

    async def _resolve_and_clear(self, attempt: SelectionAttempt) -> StageResult:
        result = await self._resolve(attempt)
        if result.outcome is O.SUCCESS:
            await self.driver.click(attempt.control.element)
            await self._clear_chip(attempt.control)
            await clear_input(self.driver, attempt.control.element)
        return result

    async def _lookup_direct_entry(self, attempt: SelectionAttempt) -> StageResult:
        element = attempt.control.element
        await self.driver.scroll_into_view(element)
        await self._clear_chip(attempt.control)
        await self.driver.click(element)
        await clear_input(self.driver, element)
        await self.driver.type_text(element, attempt.value, self.settings.type_delay_ms)
        if attempt.open_with_arrow_down:
            await self.driver.press_key(element, "ArrowDown")

        await settle_search(
            self.driver,
            self.settings.search_api_pattern,
            self.settings.network_settle_timeout_ms,
        )

        # The most recently opened list belongs to this control.
        attempt.listbox = self.driver.query("listbox", index=-1)
        return await self._match_in_listbox(attempt)

    async def _option_direct_entry(self, attempt: SelectionAttempt) -> StageResult:
        await self.driver.click(attempt.control.element)
        try:
            attempt.listbox = await self._open_listbox(attempt.control, attempt.value, first=True)
        except FieldError as exc:
            return StageResult.fatal(exc)
        return await self._match_in_listbox(attempt)

    async def _match_in_listbox(self, attempt: SelectionAttempt) -> StageResult:
        match = await self.matcher.find(
            attempt.listbox,
            attempt.value,
            allow_prefix=attempt.allow_prefix,
            probe_ms=self.settings.option_probe_timeout_ms,
        )
        if match is None:
            return StageResult.exhausted()
        attempt.option = match.handle
        attempt.pattern = match.pattern
        return StageResult.success(handle=match.handle)

    async def _scroll_search(self, attempt: SelectionAttempt) -> StageResult:
        if not await self.driver.count(attempt.listbox):
            self.logger.debug("No inline result list to scroll", extra={"label": attempt.label})
            return StageResult.exhausted()
        try:
            outcome = await self.scroller.search_entries(
                attempt.listbox,
                attempt.value,
                allow_prefix=attempt.allow_prefix,
                max_iterations=attempt.scroll_pages,
            )
        except BrowserError as exc:
            self.logger.debug(
                f"Result list stopped scrolling: {exc.message}",
                extra={"label": attempt.label},
            )
            return StageResult.exhausted()
        if not outcome.found:
            return StageResult.exhausted(scrolls=outcome.scrolls)
        attempt.option = outcome.match.handle
        attempt.pattern = outcome.match.pattern
        return StageResult.success(handle=outcome.match.handle, scrolls=outcome.scrolls)

    async def _escalate(self, attempt: SelectionAttempt) -> StageResult:
        attempt.escalated = True
        try:
            displayed = await self.picker.pick(
                attempt.control,
                attempt.value,
                allow_prefix=attempt.dialog_allow_prefix,
                listbox=attempt.listbox,
            )
        except FieldError as exc:
            return StageResult.fatal(exc)
        attempt.displayed = displayed
        attempt.pattern = (
            prefix_pattern(attempt.value)
            if attempt.dialog_allow_prefix
            else exact_pattern(attempt.value)
        )
        return StageResult.success(displayed=displayed)

    # ---------------------------------------------------------------- helpers

    async def _open_listbox(self, control: ControlHandle, value: str, first: bool) -> Handle:
        listbox = self.driver.query("listbox", index=0 if first else -1)
        if not await self.driver.is_visible(listbox, self.settings.listbox_timeout_ms):
            raise OptionNotFoundError(control.label, value, stage="listbox")
        return listbox

    def _field_group(self, control: ControlHandle) -> Handle:
        return self.driver.query("group", has=control.element, index=-1)

    async def _clear_chip(self, control: ControlHandle) -> bool:
        button = self.driver.query("button", CLEAR_CHIP_BUTTON, within=self._field_group(control))
        if not await self.driver.is_visible(button, self.settings.option_probe_timeout_ms):
            return False
        await self.driver.click(button)
        return True

    async def _read_back(
        self,
        control: ControlHandle,
        pattern: Optional[MatchPattern],
    ) -> Optional[str]:
        """Displayed value of the control if it satisfies the pattern."""
        if pattern is None:
            return None

        text = await read_text_or_none(self.driver, control.element)
        if pattern.matches(text):
            return text.strip()

        chip = self.driver.query_text(pattern.regex, within=self._field_group(control))
        if await self.driver.is_visible(chip, self.settings.verify_timeout_ms):
            return ((await read_text_or_none(self.driver, chip)) or pattern.literal).strip()
        return None
