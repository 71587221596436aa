"""
Scenario execution: an ordered list of form steps run against one session.
"""

import time
from typing import Any, Awaitable, Callable, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, model_validator

from uciforms.error_handling.exceptions import ExpectationFailedError, UCIFormsError
from uciforms.forms.session import FormSession
from uciforms.monitoring.logger import get_logger

logger = get_logger(__name__)

StepAction = Literal[
    "set_text",
    "set_text_area",
    "set_number",
    "set_boolean",
    "set_option",
    "set_multi_option",
    "set_lookup",
    "force_lookup_dialog",
    "clear_lookup",
    "clear_field",
    "set_date",
    "click_command",
    "expect_toast",
    "expect_value",
    "open_link",
    "search_view",
    "open_record",
]

# Actions that address a control by label rather than by value alone.
LABELLED_ACTIONS = {
    "set_text", "set_text_area", "set_number", "set_boolean", "set_option",
    "set_multi_option", "set_lookup", "force_lookup_dialog", "clear_lookup",
    "clear_field", "set_date", "click_command", "expect_value", "open_link",
}
VALUELESS_ACTIONS = {"clear_lookup", "clear_field", "click_command", "open_link"}

TRUTHY = {"yes", "true", "on", "1"}


class ScenarioStep(BaseModel):
    """One step of a scenario file."""

    action: StepAction
    label: Optional[str] = Field(None, description="Field label or control name")
    value: Any = None
    allow_prefix: bool = Field(
        False, description="Accept entries that only start with the value, inline and in the lookup dialog"
    )
    timeout_ms: Optional[int] = Field(None, ge=0)

    @model_validator(mode="after")
    def check_arguments(self) -> "ScenarioStep":
        if self.action in LABELLED_ACTIONS and not self.label:
            raise ValueError(f"Step '{self.action}' requires a label")
        if self.action not in VALUELESS_ACTIONS and self.value is None:
            raise ValueError(f"Step '{self.action}' requires a value")
        return self

    def describe(self) -> str:
        return self.label or str(self.value)


class Scenario(BaseModel):
    """A named sequence of steps, optionally starting from a URL."""

    name: str
    url: Optional[str] = None
    steps: List[ScenarioStep] = Field(..., min_length=1)


class StepReport(BaseModel):
    """Outcome of one executed step."""

    index: int
    action: str
    target: str
    passed: bool
    detail: str = ""
    elapsed_ms: float = 0.0


def as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in TRUTHY
    return bool(value)


async def _expect_value(session: FormSession, step: ScenarioStep) -> str:
    actual = await session.get_value(step.label)
    if actual.strip() != str(step.value).strip():
        raise ExpectationFailedError(step.label, str(step.value), actual)
    return actual


StepHandler = Callable[[FormSession, ScenarioStep], Awaitable[Any]]

STEP_HANDLERS: Dict[str, StepHandler] = {
    "set_text": lambda s, step: s.set_text(step.label, str(step.value)),
    "set_text_area": lambda s, step: s.set_text_area(step.label, str(step.value)),
    "set_number": lambda s, step: s.set_number(step.label, step.value),
    "set_boolean": lambda s, step: s.set_boolean(step.label, as_bool(step.value)),
    "set_option": lambda s, step: s.set_option(
        step.label, str(step.value), allow_prefix=step.allow_prefix
    ),
    "set_multi_option": lambda s, step: s.set_multi_option(
        step.label, [str(v) for v in step.value] if isinstance(step.value, list) else [str(step.value)]
    ),
    "set_lookup": lambda s, step: s.set_lookup(
        step.label,
        str(step.value),
        allow_prefix=step.allow_prefix,
        dialog_allow_prefix=step.allow_prefix,
    ),
    "force_lookup_dialog": lambda s, step: s.force_lookup_dialog(
        step.label, str(step.value), dialog_allow_prefix=step.allow_prefix
    ),
    "clear_lookup": lambda s, step: s.clear_lookup(step.label),
    "clear_field": lambda s, step: s.clear_field(step.label),
    "set_date": lambda s, step: s.set_date(step.label, step.value),
    "click_command": lambda s, step: s.click_command(step.label),
    "expect_toast": lambda s, step: s.expect_toast(str(step.value), step.timeout_ms),
    "expect_value": _expect_value,
    "open_link": lambda s, step: s.open_link(step.label),
    "search_view": lambda s, step: s.grid.search_this_view(str(step.value)),
    "open_record": lambda s, step: s.grid.open_record(
        str(step.value), partial=step.allow_prefix, column=step.label
    ),
}


def _summarize(result: Any) -> str:
    committed = getattr(result, "committed", None)
    if committed is not None:
        suffix = " via dialog" if getattr(result, "escalated", False) else ""
        return f"{committed}{suffix}"
    if isinstance(result, bool):
        return "changed" if result else "unchanged"
    return "" if result is None else str(result)


async def run_scenario(session: FormSession, scenario: Scenario) -> List[StepReport]:
    """
    Run every step in order, stopping at the first failure.

    Only engine errors are reported as failed steps; anything else
    propagates to the caller.
    """
    if scenario.url:
        await session.driver.navigate(scenario.url)

    reports: List[StepReport] = []
    for index, step in enumerate(scenario.steps, start=1):
        started = time.perf_counter()
        try:
            result = await STEP_HANDLERS[step.action](session, step)
        except UCIFormsError as exc:
            logger.error(
                f"Step {index} failed: {exc.message}",
                extra={"label": step.label, "error": exc.to_dict()},
            )
            reports.append(StepReport(
                index=index,
                action=step.action,
                target=step.describe(),
                passed=False,
                detail=exc.message,
                elapsed_ms=(time.perf_counter() - started) * 1000,
            ))
            break

        reports.append(StepReport(
            index=index,
            action=step.action,
            target=step.describe(),
            passed=True,
            detail=_summarize(result),
            elapsed_ms=(time.perf_counter() - started) * 1000,
        ))
    return reports
