"""
Core data models and types for the uciforms engine.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, Field


class ControlRole(str, Enum):
    """Roles a resolved form control can carry."""

    TEXTBOX = "textbox"
    COMBOBOX = "combobox"
    CHECKBOX = "checkbox"
    SWITCH = "switch"


class MatchMode(str, Enum):
    """How a literal is turned into a match pattern."""

    EXACT = "exact"
    PREFIX = "prefix"


class FieldKind(str, Enum):
    """Logical field kinds handled by the form session."""

    TEXT = "text"
    NUMBER = "number"
    BOOLEAN = "boolean"
    OPTION_SET = "option_set"
    MULTI_OPTION_SET = "multi_option_set"
    LOOKUP = "lookup"
    DATE = "date"


class SelectionState(str, Enum):
    """States of the selection pipeline."""

    IDLE = "idle"
    RESOLVING = "resolving"
    DIRECT_ENTRY_ATTEMPTED = "direct_entry_attempted"
    OPTION_VISIBLE = "option_visible"
    NOT_RENDERED = "not_rendered"
    SCROLL_SEARCHING = "scroll_searching"
    FOUND = "found"
    EXHAUSTED = "exhausted"
    ESCALATING = "escalating"
    COMMITTED = "committed"
    FAILED = "failed"

    @property
    def is_success(self) -> bool:
        return self in (
            SelectionState.OPTION_VISIBLE,
            SelectionState.FOUND,
            SelectionState.COMMITTED,
        )


class StageOutcome(str, Enum):
    """Tri-state result every pipeline stage reports."""

    SUCCESS = "success"
    EXHAUSTED = "exhausted"
    FATAL = "fatal"


@dataclass
class StageResult:
    """Outcome of one pipeline stage plus whatever it produced."""

    outcome: StageOutcome
    handle: Any = None
    displayed: Optional[str] = None
    error: Optional[Exception] = None
    scrolls: int = 0

    @classmethod
    def success(
        cls, handle: Any = None, displayed: Optional[str] = None, scrolls: int = 0
    ) -> "StageResult":
        return cls(StageOutcome.SUCCESS, handle=handle, displayed=displayed, scrolls=scrolls)

    @classmethod
    def exhausted(cls, scrolls: int = 0) -> "StageResult":
        return cls(StageOutcome.EXHAUSTED, scrolls=scrolls)

    @classmethod
    def fatal(cls, error: Exception) -> "StageResult":
        return cls(StageOutcome.FATAL, error=error)


@dataclass
class ControlHandle:
    """A live control resolved from a label, annotated with its role.

    Scoped to a single field operation; never cache it across operations.
    """

    role: ControlRole
    label: str
    element: Any


class SelectionResult(BaseModel):
    """Committed value of a field-set operation."""

    label: str = Field(..., description="Field label as passed by the caller")
    kind: FieldKind
    requested: str = Field(..., description="Value the caller asked for")
    committed: str = Field(..., description="Value as displayed after commit")
    state: SelectionState = Field(..., description="Terminal success state")
    path: List[SelectionState] = Field(default_factory=list)
    scrolls: int = Field(0, ge=0, description="Scroll steps spent searching")
    escalated: bool = Field(False, description="Whether the dialog picker was used")
    elapsed_ms: float = Field(0.0, ge=0.0)


class CalendarCursor(BaseModel):
    """Month and year shown by an open calendar popup."""

    year: int = Field(..., ge=1, le=9999)
    month: int = Field(..., ge=1, le=12)

    def months_until(self, year: int, month: int) -> int:
        """Signed number of month hops from this cursor to the target month."""
        return (year - self.year) * 12 + (month - self.month)


class GridCellQuery(BaseModel):
    """Which row to target in a read-only grid view."""

    value: str = Field(..., min_length=1, description="Cell text to match")
    partial: bool = Field(
        False, description="Match rows whose cell merely starts with the value"
    )
    column: Optional[str] = Field(
        None, description="Visible header of the column the cell must sit in"
    )
    logical_name: Optional[str] = Field(
        None, description="Logical name of the column, rendered as data-id=\"cell-<name>\""
    )
