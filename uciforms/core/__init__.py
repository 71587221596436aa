"""
Core module exports.
"""

from uciforms.core.interfaces import Handle, UIDriver
from uciforms.core.types import (
    CalendarCursor,
    ControlHandle,
    ControlRole,
    FieldKind,
    GridCellQuery,
    MatchMode,
    SelectionResult,
    SelectionState,
    StageOutcome,
    StageResult,
)

__all__ = [
    # Interfaces
    "UIDriver",
    "Handle",
    # Types
    "ControlRole",
    "MatchMode",
    "FieldKind",
    "SelectionState",
    "StageOutcome",
    "StageResult",
    "ControlHandle",
    "SelectionResult",
    "CalendarCursor",
    "GridCellQuery",
]
