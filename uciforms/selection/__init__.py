"""
Value selection: scroll-search, dialog escalation and the orchestrating pipeline.
"""

from uciforms.selection.actions import activate, clear_input, settle_search
from uciforms.selection.booleans import BOOLEAN_STRATEGIES, BooleanDispatcher
from uciforms.selection.dialog import LookupDialogPicker
from uciforms.selection.orchestrator import (
    DIALOG_TRANSITIONS,
    LOOKUP_TRANSITIONS,
    OPTION_SET_TRANSITIONS,
    SelectionOrchestrator,
)
from uciforms.selection.scroll_search import ScrollOutcome, ScrollSearcher

__all__ = [
    "activate",
    "clear_input",
    "settle_search",
    "BooleanDispatcher",
    "BOOLEAN_STRATEGIES",
    "LookupDialogPicker",
    "SelectionOrchestrator",
    "LOOKUP_TRANSITIONS",
    "OPTION_SET_TRANSITIONS",
    "DIALOG_TRANSITIONS",
    "ScrollOutcome",
    "ScrollSearcher",
]
