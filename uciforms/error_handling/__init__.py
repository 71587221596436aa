"""
Error handling for uciforms.

Terminal field errors propagate to the caller unchanged; only driver-level
``BrowserError`` is retried, and only inside a bounded stage.
"""

from .exceptions import (
    UCIFormsError,
    RetryableError,
    NonRetryableError,
    BrowserError,
    FieldError,
    ControlNotFoundError,
    AmbiguousControlError,
    OptionNotFoundError,
    DialogDidNotOpenError,
    SelectionNotCommittedError,
    UnparsableDateError,
    ExpectationFailedError,
)

__all__ = [
    "UCIFormsError",
    "RetryableError",
    "NonRetryableError",
    "BrowserError",
    "FieldError",
    "ControlNotFoundError",
    "AmbiguousControlError",
    "OptionNotFoundError",
    "DialogDidNotOpenError",
    "SelectionNotCommittedError",
    "UnparsableDateError",
    "ExpectationFailedError",
]
