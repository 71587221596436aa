"""
Custom exception hierarchy for uciforms error handling.

Every field-level failure names the label and the attempted value so a
failed step can be diagnosed from the error alone.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence


class UCIFormsError(Exception):
    """Base exception for all uciforms errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
            "cause": str(self.cause) if self.cause else None
        }


class RetryableError(UCIFormsError):
    """Base class for errors that can be retried."""

    def __init__(
        self,
        message: str,
        max_retries: int = 3,
        retry_delay_ms: int = 250,
        **kwargs
    ):
        super().__init__(message, **kwargs)
        self.max_retries = max_retries
        self.retry_delay_ms = retry_delay_ms
        self.retry_count = 0

    def increment_retry(self) -> None:
        """Increment retry counter."""
        self.retry_count += 1

    def can_retry(self) -> bool:
        """Check if error can be retried."""
        return self.retry_count < self.max_retries


class NonRetryableError(UCIFormsError):
    """Base class for errors that should not be retried."""
    pass


class BrowserError(RetryableError):
    """A driver call failed, typically because it raced a re-render."""

    def __init__(
        self,
        message: str,
        action: Optional[str] = None,
        target: Optional[str] = None,
        **kwargs
    ):
        super().__init__(message, **kwargs)
        self.action = action
        self.target = target
        self.details.update({
            "action": action,
            "target": target
        })


class FieldError(NonRetryableError):
    """A field-set operation failed after all applicable fallbacks."""

    def __init__(
        self,
        message: str,
        label: str,
        value: Optional[str] = None,
        **kwargs
    ):
        super().__init__(message, **kwargs)
        self.label = label
        self.value = value
        self.details.update({
            "label": label,
            "value": value
        })


class ControlNotFoundError(FieldError):
    """No candidate role produced a visible control for the label."""

    def __init__(
        self,
        label: str,
        roles: Sequence[str] = (),
        **kwargs
    ):
        role_list = [str(getattr(role, "value", role)) for role in roles]
        super().__init__(
            f'Control "{label}" not found as {"/".join(role_list) or "any role"}',
            label=label,
            **kwargs
        )
        self.roles: List[str] = role_list
        self.details["roles"] = role_list


class AmbiguousControlError(FieldError):
    """Several controls share the label and strict resolution is enabled."""

    def __init__(self, label: str, count: int, role: str, **kwargs):
        super().__init__(
            f'Label "{label}" matches {count} {role} controls',
            label=label,
            **kwargs
        )
        self.count = count
        self.role = role
        self.details.update({"count": count, "role": role})


class OptionNotFoundError(FieldError):
    """The requested value could not be located by any applicable strategy."""

    def __init__(self, label: str, value: str, stage: str = "direct_entry", **kwargs):
        super().__init__(
            f'No option matching "{value}" for "{label}" ({stage})',
            label=label,
            value=value,
            **kwargs
        )
        self.stage = stage
        self.details["stage"] = stage


class DialogDidNotOpenError(FieldError):
    """The advanced picker did not appear after triggering it."""

    def __init__(self, label: str, value: str, timeout_ms: int, **kwargs):
        super().__init__(
            f'Lookup dialog for "{label}" did not open within {timeout_ms}ms',
            label=label,
            value=value,
            **kwargs
        )
        self.timeout_ms = timeout_ms
        self.details["timeout_ms"] = timeout_ms


class SelectionNotCommittedError(FieldError):
    """A value was activated but the UI never confirmed it."""

    def __init__(self, label: str, value: str, stage: str, **kwargs):
        super().__init__(
            f'Selection of "{value}" for "{label}" was not committed ({stage})',
            label=label,
            value=value,
            **kwargs
        )
        self.stage = stage
        self.details["stage"] = stage


class UnparsableDateError(NonRetryableError):
    """A date input matched neither accepted layout."""

    def __init__(self, raw: Any, **kwargs):
        super().__init__(
            f'Unrecognized date "{raw}". Use dd/MM/yyyy or yyyy-MM-dd.',
            **kwargs
        )
        self.raw = raw
        self.details["input"] = str(raw)


class ExpectationFailedError(NonRetryableError):
    """A page-level expectation (toast, field value) did not hold."""

    def __init__(self, subject: str, expected: str, actual: Optional[str] = None, **kwargs):
        super().__init__(
            f'Expected {subject} to show "{expected}", got "{actual or ""}"',
            **kwargs
        )
        self.subject = subject
        self.expected = expected
        self.actual = actual
        self.details.update({"subject": subject, "expected": expected, "actual": actual})
