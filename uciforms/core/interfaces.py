"""
Core interfaces and abstract base classes for the uciforms engine.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Pattern

# Opaque, lazily re-resolved reference to zero or more rendered elements.
Handle = Any


class UIDriver(ABC):
    """Abstract accessibility-tree driver consumed by the engine.

    Handles returned by :meth:`query` are lazy: every call re-resolves them
    against the live page, so they never go stale after a re-render.
    """

    @abstractmethod
    def query(
        self,
        role: str,
        name: Optional[Pattern[str]] = None,
        *,
        within: Optional[Handle] = None,
        has_text: Optional[Pattern[str]] = None,
        has: Optional[Handle] = None,
        index: Optional[int] = 0,
        attributes: Optional[Dict[str, str]] = None,
    ) -> Handle:
        """
        Build a handle for elements with a role and accessible name.

        Args:
            role: ARIA role
            name: Pattern the accessible name must match
            within: Scope handle; defaults to the whole page
            has_text: Pattern the element's text content must contain
            has: Handle (relative to each candidate) that must match inside it
            index: 0 for first in document order, -1 for last, None for all
            attributes: Exact attribute values the element must carry

        Returns:
            Lazy element handle
        """

    @abstractmethod
    def query_text(
        self,
        pattern: Pattern[str],
        *,
        within: Optional[Handle] = None,
        index: Optional[int] = 0,
    ) -> Handle:
        """Build a handle for elements whose text matches a pattern."""

    @abstractmethod
    async def count(self, handle: Handle) -> int:
        """Number of elements the handle currently resolves to."""

    @abstractmethod
    async def is_visible(self, handle: Handle, timeout_ms: int) -> bool:
        """Wait up to timeout for the handle to be visible. Never raises on timeout."""

    @abstractmethod
    async def wait_hidden(self, handle: Handle, timeout_ms: int) -> bool:
        """Wait up to timeout for the handle to be hidden or detached."""

    @abstractmethod
    async def click(self, handle: Handle) -> None:
        """Click an element."""

    @abstractmethod
    async def double_click(self, handle: Handle) -> None:
        """Double-click an element."""

    @abstractmethod
    async def fill(self, handle: Handle, text: str) -> None:
        """Replace an editable element's value."""

    @abstractmethod
    async def type_text(self, handle: Handle, text: str, delay_ms: int = 0) -> None:
        """Type text key by key into an element."""

    @abstractmethod
    async def press_key(self, handle: Handle, key: str) -> None:
        """Press a key (or chord such as ``Alt+ArrowDown``) on an element."""

    @abstractmethod
    async def blur(self, handle: Handle) -> None:
        """Move focus away from an element."""

    @abstractmethod
    async def read_text(self, handle: Handle) -> str:
        """Displayed text content of an element."""

    @abstractmethod
    async def read_value(self, handle: Handle) -> str:
        """Current value of an input element."""

    @abstractmethod
    async def get_attribute(self, handle: Handle, name: str) -> Optional[str]:
        """Attribute value, or None when absent."""

    @abstractmethod
    async def is_checked(self, handle: Handle) -> bool:
        """Checked state of a checkbox or switch."""

    @abstractmethod
    async def scroll_by(self, handle: Handle, delta: Optional[int] = None) -> None:
        """Scroll a container; ``None`` scrolls by its own rendered height."""

    @abstractmethod
    async def scroll_into_view(self, handle: Handle) -> None:
        """Bring an element into the viewport if needed."""

    @abstractmethod
    async def wait_for_response(self, url_pattern: Pattern[str], timeout_ms: int) -> bool:
        """Wait for a successful network response whose URL matches."""

    @abstractmethod
    async def navigate(self, url: str) -> None:
        """Navigate the page to a URL."""

