"""
Incremental scroll-search over a virtualized container.
"""

from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Optional, TypeVar

from uciforms.config.settings import get_settings
from uciforms.core.interfaces import Handle, UIDriver
from uciforms.matching.tiered import EntryMatch, TieredMatcher
from uciforms.monitoring.logger import get_logger

T = TypeVar("T")

logger = get_logger(__name__)


@dataclass
class ScrollOutcome(Generic[T]):
    """What a scroll-search produced and how many scroll steps it took."""

    match: Optional[T]
    scrolls: int

    @property
    def found(self) -> bool:
        return self.match is not None


class ScrollSearcher:
    """
    Scrolls a container forward one step at a time, re-probing after each step.

    Scrolling only moves forward: virtualized result lists render entries in a
    stable most-relevant-first order, so an entry is never expected behind the
    current window.
    """

    def __init__(self, driver: UIDriver, matcher: Optional[TieredMatcher] = None) -> None:
        self.driver = driver
        self.matcher = matcher or TieredMatcher(driver)
        self.settings = get_settings()

    async def search(
        self,
        container: Handle,
        probe: Callable[[], Awaitable[Optional[T]]],
        max_iterations: int,
        delta: Optional[int] = None,
    ) -> ScrollOutcome[T]:
        """
        Scroll and probe until the probe returns a match or the bound is hit.

        Args:
            container: Scrollable container handle
            probe: Async callable returning a match or None
            max_iterations: Upper bound on scroll steps
            delta: Pixels per step; None scrolls by the container's own height

        Returns:
            Outcome carrying the match (or None) and the scroll count
        """
        for step in range(1, max_iterations + 1):
            await self.driver.scroll_by(container, delta)
            match = await probe()
            if match is not None:
                logger.debug("Scroll-search hit", extra={"scrolls": step})
                return ScrollOutcome(match, step)

        logger.debug("Scroll-search exhausted", extra={"scrolls": max_iterations})
        return ScrollOutcome(None, max_iterations)

    async def search_entries(
        self,
        container: Handle,
        value: str,
        *,
        allow_prefix: bool = False,
        max_iterations: Optional[int] = None,
        entry_role: str = "option",
    ) -> ScrollOutcome[EntryMatch]:
        """Scroll-search a list for an entry using the tiered matcher."""
        iterations = (
            self.settings.lookup_scroll_pages if max_iterations is None else max_iterations
        )

        async def probe() -> Optional[EntryMatch]:
            return await self.matcher.find(
                container,
                value,
                entry_role=entry_role,
                allow_prefix=allow_prefix,
                probe_ms=self.settings.scroll_probe_timeout_ms,
                prefix_probe_ms=self.settings.scroll_prefix_probe_timeout_ms,
            )

        return await self.search(container, probe, iterations)
