"""
Tiered matching of a target value against a container's entries.
"""

from dataclasses import dataclass
from typing import List, Optional

from uciforms.core.interfaces import Handle, UIDriver
from uciforms.core.types import MatchMode
from uciforms.matching.text import MatchPattern, exact_pattern, prefix_pattern
from uciforms.monitoring.logger import get_logger

logger = get_logger(__name__)


@dataclass
class EntryMatch:
    """A visible entry and the tier that found it."""

    handle: Handle
    pattern: MatchPattern


def match_tiers(value: str, allow_prefix: bool) -> List[MatchPattern]:
    """Patterns to try in order: exact first, then prefix when allowed."""
    tiers = [exact_pattern(value)]
    if allow_prefix:
        tiers.append(prefix_pattern(value))
    return tiers


class TieredMatcher:
    """
    Finds the first visible entry matching a value, exact before prefix.

    Exact wins so that "Jane" never selects "Jane Doe" when both are
    rendered; prefix is a relaxation for ellipsized or partial names.
    Probes are short because callers run them inside retry loops.
    """

    def __init__(self, driver: UIDriver) -> None:
        self.driver = driver

    async def find(
        self,
        container: Optional[Handle],
        value: str,
        *,
        entry_role: str = "option",
        allow_prefix: bool = False,
        probe_ms: int = 1000,
        prefix_probe_ms: Optional[int] = None,
    ) -> Optional[EntryMatch]:
        """
        Probe the container for a matching entry.

        Args:
            container: Handle scoping the search (listbox, grid, dialog)
            value: Literal target value
            entry_role: Role of the entries (``option`` or ``row``)
            allow_prefix: Whether to try the prefix tier after exact
            probe_ms: Visibility bound for the exact tier
            prefix_probe_ms: Visibility bound for the prefix tier (defaults to probe_ms)

        Returns:
            The match, or None when no tier found a visible entry
        """
        for tier in match_tiers(value, allow_prefix):
            timeout = probe_ms if tier.mode is MatchMode.EXACT else (prefix_probe_ms or probe_ms)
            handle = self.driver.query(entry_role, tier.regex, within=container)
            if await self.driver.is_visible(handle, timeout):
                logger.debug(
                    "Matched entry",
                    extra={"entry_role": entry_role, "tier": tier.mode.value},
                )
                return EntryMatch(handle=handle, pattern=tier)
        return None
