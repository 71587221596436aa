"""
Pattern construction over accessible names and displayed values.

Patterns are built per call from request-scoped literals; nothing here is
cached at module level.
"""

import re
from dataclasses import dataclass
from typing import Iterable, Optional, Pattern

from uciforms.core.types import MatchMode

# Characters significant to both Python's and the browser's regex engines.
_METACHARACTERS = re.compile(r"[.*+?^${}()|\[\]\\]")

# Type suffixes some tenants append to a field's accessible name.
LABEL_SUFFIXES = ("Lookup",)


def escape(literal: str) -> str:
    """Escape pattern metacharacters in a user-supplied literal."""
    return _METACHARACTERS.sub(r"\\\g<0>", literal)


@dataclass(frozen=True)
class MatchPattern:
    """A compiled, case-insensitive predicate derived from a literal."""

    literal: str
    mode: MatchMode
    regex: Pattern[str]

    def matches(self, text: Optional[str]) -> bool:
        """Test text (surrounding whitespace ignored) against the pattern."""
        if text is None:
            return False
        return self.regex.search(text.strip()) is not None

    def __str__(self) -> str:
        return f"{self.mode.value}:{self.literal!r}"


def exact_pattern(literal: str) -> MatchPattern:
    """Anchored full-string, case-insensitive match."""
    return MatchPattern(
        literal,
        MatchMode.EXACT,
        re.compile(f"^{escape(literal)}$", re.IGNORECASE),
    )


def prefix_pattern(literal: str) -> MatchPattern:
    """Case-insensitive match anchored at the start only."""
    return MatchPattern(
        literal,
        MatchMode.PREFIX,
        re.compile(f"^{escape(literal)}", re.IGNORECASE),
    )


def label_pattern(
    label: str,
    suffixes: Iterable[str] = LABEL_SUFFIXES,
) -> MatchPattern:
    """
    Whole-name label match tolerating a required marker or a type suffix.

    Matches ``"Account Name"``, ``"Account Name*"`` and
    ``"Account Name, Lookup"`` for the label ``"Account Name"``.

    Args:
        label: Human-readable field label
        suffixes: Type suffixes accepted after a comma

    Returns:
        Anchored, case-insensitive pattern
    """
    suffix_group = ""
    suffix_list = [escape(suffix) for suffix in suffixes]
    if suffix_list:
        suffix_group = f"(?:,\\s*(?:{'|'.join(suffix_list)}))?"
    return MatchPattern(
        label,
        MatchMode.EXACT,
        re.compile(f"^{escape(label)}(?:\\s*\\*)?{suffix_group}$", re.IGNORECASE),
    )


def any_of(*alternatives: str) -> Pattern[str]:
    """Case-insensitive pattern matching any of the given regex fragments."""
    return re.compile("|".join(alternatives), re.IGNORECASE)
