"""
Text matching and tiered entry selection.
"""

from uciforms.matching.text import (
    LABEL_SUFFIXES,
    MatchPattern,
    any_of,
    escape,
    exact_pattern,
    label_pattern,
    prefix_pattern,
)
from uciforms.matching.tiered import EntryMatch, TieredMatcher, match_tiers

__all__ = [
    "LABEL_SUFFIXES",
    "MatchPattern",
    "escape",
    "exact_pattern",
    "prefix_pattern",
    "label_pattern",
    "any_of",
    "EntryMatch",
    "TieredMatcher",
    "match_tiers",
]
