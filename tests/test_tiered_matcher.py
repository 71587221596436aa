"""
Tests for exact-then-prefix entry matching.
"""

import pytest

from uciforms.core.types import MatchMode
from uciforms.matching.tiered import TieredMatcher, match_tiers
from tests.fake_ui import FakeNode


def listbox(ui, *names):
    node = FakeNode("listbox", "results", children=[FakeNode("option", name) for name in names])
    ui.add(node)
    return ui.query("listbox")


class TestMatchTiers:
    """Tests for tier construction."""

    def test_exact_only_by_default(self):
        assert [tier.mode for tier in match_tiers("Jane", False)] == [MatchMode.EXACT]

    def test_prefix_follows_exact(self):
        modes = [tier.mode for tier in match_tiers("Jane", True)]
        assert modes == [MatchMode.EXACT, MatchMode.PREFIX]


class TestTieredMatcher:
    """Tests for TieredMatcher.find."""

    @pytest.mark.asyncio
    async def test_exact_beats_longer_entry_listed_first(self, ui):
        """Exact-match priority holds regardless of render order."""
        container = listbox(ui, "Jane Doe", "Jane")
        match = await TieredMatcher(ui).find(container, "Jane", allow_prefix=True)

        assert match.pattern.mode is MatchMode.EXACT
        assert await ui.read_text(match.handle) == "Jane"

    @pytest.mark.asyncio
    async def test_prefix_used_only_when_allowed(self, ui):
        container = listbox(ui, "Jane Doe")
        matcher = TieredMatcher(ui)

        assert await matcher.find(container, "Jane", allow_prefix=False) is None

        match = await matcher.find(container, "Jane", allow_prefix=True)
        assert match.pattern.mode is MatchMode.PREFIX
        assert await ui.read_text(match.handle) == "Jane Doe"

    @pytest.mark.asyncio
    async def test_scoped_to_container(self, ui):
        ui.add(FakeNode("option", "Jane"))
        container = listbox(ui, "John")
        assert await TieredMatcher(ui).find(container, "Jane") is None

    @pytest.mark.asyncio
    async def test_prefix_tier_timeout(self, ui):
        container = listbox(ui, "Jane Doe")
        await TieredMatcher(ui).find(
            container, "Jane", allow_prefix=True, probe_ms=500, prefix_probe_ms=300
        )
        assert ui.probes == [("option", 500), ("option", 300)]

    @pytest.mark.asyncio
    async def test_row_entries(self, ui):
        grid = FakeNode("grid", "Records", children=[FakeNode("row", "Contoso"), FakeNode("row", "Fabrikam")])
        ui.add(grid)
        match = await TieredMatcher(ui).find(ui.query("grid"), "fabrikam", entry_role="row")
        assert match is not None
