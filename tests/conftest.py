"""
Shared fixtures for engine tests.
"""

import pytest

from tests.fake_ui import FakeUI


@pytest.fixture
def ui():
    """An empty fake page."""
    return FakeUI()
