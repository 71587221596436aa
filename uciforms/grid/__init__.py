"""
Grid view helpers.
"""

from uciforms.grid.views import GridNavigator

__all__ = ["GridNavigator"]
