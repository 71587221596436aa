"""
Control resolution by accessible role and name.
"""

from uciforms.controls.resolver import DEFAULT_ROLES, ControlResolver

__all__ = ["ControlResolver", "DEFAULT_ROLES"]
