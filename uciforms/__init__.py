"""
uciforms - resilient form automation for role-based, virtualized web UIs.
"""

__version__ = "0.1.0"
