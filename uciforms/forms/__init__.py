"""
Form-level facade over the selection engine.
"""

from uciforms.forms.session import FormSession

__all__ = ["FormSession"]
