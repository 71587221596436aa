"""
Browser automation module exports.
"""

from uciforms.browser.driver import PlaywrightDriver

__all__ = [
    "PlaywrightDriver",
]
