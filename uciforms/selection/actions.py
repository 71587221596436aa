"""
Small UI actions shared by every field kind.
"""

import asyncio
import re
from typing import Optional

from uciforms.core.interfaces import Handle, UIDriver
from uciforms.error_handling.exceptions import BrowserError
from uciforms.monitoring.logger import get_logger

logger = get_logger(__name__)


async def activate(driver: UIDriver, handle: Handle, retries: int = 2) -> None:
    """
    Click an element, retrying a bounded number of times on driver errors.

    A click can land while the list re-renders; the handle is lazy, so a
    retry re-resolves it against the fresh tree.

    Raises:
        BrowserError: The last attempt still failed
    """
    attempt = 0
    while True:
        try:
            await driver.click(handle)
            return
        except BrowserError as exc:
            exc.retry_count = attempt
            if attempt >= retries or not exc.can_retry():
                raise
            attempt += 1
            logger.debug(f"Click raced a re-render, retrying ({attempt}/{retries})")
            await asyncio.sleep(exc.retry_delay_ms / 1000)


async def clear_input(driver: UIDriver, handle: Handle) -> bool:
    """
    Clear an editable control's value.

    Clearing an empty control does nothing.

    Returns:
        True if a value was cleared
    """
    try:
        current = await driver.read_value(handle)
    except BrowserError:
        current = None

    if current == "":
        return False

    try:
        await driver.fill(handle, "")
    except BrowserError:
        # Some controls ignore fill(""); select-all plus Backspace still works.
        await driver.press_key(handle, "Control+A")
        await driver.press_key(handle, "Backspace")
    return True


async def settle_search(
    driver: UIDriver,
    url_pattern: str,
    timeout_ms: int,
) -> bool:
    """
    Give a backing search call a chance to return.

    Advisory only: the caller's visibility probe decides correctness, so a
    missing response never blocks progress beyond the timeout.
    """
    if timeout_ms <= 0:
        return False
    settled = await driver.wait_for_response(re.compile(url_pattern, re.IGNORECASE), timeout_ms)
    if not settled:
        logger.debug("No search response observed before the settle timeout")
    return settled


async def read_text_or_none(driver: UIDriver, handle: Handle) -> Optional[str]:
    """Displayed text, or None when the element cannot be read."""
    try:
        return await driver.read_text(handle)
    except BrowserError:
        return None
