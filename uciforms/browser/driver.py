"""
Playwright browser driver implementation.
"""

import asyncio
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, Optional, Pattern

from playwright.async_api import Browser, BrowserContext, Locator, Page, async_playwright
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from uciforms.config.settings import get_settings
from uciforms.core.interfaces import UIDriver
from uciforms.error_handling.exceptions import BrowserError
from uciforms.monitoring.logger import get_logger, log_performance_metric

SCROLL_SCRIPT = "(el, delta) => el.scrollBy(0, delta ?? el.clientHeight)"


class PlaywrightDriver(UIDriver):
    """Playwright-based driver; every handle is a lazy ``Locator``."""

    def __init__(
        self,
        headless: Optional[bool] = None,
        viewport_width: Optional[int] = None,
        viewport_height: Optional[int] = None,
        timeout: Optional[int] = None,
        storage_state_path: Optional[Path] = None,
    ) -> None:
        """
        Initialize the Playwright driver.

        Args:
            headless: Run browser in headless mode
            viewport_width: Browser viewport width
            viewport_height: Browser viewport height
            timeout: Default action timeout in milliseconds
            storage_state_path: Saved session (cookies, storage) to start from
        """
        settings = get_settings()
        self.headless = headless if headless is not None else settings.browser_headless
        self.viewport_width = viewport_width or settings.browser_viewport_width
        self.viewport_height = viewport_height or settings.browser_viewport_height
        self.timeout = timeout or settings.browser_timeout
        self.storage_state_path = storage_state_path or settings.storage_state_path

        self.logger = get_logger("browser.driver")
        self._playwright = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None

    async def start(self) -> None:
        """Start the browser and create a page."""
        if self._playwright is None:
            self._playwright = await async_playwright().start()

        if self._browser is None:
            self.logger.info(
                "Starting browser",
                extra={
                    "headless": self.headless,
                    "viewport": f"{self.viewport_width}x{self.viewport_height}",
                },
            )
            self._browser = await self._playwright.chromium.launch(
                headless=self.headless,
                args=["--no-sandbox", "--disable-dev-shm-usage", "--disable-extensions"],
                env=os.environ,
            )

        if self._context is None:
            context_args = {
                "viewport": {"width": self.viewport_width, "height": self.viewport_height},
            }
            if self.storage_state_path and Path(self.storage_state_path).exists():
                context_args["storage_state"] = str(self.storage_state_path)
            self._context = await self._browser.new_context(**context_args)
            self._context.set_default_timeout(self.timeout)

        if self._page is None:
            self._page = await self._context.new_page()

    async def stop(self) -> None:
        """Stop the browser and cleanup resources."""
        if self._page:
            await self._page.close()
            self._page = None

        if self._context:
            await self._context.close()
            self._context = None

        if self._browser:
            await self._browser.close()
            self._browser = None

        if self._playwright:
            await self._playwright.stop()
            self._playwright = None

        self.logger.info("Browser stopped")

    @property
    def page(self) -> Page:
        """Current page; raises if the browser has not been started."""
        if not self._page:
            raise RuntimeError("Browser not started. Call start() first.")
        return self._page

    @contextmanager
    def _translated(self, action: str, handle: Optional[Locator] = None) -> Iterator[None]:
        try:
            yield
        except PlaywrightError as exc:
            raise BrowserError(
                f"{action} failed: {exc.message}",
                action=action,
                target=str(handle) if handle is not None else None,
                cause=exc,
            ) from exc

    # ------------------------------------------------------------- queries

    @staticmethod
    def _pick(locator: Locator, index: Optional[int]) -> Locator:
        if index is None:
            return locator
        if index == 0:
            return locator.first
        if index == -1:
            return locator.last
        return locator.nth(index)

    def query(
        self,
        role: str,
        name: Optional[Pattern[str]] = None,
        *,
        within: Optional[Locator] = None,
        has_text: Optional[Pattern[str]] = None,
        has: Optional[Locator] = None,
        index: Optional[int] = 0,
        attributes: Optional[Dict[str, str]] = None,
    ) -> Locator:
        root = within if within is not None else self.page
        locator = root.get_by_role(role, name=name) if name is not None else root.get_by_role(role)
        if has_text is not None or has is not None:
            locator = locator.filter(has_text=has_text, has=has)
        for attribute, value in (attributes or {}).items():
            escaped = value.replace("\\", "\\\\").replace('"', '\\"')
            locator = locator.and_(root.locator(f'[{attribute}="{escaped}"]'))
        return self._pick(locator, index)

    def query_text(
        self,
        pattern: Pattern[str],
        *,
        within: Optional[Locator] = None,
        index: Optional[int] = 0,
    ) -> Locator:
        root = within if within is not None else self.page
        return self._pick(root.get_by_text(pattern), index)

    async def count(self, handle: Locator) -> int:
        with self._translated("count", handle):
            return await handle.count()

    async def is_visible(self, handle: Locator, timeout_ms: int) -> bool:
        try:
            await handle.wait_for(state="visible", timeout=timeout_ms)
            return True
        except PlaywrightTimeoutError:
            return False

    async def wait_hidden(self, handle: Locator, timeout_ms: int) -> bool:
        try:
            await handle.wait_for(state="hidden", timeout=timeout_ms)
            return True
        except PlaywrightTimeoutError:
            return False

    # ------------------------------------------------------------- actions

    async def click(self, handle: Locator) -> None:
        self.logger.debug("Clicking", extra={"target": str(handle)})
        with self._translated("click", handle):
            await handle.click()

    async def double_click(self, handle: Locator) -> None:
        with self._translated("double_click", handle):
            await handle.dblclick()

    async def fill(self, handle: Locator, text: str) -> None:
        with self._translated("fill", handle):
            await handle.fill(text)

    async def type_text(self, handle: Locator, text: str, delay_ms: int = 0) -> None:
        self.logger.debug("Typing text", extra={"value_length": len(text)})
        with self._translated("type_text", handle):
            await handle.press_sequentially(text, delay=delay_ms)

    async def press_key(self, handle: Locator, key: str) -> None:
        self.logger.debug("Pressing key", extra={"key": key})
        with self._translated("press_key", handle):
            await handle.press(key)

    async def blur(self, handle: Locator) -> None:
        with self._translated("blur", handle):
            await handle.blur()

    async def read_text(self, handle: Locator) -> str:
        with self._translated("read_text", handle):
            return await handle.inner_text()

    async def read_value(self, handle: Locator) -> str:
        with self._translated("read_value", handle):
            return await handle.input_value()

    async def get_attribute(self, handle: Locator, name: str) -> Optional[str]:
        with self._translated("get_attribute", handle):
            return await handle.get_attribute(name)

    async def is_checked(self, handle: Locator) -> bool:
        with self._translated("is_checked", handle):
            return await handle.is_checked()

    async def scroll_by(self, handle: Locator, delta: Optional[int] = None) -> None:
        with self._translated("scroll_by", handle):
            await handle.evaluate(SCROLL_SCRIPT, delta)

    async def scroll_into_view(self, handle: Locator) -> None:
        with self._translated("scroll_into_view", handle):
            await handle.scroll_into_view_if_needed()

    async def wait_for_response(self, url_pattern: Pattern[str], timeout_ms: int) -> bool:
        try:
            await self.page.wait_for_event(
                "response",
                predicate=lambda response: (
                    bool(url_pattern.search(response.url)) and response.status < 500
                ),
                timeout=timeout_ms,
            )
            return True
        except PlaywrightTimeoutError:
            return False

    async def navigate(self, url: str) -> None:
        """Navigate to a URL."""
        if not self._page:
            await self.start()

        self.logger.info("Navigating to URL", extra={"url": url})
        start_time = asyncio.get_event_loop().time()

        with self._translated("navigate"):
            await self._page.goto(url, wait_until="domcontentloaded")

        elapsed_ms = (asyncio.get_event_loop().time() - start_time) * 1000
        log_performance_metric("page_navigation", elapsed_ms, context={"url": url})

    async def __aenter__(self) -> "PlaywrightDriver":
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.stop()
