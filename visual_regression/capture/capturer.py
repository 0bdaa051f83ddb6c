"""Capture adapter: full-page screenshots through Playwright."""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol

from playwright.async_api import Browser, Page, async_playwright
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from visual_regression.errors import (
    CaptureError,
    CaptureSurfaceError,
    CaptureTimeout,
    NavigationError,
)
from visual_regression.models.config import RegressionConfig, ViewportConfig

from .browser import create_capture_context, launch_browser

logger = logging.getLogger(__name__)


class CaptureAdapter(Protocol):
    async def capture(self, url: str, viewport: ViewportConfig, browser_name: str) -> bytes:
        ...


class PlaywrightCapture:
    """Launches the configured engines once and screenshots URLs on demand.

    Use as an async context manager. Each capture runs in its own browser
    context, so concurrent captures never share cookies or cache.
    """

    def __init__(self, config: RegressionConfig, headless: bool = True):
        self.config = config
        self.headless = headless
        self._playwright_cm = None
        self._browsers: dict[str, Browser] = {}

    @property
    def browsers(self) -> list[str]:
        return list(self._browsers)

    async def __aenter__(self) -> "PlaywrightCapture":
        self._playwright_cm = async_playwright()
        playwright = await self._playwright_cm.__aenter__()
        for name in self.config.browsers:
            try:
                logger.debug("Launching %s...", name)
                self._browsers[name] = await launch_browser(playwright, name, headless=self.headless)
            except PlaywrightError as e:
                logger.error("Could not launch %s: %s", name, e)
        if not self._browsers:
            await self._playwright_cm.__aexit__(None, None, None)
            self._playwright_cm = None
            raise CaptureSurfaceError(
                f"None of the configured browsers could be launched: {self.config.browsers}"
            )
        return self

    async def __aexit__(self, *exc_info) -> None:
        for name, browser in self._browsers.items():
            try:
                await browser.close()
            except PlaywrightError as e:
                logger.debug("Closing %s failed: %s", name, e)
        self._browsers.clear()
        if self._playwright_cm is not None:
            await self._playwright_cm.__aexit__(*exc_info)
            self._playwright_cm = None

    async def capture(self, url: str, viewport: ViewportConfig, browser_name: str) -> bytes:
        """Return PNG bytes of ``url`` rendered at ``viewport``.

        Raises NavigationError when the page cannot be loaded and CaptureTimeout
        when the whole capture exceeds ``capture_timeout_ms``.
        """
        browser = self._browsers.get(browser_name)
        if browser is None:
            raise CaptureError(f"Browser '{browser_name}' is not available")

        timeout_s = self.config.capture_timeout_ms / 1000
        try:
            return await asyncio.wait_for(self._capture(browser, url, viewport), timeout=timeout_s)
        except asyncio.TimeoutError as e:
            raise CaptureTimeout(f"Capture of {url} exceeded {timeout_s:.0f}s") from e

    async def _capture(self, browser: Browser, url: str, viewport: ViewportConfig) -> bytes:
        context = await create_capture_context(
            browser,
            viewport={"width": viewport.width, "height": viewport.height},
            user_agent=self.config.user_agent,
        )
        try:
            page = await context.new_page()
            await page.set_viewport_size({"width": viewport.width, "height": viewport.height})
            await self._navigate(page, url)
            await self._wait_until_quiet(page)
            try:
                return await page.screenshot(full_page=self.config.full_page, animations="disabled")
            except PlaywrightError as e:
                raise CaptureError(f"Screenshot of {url} failed: {e}") from e
        finally:
            await context.close()

    async def _navigate(self, page: Page, url: str) -> None:
        logger.debug("Navigating to %s", url)
        try:
            response = await page.goto(url, wait_until="load", timeout=self.config.capture_timeout_ms)
        except PlaywrightTimeoutError as e:
            raise CaptureTimeout(f"Navigation to {url} timed out") from e
        except PlaywrightError as e:
            raise NavigationError(f"Navigation to {url} failed: {e}") from e
        if response is not None and response.status >= 400:
            raise NavigationError(f"{url} responded with HTTP {response.status}")

    async def _wait_until_quiet(self, page: Page) -> None:
        """Wait for network idle (bounded), then the fixed settle delay."""
        try:
            await page.wait_for_load_state("networkidle", timeout=self.config.network_idle_timeout_ms)
        except PlaywrightTimeoutError:
            # Long-polling pages never go idle; capture anyway
            logger.debug("Network did not idle within %dms on %s",
                         self.config.network_idle_timeout_ms, page.url)
        if self.config.settle_delay_ms:
            await page.wait_for_timeout(self.config.settle_delay_ms)
