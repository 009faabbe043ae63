"""
Lifecycle of the shared headless Chromium process.

One browser is shared by every request; each page render opens its own tab
against it. The browser is launched lazily, relaunched when it has
disconnected, and discarded by the pipeline after any failed run so the next
request starts from a clean process.
"""
from __future__ import annotations

import asyncio
import logging
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from playwright.async_api import Browser, Playwright, async_playwright

from web.config import Settings

logger = logging.getLogger(__name__)


class BrowserState(str, Enum):
    """Observable states of the shared browser."""
    ABSENT = "absent"
    LIVE = "live"
    DEAD = "dead"


class BrowserManager:
    """Owns the single Chromium instance used for rendering."""

    def __init__(
        self,
        launch_args: Optional[List[str]] = None,
        executable_path: Optional[Path] = None,
        headless: bool = True,
        playwright_factory: Callable[[], Any] = async_playwright,
    ):
        self.launch_args = list(launch_args or [])
        self.executable_path = executable_path
        self.headless = headless
        self._playwright_factory = playwright_factory
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._launch_lock = asyncio.Lock()
        self.launch_count = 0

    @classmethod
    def from_settings(cls, settings: Settings) -> "BrowserManager":
        return cls(
            launch_args=settings.BROWSER_ARGS,
            executable_path=settings.BROWSER_EXECUTABLE_PATH if settings.is_production else None,
        )

    @property
    def state(self) -> BrowserState:
        if self._browser is None:
            return BrowserState.ABSENT
        if self._browser.is_connected():
            return BrowserState.LIVE
        return BrowserState.DEAD

    def launch_options(self) -> Dict[str, Any]:
        options: Dict[str, Any] = {"headless": self.headless, "args": self.launch_args}
        if self.executable_path:
            options["executable_path"] = str(self.executable_path)
        return options

    async def get(self) -> Browser:
        """Return the live browser, launching a new one if needed."""
        if self.state is BrowserState.LIVE:
            return self._browser
        # Concurrent callers wait for a single launch instead of starting their own.
        async with self._launch_lock:
            state = self.state
            if state is BrowserState.LIVE:
                return self._browser
            if state is BrowserState.DEAD:
                logger.warning("Browser disconnected; relaunching")
                await self._teardown()
            return await self._launch()

    async def _launch(self) -> Browser:
        if self._playwright is None:
            self._playwright = await self._playwright_factory().start()
        self._browser = await self._playwright.chromium.launch(**self.launch_options())
        self.launch_count += 1
        logger.info("Launched headless browser (launch #%d)", self.launch_count)
        return self._browser

    async def reset(self) -> None:
        """Terminate the browser and the Playwright driver; the next ``get()`` starts fresh."""
        # Waits for an in-flight launch so it is never torn down half-built.
        async with self._launch_lock:
            await self._teardown()

    async def _teardown(self) -> None:
        browser, playwright = self._browser, self._playwright
        self._browser = None
        self._playwright = None

        if browser is not None:
            try:
                await browser.close()
            except Exception as exc:  # crashed browsers often fail to close
                logger.warning("Error while closing browser: %s", exc)
        if playwright is not None:
            try:
                await playwright.stop()
            except Exception as exc:
                logger.warning("Error while stopping Playwright: %s", exc)
        if browser is not None:
            logger.info("Browser instance discarded")

    async def close(self) -> None:
        await self.reset()
