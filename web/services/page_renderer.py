"""Render one populated HTML page to PDF bytes in the shared browser."""
from __future__ import annotations

import logging
from typing import Optional

from playwright.async_api import Browser, Page, Route

logger = logging.getLogger(__name__)

BLOCKED_RESOURCE_TYPES = frozenset({"image", "stylesheet", "font"})

PDF_OPTIONS = {
    "format": "A4",
    "print_background": True,
    "margin": {"top": "0px", "right": "0px", "bottom": "0px", "left": "0px"},
}


class RenderError(Exception):
    """A page could not be rendered to PDF."""


async def block_external_assets(route: Route) -> None:
    """Abort image, stylesheet and font fetches that are not inline data URIs."""
    request = route.request
    if request.resource_type in BLOCKED_RESOURCE_TYPES and not request.url.startswith("data:"):
        await route.abort()
    else:
        await route.continue_()


class PageRenderer:
    """Turns HTML into a PDF using one tab of the shared browser."""

    def __init__(self, timeout_ms: int = 60_000):
        self.timeout_ms = timeout_ms

    async def render(self, browser: Browser, html: str, label: str = "page") -> bytes:
        """
        Render ``html`` as an A4 PDF with backgrounds and no margins.

        The tab is always closed, whether rendering succeeds or not.

        Raises:
            RenderError: Loading or printing the page failed.
        """
        page: Optional[Page] = None
        try:
            page = await browser.new_page()
            await page.route("**/*", block_external_assets)
            await page.set_content(html, wait_until="domcontentloaded", timeout=self.timeout_ms)
            return await page.pdf(**PDF_OPTIONS)
        except Exception as exc:
            logger.error("Error generating %s: %s", label, exc)
            raise RenderError(f"Failed to render {label}: {exc}") from exc
        finally:
            if page is not None:
                try:
                    await page.close()
                except Exception as exc:
                    logger.warning("Could not close tab for %s: %s", label, exc)
