"""
Playwright Renderer

Captures a JPEG screenshot of a page at a fixed viewport size.

One headless Chromium is launched at startup and shared; every render
gets its own page, which is always closed afterwards.
"""

import logging
from typing import Optional

from playwright.async_api import (
    async_playwright,
    Browser,
    Playwright,
    Route,
    Error as PlaywrightError,
)

from .config import JPEG_QUALITY
from .errors import RenderError

logger = logging.getLogger(__name__)

BROWSER_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--no-first-run",
    "--no-zygote",
    "--disable-gpu",
    "--disable-extensions",
    "--disable-audio-output",
]

# Resource types that never help a still screenshot
BLOCKED_RESOURCE_TYPES = {"media", "font", "websocket"}


class PlaywrightRenderer:
    """
    Screenshot renderer backed by a shared Chromium instance.

    Usage:
        renderer = PlaywrightRenderer()
        await renderer.start()
        image = await renderer.render("https://example.com", 1200, 630)
        await renderer.close()
    """

    def __init__(
        self,
        executable_path: Optional[str] = None,
        timeout_ms: int = 30000,
        quality: int = JPEG_QUALITY,
    ):
        self.executable_path = executable_path
        self.timeout_ms = timeout_ms
        self.quality = quality
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None

    async def start(self) -> None:
        """Launch the browser. Safe to call more than once."""
        if self._browser is not None:
            return
        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(
            headless=True,
            executable_path=self.executable_path,
            args=BROWSER_ARGS,
        )
        logger.info("[Renderer] Browser initialized")

    async def close(self) -> None:
        """Close the browser and stop Playwright."""
        if self._browser is not None:
            await self._browser.close()
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None
        logger.info("[Renderer] Browser closed")

    async def render(
        self,
        url: str,
        width: int,
        height: int,
        timeout_ms: Optional[int] = None,
    ) -> bytes:
        """
        Navigate to ``url`` and capture the viewport as JPEG.

        Raises:
            RenderError: navigation failed, timed out, or the browser is gone.
        """
        if self._browser is None:
            raise RenderError("Browser is not running")

        timeout = timeout_ms if timeout_ms is not None else self.timeout_ms
        page = None
        try:
            page = await self._browser.new_page(
                viewport={"width": width, "height": height},
                device_scale_factor=1,
            )
            page.set_default_navigation_timeout(timeout)
            await page.route("**/*", _filter_request)
            await page.goto(url, wait_until="networkidle", timeout=timeout)
            return await page.screenshot(type="jpeg", quality=self.quality)
        except PlaywrightError as e:
            raise RenderError(str(e)) from e
        finally:
            if page is not None:
                try:
                    await page.close()
                except PlaywrightError as e:
                    logger.warning(f"[Renderer] Failed to close page: {e}")


async def _filter_request(route: Route) -> None:
    if route.request.resource_type in BLOCKED_RESOURCE_TYPES:
        await route.abort()
    else:
        await route.continue_()
