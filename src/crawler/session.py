"""Browser session management using patchright.

Rules:
  - Single browser context per run; every fetch shares its cookies.
  - Pages are opened per navigation by the fetcher, not held here.
  - Proxy settings are passed through to the browser untouched.
"""

import json
import logging
from pathlib import Path
from types import TracebackType
from typing import Any

from patchright.async_api import Browser, BrowserContext, Playwright, async_playwright

from src.core.config import BrowserConfig, ProxyConfig

logger = logging.getLogger(__name__)

# Sent with every request, page or API.
BROWSER_HEADERS: dict[str, str] = {
    "Accept-Language": "en-US,en;q=0.9",
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
}


class BrowserSession:
    """Async context manager that owns one patchright browser + context.

    Usage::

        async with BrowserSession(config) as session:
            page = await session.context.new_page()
            await page.goto("https://...")
    """

    def __init__(self, config: BrowserConfig, proxy: ProxyConfig | None = None) -> None:
        self._config = config
        self._proxy = proxy
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None

    @property
    def context(self) -> BrowserContext:
        """The shared browser context. Raises if not entered."""
        if self._context is None:
            msg = "BrowserSession not entered, use 'async with'"
            raise RuntimeError(msg)
        return self._context

    async def __aenter__(self) -> "BrowserSession":
        pw = await async_playwright().start()
        self._playwright = pw

        launch_kwargs: dict[str, Any] = {"headless": self._config.headless}
        if self._proxy is not None:
            launch_kwargs["proxy"] = self._proxy.model_dump(exclude_none=True)
            logger.info("Proxy configuration enabled")
        self._browser = await pw.chromium.launch(**launch_kwargs)

        self._context = await self._browser.new_context()
        await self._context.set_extra_http_headers(BROWSER_HEADERS)

        cookies = _load_cookies(self._config.cookies_path)
        if cookies:
            await self._context.add_cookies(cookies)
            logger.info("Loaded %d cookies from %s", len(cookies), self._config.cookies_path)

        self._context.set_default_timeout(self._config.timeout_ms)
        self._context.set_default_navigation_timeout(self._config.timeout_ms)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if self._context is not None:
            await self._context.close()
        if self._browser is not None:
            await self._browser.close()
        if self._playwright is not None:
            await self._playwright.stop()


def _load_cookies(path: str | None) -> list[Any]:
    """Load cookies from a JSON file. Returns empty list on any failure."""
    if not path:
        return []
    cookie_path = Path(path)
    if not cookie_path.exists():
        logger.debug("Cookie file not found: %s", path)
        return []
    try:
        data = json.loads(cookie_path.read_text())
        if isinstance(data, list):
            return data
        logger.warning("Cookie file is not a JSON array: %s", path)
        return []
    except (json.JSONDecodeError, OSError) as e:
        logger.warning("Failed to load cookies from %s: %s", path, e)
        return []
