"""Fetch layer: turns a crawl request into a response body.

API requests go through the browser context's request client and come back
as decoded JSON; every other request is a page navigation whose rendered
HTML is returned.
"""

import json
import logging
from typing import TYPE_CHECKING, Any, Protocol

from bs4 import BeautifulSoup

from src.core.schemas import CrawlRequest, SearchApiRequest

if TYPE_CHECKING:
    from src.crawler.session import BrowserSession

logger = logging.getLogger(__name__)


class FetchError(Exception):
    """Non-2xx response for a request."""

    def __init__(self, url: str, status: int) -> None:
        super().__init__(f"HTTP {status} for {url}")
        self.url = url
        self.status = status


class FetchResponse:
    """A fetched body: decoded JSON for API requests, HTML text otherwise."""

    def __init__(
        self,
        url: str,
        status: int,
        body: Any,
        content_type: str = "text/html",
    ) -> None:
        self.url = url
        self.status = status
        self.body = body
        self.content_type = content_type
        self._document: BeautifulSoup | None = None

    def json(self) -> Any:
        """The JSON body, or None when the body is not valid JSON."""
        if isinstance(self.body, (str, bytes)):
            try:
                return json.loads(self.body)
            except ValueError:
                logger.debug("Response body from %s is not JSON", self.url)
                return None
        return self.body

    def document(self) -> BeautifulSoup:
        """The HTML body parsed for CSS-selector queries (parsed once)."""
        if self._document is None:
            html = self.body if isinstance(self.body, (str, bytes)) else ""
            self._document = BeautifulSoup(html, "html.parser")
        return self._document


class Fetcher(Protocol):
    async def fetch(self, request: CrawlRequest) -> FetchResponse: ...


class BrowserFetcher:
    """Fetcher backed by a patchright browser context."""

    def __init__(self, session: "BrowserSession", api_headers: dict[str, str] | None = None) -> None:
        self._session = session
        self._api_headers = api_headers or {}

    async def fetch(self, request: CrawlRequest) -> FetchResponse:
        if isinstance(request, SearchApiRequest):
            return await self._fetch_json(request.url)
        return await self._fetch_page(request.url)

    async def _fetch_json(self, url: str) -> FetchResponse:
        response = await self._session.context.request.get(url, headers=self._api_headers)
        if not response.ok:
            raise FetchError(url, response.status)
        text = await response.text()
        logger.debug("Fetched %d bytes of JSON from %s", len(text), url)
        return FetchResponse(url, response.status, text, content_type="application/json")

    async def _fetch_page(self, url: str) -> FetchResponse:
        page = await self._session.context.new_page()
        try:
            response = await page.goto(url, wait_until="domcontentloaded")
            status = response.status if response is not None else 200
            if response is not None and not response.ok:
                raise FetchError(url, status)
            html = await page.content()
        finally:
            await page.close()
        logger.debug("Fetched %d bytes of HTML from %s", len(html), url)
        return FetchResponse(url, status, html)
