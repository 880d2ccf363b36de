"""Document fetchers with timeout and fixed-delay retry."""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import httpx
from playwright.async_api import async_playwright, Error as PlaywrightError

from config import Settings
from crawler.errors import NetworkError

logger = logging.getLogger(__name__)


class BadStatusError(Exception):
    """A browser navigation returned a non-2xx response."""


class Fetcher:
    """
    Base fetcher.

    Subclasses implement `_fetch_once` and list the exception types that
    count as transport failures in `retry_on`. Anything else propagates
    immediately. A response is never retried because its body looks empty;
    that is for the caller to judge.
    """

    retry_on: tuple = ()

    def __init__(self, settings: Settings):
        self.settings = settings
        self.retries = max(1, settings.fetch_retries)
        self.retry_delay = settings.retry_delay
        self.timeout = settings.request_timeout

    async def fetch(self, url: str) -> str:
        """
        Fetch a document, retrying transport failures.

        Makes at most `retries` attempts, sleeping `retry_delay` seconds
        between them (fixed, not exponential).

        Raises:
            NetworkError: every attempt failed
        """
        last_error = None

        for attempt in range(1, self.retries + 1):
            try:
                return await self._fetch_once(url)
            except self.retry_on as e:
                last_error = e
                logger.warning(
                    f"Network error for {url}: {e!r} "
                    f"(attempt {attempt}/{self.retries})"
                )
                if attempt < self.retries:
                    await asyncio.sleep(self.retry_delay)

        logger.error(f"Giving up on {url} after {self.retries} attempt(s)")
        raise NetworkError(url, self.retries, last_error)

    async def _fetch_once(self, url: str) -> str:
        raise NotImplementedError

    @asynccontextmanager
    async def session(self) -> AsyncIterator["Fetcher"]:
        """
        Scope used for one book's fetches.

        Plain HTTP has nothing to isolate, so the fetcher itself is yielded.
        """
        yield self

    async def start(self) -> None:
        pass

    async def close(self) -> None:
        pass

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()


class HttpFetcher(Fetcher):
    """Fetch documents over plain HTTP with a shared httpx client."""

    retry_on = (httpx.HTTPError,)

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__(settings)
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers={"User-Agent": self.settings.user_agent},
                timeout=self.timeout,
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    async def _fetch_once(self, url: str) -> str:
        response = await self.client.get(url)
        response.raise_for_status()  # non-2xx counts as a transport failure
        return response.text

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


class BrowserSession(Fetcher):
    """
    Fetcher bound to one browser context.

    Every fetch opens its own page (tab) and closes it afterwards, so
    concurrent chapter fetches of the same book never share a page.
    """

    retry_on = (PlaywrightError, BadStatusError)

    def __init__(self, settings: Settings, context):
        super().__init__(settings)
        self.context = context

    async def _fetch_once(self, url: str) -> str:
        page = await self.context.new_page()
        try:
            response = await page.goto(url, timeout=self.timeout * 1000)
            if response is not None and not response.ok:
                raise BadStatusError(f"HTTP {response.status} for {url}")
            return await page.content()
        finally:
            await page.close()


class BrowserFetcher(Fetcher):
    """
    Fetch rendered documents through headless Chromium.

    One browser per fetcher; `session()` hands out a fresh context per book
    so books crawled concurrently never share a context.
    """

    BLOCKED_RESOURCES = {'image', 'stylesheet', 'font', 'media'}

    def __init__(self, settings: Settings):
        super().__init__(settings)
        self._playwright = None
        self._browser = None

    async def start(self) -> None:
        if self._browser is not None:
            return
        logger.info("Launching headless browser")
        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(
            headless=self.settings.browser_headless,
            args=['--no-sandbox', '--disable-setuid-sandbox'],
        )

    async def close(self) -> None:
        if self._browser is not None:
            await self._browser.close()
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None

    async def _block_resources(self, route) -> None:
        if route.request.resource_type in self.BLOCKED_RESOURCES:
            await route.abort()
        else:
            await route.continue_()

    @asynccontextmanager
    async def session(self) -> AsyncIterator[Fetcher]:
        await self.start()
        context = await self._browser.new_context(user_agent=self.settings.user_agent)
        if self.settings.block_resources:
            await context.route('**/*', self._block_resources)
        try:
            yield BrowserSession(self.settings, context)
        finally:
            await context.close()

    async def fetch(self, url: str) -> str:
        async with self.session() as session:
            return await session.fetch(url)


def build_fetcher(settings: Settings, **kwargs) -> Fetcher:
    """Create the fetcher selected by `settings.transport`."""
    transport = settings.transport.lower()

    if transport == 'http':
        return HttpFetcher(settings, **kwargs)
    if transport == 'browser':
        return BrowserFetcher(settings, **kwargs)

    raise ValueError(f"Unknown transport: {settings.transport}")
