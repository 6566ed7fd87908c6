"""Browser session management on top of Playwright.

A single Chromium instance is shared by every adapter call of a batch.
Each call gets its own page (and therefore its own browser context) with
JavaScript disabled: quote pages are scraped as static markup, which
keeps them lighter and less flaky than fully rendered pages.

Design Rationale:
    The BrowserManager uses Dependency Injection rather than Singleton to
    enable easier testing. The async context manager pattern ensures proper
    cleanup even during exception propagation.
"""

import random
from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator, Self

from playwright.async_api import (
    Browser,
    Page,
    Playwright,
    async_playwright,
)
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from config.settings import GlobalConfig, get_config
from stockscout.exceptions import BrowserInitializationError, NavigationError
from stockscout.logger import get_logger

log = get_logger(__name__)


class BrowserManager:
    """Owns the Playwright browser lifecycle for one batch.

    Attributes:
        config: GlobalConfig instance for runtime configuration.
        _playwright: Playwright instance (initialized on context entry).
        _browser: Browser instance (Chromium).
        _open_pages: Number of pages currently open.

    Example:
        async with BrowserManager.create() as browser:
            async with browser.open_page() as page:
                await browser.navigate(page, "https://finance.yahoo.com/quote/KO")
    """

    def __init__(self, config: GlobalConfig) -> None:
        """Initialize BrowserManager with configuration.

        Note:
            Do not instantiate directly. Use the `create()` class method
            for proper lifecycle management.
        """
        self.config = config
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._open_pages: int = 0

    @classmethod
    @asynccontextmanager
    async def create(
        cls, config: GlobalConfig | None = None
    ) -> AsyncGenerator[Self, None]:
        """Launch a browser session and close it on exit.

        Args:
            config: Optional GlobalConfig. Uses singleton if not provided.

        Yields:
            Initialized BrowserManager instance.

        Raises:
            BrowserInitializationError: If browser launch fails.
        """
        if config is None:
            config = get_config()

        instance = cls(config)
        try:
            await instance._initialize()
            yield instance
        finally:
            await instance._cleanup()

    async def _initialize(self) -> None:
        """Start Playwright and launch Chromium.

        Raises:
            BrowserInitializationError: If any initialization step fails.
        """
        log.info("Launching browser", headless=self.config.headless)

        try:
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=self.config.headless,
                args=[
                    "--disable-blink-features=AutomationControlled",
                    "--disable-dev-shm-usage",
                    "--no-sandbox",
                    "--disable-setuid-sandbox",
                    "--disable-infobars",
                ],
            )
            log.info("Browser launched")

        except Exception as exc:
            await self._cleanup()
            raise BrowserInitializationError(
                reason=str(exc), browser_type="chromium"
            ) from exc

    async def new_page(self) -> Page:
        """Open a page in its own context with JavaScript disabled.

        Closing the page also closes its context.

        Raises:
            BrowserInitializationError: If the browser is not running.
        """
        if self._browser is None:
            raise BrowserInitializationError(
                reason="Browser not initialized", browser_type="chromium"
            )

        page = await self._browser.new_page(
            java_script_enabled=False,
            user_agent=random.choice(self.config.user_agents),
            locale="en-US",
        )
        page.set_default_timeout(self.config.element_timeout_ms)
        page.set_default_navigation_timeout(self.config.navigation_timeout_ms)

        self._open_pages += 1
        log.debug("New page created", open_pages=self._open_pages)
        return page

    @asynccontextmanager
    async def open_page(self) -> AsyncIterator[Page]:
        """Scoped page: yields a new page and closes it on every exit path."""
        page = await self.new_page()
        try:
            yield page
        finally:
            self._open_pages -= 1
            try:
                await page.close()
            except Exception as exc:
                log.warning("Error closing page", error=str(exc))

    async def navigate(
        self,
        page: Page,
        url: str,
        wait_until: str = "domcontentloaded",
    ) -> None:
        """Navigate to URL, wrapping Playwright failures.

        HTTP error statuses are logged, not raised: third-party quote pages
        regularly answer 4xx while still serving the markup we read.

        Raises:
            NavigationError: If navigation fails or times out.
        """
        log.debug("Navigating to URL", url=url, wait_until=wait_until)

        try:
            response = await page.goto(url, wait_until=wait_until)
        except PlaywrightTimeoutError as exc:
            raise NavigationError(
                url=url,
                reason=f"Navigation timeout after {self.config.navigation_timeout_ms}ms",
            ) from exc
        except Exception as exc:
            raise NavigationError(url=url, reason=str(exc)) from exc

        status_code = response.status if response is not None else None
        if status_code is not None and status_code >= 400:
            log.warning("Navigation returned error status", url=url, status_code=status_code)
        else:
            log.debug("Navigation successful", url=url, status_code=status_code)

    async def _cleanup(self) -> None:
        """Clean up browser resources in reverse initialization order."""
        if self._browser is not None:
            try:
                await self._browser.close()
            except Exception as exc:
                log.warning("Error closing browser", error=str(exc))
            self._browser = None

        if self._playwright is not None:
            try:
                await self._playwright.stop()
            except Exception as exc:
                log.warning("Error stopping playwright", error=str(exc))
            self._playwright = None

        log.info("Browser resources cleaned up")

    @property
    def open_pages(self) -> int:
        """Number of pages opened through this manager and not yet closed."""
        return self._open_pages

    @property
    def is_initialized(self) -> bool:
        """Check if browser is fully initialized and ready."""
        return self._playwright is not None and self._browser is not None
