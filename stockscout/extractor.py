"""Element extraction helpers and the site adapter base class.

The module functions wrap the three page reads every adapter needs:
the text of one element, a click on one element, and the cell texts of
a table. Element handles are always disposed before returning.

``BaseSource`` is the Strategy interface implemented by each data
source. Concrete sources supply a URL and a page-level extraction; the
base class owns the page lifecycle and the classification of failures
into a ``SourceOutcome``. ``OptionalSource`` subclasses survive element
timeouts by substituting a fallback value.
"""

from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from playwright.async_api import ElementHandle, Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from config.settings import GlobalConfig, get_config
from stockscout.browser import BrowserManager
from stockscout.exceptions import ElementNotFoundError, ElementTimeoutError
from stockscout.logger import get_logger
from stockscout.models import SourceOutcome

log = get_logger(__name__)

T = TypeVar("T")

_ROWS_TO_CELLS_JS = """
rows => rows.map(row => Array.from(row.querySelectorAll('td')).map(td => td.innerText))
"""


async def _wait_for_element(page: Page, locator: str, timeout_ms: int) -> ElementHandle:
    try:
        handle = await page.wait_for_selector(locator, state="attached", timeout=timeout_ms)
    except PlaywrightTimeoutError as exc:
        raise ElementTimeoutError(locator=locator, url=page.url, timeout_ms=timeout_ms) from exc
    if handle is None:
        raise ElementNotFoundError(locator=locator, url=page.url)
    return handle


async def extract_text(page: Page, locator: str, timeout_ms: int) -> str:
    """Wait for one element matching ``locator`` and return its text content.

    A missing text content is returned as ``""``; rejecting empty values is
    left to the parser.

    Args:
        page: Page positioned at the target document.
        locator: Playwright selector (``xpath=...`` or CSS).
        timeout_ms: Bounded wait for the element.

    Raises:
        ElementTimeoutError: If no element appeared within ``timeout_ms``.
        ElementNotFoundError: If the wait resolved without an element.
    """
    handle = await _wait_for_element(page, locator, timeout_ms)
    try:
        text = await handle.text_content()
    finally:
        await handle.dispose()
    return text if text is not None else ""


async def click_element(page: Page, locator: str, timeout_ms: int) -> None:
    """Click the single element matching ``locator``.

    The element is treated as a required control, so a timeout is reported
    as ``ElementNotFoundError``.
    """
    try:
        handle = await _wait_for_element(page, locator, timeout_ms)
    except ElementTimeoutError as exc:
        raise ElementNotFoundError(locator=locator, url=page.url) from exc
    try:
        await handle.click()
    finally:
        await handle.dispose()


async def extract_table_rows(page: Page, row_selector: str, limit: int) -> list[list[str]]:
    """Return the cell texts of the first ``limit`` rows matching ``row_selector``."""
    rows = await page.locator(row_selector).evaluate_all(_ROWS_TO_CELLS_JS)
    return [[str(cell).strip() for cell in row] for row in rows[:limit]]


class BaseSource(ABC, Generic[T]):
    """Abstract base class for one financial data source.

    Attributes:
        config: GlobalConfig instance for locators and timeouts.
        optional: Whether an element timeout leaves the ticker usable. Only
            ``OptionalSource`` subclasses set it.

    Type Parameters:
        T: Value produced for one ticker.

    Example:
        class ExampleSource(BaseSource[float]):
            name = "example"

            def build_url(self, ticker: str) -> str:
                return f"https://example.com/{ticker}"

            async def extract_from_page(self, browser, page, ticker) -> float:
                ...
    """

    name: str = ""
    optional: bool = False

    def __init__(self, config: GlobalConfig | None = None) -> None:
        self.config = config or get_config()

    def normalize_ticker(self, ticker: str) -> str:
        """Return the ticker as the source spells it in URLs."""
        return ticker

    @abstractmethod
    def build_url(self, ticker: str) -> str:
        """Return the page URL for an already normalized ticker."""
        ...

    @abstractmethod
    async def extract_from_page(self, browser: BrowserManager, page: Page, ticker: str) -> T:
        """Read this source's value from a page already showing ``build_url``.

        Args:
            browser: Session owning ``page``, for follow-up navigations.
            page: Page positioned at the source URL.
            ticker: Normalized ticker.
        """
        ...

    async def read_text(self, page: Page, locator: str) -> str:
        return await extract_text(page, locator, self.config.element_timeout_ms)

    async def fetch(self, browser: BrowserManager, ticker: str) -> T:
        """Open a page, navigate to the ticker's URL and extract the value.

        The page is closed before returning, on success or failure.
        """
        normalized = self.normalize_ticker(ticker)
        async with browser.open_page() as page:
            await browser.navigate(page, self.build_url(normalized))
            value = await self.extract_from_page(browser, page, normalized)

        log.debug("Source value extracted", source=self.name, ticker=ticker, value=value)
        return value

    async def fetch_outcome(self, browser: BrowserManager, ticker: str) -> SourceOutcome[T]:
        """Run ``fetch`` and classify the result instead of raising."""
        try:
            value = await self.fetch(browser, ticker)
        except ElementTimeoutError as exc:
            return self.on_timeout(ticker, exc)
        except Exception as exc:
            return SourceOutcome.fatal(self.name, ticker, exc)

        return SourceOutcome.ok(self.name, ticker, value)

    def on_timeout(self, ticker: str, exc: ElementTimeoutError) -> SourceOutcome[T]:
        """Classify an element timeout. A required source fails the ticker."""
        return SourceOutcome.fatal(self.name, ticker, exc)


class OptionalSource(BaseSource[T]):
    """Source whose element timeouts degrade to ``fallback_value()``.

    Any other failure is still fatal for the ticker.
    """

    optional = True

    @abstractmethod
    def fallback_value(self) -> T:
        """Value substituted when the source times out."""
        ...

    def on_timeout(self, ticker: str, exc: ElementTimeoutError) -> SourceOutcome[T]:
        fallback = self.fallback_value()
        log.warning(
            "{source} prediction for {ticker} timed out, using {fallback}",
            source=self.name,
            ticker=ticker,
            fallback=fallback,
            locator=exc.locator,
        )
        return SourceOutcome.degraded(self.name, ticker, fallback, reason=exc.message)
