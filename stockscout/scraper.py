"""Concrete data sources: Yahoo Finance quotes and analyst price targets.

Yahoo Finance is the primary source and is required: any failure there
fails the ticker. Zacks, Alphaspread and GuruFocus are best-effort
secondary sources that only contribute one price target each.

Locators are externalized to GlobalConfig, enabling runtime adjustment
without code changes for minor layout shifts.
"""

import re
from datetime import date
from typing import Callable

from playwright.async_api import Page

from config.settings import GlobalConfig
from stockscout.browser import BrowserManager
from stockscout.extractor import (
    BaseSource,
    OptionalSource,
    click_element,
    extract_table_rows,
)
from stockscout.logger import get_logger
from stockscout.models import QuoteRecord
from stockscout.parsing import parse_history_date, parse_number, week_start

log = get_logger(__name__)

_CURRENCY_PREFIX = re.compile(r"^[\s$€£¥]+")
_CURRENCY_SUFFIX = re.compile(r"[A-Za-z]+$")


def _strip_currency_prefix(text: str) -> str:
    """``" $1,234.50 \\n"`` -> ``"1,234.50"``; trailing markup text is dropped."""
    cleaned = _CURRENCY_PREFIX.sub("", text)
    tokens = cleaned.split()
    return tokens[0] if tokens else ""


class YahooFinanceSource(BaseSource[QuoteRecord]):
    """Primary quote source.

    Extraction runs three ordered steps on one page: accept the consent
    wall if Yahoo redirected to it, read the quote summary fields, then
    open the history view to compute the week-to-date growth.
    """

    name = "yahoo"
    optional = False

    QUOTE_URL = "https://finance.yahoo.com/quote/{ticker}"
    HISTORY_URL = "https://finance.yahoo.com/quote/{ticker}/history"

    # Historical table columns: Date, Open, High, Low, Close, Adj Close, Volume
    OPEN_COLUMN = 1
    CLOSE_COLUMN = 4

    def __init__(
        self,
        config: GlobalConfig | None = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        super().__init__(config)
        self._today = today

    def normalize_ticker(self, ticker: str) -> str:
        # Yahoo spells share classes with a dash: BRK.B -> BRK-B
        return ticker.replace(".", "-")

    def build_url(self, ticker: str) -> str:
        return self.QUOTE_URL.format(ticker=ticker)

    async def extract_from_page(
        self, browser: BrowserManager, page: Page, ticker: str
    ) -> QuoteRecord:
        await self.accept_consent(page)
        fields = await self.extract_quote_fields(page, ticker)
        week_growth = await self.extract_week_growth(browser, page, ticker)
        return QuoteRecord(**fields, week_growth_percentage=week_growth)

    async def accept_consent(self, page: Page) -> bool:
        """Click through the consent wall if the quote page redirected to it.

        Returns:
            True if the consent wall was shown and accepted.

        Raises:
            ElementNotFoundError: If the wall has no "accept all" control.
        """
        if self.config.yahoo_consent_url_marker not in page.url:
            return False

        log.info("Consent wall detected, accepting", url=page.url)
        await click_element(
            page,
            self.config.yahoo_consent_accept_selector,
            self.config.element_timeout_ms,
        )
        await page.wait_for_load_state("domcontentloaded")
        return True

    async def extract_quote_fields(self, page: Page, ticker: str) -> dict:
        """Read price, dates, dividend and the target estimate from the quote summary."""
        cfg = self.config

        price_text = await self.read_text(page, cfg.yahoo_price_locator)
        earnings_date = await self.read_text(page, cfg.yahoo_earnings_date_locator)
        dividend_and_yield = await self.read_text(page, cfg.yahoo_dividend_locator)
        ex_dividend_date = await self.read_text(page, cfg.yahoo_ex_dividend_locator)
        target_text = await self.read_text(page, cfg.yahoo_target_locator)

        return {
            "price": parse_number(price_text, ticker),
            "earnings_date": earnings_date.strip(),
            "dividend_and_yield": dividend_and_yield.strip(),
            "ex_dividend_date": ex_dividend_date.strip(),
            "prediction": parse_number(target_text, ticker),
        }

    async def extract_week_growth(
        self, browser: BrowserManager, page: Page, ticker: str
    ) -> float:
        """Percentage change from this week's first open to its latest close.

        Rows are newest first. Rows dated before Monday of the current
        week, and rows that are not price rows (dividends, splits), are
        ignored.
        """
        await browser.navigate(page, self.HISTORY_URL.format(ticker=ticker))
        rows = await extract_table_rows(
            page,
            self.config.yahoo_history_row_selector,
            self.config.history_row_limit,
        )

        monday = week_start(self._today())
        week_rows = []
        for row in rows:
            if len(row) <= self.CLOSE_COLUMN:
                continue
            row_date = parse_history_date(row[0])
            if row_date is not None and row_date >= monday:
                week_rows.append(row)

        if not week_rows:
            log.warning("No price history for the current week", ticker=ticker, since=monday)
            return 0.0

        week_open = parse_number(week_rows[-1][self.OPEN_COLUMN], ticker)
        week_close = parse_number(week_rows[0][self.CLOSE_COLUMN], ticker)
        return (week_close - week_open) / week_open * 100


class PredictionSource(OptionalSource[float]):
    """Secondary source yielding one analyst price target per ticker."""

    url_template: str = ""

    @property
    def locator(self) -> str:
        return getattr(self.config, f"{self.name}_target_locator")

    def build_url(self, ticker: str) -> str:
        return self.url_template.format(ticker=ticker)

    def clean_text(self, text: str) -> str:
        return _strip_currency_prefix(text)

    def fallback_value(self) -> float:
        return self.config.prediction_sentinel

    async def extract_from_page(self, browser: BrowserManager, page: Page, ticker: str) -> float:
        text = await self.read_text(page, self.locator)
        return parse_number(self.clean_text(text), ticker)


class ZacksSource(PredictionSource):
    """Zacks average price target, displayed as ``$123.45``."""

    name = "zacks"
    url_template = "https://www.zacks.com/stock/research/{ticker}/price-target-stock-forecast"


class AlphaspreadSource(PredictionSource):
    """Alphaspread analyst estimate, displayed as ``1 234.56 USD``."""

    name = "alphaspread"
    url_template = "https://www.alphaspread.com/security/nasdaq/{ticker}/analyst-estimates"

    def clean_text(self, text: str) -> str:
        compact = "".join(text.split())
        return _CURRENCY_SUFFIX.sub("", compact)


class GurufocusSource(PredictionSource):
    """GuruFocus value estimate, displayed as ``$123.45``."""

    name = "gurufocus"
    url_template = "https://www.gurufocus.com/stock/{ticker}/summary"


PREDICTION_SOURCES: dict[str, type[PredictionSource]] = {
    source.name: source for source in (ZacksSource, AlphaspreadSource, GurufocusSource)
}


def build_prediction_sources(config: GlobalConfig) -> list[PredictionSource]:
    """Instantiate the configured secondary sources in column order."""
    return [PREDICTION_SOURCES[name](config) for name in config.prediction_sources]
