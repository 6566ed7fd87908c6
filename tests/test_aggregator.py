"""Tests for per-ticker aggregation and batch orchestration.

Sources are replaced by in-memory doubles so the fan-out, failure
propagation and session lifecycle can be observed without a browser.
"""

import asyncio
import time
from contextlib import asynccontextmanager
from typing import Any

import pytest
from playwright.async_api import Page
from pytest_mock import MockerFixture

from config.settings import GlobalConfig
from stockscout.aggregator import SummaryAggregator
from stockscout.browser import BrowserManager
from stockscout.exceptions import ElementTimeoutError, NotANumberError
from stockscout.extractor import BaseSource, OptionalSource
from stockscout.models import QuoteRecord


class _FakeFetch:
    """Looks values up per ticker, optionally after a delay.

    ``fetch`` is overridden so no page is ever opened.
    """

    def __init__(
        self,
        config: GlobalConfig,
        name: str,
        values: dict[str, Any],
        delay: float = 0.0,
    ) -> None:
        super().__init__(config)
        self.name = name
        self.values = values
        self.delay = delay
        self.calls: list[str] = []
        self.finished: list[str] = []

    def build_url(self, ticker: str) -> str:
        return f"https://fake/{ticker}"

    async def extract_from_page(self, browser: BrowserManager, page: Page, ticker: str) -> Any:
        raise AssertionError("not used")

    async def fetch(self, browser: BrowserManager, ticker: str) -> Any:
        self.calls.append(ticker)
        await asyncio.sleep(self.delay)
        self.finished.append(ticker)
        value = self.values[ticker]
        if isinstance(value, Exception):
            raise value
        return value


class FakeSource(_FakeFetch, OptionalSource[Any]):
    """Secondary source double; timeouts degrade to the sentinel."""

    def fallback_value(self) -> float:
        return self.config.prediction_sentinel


class FakePrimary(_FakeFetch, BaseSource[Any]):
    """Required source double; every failure is fatal."""


def _quote(price: float, prediction: float, week: float = 1.5) -> QuoteRecord:
    return QuoteRecord(
        price=price,
        earnings_date="Apr 25, 2024",
        dividend_and_yield="1.00 (1.00%)",
        ex_dividend_date="Feb 09, 2024",
        prediction=prediction,
        week_growth_percentage=week,
    )


class SessionRecorder:
    """Session factory double recording when the session is opened and closed."""

    def __init__(self) -> None:
        self.opened = 0
        self.closed = 0
        self.browser = object()

    @asynccontextmanager
    async def __call__(self, config: GlobalConfig):
        self.opened += 1
        try:
            yield self.browser
        finally:
            self.closed += 1


def _timeout(ticker: str) -> ElementTimeoutError:
    return ElementTimeoutError(locator="#target", url=f"https://fake/{ticker}", timeout_ms=500)


class TestSummarize:
    """Test suite for SummaryAggregator.summarize."""

    @pytest.mark.asyncio
    async def test_merges_predictions_in_source_order(self, mock_config: GlobalConfig) -> None:
        primary = FakePrimary(mock_config, "yahoo", {"AAA": _quote(100, 105)})
        zacks = FakeSource(mock_config, "zacks", {"AAA": 120.0})
        alphaspread = FakeSource(mock_config, "alphaspread", {"AAA": 90.0})
        aggregator = SummaryAggregator(mock_config, primary, [zacks, alphaspread])

        summary = await aggregator.summarize(object(), "AAA")

        assert summary.ticker == "AAA"
        assert summary.quote.price == 100
        assert list(summary.predictions.items()) == [
            ("zacks", 120.0),
            ("alphaspread", 90.0),
            ("yahoo", 105.0),
        ]

    @pytest.mark.asyncio
    async def test_secondary_timeout_uses_sentinel(self, mock_config: GlobalConfig) -> None:
        primary = FakePrimary(mock_config, "yahoo", {"AAA": _quote(100, 105)})
        zacks = FakeSource(mock_config, "zacks", {"AAA": _timeout("AAA")})
        aggregator = SummaryAggregator(mock_config, primary, [zacks])

        summary = await aggregator.summarize(object(), "AAA")

        assert summary.predictions["zacks"] == mock_config.prediction_sentinel

    @pytest.mark.asyncio
    async def test_primary_failure_fails_after_secondaries_settle(
        self, mock_config: GlobalConfig
    ) -> None:
        primary = FakePrimary(mock_config, "yahoo", {"AAA": _timeout("AAA")})
        zacks = FakeSource(mock_config, "zacks", {"AAA": 120.0}, delay=0.05)
        aggregator = SummaryAggregator(mock_config, primary, [zacks])

        with pytest.raises(ElementTimeoutError):
            await aggregator.summarize(object(), "AAA")

        assert zacks.finished == ["AAA"]

    @pytest.mark.asyncio
    async def test_secondary_non_timeout_error_propagates(self, mock_config: GlobalConfig) -> None:
        primary = FakePrimary(mock_config, "yahoo", {"AAA": _quote(100, 105)})
        zacks = FakeSource(mock_config, "zacks", {"AAA": NotANumberError("N/A", "AAA")})
        aggregator = SummaryAggregator(mock_config, primary, [zacks])

        with pytest.raises(NotANumberError):
            await aggregator.summarize(object(), "AAA")

    @pytest.mark.asyncio
    async def test_escaping_error_is_raised_after_other_sources_settle(
        self, mock_config: GlobalConfig, mocker: MockerFixture
    ) -> None:
        primary = FakePrimary(mock_config, "yahoo", {"AAA": _quote(100, 105)})
        zacks = FakeSource(mock_config, "zacks", {"AAA": 120.0}, delay=0.05)
        mocker.patch.object(primary, "fetch_outcome", side_effect=RuntimeError("page crashed"))
        aggregator = SummaryAggregator(mock_config, primary, [zacks])

        with pytest.raises(RuntimeError, match="page crashed"):
            await aggregator.summarize(object(), "AAA")

        assert zacks.finished == ["AAA"]

    @pytest.mark.asyncio
    async def test_sources_run_concurrently(self, mock_config: GlobalConfig) -> None:
        primary = FakePrimary(mock_config, "yahoo", {"AAA": _quote(100, 105)}, delay=0.2)
        secondaries = [
            FakeSource(mock_config, name, {"AAA": 1.0}, delay=0.2)
            for name in ("zacks", "alphaspread", "gurufocus")
        ]
        aggregator = SummaryAggregator(mock_config, primary, secondaries)

        start = time.perf_counter()
        await aggregator.summarize(object(), "AAA")
        elapsed = time.perf_counter() - start

        assert elapsed < 0.6


class TestSummarizeAll:
    """Test suite for SummaryAggregator.summarize_all."""

    @pytest.mark.asyncio
    async def test_returns_summary_per_ticker_on_one_session(
        self, mock_config: GlobalConfig
    ) -> None:
        sessions = SessionRecorder()
        primary = FakePrimary(
            mock_config,
            "yahoo",
            {"AAA": _quote(100, 105), "BBB": _quote(50, 60)},
        )
        zacks = FakeSource(mock_config, "zacks", {"AAA": 120.0, "BBB": 55.0})
        aggregator = SummaryAggregator(mock_config, primary, [zacks], session_factory=sessions)

        batch = await aggregator.summarize_all(["AAA", "BBB"])

        assert set(batch) == {"AAA", "BBB"}
        assert batch["BBB"].quote.price == 50
        assert sessions.opened == 1
        assert sessions.closed == 1

    @pytest.mark.asyncio
    async def test_tickers_run_concurrently(self, mock_config: GlobalConfig) -> None:
        tickers = [f"T{i}" for i in range(8)]
        primary = FakePrimary(
            mock_config,
            "yahoo",
            {ticker: _quote(10, 11) for ticker in tickers},
            delay=0.2,
        )
        aggregator = SummaryAggregator(
            mock_config, primary, [], session_factory=SessionRecorder()
        )

        start = time.perf_counter()
        batch = await aggregator.summarize_all(tickers)
        elapsed = time.perf_counter() - start

        assert len(batch) == 8
        # Serialized execution would take 8 x 0.2s
        assert elapsed < 0.8

    @pytest.mark.asyncio
    async def test_failure_waits_for_all_tickers_before_closing_session(
        self, mock_config: GlobalConfig
    ) -> None:
        sessions = SessionRecorder()
        primary = FakePrimary(
            mock_config,
            "yahoo",
            {"AAA": NotANumberError("--", "AAA"), "BBB": _quote(50, 60)},
        )
        slow = FakeSource(mock_config, "zacks", {"AAA": 1.0, "BBB": 1.0}, delay=0.05)
        aggregator = SummaryAggregator(mock_config, primary, [slow], session_factory=sessions)

        with pytest.raises(NotANumberError):
            await aggregator.summarize_all(["AAA", "BBB"])

        assert sorted(slow.finished) == ["AAA", "BBB"]
        assert sessions.closed == 1

    @pytest.mark.asyncio
    async def test_first_failure_in_ticker_order_is_raised(
        self, mock_config: GlobalConfig
    ) -> None:
        first = NotANumberError("x", "AAA")
        second = NotANumberError("y", "BBB")
        primary = FakePrimary(
            mock_config,
            "yahoo",
            {"AAA": first, "BBB": second},
        )
        aggregator = SummaryAggregator(
            mock_config, primary, [], session_factory=SessionRecorder()
        )

        with pytest.raises(NotANumberError) as exc_info:
            await aggregator.summarize_all(["AAA", "BBB"])

        assert exc_info.value is first

    def test_default_sources_follow_config(self, mock_config: GlobalConfig) -> None:
        aggregator = SummaryAggregator(mock_config)

        assert aggregator.primary.name == "yahoo"
        assert [source.name for source in aggregator.secondaries] == ["zacks", "alphaspread"]
        assert aggregator.session_factory == BrowserManager.create
