"""Per-ticker aggregation and per-batch orchestration.

``SummaryAggregator.summarize`` fans out to every source for one ticker;
``SummaryAggregator.summarize_all`` fans out over a batch of tickers on a
single shared browser session. Both wait for every task they start to
settle before reporting failure, so no page or session is released while
work is still running on it.
"""

import asyncio
from contextlib import AbstractAsyncContextManager
from typing import Callable

from config.settings import GlobalConfig, get_config
from stockscout.browser import BrowserManager
from stockscout.extractor import BaseSource
from stockscout.logger import get_logger
from stockscout.models import QuoteRecord, SourceOutcome, Summary
from stockscout.scraper import YahooFinanceSource, build_prediction_sources

log = get_logger(__name__)

SessionFactory = Callable[[GlobalConfig], AbstractAsyncContextManager[BrowserManager]]


class SummaryAggregator:
    """Merges the primary quote and secondary predictions for tickers.

    Attributes:
        config: GlobalConfig instance.
        primary: Required quote source.
        secondaries: Optional prediction sources, in report column order.
        session_factory: Opens the browser session shared by a batch.
    """

    def __init__(
        self,
        config: GlobalConfig | None = None,
        primary: BaseSource[QuoteRecord] | None = None,
        secondaries: list[BaseSource[float]] | None = None,
        session_factory: SessionFactory | None = None,
    ) -> None:
        self.config = config or get_config()
        self.primary = primary or YahooFinanceSource(self.config)
        self.secondaries = (
            secondaries if secondaries is not None else build_prediction_sources(self.config)
        )
        self.session_factory = session_factory or BrowserManager.create

    async def summarize(self, browser: BrowserManager, ticker: str) -> Summary:
        """Run every source for ``ticker`` concurrently and merge the results.

        ``fetch_outcome`` turns failures into outcomes, so every source has
        settled before an error is raised here. Anything it lets through
        (cancellation) is re-raised once the other sources are done.

        Raises:
            Exception: The primary source's error if it failed, otherwise the
                first secondary error that is not an absorbed timeout.
        """
        outcomes: list[SourceOutcome | BaseException] = await asyncio.gather(
            self.primary.fetch_outcome(browser, ticker),
            *(source.fetch_outcome(browser, ticker) for source in self.secondaries),
            return_exceptions=True,
        )
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome

        primary_outcome, *secondary_outcomes = outcomes

        for outcome in outcomes:
            if outcome.is_fatal:
                log.error(
                    "Source failed for {ticker}: {source}",
                    ticker=ticker,
                    source=outcome.source,
                    reason=outcome.reason,
                )

        quote = primary_outcome.unwrap()
        predictions = {outcome.source: outcome.unwrap() for outcome in secondary_outcomes}
        predictions[self.primary.name] = quote.prediction

        degraded = [outcome.source for outcome in secondary_outcomes if outcome.status == "degraded"]
        log.info(
            "Ticker summarized",
            ticker=ticker,
            price=quote.price,
            degraded_sources=degraded,
        )
        return Summary(ticker=ticker, quote=quote, predictions=predictions)

    async def summarize_all(self, tickers: list[str]) -> dict[str, Summary]:
        """Summarize a batch of tickers on one shared browser session.

        The session is closed only after every ticker has settled. If any
        ticker failed, the first failure in ``tickers`` order is raised.
        """
        log.info("Batch started", tickers=tickers)

        async with self.session_factory(self.config) as browser:
            results = await asyncio.gather(
                *(self.summarize(browser, ticker) for ticker in tickers),
                return_exceptions=True,
            )

        failures = [
            (ticker, result)
            for ticker, result in zip(tickers, results)
            if isinstance(result, BaseException)
        ]
        if failures:
            log.error(
                "Batch failed",
                failed_tickers=[ticker for ticker, _ in failures],
                total=len(tickers),
            )
            raise failures[0][1]

        log.info("Batch complete", total=len(tickers))
        return dict(zip(tickers, results))
