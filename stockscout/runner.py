"""Sequential processing of categories into one report file."""

import asyncio
from typing import TextIO

from config.settings import CategoryConfig, GlobalConfig, get_config
from stockscout.aggregator import SummaryAggregator
from stockscout.logger import get_logger
from stockscout.reporter import ReportWriter

log = get_logger(__name__)


class RunDriver:
    """Processes categories one after another, pausing between them.

    The pause keeps the request rate low enough not to trip the target
    sites' anti-scraping defenses. The output file is opened once and
    closed once, including when a category fails.

    Attributes:
        config: GlobalConfig with categories, delay and output path.
        aggregator: Batch orchestrator used for every category.
        writer: Report writer used for every category.
    """

    def __init__(
        self,
        config: GlobalConfig | None = None,
        aggregator: SummaryAggregator | None = None,
        writer: ReportWriter | None = None,
    ) -> None:
        self.config = config or get_config()
        self.aggregator = aggregator or SummaryAggregator(self.config)
        self.writer = writer or ReportWriter(self.config)

    async def process_category(self, stream: TextIO, category: CategoryConfig) -> int:
        log.info("Processing {category}", category=category.label, tickers=category.tickers)
        batch = await self.aggregator.summarize_all(category.tickers)
        return self.writer.write_category(stream, category.label, batch, category.tickers)

    async def run(self, categories: list[CategoryConfig] | None = None) -> int:
        """Process every category and write the report.

        Args:
            categories: Groups to process; defaults to ``config.categories``.

        Returns:
            Number of categories written.

        Raises:
            Exception: The first fatal error; remaining categories are skipped.
        """
        categories = categories if categories is not None else self.config.categories
        output_path = self.config.output_path
        output_path.parent.mkdir(parents=True, exist_ok=True)

        written = 0
        with output_path.open("w", encoding="utf-8", newline="") as stream:
            for index, category in enumerate(categories):
                if index > 0 and self.config.category_delay_sec > 0:
                    log.debug("Pausing between categories", seconds=self.config.category_delay_sec)
                    await asyncio.sleep(self.config.category_delay_sec)

                try:
                    await self.process_category(stream, category)
                except Exception:
                    log.error(
                        "Category {category} failed, aborting run",
                        category=category.label,
                        written=written,
                        remaining=len(categories) - index - 1,
                    )
                    raise
                written += 1

        log.info("Report complete", output_path=str(output_path), categories=written)
        return written
