"""Tab-separated report generation.

A category block is its label on one line, one row per ticker and a
trailing blank line. Each row reads::

    TICKER  PRICE  P1 (G1%)  ...  Pn (Gn%)  AVG  WEEK%

where ``Gi`` is the floored growth implied by prediction ``Pi``, ``AVG``
is the floored mean of the unfloored growths and ``WEEK%`` is the
primary source's week-to-date growth with two decimals.

Rows are assembled in a pandas DataFrame and written with ``to_csv`` so
that cell quoting follows the usual TSV rules.
"""

import math
from typing import TextIO

import pandas as pd

from config.settings import GlobalConfig, get_config
from stockscout.exceptions import ReportGenerationError
from stockscout.logger import get_logger
from stockscout.models import Summary

log = get_logger(__name__)


def growth_percentage(price: float, predicted: float) -> float:
    """Relative difference between ``predicted`` and ``price`` in percent.

    Equal to ``(predicted / price - 1) * 100``, rearranged so that round
    inputs give round results before flooring.

    >>> growth_percentage(100, 120)
    20.0
    """
    return (predicted - price) * 100 / price


def format_number(value: float) -> str:
    """Shortest text for ``value``, without a trailing ``.0`` for integers."""
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


class ReportWriter:
    """Formats batches of summaries into the tab-separated report.

    Attributes:
        config: GlobalConfig instance, used for the output path in errors.
    """

    def __init__(self, config: GlobalConfig | None = None) -> None:
        self.config = config or get_config()

    def format_row(self, ticker: str, summary: Summary) -> list[str]:
        """Build the cells of one ticker row."""
        price = summary.quote.price
        growths = []
        cells = [ticker, format_number(price)]

        for predicted in summary.predictions.values():
            growth = growth_percentage(price, predicted)
            growths.append(growth)
            cells.append(f"{format_number(predicted)} ({math.floor(growth)}%)")

        average = math.floor(sum(growths) / len(growths)) if growths else 0
        cells.append(str(average))
        cells.append(f"{summary.quote.week_growth_percentage:.2f}%")
        return cells

    def build_frame(self, batch: dict[str, Summary], ticker_order: list[str]) -> pd.DataFrame:
        """Rows for ``ticker_order``, in that order.

        Raises:
            ReportGenerationError: If a ticker has no summary in ``batch``.
        """
        missing = [ticker for ticker in ticker_order if ticker not in batch]
        if missing:
            raise ReportGenerationError(
                report_type="TSV",
                reason=f"No summary for tickers {missing}",
                output_path=str(self.config.output_path),
            )
        return pd.DataFrame([self.format_row(ticker, batch[ticker]) for ticker in ticker_order])

    def write_category(
        self,
        stream: TextIO,
        label: str,
        batch: dict[str, Summary],
        ticker_order: list[str],
    ) -> int:
        """Append one category block to ``stream``.

        Returns:
            Number of lines written: the tickers plus header and blank line.
        """
        frame = self.build_frame(batch, ticker_order)

        try:
            stream.write(f"{label}\n")
            if not frame.empty:
                frame.to_csv(stream, sep="\t", header=False, index=False, lineterminator="\n")
            stream.write("\n")
            stream.flush()
        except OSError as exc:
            raise ReportGenerationError(
                report_type="TSV",
                reason=str(exc),
                output_path=str(self.config.output_path),
            ) from exc

        lines = len(ticker_order) + 2
        log.info("Category written", category=label, tickers=len(ticker_order), lines=lines)
        return lines
