"""Typed records produced by the scraping pipeline.

Every record is an immutable pydantic model. ``SourceOutcome`` is the
tagged result of one site adapter call: it makes the difference between
a usable value, a degraded sentinel and a fatal error explicit so that
the aggregator decides what to absorb without catching error subtypes.
"""

from typing import Any, Generic, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class QuoteRecord(BaseModel):
    """Quote page data for one ticker from the primary source.

    Attributes:
        price: Current price, strictly positive.
        earnings_date: Earnings date text as displayed.
        dividend_and_yield: Forward dividend and yield text as displayed.
        ex_dividend_date: Ex-dividend date text as displayed.
        prediction: One-year analyst target estimate.
        week_growth_percentage: Price change since the start of the current week.
    """

    model_config = ConfigDict(frozen=True)

    price: float = Field(..., gt=0.0, description="Current price")
    earnings_date: str = Field(default="", description="Earnings date")
    dividend_and_yield: str = Field(default="", description="Forward dividend & yield")
    ex_dividend_date: str = Field(default="", description="Ex-dividend date")
    prediction: float = Field(..., description="1y target estimate")
    week_growth_percentage: float = Field(default=0.0, description="Week-to-date growth")


class Summary(BaseModel):
    """Merged view of every source for one ticker.

    ``predictions`` keeps the secondary sources in configured order,
    followed by the primary source's own estimate.
    """

    model_config = ConfigDict(frozen=True)

    ticker: str
    quote: QuoteRecord
    predictions: dict[str, float]


class SourceOutcome(BaseModel, Generic[T]):
    """Result of one adapter call: ``ok``, ``degraded`` or ``fatal``."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    source: str
    ticker: str
    status: Literal["ok", "degraded", "fatal"]
    value: T | None = None
    reason: str | None = None
    error: Any = None

    @classmethod
    def ok(cls, source: str, ticker: str, value: T) -> "SourceOutcome[T]":
        return cls(source=source, ticker=ticker, status="ok", value=value)

    @classmethod
    def degraded(
        cls, source: str, ticker: str, value: T, reason: str
    ) -> "SourceOutcome[T]":
        return cls(source=source, ticker=ticker, status="degraded", value=value, reason=reason)

    @classmethod
    def fatal(cls, source: str, ticker: str, error: BaseException) -> "SourceOutcome[T]":
        return cls(
            source=source,
            ticker=ticker,
            status="fatal",
            reason=str(error),
            error=error,
        )

    @property
    def is_fatal(self) -> bool:
        return self.status == "fatal"

    def unwrap(self) -> T:
        """Return the carried value, re-raising the stored error when fatal."""
        if self.is_fatal:
            raise self.error
        return self.value
