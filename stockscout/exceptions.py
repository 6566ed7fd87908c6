"""Custom exception hierarchy for StockScout.

This module defines domain-specific exceptions that provide semantic clarity
and enable targeted error handling throughout the application. Each exception
includes contextual information to aid debugging and observability.

Failure classes:
    - ParseError subclasses: malformed text extracted from a page
    - ExtractionError subclasses: elements that are missing or slow to appear
    - NavigationError / BrowserInitializationError: browser level failures
    - ReportGenerationError: output writing failures
"""

from datetime import UTC, datetime
from typing import Any


class StockScoutError(Exception):
    """Base exception for all StockScout errors.

    Attributes:
        message: Human-readable error description.
        context: Optional dictionary with additional debugging information.
        timestamp: UTC timestamp when the exception was raised.
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        self.message = message
        self.context = context or {}
        self.timestamp = datetime.now(UTC)
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format exception message with context for logging."""
        base = f"[{self.timestamp.isoformat()}] {self.message}"
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{base} | Context: {context_str}"
        return base


class ParseError(StockScoutError):
    """Raised when extracted page text cannot be converted to a typed value."""


class EmptyValueError(ParseError):
    """Raised when an element yielded no text where a number was expected.

    The label usually names the ticker being processed.
    """

    def __init__(self, label: str | None = None) -> None:
        super().__init__(
            message=f"Empty value for {label or 'unknown'}",
            context={"label": label},
        )
        self.label = label


class NotANumberError(ParseError):
    """Raised when text cannot be parsed as a decimal number."""

    def __init__(self, text: str, label: str | None = None) -> None:
        super().__init__(
            message=f"Not a number: {text!r}",
            context={"text": text, "label": label},
        )
        self.text = text
        self.label = label


class BrowserInitializationError(StockScoutError):
    """Raised when the browser session fails to start.

    Common causes include missing Playwright browsers, resource constraints,
    or conflicting browser processes.
    """

    def __init__(self, reason: str, browser_type: str = "chromium") -> None:
        super().__init__(
            message=f"Failed to initialize {browser_type} browser: {reason}",
            context={"browser_type": browser_type, "reason": reason},
        )


class NavigationError(StockScoutError):
    """Raised when page navigation fails or times out."""

    def __init__(self, url: str, reason: str, status_code: int | None = None) -> None:
        super().__init__(
            message=f"Navigation to '{url}' failed: {reason}",
            context={"url": url, "reason": reason, "status_code": status_code},
        )


class ExtractionError(StockScoutError):
    """Raised when reading an element from a page fails.

    Captures the locator and page URL to aid in diagnosing selector drift.
    """

    def __init__(self, locator: str, url: str, reason: str) -> None:
        super().__init__(
            message=f"Extraction failed for locator '{locator}': {reason}",
            context={"locator": locator, "url": url, "reason": reason},
        )
        self.locator = locator
        self.url = url


class ElementNotFoundError(ExtractionError):
    """Raised when a required structural element is absent.

    The consent wall "accept all" button is the typical case.
    """

    def __init__(self, locator: str, url: str) -> None:
        super().__init__(
            locator=locator,
            url=url,
            reason="Required element not found",
        )


class ElementTimeoutError(ExtractionError):
    """Raised when the bounded wait for an element expires.

    Secondary prediction sources absorb this error and substitute a
    sentinel value; everywhere else it is fatal.
    """

    def __init__(self, locator: str, url: str, timeout_ms: int) -> None:
        super().__init__(
            locator=locator,
            url=url,
            reason=f"Timed out after {timeout_ms}ms",
        )
        self.timeout_ms = timeout_ms


class ReportGenerationError(StockScoutError):
    """Raised when report generation fails.

    Common causes include tickers missing from the batch or I/O errors.
    """

    def __init__(self, report_type: str, reason: str, output_path: str | None = None) -> None:
        super().__init__(
            message=f"Failed to generate {report_type} report: {reason}",
            context={"report_type": report_type, "reason": reason, "output_path": output_path},
        )


class LoggingInitializationError(StockScoutError):
    """Raised when the logging system fails to initialize.

    This is a startup-blocking error - the application cannot proceed
    without a functioning logging infrastructure.
    """

    def __init__(self, log_dir: str, reason: str) -> None:
        super().__init__(
            message=f"Failed to initialize logging at '{log_dir}': {reason}",
            context={"log_dir": log_dir, "reason": reason},
        )
