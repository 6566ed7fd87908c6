"""Conversion of raw page text into typed values."""

import math
from datetime import date, datetime, timedelta

from stockscout.exceptions import EmptyValueError, NotANumberError

HISTORY_DATE_FORMAT = "%b %d, %Y"


def parse_number(text: str, label: str | None = None) -> float:
    """Parse decimal text such as ``"1,234.56"`` into a float.

    Thousands separators and surrounding whitespace are removed. Currency
    symbols and unit suffixes are the caller's responsibility.

    Args:
        text: Raw text content of an element.
        label: Diagnostic label, usually the ticker.

    Raises:
        EmptyValueError: If ``text`` is the empty string.
        NotANumberError: If ``text`` is not a finite decimal number,
            including text made only of whitespace.
    """
    if text == "":
        raise EmptyValueError(label)

    cleaned = text.strip().replace(",", "")
    if not cleaned:
        raise NotANumberError(text, label)

    # float() accepts digit grouping underscores, page text never uses them
    if "_" in cleaned:
        raise NotANumberError(text, label)

    try:
        value = float(cleaned)
    except ValueError as exc:
        raise NotANumberError(text, label) from exc

    if not math.isfinite(value):
        raise NotANumberError(text, label)
    return value


def parse_history_date(text: str) -> date | None:
    """Parse the leading date cell of a historical data row.

    Returns:
        The parsed date, or None when the cell does not match ``Mar 08, 2024``.
    """
    try:
        return datetime.strptime(text.strip(), HISTORY_DATE_FORMAT).date()
    except ValueError:
        return None


def week_start(today: date | None = None) -> date:
    """Return the Monday of the week containing ``today`` (local time)."""
    today = today or date.today()
    return today - timedelta(days=today.weekday())
