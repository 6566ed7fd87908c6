"""StockScout Entry Point.

This module is the bootstrap layer; all functional code resides in the
stockscout package.

Responsibilities:
    1. Load and validate configuration
    2. Initialize logging infrastructure (fail-fast on error)
    3. Run the category pipeline and write the report file
    4. Handle top-level exceptions with a non-zero exit code

Usage:
    python main.py
    CATEGORY_DELAY_SEC=5 CATEGORIES='[{"label": "Tech", "tickers": ["AAPL"]}]' python main.py
"""

import asyncio
import sys
from typing import NoReturn

from loguru import logger

from config.settings import GlobalConfig, get_config
from stockscout.exceptions import LoggingInitializationError, StockScoutError
from stockscout.logger import configure_logging
from stockscout.runner import RunDriver


async def _run_pipeline(config: GlobalConfig) -> int:
    """Process every configured category into the report file.

    Returns:
        Exit code (0 for success).
    """
    logger.info(
        "Pipeline execution started",
        app_name=config.app_name,
        environment=config.environment,
        categories=[category.label for category in config.categories],
        prediction_sources=config.prediction_sources,
        output_path=str(config.output_path),
    )

    driver = RunDriver(config)
    written = await driver.run()

    logger.info(
        "Pipeline execution completed successfully",
        categories_written=written,
        output_path=str(config.output_path),
    )
    return 0


def _handle_fatal_error(exc: Exception) -> NoReturn:
    """Log a fatal error and exit with status 1."""
    if isinstance(exc, StockScoutError):
        logger.critical(
            "Fatal application error",
            error_type=type(exc).__name__,
            message=exc.message,
            context=exc.context,
        )
        sys.exit(1)

    logger.exception("Unexpected fatal error", error=str(exc))
    sys.exit(1)


def main() -> int:
    """Application entry point.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    try:
        config = get_config()
    except Exception as exc:
        # Cannot log yet - print to stderr
        print(f"FATAL: Configuration loading failed: {exc}", file=sys.stderr)
        return 1

    try:
        configure_logging(config)
    except LoggingInitializationError as exc:
        print(f"FATAL: {exc}", file=sys.stderr)
        return 1

    try:
        return asyncio.run(_run_pipeline(config))
    except KeyboardInterrupt:
        logger.warning("Pipeline interrupted by user (Ctrl+C)")
        return 130
    except Exception as exc:
        _handle_fatal_error(exc)


if __name__ == "__main__":
    sys.exit(main())
