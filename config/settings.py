"""Global configuration management using pydantic-settings.

This module implements the 12-factor app methodology for configuration,
loading values from environment variables with strict type validation.
The Singleton pattern ensures consistent configuration state across the application.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

KNOWN_PREDICTION_SOURCES = ("zacks", "alphaspread", "gurufocus")


class CategoryConfig(BaseModel):
    """A named group of tickers processed and reported together.

    Attributes:
        label: Category header written to the report.
        tickers: Ticker symbols in report order.
    """

    label: str = Field(..., min_length=1, description="Category header")
    tickers: list[str] = Field(..., min_length=1, description="Ticker symbols")

    @field_validator("label")
    @classmethod
    def strip_label(cls, value: str) -> str:
        """Reject labels that are blank once whitespace is removed."""
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("Category label cannot be blank")
        return cleaned

    @field_validator("tickers")
    @classmethod
    def normalize_tickers(cls, value: list[str]) -> list[str]:
        """Uppercase, strip and deduplicate tickers while keeping order."""
        seen: dict[str, None] = {}
        for ticker in value:
            cleaned = ticker.strip().upper()
            if not cleaned:
                raise ValueError("Ticker symbols cannot be blank")
            seen.setdefault(cleaned, None)
        return list(seen)


DEFAULT_CATEGORIES = [
    CategoryConfig(label="Safe", tickers=["PG", "JPM", "TXN", "AVGO", "MCD", "KO", "PEP"]),
    CategoryConfig(
        label="Safe No Dividends",
        tickers=["AAPL", "MSFT", "ORCL", "SONY", "BRK.B", "GOOG"],
    ),
    CategoryConfig(label="REIT", tickers=["SBRA", "OHI"]),
    CategoryConfig(
        label="Watchlist",
        tickers=["CSCO", "JNJ", "HPQ", "SHOP", "NET", "MDB", "QCOM", "V", "SNOW"],
    ),
]


class GlobalConfig(BaseSettings):
    """Centralized configuration with environment variable binding.

    All configuration values are loaded from environment variables,
    with defaults reproducing the standard four-category run. Complex
    fields (``CATEGORIES``, ``PREDICTION_SOURCES``) are read as JSON.

    Attributes:
        app_name: Application identifier for logging.
        environment: Deployment environment (development/staging/production).
        debug: Enable verbose debugging output.
        headless: Run Chromium without a visible window.
        log_level: Minimum log level for output filtering.
        log_dir: Directory path for structured JSON log files.
        log_rotation: Log file rotation interval.
        log_retention: Log file retention period.
        element_timeout_ms: Bounded wait for a single element.
        navigation_timeout_ms: Page navigation timeout.
        output_path: Tab-separated report file, truncated on each run.
        category_delay_sec: Pause between consecutive categories.
        prediction_sentinel: Value substituted when a secondary source times out.
        prediction_sources: Secondary prediction sources, in report column order.
        history_row_limit: Number of historical rows read per ticker.
        categories: Ordered category/ticker groups to process.
        user_agents: User-agent pool, one picked per page.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application Metadata
    app_name: str = Field(default="StockScout", description="Application identifier")
    environment: Literal["development", "staging", "production", "test"] = Field(
        default="development", description="Deployment environment"
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    # Browser Configuration
    headless: bool = Field(default=True, description="Run browser in headless mode")

    # Logging Configuration
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Minimum log level"
    )
    log_dir: Path = Field(default=Path("logs"), description="Log output directory")
    log_rotation: str = Field(default="1 week", description="Log rotation interval")
    log_retention: str = Field(default="1 month", description="Log retention period")

    # Timeouts
    element_timeout_ms: int = Field(
        default=30000, ge=100, le=120000, description="Element wait timeout in milliseconds"
    )
    navigation_timeout_ms: int = Field(
        default=30000, ge=1000, le=120000, description="Navigation timeout in milliseconds"
    )

    # Run Configuration
    output_path: Path = Field(
        default=Path("output.sheets"), description="Tab-separated report file"
    )
    category_delay_sec: float = Field(
        default=20.0, ge=0.0, le=600.0, description="Pause between categories"
    )
    prediction_sentinel: float = Field(
        default=0.0, description="Placeholder for unreadable secondary predictions"
    )
    prediction_sources: list[str] = Field(
        default=["zacks", "alphaspread"],
        description="Secondary prediction sources in column order",
    )
    history_row_limit: int = Field(
        default=10, ge=1, le=100, description="Historical rows inspected per ticker"
    )
    categories: list[CategoryConfig] = Field(
        default=DEFAULT_CATEGORIES, description="Category/ticker groups"
    )

    # Stealth Configuration - User Agent Pool
    user_agents: list[str] = Field(
        default=[
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
            "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:121.0) Gecko/20100101 Firefox/121.0",
            "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
        ],
        description="User-agent pool for stealth",
    )

    # Yahoo Finance Locators
    yahoo_consent_url_marker: str = Field(
        default="consent.yahoo.com/v2/collectConsent",
        description="URL fragment identifying the consent wall",
    )
    yahoo_consent_accept_selector: str = Field(
        default=(
            "#consent-page > div > div > div > form > div.wizard-body "
            "> div.actions.couple > button.btn.secondary.accept-all"
        ),
        description="Consent 'accept all' button",
    )
    yahoo_price_locator: str = Field(
        default='xpath=//*[@id="quote-header-info"]/div[3]/div[1]/div[1]/fin-streamer[1]',
        description="Current price",
    )
    yahoo_earnings_date_locator: str = Field(
        default='xpath=//*[@id="quote-summary"]/div[2]/table/tbody/tr[5]/td[2]',
        description="Earnings date",
    )
    yahoo_dividend_locator: str = Field(
        default='xpath=//*[@id="quote-summary"]/div[2]/table/tbody/tr[6]/td[2]',
        description="Forward dividend & yield",
    )
    yahoo_ex_dividend_locator: str = Field(
        default='xpath=//*[@id="quote-summary"]/div[2]/table/tbody/tr[7]/td[2]',
        description="Ex-dividend date",
    )
    yahoo_target_locator: str = Field(
        default='xpath=//*[@id="quote-summary"]/div[2]/table/tbody/tr[8]/td[2]',
        description="1y target estimate",
    )
    yahoo_history_row_selector: str = Field(
        default="#Col1-1-HistoricalDataTable-Proxy table > tbody > tr",
        description="Historical data table rows",
    )

    # Secondary Source Locators
    zacks_target_locator: str = Field(
        default='xpath=//*[@id="right_content"]/section[2]/div/table/tbody/tr/th',
        description="Zacks average price target",
    )
    alphaspread_target_locator: str = Field(
        default=(
            'xpath=//*[@id="main"]/div[3]/div[1]/div/div[1]/div/div[4]'
            "/div/div[2]/a/div/div/div[2]"
        ),
        description="Alphaspread analyst price target",
    )
    gurufocus_target_locator: str = Field(
        default=(
            'xpath=//*[@id="components-root"]/div[1]/div[4]/div[2]/div[2]'
            "/div[1]/div[1]/h2/a/span"
        ),
        description="GuruFocus value estimate",
    )

    @field_validator("log_dir", "output_path", mode="before")
    @classmethod
    def ensure_path(cls, value: str | Path) -> Path:
        """Convert string paths to Path objects."""
        return Path(value) if isinstance(value, str) else value

    @field_validator("prediction_sources")
    @classmethod
    def validate_sources(cls, value: list[str]) -> list[str]:
        """Ensure every configured secondary source is known and listed once."""
        cleaned = [name.strip().lower() for name in value]
        unknown = [name for name in cleaned if name not in KNOWN_PREDICTION_SOURCES]
        if unknown:
            raise ValueError(
                f"Unknown prediction sources {unknown}; "
                f"expected any of {list(KNOWN_PREDICTION_SOURCES)}"
            )
        if len(set(cleaned)) != len(cleaned):
            raise ValueError("Prediction sources must not repeat")
        return cleaned


@lru_cache(maxsize=1)
def get_config() -> GlobalConfig:
    """Retrieve the singleton GlobalConfig instance.

    Uses LRU cache to ensure single instantiation across the application lifecycle.

    Returns:
        GlobalConfig: The validated configuration instance.
    """
    return GlobalConfig()
