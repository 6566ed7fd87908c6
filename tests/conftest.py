"""Pytest configuration and shared fixtures for the StockScout test suite.

This module provides hermetic test infrastructure:
- No external network requests (Playwright is always mocked)
- Isolated configuration (env overrides, cache cleared around each test)
- Factory fixtures for fake pages and element handles
"""

from pathlib import Path
from typing import Any, Callable
from unittest.mock import AsyncMock, MagicMock

import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from pytest_mock import MockerFixture

from config.settings import GlobalConfig


@pytest.fixture
def mock_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> GlobalConfig:
    """Provide isolated GlobalConfig with safe test defaults.

    Overrides the lru_cache singleton to prevent state leakage between tests.
    Uses tmp_path for all file operations to avoid polluting the filesystem.
    """
    from config.settings import get_config

    get_config.cache_clear()

    log_dir = tmp_path / "logs"
    log_dir.mkdir()

    test_env = {
        "APP_NAME": "StockScout-Test",
        "ENVIRONMENT": "test",
        "DEBUG": "false",
        "HEADLESS": "true",
        "LOG_LEVEL": "DEBUG",
        "LOG_DIR": str(log_dir),
        "LOG_ROTATION": "1 day",
        "LOG_RETENTION": "1 day",
        "ELEMENT_TIMEOUT_MS": "500",
        "NAVIGATION_TIMEOUT_MS": "5000",
        "OUTPUT_PATH": str(tmp_path / "output.sheets"),
        "CATEGORY_DELAY_SEC": "0",
        "PREDICTION_SENTINEL": "0",
        "PREDICTION_SOURCES": '["zacks", "alphaspread"]',
        "CATEGORIES": '[{"label": "Test", "tickers": ["AAA", "BBB"]}]',
    }

    for key, value in test_env.items():
        monkeypatch.setenv(key, value)

    config = get_config()

    yield config

    get_config.cache_clear()


@pytest.fixture
def element_factory() -> Callable[..., MagicMock]:
    """Factory for fake Playwright ElementHandles."""

    def _create(text: str | None = "", click_error: Exception | None = None) -> MagicMock:
        handle = MagicMock()
        handle.text_content = AsyncMock(return_value=text)
        handle.click = AsyncMock(side_effect=click_error)
        handle.dispose = AsyncMock()
        return handle

    return _create


@pytest.fixture
def page_factory(element_factory: Callable[..., MagicMock]) -> Callable[..., MagicMock]:
    """Factory for fake Playwright Pages.

    ``texts`` maps a locator to the text of the element it resolves to;
    locators listed in ``timeouts`` raise Playwright's TimeoutError and
    unknown locators resolve to None. ``rows`` is what the history table
    query returns.

    Example:
        page = page_factory(texts={"xpath=//price": "123.45"})
    """

    def _create(
        texts: dict[str, str | None] | None = None,
        timeouts: set[str] | None = None,
        rows: list[list[str]] | None = None,
        url: str = "https://example.com/",
    ) -> MagicMock:
        texts = texts or {}
        timeouts = timeouts or set()

        page = MagicMock()
        page.url = url
        page.handles = []

        async def wait_for_selector(locator: str, **kwargs: Any) -> MagicMock | None:
            if locator in timeouts:
                raise PlaywrightTimeoutError(f"Timeout waiting for {locator}")
            if locator not in texts:
                return None
            handle = element_factory(texts[locator])
            page.handles.append(handle)
            return handle

        async def goto(target: str, **kwargs: Any) -> MagicMock:
            page.url = target
            return MagicMock(status=200)

        page.wait_for_selector = AsyncMock(side_effect=wait_for_selector)
        page.goto = AsyncMock(side_effect=goto)
        page.wait_for_load_state = AsyncMock()
        page.close = AsyncMock()

        row_locator = MagicMock()
        row_locator.evaluate_all = AsyncMock(return_value=rows or [])
        page.locator = MagicMock(return_value=row_locator)

        return page

    return _create


@pytest.fixture
def mock_browser(mocker: MockerFixture) -> MagicMock:
    """Provide a mocked Playwright Browser."""
    browser = mocker.MagicMock()
    browser.new_page = mocker.AsyncMock()
    browser.close = mocker.AsyncMock()
    return browser


@pytest.fixture
def mock_playwright(mocker: MockerFixture, mock_browser: MagicMock) -> MagicMock:
    """Provide a mocked Playwright instance and patch async_playwright()."""
    playwright = mocker.MagicMock()
    playwright.chromium.launch = mocker.AsyncMock(return_value=mock_browser)
    playwright.stop = mocker.AsyncMock()

    async_playwright_instance = mocker.MagicMock()
    async_playwright_instance.start = mocker.AsyncMock(return_value=playwright)
    mocker.patch("stockscout.browser.async_playwright", return_value=async_playwright_instance)

    return playwright


def pytest_configure(config: Any) -> None:
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: marks tests as integration tests requiring full stack",
    )
