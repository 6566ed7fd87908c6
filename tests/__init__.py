"""Test suite for StockScout.

Tests are hermetic: Playwright is mocked and all files live in tmp_path.
"""
