"""StockScout core package.

This package contains the components of the price target scraping pipeline:
- browser: Playwright browser session and page lifecycle
- extractor: element reads and the BaseSource strategy interface
- scraper: Yahoo Finance, Zacks, Alphaspread and GuruFocus sources
- aggregator: per-ticker merge and per-batch orchestration
- reporter: tab-separated report formatting
- runner: sequential category processing
- parsing, models, logger, exceptions: supporting modules
"""

__version__ = "1.0.0"
