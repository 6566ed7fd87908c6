"""Configuration module for StockScout.

This module provides centralized configuration management using pydantic-settings,
ensuring strict validation of all environment variables.
"""

from config.settings import CategoryConfig, GlobalConfig, get_config

__all__ = ["CategoryConfig", "GlobalConfig", "get_config"]
