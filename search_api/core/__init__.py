"""
Core module providing foundational components.

This module contains the configuration loader, centralized logging setup,
and custom exception hierarchy. It has no internal dependencies.
"""

from .config_loader import get_config, get_config_or_defaults, Config, QueryConfig
from .logger import get_logger
from .exceptions import (
    SearchApiError,
    ConfigurationError,
    InvalidQuery,
    DatabaseError,
    SearchError
)

__all__ = [
    "get_config",
    "get_config_or_defaults",
    "Config",
    "QueryConfig",
    "get_logger",
    "SearchApiError",
    "ConfigurationError",
    "InvalidQuery",
    "DatabaseError",
    "SearchError"
]
