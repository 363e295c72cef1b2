"""SiteBudget configuration.

This package contains:
- settings: Environment variables and configuration
- secrets: Unified secret access
- errors: Custom exceptions and error codes
"""

from config.settings import settings
from config.errors import SiteBudgetError
from config.secrets import get_secret, get_openai_api_key

__all__ = [
    "settings",
    "SiteBudgetError",
    "get_secret",
    "get_openai_api_key",
]
