"""Unified secret access for SiteBudget.

Secrets are read from the process environment (optionally populated from a
.env file by config.settings).

Usage:
    from config.secrets import get_openai_api_key, get_secret

    api_key = get_openai_api_key()
    custom_secret = get_secret('MY_SECRET_NAME')
"""

import os
import logging
from functools import lru_cache
from typing import Optional

logger = logging.getLogger(__name__)


def get_secret(secret_id: str) -> Optional[str]:
    """
    Get secret from the environment.

    Args:
        secret_id: The name of the secret (e.g., 'OPENAI_API_KEY')

    Returns:
        The secret value, or None if not found
    """
    value = os.environ.get(secret_id)
    if value:
        logger.debug(f"Secret {secret_id} loaded from environment")
    else:
        logger.warning(f"Secret {secret_id} not found in environment variables")
    return value


@lru_cache(maxsize=1)
def get_openai_api_key() -> Optional[str]:
    """Get OpenAI API key from secrets."""
    return get_secret('OPENAI_API_KEY')


def clear_secret_cache() -> None:
    """Clear cached secrets. Useful for testing or when secrets are rotated."""
    get_openai_api_key.cache_clear()
