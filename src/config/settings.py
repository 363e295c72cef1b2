"""SiteBudget configuration settings.

Loads configuration from environment variables with sensible defaults.
Secrets are loaded via the config.secrets module.
"""

import os
from typing import Optional
from dataclasses import dataclass, field
from dotenv import load_dotenv

# Load .env file for non-secret configuration (model, locale, export paths, etc.)
load_dotenv()


@dataclass
class Settings:
    """Application settings loaded from environment variables.

    Note: Secrets (OPENAI_API_KEY) should be accessed via config.secrets module,
    not directly from this class. The openai_api_key property delegates to the
    secrets module.
    """

    # LLM Configuration (non-secrets)
    llm_model: str = field(default_factory=lambda: os.getenv("LLM_MODEL", "gpt-4o"))
    llm_temperature: float = field(default_factory=lambda: float(os.getenv("LLM_TEMPERATURE", "0.2")))

    # Market defaults used when a draft omits them
    default_currency: str = field(default_factory=lambda: os.getenv("DEFAULT_CURRENCY", "GHS"))
    default_market_region: str = field(
        default_factory=lambda: os.getenv("DEFAULT_MARKET_REGION", "Ghana (Accra/Kumasi Avg)")
    )
    currency_locale: str = field(default_factory=lambda: os.getenv("CURRENCY_LOCALE", "en_GH"))
    price_history_points: int = field(default_factory=lambda: int(os.getenv("PRICE_HISTORY_POINTS", "6")))

    # Export Configuration
    report_title: str = field(
        default_factory=lambda: os.getenv("REPORT_TITLE", "SiteBudget Estimation Report")
    )
    export_dir: str = field(default_factory=lambda: os.getenv("EXPORT_DIR", "exports"))

    # Logging
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))

    # Internal: cached secret value (use openai_api_key property instead)
    _openai_api_key: Optional[str] = field(default=None, repr=False)

    @property
    def openai_api_key(self) -> Optional[str]:
        """Get OpenAI API key from the secrets module."""
        if self._openai_api_key is None:
            from config.secrets import get_openai_api_key
            self._openai_api_key = get_openai_api_key()
        return self._openai_api_key

    def validate(self) -> None:
        """Validate required settings are present.

        Raises:
            ValueError: If required settings are missing.
        """
        if not self.openai_api_key:
            raise ValueError("OPENAI_API_KEY is required for document analysis")


# Singleton settings instance
settings = Settings()
