"""Unit tests for configuration, secrets and errors."""

import pytest

from config.errors import (
    AnalysisError,
    BatchAnalysisError,
    ErrorCode,
    SiteBudgetError,
    ValidationError,
)
from config.secrets import clear_secret_cache, get_openai_api_key, get_secret
from config.settings import Settings


class TestSettings:
    """Tests for Settings."""

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("DEFAULT_CURRENCY", "NGN")
        monkeypatch.setenv("PRICE_HISTORY_POINTS", "12")
        monkeypatch.setenv("LLM_TEMPERATURE", "0.7")

        fresh = Settings()

        assert fresh.default_currency == "NGN"
        assert fresh.price_history_points == 12
        assert fresh.llm_temperature == 0.7

    def test_defaults(self, monkeypatch):
        for name in ("DEFAULT_CURRENCY", "DEFAULT_MARKET_REGION", "EXPORT_DIR"):
            monkeypatch.delenv(name, raising=False)

        fresh = Settings()

        assert fresh.default_currency == "GHS"
        assert fresh.default_market_region == "Ghana (Accra/Kumasi Avg)"
        assert fresh.export_dir == "exports"

    def test_validate_requires_api_key(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        clear_secret_cache()
        try:
            with pytest.raises(ValueError):
                Settings().validate()
        finally:
            clear_secret_cache()

    def test_api_key_from_secrets(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
        clear_secret_cache()
        try:
            assert Settings().openai_api_key == "sk-env"
        finally:
            clear_secret_cache()


class TestSecrets:
    """Tests for config.secrets."""

    def test_get_secret(self, monkeypatch):
        monkeypatch.setenv("MY_SECRET_NAME", "value")
        assert get_secret("MY_SECRET_NAME") == "value"

    def test_missing_secret(self, monkeypatch):
        monkeypatch.delenv("MY_SECRET_NAME", raising=False)
        assert get_secret("MY_SECRET_NAME") is None

    def test_openai_key_cached(self, monkeypatch):
        clear_secret_cache()
        monkeypatch.setenv("OPENAI_API_KEY", "first")
        try:
            assert get_openai_api_key() == "first"
            monkeypatch.setenv("OPENAI_API_KEY", "second")
            assert get_openai_api_key() == "first"
            clear_secret_cache()
            assert get_openai_api_key() == "second"
        finally:
            clear_secret_cache()


class TestErrors:
    """Tests for the error hierarchy."""

    def test_to_dict(self):
        error = SiteBudgetError(code=ErrorCode.LLM_ERROR, message="boom", details={"a": 1})
        assert error.to_dict() == {"code": "LLM_ERROR", "message": "boom", "details": {"a": 1}}
        assert "LLM_ERROR" in repr(error)

    def test_validation_error_field(self):
        error = ValidationError(message="bad", field="quantity")
        assert error.code == ErrorCode.VALIDATION_ERROR
        assert error.details == {"field": "quantity"}

    def test_analysis_error_details(self):
        error = AnalysisError(
            code=ErrorCode.EMPTY_RESPONSE, message="empty", document_id="doc-1", file_name="a.pdf"
        )
        assert error.details == {"document_id": "doc-1", "file_name": "a.pdf"}

    def test_batch_error_is_retryable(self):
        error = BatchAnalysisError(message="failed", failed_document_id="doc-2", completed_count=1)
        assert error.retryable is True
        assert error.code == ErrorCode.BATCH_FAILED
        assert error.details["discarded_count"] == 1
