"""Pytest configuration and shared fixtures for SiteBudget tests."""

import os
import sys
import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from typing import Dict, Any


# ============================================================================
# Ensure local imports work (config/, models/, services/, utils/)
# ============================================================================
#
# The codebase uses absolute imports like `from models...` / `from services...`
# rooted at src/, and tests import their fixtures as `tests.fixtures...`.
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC_ROOT = os.path.join(PROJECT_ROOT, "src")
for path in (SRC_ROOT, PROJECT_ROOT):
    if path not in sys.path:
        sys.path.insert(0, path)


# ============================================================================
# Settings
# ============================================================================

@pytest.fixture(autouse=True)
def mock_settings(monkeypatch, tmp_path):
    """Pin settings for all tests.

    Modules bind the `settings` singleton at import time, so the real
    instance is patched attribute by attribute.
    """
    from config.settings import settings

    monkeypatch.setattr(settings, "_openai_api_key", "test-api-key")
    monkeypatch.setattr(settings, "llm_model", "gpt-4o")
    monkeypatch.setattr(settings, "llm_temperature", 0.1)
    monkeypatch.setattr(settings, "default_currency", "GHS")
    monkeypatch.setattr(settings, "default_market_region", "Ghana (Accra/Kumasi Avg)")
    monkeypatch.setattr(settings, "currency_locale", "en_GH")
    monkeypatch.setattr(settings, "price_history_points", 6)
    monkeypatch.setattr(settings, "report_title", "SiteBudget Estimation Report")
    monkeypatch.setattr(settings, "export_dir", str(tmp_path / "exports"))
    monkeypatch.setattr(settings, "log_level", "INFO")
    yield settings


# ============================================================================
# LLM Mocks
# ============================================================================

@pytest.fixture
def mock_chat_openai():
    """Mock ChatOpenAI client."""
    mock = AsyncMock()
    mock.ainvoke.return_value = MagicMock(
        content='{"projectName": "Mock Project", "breakdown": []}',
        response_metadata={"token_usage": {"total_tokens": 100}}
    )
    return mock


@pytest.fixture
def mock_llm_service(mock_chat_openai):
    """Mock LLMService."""
    from services.llm_service import LLMService

    with patch('services.llm_service.ChatOpenAI', return_value=mock_chat_openai):
        service = LLMService(api_key="test-api-key")
        service._client = mock_chat_openai
        return service


class StubAnalyzer:
    """Analyzer double returning canned drafts keyed by document id.

    A value that is an exception instance is raised instead of returned.
    """

    def __init__(self, drafts: Dict[str, Any], tokens: int = 0):
        self.drafts = drafts
        self.calls = []
        self.total_tokens_used = tokens

    async def analyze(self, upload):
        self.calls.append(upload.document_id)
        draft = self.drafts[upload.document_id]
        if isinstance(draft, Exception):
            raise draft
        return draft


@pytest.fixture
def stub_analyzer_factory():
    """Build StubAnalyzer instances."""
    return StubAnalyzer


# ============================================================================
# Estimate Fixtures
# ============================================================================

@pytest.fixture
def sample_site_plan_draft() -> Dict[str, Any]:
    """Well-formed draft for a site plan."""
    from tests.fixtures.mock_draft_data import get_site_plan_draft
    return get_site_plan_draft()


@pytest.fixture
def sample_floor_plan_draft() -> Dict[str, Any]:
    """Well-formed draft for a floor plan."""
    from tests.fixtures.mock_draft_data import get_floor_plan_draft
    return get_floor_plan_draft()


@pytest.fixture
def sample_project():
    """Two-document project estimate built through the normalizer."""
    from tests.fixtures.mock_draft_data import get_floor_plan_draft, get_site_plan_draft
    from services.draft_normalizer import normalize_draft
    from models.estimate import ProjectEstimate

    documents = [
        normalize_draft(get_site_plan_draft(), "doc-1", "site_plan.pdf"),
        normalize_draft(get_floor_plan_draft(), "doc-2", "floor_plan.png"),
    ]
    return ProjectEstimate.from_documents(documents, "GHS")


@pytest.fixture
def toggles():
    """Empty toggle state."""
    from services.dual_unit_view import ToggleState
    return ToggleState()
