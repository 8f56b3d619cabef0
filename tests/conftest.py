"""Pytest configuration and fixtures."""

import copy
from typing import Any

import pytest

from homeconfig.common.settings import Settings, get_settings
from homeconfig.common.signing import SigningCredentials

TEST_API_KEY = "test-api-key"
TEST_SIGNING_SECRET = "test-signature-secret"


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Keep host environment credentials out of tests."""
    monkeypatch.delenv("HOMECONFIG_SERVICE_API_KEY", raising=False)
    monkeypatch.delenv("HOMECONFIG_SIGNATURE_SECRET", raising=False)
    monkeypatch.delenv("HOMECONFIG_USER_ID", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def credentials() -> SigningCredentials:
    """Shared test credentials."""
    return SigningCredentials(api_key=TEST_API_KEY, signing_secret=TEST_SIGNING_SECRET)


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Create test settings."""
    return Settings(
        service_api_key=TEST_API_KEY,
        signature_secret=TEST_SIGNING_SECRET,
        database_path=str(tmp_path / "configurations.db"),
        config_service_url="http://config-service.test",
    )


_SAMPLE_CONFIG: dict[str, Any] = {
    "carousel": {
        "images": [{"url": "https://example.com/image.jpg", "alt": "Test image"}],
        "aspectRatio": "portrait",
    },
    "textSection": {
        "title": "Test Title",
        "description": "Test description",
        "titleColor": "#000000",
        "descriptionColor": "#666666",
    },
    "cta": {
        "label": "Get Started",
        "url": "https://example.com",
        "backgroundColor": "#007AFF",
        "textColor": "#FFFFFF",
    },
}


@pytest.fixture
def sample_config() -> dict[str, Any]:
    """A valid HomeScreenConfig payload."""
    return copy.deepcopy(_SAMPLE_CONFIG)
