"""Tests for settings loading."""

import pytest
from pydantic import ValidationError

from tablestage.core.config import MEBIBYTE, Settings, get_settings


class TestSettings:
    """Tests for Settings defaults and overrides."""

    def test_defaults(self):
        settings = Settings(_env_file=None)

        assert settings.api_base_url == "http://localhost:8000/api"
        assert settings.max_files == 10
        assert settings.max_file_bytes == 300 * MEBIBYTE
        assert settings.max_concurrent_uploads == 10
        assert settings.catalog_ttl_seconds is None
        assert settings.log_format == "console"

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("TABLESTAGE_MAX_FILES", "3")
        monkeypatch.setenv("TABLESTAGE_API_BASE_URL", "https://ingest.example.com/api")

        settings = Settings(_env_file=None)

        assert settings.max_files == 3
        assert settings.api_base_url == "https://ingest.example.com/api"

    def test_limits_must_be_positive(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, max_files=0)

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()
