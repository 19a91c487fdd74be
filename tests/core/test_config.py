"""Tests for environment-driven settings."""

import pytest

from blogforge.core.config import Settings


class TestSettings:
    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DATABASE_URL", "postgresql://u:p@localhost:5432/db")
        for name in ("GEMINI_API_KEY", "WATCHMAN_ENABLED", "WATCHMAN_CRON", "PLAN_TOPUP_MAX_ATTEMPTS"):
            monkeypatch.delenv(name, raising=False)
        settings = Settings(_env_file=None)  # type: ignore[call-arg]
        assert settings.gemini_api_key is None
        assert settings.plan_topup_max_attempts == 2
        assert settings.query_similarity_threshold == 0.4
        assert settings.watchman_enabled is True
        assert settings.watchman_cron == "0 * * * *"

    def test_environment_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DATABASE_URL", "postgresql://u:p@localhost:5432/db")
        monkeypatch.setenv("GEMINI_API_KEY", "k-123")
        monkeypatch.setenv("WATCHMAN_ENABLED", "false")
        monkeypatch.setenv("SECTION_DELAY_SECONDS", "0")
        settings = Settings(_env_file=None)  # type: ignore[call-arg]
        assert settings.gemini_api_key == "k-123"
        assert settings.watchman_enabled is False
        assert settings.section_delay_seconds == 0.0

    def test_database_url_is_required(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("DATABASE_URL", raising=False)
        with pytest.raises(ValueError):
            Settings(_env_file=None)  # type: ignore[call-arg]
