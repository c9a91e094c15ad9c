"""Unit tests for environment settings."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from src.settings import AppSettings
from src.transport.client import HttpTransport


class TestAppSettings:
    """Tests for AppSettings."""

    def test_defaults(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        """Test defaults without environment overrides."""
        monkeypatch.chdir(tmp_path)
        settings = AppSettings()

        assert settings.log_level == "INFO"
        assert settings.json_logs is False
        assert settings.retry_max == 3

    def test_env_prefix(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that API_RELAY_* variables are read."""
        monkeypatch.setenv("API_RELAY_RETRY_MAX", "1")
        monkeypatch.setenv("API_RELAY_JSON_LOGS", "true")
        monkeypatch.setenv("api_relay_user_agent", "custom/2.0")

        settings = AppSettings()

        assert settings.retry_max == 1
        assert settings.json_logs is True
        assert settings.user_agent == "custom/2.0"

    def test_inverted_wait_window(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that the wait bounds must be ordered."""
        monkeypatch.setenv("API_RELAY_RETRY_WAIT_MIN_MS", "5000")
        monkeypatch.setenv("API_RELAY_RETRY_WAIT_MAX_MS", "100")

        with pytest.raises(ValidationError):
            AppSettings()

    def test_retry_policy(self) -> None:
        """Test that the retry policy mirrors the settings."""
        settings = AppSettings(
            retry_max=5, retry_wait_min_ms=10, retry_wait_max_ms=20
        )

        policy = settings.retry_policy()

        assert policy.max_retries == 5
        assert policy.wait_min_ms == 10
        assert policy.wait_max_ms == 20

    def test_build_transport(self) -> None:
        """Test retrying and single-attempt transports."""
        settings = AppSettings(retry_max=2)

        retrying = settings.build_transport()
        single = settings.build_transport(retry=False)

        assert isinstance(retrying, HttpTransport)
        assert retrying.retry_policy.max_retries == 2
        assert single.retry_policy.max_retries == 0
