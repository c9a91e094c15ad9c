"""Application settings powered by Pydantic BaseSettings."""

from typing import Annotated

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.transport.client import HttpTransport
from src.transport.constants import (
    DEFAULT_RETRY_MAX,
    DEFAULT_RETRY_WAIT_MAX_MS,
    DEFAULT_RETRY_WAIT_MIN_MS,
    DEFAULT_USER_AGENT,
)
from src.transport.models import RetryPolicy


class AppSettings(BaseSettings):
    """Centralized environment configuration.

    Every field reads ``API_RELAY_<FIELD>`` (case-insensitive), falling back
    to a ``.env`` file in the working directory.
    """

    model_config = SettingsConfigDict(
        env_prefix="API_RELAY_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str = "INFO"
    json_logs: bool = False
    retry_max: Annotated[int, Field(ge=0, le=10)] = DEFAULT_RETRY_MAX
    retry_wait_min_ms: Annotated[int, Field(ge=0)] = DEFAULT_RETRY_WAIT_MIN_MS
    retry_wait_max_ms: Annotated[int, Field(ge=0)] = DEFAULT_RETRY_WAIT_MAX_MS
    user_agent: str = DEFAULT_USER_AGENT

    @model_validator(mode="after")
    def validate_wait_bounds(self) -> "AppSettings":
        """Ensure the retry wait bounds are ordered."""
        if self.retry_wait_max_ms < self.retry_wait_min_ms:
            msg = "retry_wait_max_ms must be >= retry_wait_min_ms"
            raise ValueError(msg)
        return self

    def retry_policy(self) -> RetryPolicy:
        """Build the retry policy of the single-endpoint transport."""
        return RetryPolicy(
            max_retries=self.retry_max,
            wait_min_ms=self.retry_wait_min_ms,
            wait_max_ms=self.retry_wait_max_ms,
        )

    def build_transport(self, retry: bool = True) -> HttpTransport:
        """Build an HTTP transport from these settings.

        Args:
            retry: Use the configured retry policy; False gives every request
                a single attempt (the failover path).

        Returns:
            Configured transport.
        """
        policy = self.retry_policy() if retry else RetryPolicy.no_retry()
        return HttpTransport(retry_policy=policy, user_agent=self.user_agent)


def get_settings() -> AppSettings:
    """Get a settings instance."""
    return AppSettings()
