"""Environment-driven settings for the CLI and default transports."""

from .app import AppSettings, get_settings


__all__ = ["AppSettings", "get_settings"]
