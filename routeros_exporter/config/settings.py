"""Environment settings."""

import os
from typing import Optional


class Settings:
    """Application defaults taken from environment variables."""

    @staticmethod
    def get(key: str, default: Optional[str] = None) -> str:
        """
        Get environment variable value.

        Args:
            key: Environment variable name
            default: Default value if not set

        Returns:
            str: Environment variable value, or "" when neither is set
        """
        return os.getenv(key, default) or ""

    @staticmethod
    def log_level() -> str:
        return Settings.get("LOG_LEVEL", "INFO").upper()

    @staticmethod
    def log_format() -> str:
        return Settings.get("LOG_FORMAT", "json").lower()

    @staticmethod
    def listen_address() -> str:
        return Settings.get("ROUTEROS_EXPORTER_LISTEN", ":9436")

    @staticmethod
    def config_file() -> str:
        return Settings.get("ROUTEROS_EXPORTER_CONFIG", "")
