"""
Environment configuration management for the adboard backend.
Single source of truth for all environment variables.

Provider client credentials are read when they are needed rather than at
import time, so a process can boot (and serve the webhook) without them.
"""

import os
from typing import Optional


class Settings:
    """Application settings from environment variables."""

    def __init__(self):
        self.database_url: str = self._get_optional("DATABASE_URL", "")
        self.environment: str = self._get_optional("ENVIRONMENT", "development")
        self.debug: bool = self._get_optional("DEBUG", "false").lower() == "true"
        self.log_level: str = self._get_optional("LOG_LEVEL", "INFO")
        self.log_json: bool = self._get_optional("LOG_JSON", "false").lower() == "true"

        # Outbound provider calls
        self.provider_timeout_seconds: float = float(self._get_optional("PROVIDER_TIMEOUT_SECONDS", "30"))
        self.url_inspection_concurrency: int = int(self._get_optional("URL_INSPECTION_CONCURRENCY", "5"))
        self.url_inspection_limit: int = int(self._get_optional("URL_INSPECTION_LIMIT", "500"))

        # OAuth
        self.oauth_require_state: bool = self._get_optional("OAUTH_REQUIRE_STATE", "false").lower() == "true"

    def _get_optional(self, key: str, default: str) -> str:
        """Get optional environment variable with default."""
        return os.getenv(key, default)

    def lookup(self, key: str) -> Optional[str]:
        """Read an optional secret at call time."""
        return os.getenv(key) or None


# Global settings instance
settings = Settings()
