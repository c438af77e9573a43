"""
Circlenet application settings.

Extends the base settings with circle and connection configuration.
"""

from common.config import BaseAppSettings


class Settings(BaseAppSettings):
    """Circlenet-specific settings."""

    # ==========================================================================
    # Circle Settings
    # ==========================================================================
    CIRCLE_NAME_MAX_LENGTH: int = 50
    DEFAULT_CIRCLE_COLOR: str = "#3B82F6"
    DEFAULT_CIRCLE_ICON: str = "users"

    # ==========================================================================
    # Request / Invitation Settings
    # ==========================================================================
    REQUEST_MESSAGE_MAX_LENGTH: int = 500

    # Upper bound for list queries against request/invitation collections
    LIST_QUERY_LIMIT: int = 100


# Global settings instance
settings = Settings()
