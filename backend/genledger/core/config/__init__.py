"""Configuration module for the genledger backend.

Usage:
    from genledger.core.config import settings, Environment

    if settings.ENVIRONMENT == Environment.PRD:
        ...
"""

from genledger.core.config.enums import Environment
from genledger.core.config.settings import Settings

__all__ = [
    "Settings",
    "Environment",
    "settings",
]

# Singleton settings instance
settings = Settings()
