"""
Configuration package for the realtime socket client.

This package provides centralized configuration management,
loading settings from environment variables with appropriate validation.
"""

from realtime_client.config.settings import Settings

# Create a singleton instance of Settings to be imported by other modules
settings = Settings()

__all__ = ["settings"]
