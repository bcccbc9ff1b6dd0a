"""Configuration package."""

from finboard.config.settings import (
    AppSettings,
    GeminiSettings,
    SavingsSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "GeminiSettings",
    "SavingsSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
