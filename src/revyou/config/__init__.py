"""Configuration module for revyou."""

from .settings import (
    DatabaseSettings,
    DeezerSettings,
    ImporterSettings,
    ITunesSettings,
    ObservabilitySettings,
    Settings,
    get_settings,
)

__all__ = [
    "DatabaseSettings",
    "DeezerSettings",
    "ITunesSettings",
    "ImporterSettings",
    "ObservabilitySettings",
    "Settings",
    "get_settings",
]
