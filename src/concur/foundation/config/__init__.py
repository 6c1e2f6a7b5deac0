"""Configuration: typed, environment-driven settings."""

from .settings import (
    AggregateSettings,
    ConcurSettings,
    HttpSettings,
    LoggingSettings,
    RaceSettings,
    SearchSettings,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    "ConcurSettings", "get_settings", "clear_settings_cache",
    "RaceSettings", "SearchSettings", "AggregateSettings", "HttpSettings", "LoggingSettings",
]
