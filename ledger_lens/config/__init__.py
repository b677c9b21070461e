"""Configuration package."""

from ledger_lens.config.settings import (
    LoggingSettings,
    RunnerSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "LoggingSettings",
    "RunnerSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
