"""
Configuration Management for Ledger Lens

Uses pydantic-settings for type-safe configuration from environment variables.

All tunables of the pipeline live here: which accounting binaries to call,
how long a single invocation may run, and how logs are rendered.
Nothing in this module touches the ledger file itself.
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RunnerSettings(BaseSettings):
    """External accounting tool invocation."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_RUNNER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    primary_binary: str = Field(
        default="hledger",
        description="Preferred tool (JSON via -O json)"
    )
    secondary_binary: str = Field(
        default="ledger",
        description="Fallback tool (ledger-cli)"
    )
    timeout_ms: int = Field(
        default=5000,
        ge=100,
        le=60000,
        description="Hard wall-clock limit for one invocation, in milliseconds"
    )
    report_width: int = Field(
        default=200,
        ge=40,
        le=1000,
        description="COLUMNS passed to the tool so text reports are not truncated"
    )

    @field_validator('primary_binary', 'secondary_binary')
    @classmethod
    def validate_binary(cls, v: str) -> str:
        """Binary names must not be blank."""
        v = v.strip()
        if not v:
            raise ValueError("Binary name cannot be empty")
        return v

    @property
    def timeout_seconds(self) -> float:
        """Timeout as seconds, the unit asyncio expects."""
        return self.timeout_ms / 1000


class LoggingSettings(BaseSettings):
    """Structured logging configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_LOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    level: str = Field(
        default="INFO",
        description="Minimum log level (DEBUG, INFO, WARNING, ERROR)"
    )
    json_output: bool = Field(
        default=True,
        description="Render log lines as JSON (False renders for a console)"
    )
    snippet_length: int = Field(
        default=200,
        ge=0,
        le=10000,
        description="How many characters of raw tool output go into a log line"
    )

    @field_validator('level')
    @classmethod
    def validate_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def runner(self) -> RunnerSettings:
        return RunnerSettings()

    @property
    def logging(self) -> LoggingSettings:
        return LoggingSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus an
    "<name>_error" entry for every group that failed to load.
    """
    results = {}

    settings = get_settings()

    for name in ("runner", "logging"):
        try:
            getattr(settings, name)
            results[name] = True
        except ValueError as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
