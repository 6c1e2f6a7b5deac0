"""Environment-based configuration using pydantic-settings.

Every tunable of the three demos (step counts, prime width, block size,
word-length threshold, worker counts) has a default reproducing the classic
demo constants and can be overridden from the environment. No configuration
file is read.

Example:
    >>> from concur.foundation.config import get_settings
    >>> settings = get_settings()
    >>> settings.search.block_size
    1000000
    >>> settings.aggregate.min_length
    12

    # Or with environment variables:
    # CONCUR_RACE_STEPS=100000
    # CONCUR_SEARCH_EXECUTOR=thread
    # CONCUR_LOG_LEVEL=DEBUG
"""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated, Literal

from pydantic import Field, NonNegativeInt, PositiveFloat, PositiveInt, computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from concur.runtime.concurrency.pool import available_cpus


class RaceSettings(BaseSettings):
    """Shared-counter race demo."""

    model_config = SettingsConfigDict(env_prefix="CONCUR_RACE_", extra="ignore")

    steps: NonNegativeInt = Field(default=1_000_000, description="Increments (and decrements) per worker")


class SearchSettings(BaseSettings):
    """Parallel factor search."""

    model_config = SettingsConfigDict(env_prefix="CONCUR_SEARCH_", extra="ignore")

    bits: Annotated[int, Field(ge=3, le=62)] = Field(default=24, description="Bit width of each generated prime")
    block_size: PositiveInt = Field(default=1_000_000, description="Candidates scanned between cancellation checks")
    workers: PositiveInt | None = Field(default=None, description="Worker count (None = available CPUs)")
    executor: Literal["thread", "process"] = "process"

    @computed_field
    @property
    def resolved_workers(self) -> int:
        """Worker count with the CPU-count fallback applied."""
        return self.workers or available_cpus()


class AggregateSettings(BaseSettings):
    """Long-word aggregation over sources."""

    model_config = SettingsConfigDict(env_prefix="CONCUR_AGGREGATE_", extra="ignore")

    min_length: PositiveInt = Field(default=12, description="Minimum letters for a word to count as long")
    max_workers: PositiveInt | None = Field(default=None, description="Thread cap (None = one per source)")


class HttpSettings(BaseSettings):
    """HTTP client defaults for URL-backed sources."""

    model_config = SettingsConfigDict(env_prefix="CONCUR_HTTP_", extra="ignore")

    timeout: PositiveFloat = Field(default=30.0, description="Connect/read timeout in seconds")
    follow_redirects: bool = True
    user_agent: str = "concur/0.1"


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="CONCUR_LOG_", extra="ignore")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["console", "json", "none"] = "console"

    @field_validator("level", mode="before")
    @classmethod
    def _upper_level(cls, v: str) -> str:
        return v.upper() if isinstance(v, str) else v


class ConcurSettings(BaseSettings):
    """Root settings, loaded from ``CONCUR_``-prefixed environment variables.

    Nested sections may also be set through the root with ``__``:
        CONCUR_SEARCH__BITS=20
    """

    model_config = SettingsConfigDict(
        env_prefix="CONCUR_",
        env_nested_delimiter="__",
        extra="ignore",
        validate_default=True,
    )

    race: RaceSettings = Field(default_factory=RaceSettings)
    search: SearchSettings = Field(default_factory=SearchSettings)
    aggregate: AggregateSettings = Field(default_factory=AggregateSettings)
    http: HttpSettings = Field(default_factory=HttpSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


@lru_cache(maxsize=1)
def get_settings() -> ConcurSettings:
    """Get the process-wide settings instance (cached)."""
    return ConcurSettings()


def clear_settings_cache() -> None:
    """Clear the settings cache so the next get_settings() re-reads the environment."""
    get_settings.cache_clear()
