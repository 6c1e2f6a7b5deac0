"""Tests for environment-based settings."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from concur.foundation.config import ConcurSettings, get_settings
from concur.runtime.concurrency import available_cpus


def test_defaults_match_classic_demo() -> None:
    settings = get_settings()
    assert settings.race.steps == 1_000_000
    assert settings.search.block_size == 1_000_000
    assert settings.search.executor == "process"
    assert settings.aggregate.min_length == 12
    assert settings.logging.level == "INFO"
    assert settings.search.resolved_workers >= 1


def test_settings_are_cached() -> None:
    assert get_settings() is get_settings()


def test_section_env_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CONCUR_RACE_STEPS", "500")
    monkeypatch.setenv("CONCUR_SEARCH_WORKERS", "3")
    monkeypatch.setenv("CONCUR_AGGREGATE_MIN_LENGTH", "8")
    settings = ConcurSettings()
    assert settings.race.steps == 500
    assert settings.search.resolved_workers == 3
    assert settings.aggregate.min_length == 8


def test_nested_env_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CONCUR_SEARCH__BITS", "20")
    assert ConcurSettings().search.bits == 20


def test_log_level_is_case_insensitive(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CONCUR_LOG_LEVEL", "debug")
    assert ConcurSettings().logging.level == "DEBUG"


@pytest.mark.parametrize(
    ("name", "value"),
    [("CONCUR_SEARCH_BITS", "2"), ("CONCUR_SEARCH_BLOCK_SIZE", "0"), ("CONCUR_SEARCH_EXECUTOR", "fiber")],
)
def test_invalid_env_rejected(monkeypatch: pytest.MonkeyPatch, name: str, value: str) -> None:
    monkeypatch.setenv(name, value)
    with pytest.raises(ValidationError):
        ConcurSettings()


def test_unset_workers_resolve_to_available_cpus(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("CONCUR_SEARCH_WORKERS", raising=False)
    assert ConcurSettings().search.resolved_workers == available_cpus()
