"""Shared fixtures: silent, capturable logging and a fresh settings cache per test."""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from concur.foundation.config import clear_settings_cache
from concur.runtime.observability import CapturingRenderer, NoOpRenderer, set_renderer


@pytest.fixture(autouse=True)
def captured_logs() -> Iterator[CapturingRenderer]:
    """Capture log entries for the duration of a test, then go silent."""
    renderer = CapturingRenderer()
    set_renderer(renderer, level="DEBUG")
    yield renderer
    set_renderer(NoOpRenderer(), level="INFO")


@pytest.fixture(autouse=True)
def fresh_settings() -> Iterator[None]:
    """Re-read the environment in every test (monkeypatched env vars take effect)."""
    clear_settings_cache()
    yield
    clear_settings_cache()
