"""Foundation - configuration and error handling shared by every demo."""

from __future__ import annotations

from .config import ConcurSettings, clear_settings_cache, get_settings
from .errors import ConcurError, ErrorCode, SourceFailure, SourceIOError, classify_exception

__all__ = [
    # Config
    "ConcurSettings", "get_settings", "clear_settings_cache",
    # Errors
    "ErrorCode", "classify_exception", "ConcurError", "SourceIOError", "SourceFailure",
]
