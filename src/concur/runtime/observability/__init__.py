"""Observability: structured logging."""

from .logging import (
    BoundLogger,
    CapturingRenderer,
    ConsoleRenderer,
    JsonRenderer,
    LogEntry,
    NoOpRenderer,
    configure_logging,
    get_logger,
    log_context,
    set_renderer,
)

__all__ = [
    "BoundLogger", "CapturingRenderer", "ConsoleRenderer", "JsonRenderer", "LogEntry", "NoOpRenderer",
    "configure_logging", "get_logger", "log_context", "set_renderer",
]
