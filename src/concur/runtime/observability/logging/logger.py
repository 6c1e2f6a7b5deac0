"""Structured logging safe to call from many worker threads at once.

- Context binding: ``log.bind(source="alice")`` returns a new logger
- Scoped context: ``with log_context(batch=3): ...`` (per thread)
- Human-readable console output for development, JSON lines for machines

Quick Start:
    >>> from concur.runtime.observability import configure_logging, get_logger
    >>> configure_logging(format="console", level="INFO")
    >>> log = get_logger("search")
    >>> log.info("batch started", start=1024, stop=2048)

The renderer and level are process-global so that loggers created in pool
threads honor the configuration made on the main thread. Renderers serialize
writes with a lock; a line is never interleaved with another thread's line.
"""

from __future__ import annotations

import logging
import sys
import threading
import time
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Protocol, TextIO, runtime_checkable

if TYPE_CHECKING:
    from types import TracebackType

LogValue = str | int | float | bool | None | list[object] | dict[str, object]
LogDict = dict[str, LogValue]

# Scoped context; each thread starts from an empty scope
_log_context: ContextVar[LogDict] = ContextVar("log_context", default={})

_write_lock = threading.Lock()


# ─────────────────────────────────────────────────────────────────────────────
# Logger
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(slots=True)
class BoundLogger:
    """Structured logger with bound context. Immutable - bind() returns a new logger.

    Example:
        >>> log = BoundLogger(context={"demo": "race"})
        >>> log.info("workers joined", final=0)
        # => 10:30:45.120 [info] workers joined demo="race" final=0
    """

    context: LogDict = field(default_factory=dict)
    _renderer: LogRenderer | None = None
    _level: int | None = None

    def bind(self, **kw: LogValue) -> BoundLogger:
        """Create new logger with additional bound context."""
        return BoundLogger(context={**self.context, **kw}, _renderer=self._renderer, _level=self._level)

    def unbind(self, *keys: str) -> BoundLogger:
        """Create new logger without specified keys."""
        return BoundLogger(context={k: v for k, v in self.context.items() if k not in keys},
                           _renderer=self._renderer, _level=self._level)

    def is_enabled_for(self, level: int) -> bool:
        return level >= (self._level if self._level is not None else _config.level)

    def _log(self, level: int, event: str, **kw: LogValue) -> None:
        if not self.is_enabled_for(level):
            return
        merged = {**_log_context.get(), **self.context, **kw}
        entry = LogEntry(time.time(), _level_name(level), event, merged, threading.current_thread().name)
        (self._renderer or _config.renderer).render(entry)

    def debug(self, event: str, **kw: LogValue) -> None: self._log(logging.DEBUG, event, **kw)
    def info(self, event: str, **kw: LogValue) -> None: self._log(logging.INFO, event, **kw)
    def warning(self, event: str, **kw: LogValue) -> None: self._log(logging.WARNING, event, **kw)
    def error(self, event: str, **kw: LogValue) -> None: self._log(logging.ERROR, event, **kw)

    def exception(self, event: str, **kw: LogValue) -> None:
        """Log error with the current exception's traceback."""
        import traceback
        self._log(logging.ERROR, event, exc_info=traceback.format_exc(), **kw)


@dataclass(slots=True)
class LogEntry:
    """One log record with all merged context."""

    timestamp: float
    level: str
    event: str
    context: LogDict
    thread: str = ""

    @property
    def ts_iso(self) -> str:
        return datetime.fromtimestamp(self.timestamp, tz=UTC).isoformat()

    @property
    def ts_human(self) -> str:
        """HH:MM:SS.mmm"""
        return datetime.fromtimestamp(self.timestamp, tz=UTC).strftime("%H:%M:%S.%f")[:-3]


# ─────────────────────────────────────────────────────────────────────────────
# Renderers
# ─────────────────────────────────────────────────────────────────────────────


@runtime_checkable
class LogRenderer(Protocol):
    """Protocol for log output renderers."""

    def render(self, entry: LogEntry) -> None: ...


@dataclass(slots=True)
class ConsoleRenderer:
    """Human-readable colored console output. Format: timestamp [level] event key=value ..."""

    output: TextIO = field(default_factory=lambda: sys.stderr)
    colors: bool | None = None  # None = auto-detect
    show_timestamp: bool = True
    show_thread: bool = False

    def __post_init__(self) -> None:
        if self.colors is None:
            self.colors = getattr(self.output, "isatty", lambda: False)()

    def format(self, entry: LogEntry) -> str:
        c = _COLORS if self.colors else _NO_COLORS
        parts = [f"{c['dim']}{entry.ts_human}{c['reset']}"] if self.show_timestamp else []
        if self.show_thread and entry.thread:
            parts.append(f"{c['dim']}({entry.thread}){c['reset']}")
        parts += [f"{_LEVEL_COLORS.get(entry.level, c['dim']) if self.colors else ''}[{entry.level}]{c['reset']}",
                  f"{c['bold']}{entry.event}{c['reset']}"]
        parts += [f"{c['cyan']}{k}{c['reset']}={_format_value(v, c)}"
                  for k, v in sorted(entry.context.items()) if k != "exc_info"]
        line = " ".join(parts)
        if "exc_info" in entry.context:
            line += f"\n{c['red']}{entry.context['exc_info']}{c['reset']}"
        return line

    def render(self, entry: LogEntry) -> None:
        line = self.format(entry)
        with _write_lock:
            print(line, file=self.output, flush=True)


@dataclass(slots=True)
class JsonRenderer:
    """JSON Lines output for log aggregation."""

    output: TextIO = field(default_factory=lambda: sys.stdout)

    def render(self, entry: LogEntry) -> None:
        import orjson
        line = orjson.dumps({"timestamp": entry.ts_iso, "level": entry.level, "event": entry.event,
                             "thread": entry.thread, **entry.context},
                            option=orjson.OPT_NON_STR_KEYS, default=str).decode()
        with _write_lock:
            print(line, file=self.output, flush=True)


@dataclass(slots=True)
class NoOpRenderer:
    """Silent renderer for testing."""

    def render(self, entry: LogEntry) -> None:
        pass


@dataclass(slots=True)
class CapturingRenderer:
    """Keeps entries in memory; for tests asserting on what was logged."""

    entries: list[LogEntry] = field(default_factory=list)

    def render(self, entry: LogEntry) -> None:
        with _write_lock:
            self.entries.append(entry)

    def events(self, level: str | None = None) -> list[str]:
        return [e.event for e in self.entries if level is None or e.level == level]


# ─────────────────────────────────────────────────────────────────────────────
# Global Configuration
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(slots=True)
class _LogConfig:
    renderer: LogRenderer = field(default_factory=ConsoleRenderer)
    level: int = logging.INFO


_config = _LogConfig()


def configure_logging(
    format: str = "console",  # noqa: A002 - shadows builtin but matches stdlib
    level: str = "INFO",
    *,
    output: TextIO | None = None,
    colors: bool | None = None,
    show_thread: bool = False,
) -> LogRenderer:
    """Configure process-wide structured logging. Format: "console" (human), "json" (machine), "none"."""
    match format:
        case "console": renderer: LogRenderer = ConsoleRenderer(output=output or sys.stderr, colors=colors,
                                                                show_thread=show_thread)
        case "json": renderer = JsonRenderer(output=output or sys.stdout)
        case "none": renderer = NoOpRenderer()
        case _: raise ValueError(f"Unknown format: {format}. Use 'console', 'json', or 'none'")
    set_renderer(renderer, level=level)
    return renderer


def set_renderer(renderer: LogRenderer, *, level: str | None = None) -> None:
    """Install a renderer directly (e.g. a CapturingRenderer in tests)."""
    _config.renderer = renderer
    if level is not None:
        _config.level = getattr(logging, level.upper(), logging.INFO)


def get_renderer() -> LogRenderer:
    return _config.renderer


def get_logger(name: str | None = None, **initial_context: LogValue) -> BoundLogger:
    """Get a structured logger with optional initial context. Name is added to context as 'logger'."""
    ctx: LogDict = {**initial_context, **({"logger": name} if name else {})}
    return BoundLogger(context=ctx)


class log_context:
    """Context manager adding key-value pairs to every entry logged by this thread within the scope."""

    __slots__ = ("_ctx", "_token")

    def __init__(self, **kw: LogValue) -> None:
        self._ctx: LogDict = dict(kw)
        self._token: object | None = None

    def __enter__(self) -> log_context:
        self._token = _log_context.set({**_log_context.get(), **self._ctx})
        return self

    def __exit__(self, exc_type: type[BaseException] | None, exc_val: BaseException | None,
                 exc_tb: TracebackType | None) -> None:
        if self._token is not None:
            _log_context.reset(self._token)  # type: ignore[arg-type]
            self._token = None


# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────


_COLORS = {"reset": "\033[0m", "bold": "\033[1m", "dim": "\033[2m", "red": "\033[31m",
           "green": "\033[32m", "yellow": "\033[33m", "blue": "\033[34m", "cyan": "\033[36m", "white": "\033[37m"}
_NO_COLORS = {k: "" for k in _COLORS}
_LEVEL_COLORS = {"debug": _COLORS["dim"], "info": _COLORS["green"], "warning": _COLORS["yellow"],
                 "error": _COLORS["red"], "critical": _COLORS["red"]}


def _level_name(level: int) -> str:
    return logging.getLevelName(level).lower()


def _format_value(v: object, c: dict[str, str]) -> str:
    match v:
        case str(): return f'{c["yellow"]}"{v}"{c["reset"]}'
        case bool(): return f'{c["blue"]}{str(v).lower()}{c["reset"]}'
        case int() | float(): return f'{c["blue"]}{v}{c["reset"]}'
        case dict(): return f'{c["dim"]}{{{len(v)} items}}{c["reset"]}'
        case list() | tuple(): return f'{c["dim"]}[{len(v)} items]{c["reset"]}'
        case _: return f'{c["white"]}{v!r}{c["reset"]}'
