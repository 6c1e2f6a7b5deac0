"""Tests for structured logging renderers and context."""

from __future__ import annotations

import io
import threading

import orjson
import pytest

from concur.runtime.observability import (
    CapturingRenderer,
    ConsoleRenderer,
    JsonRenderer,
    LogEntry,
    configure_logging,
    get_logger,
    log_context,
    set_renderer,
)


def test_json_renderer_writes_one_object_per_line() -> None:
    buf = io.StringIO()
    set_renderer(JsonRenderer(output=buf), level="INFO")
    log = get_logger("test", demo="search")
    log.info("batch started", start=2, stop=10)
    log.debug("filtered out")
    lines = buf.getvalue().splitlines()
    assert len(lines) == 1
    record = orjson.loads(lines[0])
    assert record["event"] == "batch started"
    assert record["level"] == "info"
    assert record["logger"] == "test"
    assert record["demo"] == "search"
    assert (record["start"], record["stop"]) == (2, 10)


def test_console_format_without_colors() -> None:
    renderer = ConsoleRenderer(output=io.StringIO(), colors=False, show_timestamp=False)
    entry = LogEntry(0.0, "info", "race finished", {"final": 0, "discipline": "safe"}, "MainThread")
    assert renderer.format(entry) == '[info] race finished discipline="safe" final=0'


def test_console_shows_thread_name() -> None:
    renderer = ConsoleRenderer(output=io.StringIO(), colors=False, show_timestamp=False, show_thread=True)
    entry = LogEntry(0.0, "warning", "source failed", {}, "concur-source-0")
    assert renderer.format(entry) == "(concur-source-0) [warning] source failed"


def test_bind_and_log_context_merge(captured_logs: CapturingRenderer) -> None:
    log = get_logger("agg").bind(run=1)
    with log_context(source="Alice"):
        log.info("source started")
    log.info("after scope")
    first, second = captured_logs.entries
    assert first.context == {"logger": "agg", "run": 1, "source": "Alice"}
    assert "source" not in second.context
    assert log.unbind("run").context == {"logger": "agg"}


def test_level_filtering(captured_logs: CapturingRenderer) -> None:
    set_renderer(captured_logs, level="WARNING")
    log = get_logger()
    log.info("quiet")
    log.warning("loud")
    assert captured_logs.events() == ["loud"]


def test_concurrent_writes_are_whole_lines() -> None:
    buf = io.StringIO()
    set_renderer(JsonRenderer(output=buf), level="INFO")
    log = get_logger("threads")

    def emit(n: int) -> None:
        for i in range(200):
            log.info("tick", worker=n, i=i)

    workers = [threading.Thread(target=emit, args=(n,)) for n in range(4)]
    for w in workers:
        w.start()
    for w in workers:
        w.join()
    records = [orjson.loads(line) for line in buf.getvalue().splitlines()]
    assert len(records) == 800


def test_exception_includes_traceback(captured_logs: CapturingRenderer) -> None:
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        get_logger().exception("worker crashed")
    assert "RuntimeError: boom" in captured_logs.entries[0].context["exc_info"]


def test_configure_logging_formats() -> None:
    assert isinstance(configure_logging("json", output=io.StringIO()), JsonRenderer)
    assert isinstance(configure_logging("console", output=io.StringIO()), ConsoleRenderer)
    with pytest.raises(ValueError, match="Unknown format"):
        configure_logging("xml")
