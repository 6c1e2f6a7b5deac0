from __future__ import annotations

import random
import time

import typer
from rich.console import Console
from rich.table import Table

from concur import __version__
from concur.demos import (
    Cancelled,
    Found,
    NotFoundInRange,
    ParallelSearchCoordinator,
    SourceAggregator,
    default_sources,
    parse_source,
    random_prime,
    run_race,
    search_range,
)
from concur.foundation.config import get_settings
from concur.runtime.concurrency import ExecutorKind
from concur.runtime.observability import configure_logging, get_logger

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="Concurrency demos: shared-counter race, parallel factor search, fan-out word count.",
)
console = Console()
log = get_logger("cli")

EXIT_INTERRUPTED = 130


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"concur version {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(None, "--version", "-V", callback=version_callback, is_eager=True, help="Show version"),
    log_level: str | None = typer.Option(None, "--log-level", help="DEBUG, INFO, WARNING or ERROR."),
    log_format: str | None = typer.Option(None, "--log-format", help="console, json or none."),
) -> None:
    """concur CLI."""
    cfg = get_settings().logging
    configure_logging(format=log_format or cfg.format, level=log_level or cfg.level)


def _interrupted() -> typer.Exit:
    log.error("interrupted while waiting for workers; aborting run")
    return typer.Exit(EXIT_INTERRUPTED)


# ─────────────────────────────────────────────────────────────────────────────
# race
# ─────────────────────────────────────────────────────────────────────────────


def _race(steps: int) -> None:
    unsafe = run_race(steps, safe=False)
    console.print(f"Unsafe result = {unsafe.final}")
    safe = run_race(steps, safe=True)
    console.print(f"Safe result = {safe.final}")


@app.command()
def race(
    steps: int | None = typer.Option(None, "--steps", "-n", min=0, help="Increments and decrements per worker."),
) -> None:
    """Two threads increment and decrement one counter, unguarded and then locked."""
    try:
        _race(steps if steps is not None else get_settings().race.steps)
    except KeyboardInterrupt:
        raise _interrupted() from None


# ─────────────────────────────────────────────────────────────────────────────
# search
# ─────────────────────────────────────────────────────────────────────────────


def _describe(outcome: Found | NotFoundInRange | Cancelled) -> str:
    match outcome:
        case Found(factor=factor):
            return f"Found factor {factor}"
        case NotFoundInRange(start=start, stop=stop):
            return f"No factor in [{start}, {stop})"
        case Cancelled(scanned_to=scanned_to):
            return f"Cancelled after {scanned_to}"


def _search(bits: int, workers: int, block_size: int, executor: ExecutorKind, seed: int | None) -> None:
    rng = random.Random(seed)
    high = 1 << bits
    low = high // 2
    p1, p2 = random_prime(bits, rng), random_prime(bits, rng)
    product = p1 * p2
    console.print(f"Prime 1 = {p1}")
    console.print(f"Prime 2 = {p2}")
    console.print(f"Factoring {product}")

    console.print("Using 1 worker")
    start = time.perf_counter()
    outcome = search_range(product, low, high, block_size)
    console.print(_describe(outcome))
    console.print(f"Time taken = {(time.perf_counter() - start) * 1000:.0f} ms")

    coordinator = ParallelSearchCoordinator(workers=workers, block_size=block_size, executor=executor)
    console.print(f"Using {workers} {executor} workers")
    report = coordinator.search(product, low, high)
    console.print(_describe(report.outcome))
    console.print(f"Time taken = {report.elapsed * 1000:.0f} ms")
    if isinstance(report.outcome, Found):
        console.print(f"Cofactor = {product // report.outcome.factor}")

    console.print(f"Using {workers} {executor} workers in range order")
    ordered = coordinator.search_ordered(product, low, high)
    console.print(_describe(ordered.outcome))
    console.print(f"Time taken = {ordered.elapsed * 1000:.0f} ms")


@app.command()
def search(
    bits: int | None = typer.Option(None, "--bits", "-b", min=3, max=62, help="Bit width of each prime."),
    workers: int | None = typer.Option(None, "--workers", "-w", min=1, help="Batch count (default: CPUs)."),
    block_size: int | None = typer.Option(None, "--block-size", min=1, help="Candidates between cancel checks."),
    executor: str | None = typer.Option(None, "--executor", "-e", help="thread or process."),
    seed: int | None = typer.Option(None, "--seed", help="Seed for prime generation."),
) -> None:
    """Factor a product of two random primes with one worker, then many racing, then many in range order."""
    cfg = get_settings().search
    kind = executor or cfg.executor
    if kind not in ("thread", "process"):
        raise typer.BadParameter(f"executor must be 'thread' or 'process', got {kind!r}", param_hint="--executor")
    try:
        _search(bits or cfg.bits, workers or cfg.resolved_workers, block_size or cfg.block_size, kind, seed)
    except KeyboardInterrupt:
        raise _interrupted() from None


# ─────────────────────────────────────────────────────────────────────────────
# count
# ─────────────────────────────────────────────────────────────────────────────


def _count(specs: list[str] | None, min_length: int, max_workers: int | None) -> int:
    sources = [parse_source(s) for s in specs] if specs else default_sources()
    result = SourceAggregator(sources, min_length=min_length, max_workers=max_workers).run()

    table = Table(title=f"Words with at least {min_length} letters")
    table.add_column("Source")
    table.add_column("Count", justify="right")
    table.add_column("Status")
    for entry in result.entries:
        status = "ok" if entry.failure is None else f"[red]{entry.failure.code}[/red] {entry.failure.message}"
        table.add_row(entry.label, str(entry.count), status)
    console.print(table)
    console.print(f"Found {result.total} long words")
    return result.total


@app.command()
def count(
    source: list[str] | None = typer.Option(
        None, "--source", "-s", help="LABEL=PATH_OR_URL; repeatable. Defaults to the six classic books.",
    ),
    min_length: int | None = typer.Option(None, "--min-length", "-l", min=1, help="Letters for a word to be long."),
    max_workers: int | None = typer.Option(None, "--max-workers", min=1, help="Thread cap (default: one per source)."),
) -> None:
    """Count long words across sources concurrently; unreadable sources count as 0."""
    cfg = get_settings().aggregate
    try:
        _count(source, min_length or cfg.min_length, max_workers or cfg.max_workers)
    except KeyboardInterrupt:
        raise _interrupted() from None


@app.command(name="all")
def run_all() -> None:
    """Run race, search and count with the configured defaults."""
    settings = get_settings()
    try:
        _race(settings.race.steps)
        s = settings.search
        _search(s.bits, s.resolved_workers, s.block_size, s.executor, None)
        _count(None, settings.aggregate.min_length, settings.aggregate.max_workers)
    except KeyboardInterrupt:
        raise _interrupted() from None


def main() -> None:
    app()


if __name__ == "__main__":
    main()
