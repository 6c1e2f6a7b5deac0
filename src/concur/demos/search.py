"""Partitioned factor search with first-success racing.

A product of two primes is factored by brute force: the candidate range is
split into contiguous batches, one worker scans each batch, and the first
worker to find a divisor wins. The winner's arrival sets a shared cancel
token; the other workers notice it at their next block boundary and stop.
The ordered variant consults batches in range order instead, so it always
reports the smallest divisor.

Outcomes are values, never exceptions:
    - Found(factor): a divisor in the scanned range
    - NotFoundInRange(start, stop): the whole range was scanned, no divisor
    - Cancelled(start, stop, scanned_to): stopped early on request

Example:
    >>> search_range(15, 2, 10, block_size=4)
    Found(factor=3)
    >>> coordinator = ParallelSearchCoordinator(workers=4, block_size=10_000)
    >>> coordinator.search(p1 * p2, 2**23, 2**24).outcome
    Found(factor=...)
"""

from __future__ import annotations

import time
from concurrent.futures import CancelledError, Future
from dataclasses import dataclass, field
from typing import TypeAlias

from concur.runtime.concurrency import CancelToken, ExecutorKind, available_cpus, first_success, make_pool, settle
from concur.runtime.observability import get_logger

log = get_logger("search")

DEFAULT_BLOCK_SIZE = 1_000_000


# ─────────────────────────────────────────────────────────────────────────────
# Outcomes
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(slots=True, frozen=True)
class Found:
    """A divisor of the target."""

    factor: int


@dataclass(slots=True, frozen=True)
class NotFoundInRange:
    """Every candidate in ``[start, stop)`` was checked; none divides the target."""

    start: int
    stop: int


@dataclass(slots=True, frozen=True)
class Cancelled:
    """The scan stopped on request after checking ``[start, scanned_to)``."""

    start: int
    stop: int
    scanned_to: int

    @property
    def remaining(self) -> int:
        return self.stop - self.scanned_to


SearchOutcome: TypeAlias = Found | NotFoundInRange | Cancelled


# ─────────────────────────────────────────────────────────────────────────────
# Range search
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(slots=True, frozen=True)
class SearchTask:
    """Scan of ``[start, stop)`` for a divisor of ``target``, checking for cancellation every ``block_size``."""

    target: int
    start: int
    stop: int
    block_size: int = DEFAULT_BLOCK_SIZE

    def __post_init__(self) -> None:
        if self.target < 1:
            raise ValueError(f"target must be >= 1, got {self.target}")
        if self.start < 1:
            raise ValueError(f"start must be >= 1 (no zero divisor), got {self.start}")
        if self.start > self.stop:
            raise ValueError(f"start must be <= stop, got [{self.start}, {self.stop})")
        if self.block_size < 1:
            raise ValueError(f"block_size must be > 0, got {self.block_size}")

    def run(self, cancel: CancelToken | None = None) -> SearchOutcome:
        """Scan the range; returns at the first divisor, or after the block in which cancellation is seen."""
        target, stop = self.target, self.stop
        for block_start in range(self.start, stop, self.block_size):
            block_end = min(block_start + self.block_size, stop)
            for candidate in range(block_start, block_end):
                if target % candidate == 0:
                    return Found(candidate)
            if block_end < stop and cancel is not None and cancel.cancelled:
                return Cancelled(self.start, stop, block_end)
        return NotFoundInRange(self.start, stop)


def search_range(
    target: int,
    start: int,
    stop: int,
    block_size: int = DEFAULT_BLOCK_SIZE,
    cancel: CancelToken | None = None,
) -> SearchOutcome:
    """Find the smallest divisor of ``target`` in ``[start, stop)``.

    Cancellation is checked only between blocks: a cancelled scan finishes
    its current block first, and a scan whose last block completes reports
    NotFoundInRange even if cancellation arrived meanwhile.

    Raises:
        ValueError: ``start < 1``, ``start > stop``, ``block_size < 1`` or ``target < 1``
    """
    return SearchTask(target, start, stop, block_size).run(cancel)


# ─────────────────────────────────────────────────────────────────────────────
# Partitioning
# ─────────────────────────────────────────────────────────────────────────────


def partition(start: int, stop: int, parts: int) -> list[range]:
    """Split ``[start, stop)`` into ``parts`` contiguous ranges covering it exactly.

    Sizes differ by at most one; the first ``(stop - start) % parts`` ranges
    take the extra element. When ``parts`` exceeds the range length the
    trailing ranges are empty.
    """
    if parts < 1:
        raise ValueError(f"parts must be >= 1, got {parts}")
    if start > stop:
        raise ValueError(f"start must be <= stop, got [{start}, {stop})")
    base, extra = divmod(stop - start, parts)
    batches: list[range] = []
    lo = start
    for i in range(parts):
        hi = lo + base + (1 if i < extra else 0)
        batches.append(range(lo, hi))
        lo = hi
    return batches


# ─────────────────────────────────────────────────────────────────────────────
# Coordinator
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(slots=True, frozen=True)
class CoordinatedSearch:
    """Report of one coordinated search.

    Attributes:
        outcome: The winning Found, or NotFoundInRange over the whole range
        batches: Ranges handed to the workers, in submission order
        partials: Each batch's own outcome (or the exception its worker raised),
            aligned with ``batches``
        winner: Index of the batch whose Found was surfaced
        cancelled: Workers still running when the winner was observed
        elapsed: Seconds until the outcome was known
    """

    outcome: Found | NotFoundInRange
    batches: tuple[range, ...]
    partials: tuple[SearchOutcome | Exception, ...] = field(default=())
    winner: int | None = None
    cancelled: int = 0
    elapsed: float = 0.0

    @property
    def found(self) -> bool:
        return isinstance(self.outcome, Found)


def _is_found(outcome: SearchOutcome) -> bool:
    return isinstance(outcome, Found)


def _partial(future: Future[SearchOutcome], batch: range) -> SearchOutcome | Exception:
    settled = settle(future)
    if settled.is_fulfilled:
        return settled.unwrap()
    if isinstance(settled.error, CancelledError):
        # Cancelled before it started; nothing was scanned
        return Cancelled(batch.start, batch.stop, batch.start)
    return settled.error  # type: ignore[return-value]


class ParallelSearchCoordinator:
    """Runs one range search per batch concurrently and surfaces the first Found.

    The pool is sized to the batch count so every batch runs at once. The
    first Found observed wins (later hits are ignored), the cancel token is
    set, and every worker is joined and the pool shut down before
    ``search`` returns.

    Args:
        workers: Batch count (default: CPUs available to this process)
        block_size: Candidates between cancellation checks
        executor: "thread" or "process" (process workers sidestep the GIL)
    """

    __slots__ = ("workers", "block_size", "executor")

    def __init__(
        self,
        *,
        workers: int | None = None,
        block_size: int = DEFAULT_BLOCK_SIZE,
        executor: ExecutorKind = "thread",
    ) -> None:
        self.workers = workers if workers is not None else available_cpus()
        if self.workers < 1:
            raise ValueError(f"workers must be >= 1, got {self.workers}")
        if block_size < 1:
            raise ValueError(f"block_size must be > 0, got {block_size}")
        if executor not in ("thread", "process"):
            raise ValueError(f"Unknown executor kind: {executor!r}. Use 'thread' or 'process'")
        self.block_size = block_size
        self.executor: ExecutorKind = executor

    def search(self, target: int, start: int, stop: int) -> CoordinatedSearch:
        """Search ``[start, stop)`` for a divisor of ``target`` across all workers.

        Raises:
            ValueError: Invalid range or target
            ExceptionGroup: No batch found a divisor and at least one worker raised
        """
        SearchTask(target, start, stop, self.block_size)  # validate before spawning anything
        batches = partition(start, stop, self.workers)
        log.info("coordinated search started", target=target, start=start, stop=stop,
                 workers=self.workers, executor=self.executor)

        began = time.monotonic()
        with make_pool(self.executor, len(batches)) as pool:
            token = pool.cancel_token()
            futures = [
                pool.submit(search_range, target, batch.start, batch.stop, self.block_size, token)
                for batch in batches
            ]
            won = first_success(futures, accept=_is_found, stop=token.cancel)
            partials = tuple(_partial(f, b) for f, b in zip(futures, batches))
        elapsed = time.monotonic() - began

        if won is None:
            log.info("coordinated search exhausted", target=target, elapsed_ms=round(elapsed * 1000, 2))
            return CoordinatedSearch(NotFoundInRange(start, stop), tuple(batches), partials, elapsed=elapsed)

        log.info("coordinated search found", factor=won.value.factor, batch=won.index,
                 cancelled=won.cancelled, elapsed_ms=round(won.elapsed * 1000, 2))
        return CoordinatedSearch(won.value, tuple(batches), partials, winner=won.index,
                                 cancelled=won.cancelled, elapsed=won.elapsed)

    def search_ordered(self, target: int, start: int, stop: int) -> CoordinatedSearch:
        """Search ``[start, stop)`` across all workers and surface the smallest divisor.

        Batches run concurrently but are consulted in range order: batch ``i``
        wins only once every earlier batch has reported NotFoundInRange, so the
        result is the same on every run. When a batch wins, the cancel token
        stops every later batch.

        Raises:
            ValueError: Invalid range or target
            Exception: Whatever a worker raised before any earlier batch found a
                divisor (the remaining workers are stopped first)
        """
        SearchTask(target, start, stop, self.block_size)
        batches = partition(start, stop, self.workers)
        log.info("ordered search started", target=target, start=start, stop=stop,
                 workers=self.workers, executor=self.executor)

        began = time.monotonic()
        winner: int | None = None
        outcome: Found | NotFoundInRange = NotFoundInRange(start, stop)
        still_running = 0
        with make_pool(self.executor, len(batches)) as pool:
            token = pool.cancel_token()
            futures = [
                pool.submit(search_range, target, batch.start, batch.stop, self.block_size, token)
                for batch in batches
            ]
            try:
                for index, future in enumerate(futures):
                    result = future.result()
                    if isinstance(result, Found):
                        winner, outcome = index, result
                        still_running = sum(1 for f in futures if not f.done())
                        break
            finally:
                token.cancel()
                for f in futures:
                    f.cancel()
            elapsed = time.monotonic() - began
        partials = tuple(_partial(f, b) for f, b in zip(futures, batches))

        log.info("ordered search finished", found=winner is not None, batch=winner,
                 cancelled=still_running, elapsed_ms=round(elapsed * 1000, 2))
        return CoordinatedSearch(outcome, tuple(batches), partials, winner=winner,
                                 cancelled=still_running, elapsed=elapsed)
