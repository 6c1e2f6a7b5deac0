"""Wait strategies over ``concurrent.futures`` futures.

Provides two patterns for waiting on work already submitted to a pool:
    - first_success: first result accepted by a predicate wins; the rest are
      cancelled and joined before returning
    - gather_settled: wait for all, each outcome isolated as a Settled

Example:
    >>> with ThreadPool(4) as pool:
    ...     token = pool.cancel_token()
    ...     futures = [pool.submit(scan, r, token) for r in ranges]
    ...     won = first_success(futures, accept=is_hit, stop=token.cancel)

    >>> with ThreadPool(len(urls)) as pool:
    ...     settled = gather_settled([pool.submit(fetch, u) for u in urls])
    >>> [s.unwrap_or(0) for s in settled]
"""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from concurrent.futures import ALL_COMPLETED, FIRST_COMPLETED, CancelledError, Future, wait
from dataclasses import dataclass
from enum import StrEnum
from typing import Generic, TypeVar

T = TypeVar("T")


class SettledStatus(StrEnum):
    """Status of a settled operation."""
    FULFILLED = "fulfilled"
    REJECTED = "rejected"


@dataclass(slots=True, frozen=True)
class Settled(Generic[T]):
    """Outcome of one unit of work: a value or the error it raised.

    Attributes:
        status: 'fulfilled' or 'rejected'
        value: Result value if fulfilled
        error: Exception if rejected
    """

    status: SettledStatus
    value: T | None = None
    error: BaseException | None = None

    @property
    def is_fulfilled(self) -> bool:
        return self.status == SettledStatus.FULFILLED

    @property
    def is_rejected(self) -> bool:
        return self.status == SettledStatus.REJECTED

    def unwrap(self) -> T:
        """Get value or raise stored error."""
        if self.is_rejected:
            raise self.error or RuntimeError("Rejected with no error")
        return self.value  # type: ignore[return-value]

    def unwrap_or(self, default: T) -> T:
        return self.value if self.is_fulfilled else default  # type: ignore[return-value]


def _fulfilled(value: T) -> Settled[T]:
    return Settled(SettledStatus.FULFILLED, value=value)


def _rejected(error: BaseException) -> Settled[T]:
    return Settled(SettledStatus.REJECTED, error=error)


def settle(future: Future[T]) -> Settled[T]:
    """Convert a finished future into a Settled (a cancelled future is rejected with CancelledError)."""
    if future.cancelled():
        return _rejected(CancelledError())
    if (error := future.exception()) is not None:
        return _rejected(error)
    return _fulfilled(future.result())


@dataclass(slots=True)
class WaitResult(Generic[T]):
    """Winning result with metadata.

    Attributes:
        value: The accepted result
        index: Position of the winning future in the input sequence
        elapsed: Seconds from the call to the win
        cancelled: Futures still pending when the winner was observed
    """

    value: T
    index: int = 0
    elapsed: float = 0.0
    cancelled: int = 0


# ─────────────────────────────────────────────────────────────────────────────
# Gather: wait for all, isolate each outcome
# ─────────────────────────────────────────────────────────────────────────────

def gather_settled(futures: Sequence[Future[T]]) -> list[Settled[T]]:
    """Wait for every future and return their outcomes in input order.

    Never raises on behalf of a future: a failure is returned as a rejected
    Settled next to its siblings' values.
    """
    wait(futures, return_when=ALL_COMPLETED)
    return [settle(f) for f in futures]


# ─────────────────────────────────────────────────────────────────────────────
# First success: first accepted result wins
# ─────────────────────────────────────────────────────────────────────────────

def first_success(
    futures: Sequence[Future[T]],
    *,
    accept: Callable[[T], bool] = lambda _: True,
    stop: Callable[[], None] | None = None,
) -> WaitResult[T] | None:
    """Return the first completed result that ``accept`` approves.

    As soon as a winner is observed, ``stop`` runs (typically setting a
    cancel token), futures that have not started are cancelled, and the call
    blocks until every other future has finished. Nothing is left running
    when this returns, whichever future won. ``stop`` also runs if the wait
    itself is interrupted.

    Results that are rejected by ``accept`` and futures that raise are
    skipped so long as some sibling may still succeed.

    Returns:
        WaitResult for the winner, or None if every future finished without
        an accepted result and none raised.

    Raises:
        ExceptionGroup: No accepted result and at least one future raised.
    """
    start = time.monotonic()
    index_of = {id(f): i for i, f in enumerate(futures)}
    pending: set[Future[T]] = set(futures)
    errors: list[Exception] = []

    try:
        while pending:
            done, pending = wait(pending, return_when=FIRST_COMPLETED)
            # Scan in submission order so a batch of simultaneous completions resolves the same way each time
            for future in sorted(done, key=lambda f: index_of[id(f)]):
                if future.cancelled():
                    continue
                if (error := future.exception()) is not None:
                    if isinstance(error, Exception):
                        errors.append(error)
                        continue
                    raise error
                value = future.result()
                if not accept(value):
                    continue
                elapsed = time.monotonic() - start
                still_running = len(pending)
                if stop is not None:
                    stop()
                for p in pending:
                    p.cancel()
                wait(pending, return_when=ALL_COMPLETED)
                return WaitResult(value, index=index_of[id(future)], elapsed=elapsed, cancelled=still_running)
    except BaseException:
        # Interrupted while waiting: stop the rest before propagating
        if stop is not None:
            stop()
        for p in pending:
            p.cancel()
        wait(pending, return_when=ALL_COMPLETED)
        raise

    if errors:
        raise ExceptionGroup(f"{len(errors)} of {len(futures)} operations failed with no success", errors)
    return None
