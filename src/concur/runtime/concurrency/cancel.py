"""Cooperative cancellation tokens.

A CancelToken is a one-way flag: any holder may set it (idempotently), and
workers poll it at checkpoints they choose. Nothing is interrupted
preemptively; a worker notices cancellation only when it next checks.

Example:
    >>> token = CancelToken.for_threads()
    >>> def work(token):
    ...     for block in blocks:
    ...         process(block)
    ...         if token.cancelled:
    ...             return "stopped early"
    >>> token.cancel()
"""

from __future__ import annotations

import threading
from typing import Protocol, runtime_checkable


@runtime_checkable
class EventLike(Protocol):
    """Anything with threading.Event's set/is_set (incl. multiprocessing manager proxies)."""

    def set(self) -> None: ...
    def is_set(self) -> bool: ...


class CancelToken:
    """Shared cancellation flag, written once, read by every worker.

    Backed by a ``threading.Event`` for thread workers or by a
    ``multiprocessing.Manager().Event()`` proxy for process workers; the
    latter pickles, so the token can be passed as a task argument.
    """

    __slots__ = ("_event",)

    def __init__(self, event: EventLike) -> None:
        self._event = event

    @classmethod
    def for_threads(cls) -> CancelToken:
        return cls(threading.Event())

    @property
    def cancelled(self) -> bool:
        """Whether cancellation was requested."""
        return self._event.is_set()

    def cancel(self) -> None:
        """Request cancellation. Safe to call repeatedly and from any worker."""
        self._event.set()

    def __getstate__(self) -> EventLike:
        return self._event

    def __setstate__(self, state: EventLike) -> None:
        self._event = state

    def __repr__(self) -> str:
        return f"CancelToken(cancelled={self.cancelled})"

