"""Thread/process concurrency primitives.

Key Components:
    - CancelToken: cooperative, idempotent cancellation flag
    - ThreadPool / ProcessPool: context-managed executors that join their workers
    - Wait strategies: first_success (race), gather_settled (fan-in)

Example:
    >>> from concur.runtime.concurrency import ThreadPool, first_success, gather_settled
    >>> with ThreadPool(4) as pool:
    ...     token = pool.cancel_token()
    ...     futures = [pool.submit(scan, r, token) for r in ranges]
    ...     won = first_success(futures, accept=is_hit, stop=token.cancel)
"""

from __future__ import annotations

from .cancel import CancelToken, EventLike
from .pool import (
    DEFAULT_PROCESS_WORKERS,
    DEFAULT_THREAD_WORKERS,
    ExecutorKind,
    ProcessPool,
    ThreadPool,
    available_cpus,
    make_pool,
)
from .wait import Settled, SettledStatus, WaitResult, first_success, gather_settled, settle

__all__ = [
    # Cancellation
    "CancelToken",
    "EventLike",
    # Pools
    "ThreadPool",
    "ProcessPool",
    "ExecutorKind",
    "make_pool",
    "available_cpus",
    "DEFAULT_THREAD_WORKERS",
    "DEFAULT_PROCESS_WORKERS",
    # Wait strategies
    "first_success",
    "gather_settled",
    "settle",
    "Settled",
    "SettledStatus",
    "WaitResult",
]
