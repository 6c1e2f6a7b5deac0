"""Thread and process pools with owned worker lifetime.

Both pools are context managers: leaving the ``with`` block shuts the
executor down and joins every worker, so no thread or process outlives the
operation that created it.

Key Features:
    - ThreadPool: blocking I/O and work that must share memory with the caller
    - ProcessPool: CPU-bound work (bypasses the GIL)
    - cancel_token(): a CancelToken that the pool's workers can observe

Example:
    >>> with ThreadPool(max_workers=4) as pool:
    ...     token = pool.cancel_token()
    ...     futures = [pool.submit(scan, chunk, token) for chunk in chunks]
    >>> # all workers joined here
"""

from __future__ import annotations

import multiprocessing
import os
from concurrent.futures import Future, ProcessPoolExecutor, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Literal, ParamSpec, TypeVar

from .cancel import CancelToken

if TYPE_CHECKING:
    from multiprocessing.managers import SyncManager
    from types import TracebackType

T = TypeVar("T")
P = ParamSpec("P")

__all__ = [
    "ThreadPool",
    "ProcessPool",
    "ExecutorKind",
    "make_pool",
    "available_cpus",
    "DEFAULT_THREAD_WORKERS",
    "DEFAULT_PROCESS_WORKERS",
]


def available_cpus() -> int:
    """CPUs this process may run on (its affinity mask where the platform exposes one)."""
    if hasattr(os, "sched_getaffinity"):
        return len(os.sched_getaffinity(0)) or 1
    return os.cpu_count() or 1


_CPU_COUNT = available_cpus()
DEFAULT_THREAD_WORKERS = min(32, _CPU_COUNT + 4)  # I/O bound heuristic
DEFAULT_PROCESS_WORKERS = _CPU_COUNT

ExecutorKind = Literal["thread", "process"]


@dataclass(slots=True)
class ThreadPool:
    """Thread pool for blocking operations and shared-memory workers.

    Example:
        >>> with ThreadPool(len(sources)) as pool:
        ...     futures = [pool.submit(count_source, s) for s in sources]
    """

    max_workers: int = DEFAULT_THREAD_WORKERS
    thread_name_prefix: str = "concur-"
    _executor: ThreadPoolExecutor | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if self.max_workers < 1:
            raise ValueError("max_workers must be >= 1")

    @property
    def executor(self) -> ThreadPoolExecutor:
        """Get or create the underlying executor."""
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self.max_workers,
                thread_name_prefix=self.thread_name_prefix,
            )
        return self._executor

    def submit(self, func: Callable[P, T], *args: P.args, **kwargs: P.kwargs) -> Future[T]:
        """Schedule ``func(*args, **kwargs)`` and return its Future."""
        return self.executor.submit(func, *args, **kwargs)

    def cancel_token(self) -> CancelToken:
        """New token observable by this pool's workers."""
        return CancelToken.for_threads()

    def shutdown(self, wait: bool = True, *, cancel_futures: bool = False) -> None:
        """Shut down the pool; with ``wait`` every worker thread is joined."""
        if self._executor is not None:
            self._executor.shutdown(wait=wait, cancel_futures=cancel_futures)
            self._executor = None

    def __enter__(self) -> ThreadPool:
        _ = self.executor  # Ensure created
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.shutdown(wait=True, cancel_futures=exc_val is not None)


@dataclass(slots=True)
class ProcessPool:
    """Process pool for CPU-bound operations.

    Limitations:
        - Functions and arguments must be picklable
        - Cancel tokens go through a manager process, so polling one is a
          round trip; poll at coarse intervals
    """

    max_workers: int = DEFAULT_PROCESS_WORKERS
    mp_context: str | None = None  # 'fork', 'spawn', 'forkserver'
    _executor: ProcessPoolExecutor | None = field(default=None, repr=False)
    _manager: SyncManager | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if self.max_workers < 1:
            raise ValueError("max_workers must be >= 1")

    @property
    def _context(self):  # noqa: ANN202
        return multiprocessing.get_context(self.mp_context) if self.mp_context else multiprocessing.get_context()

    @property
    def executor(self) -> ProcessPoolExecutor:
        if self._executor is None:
            self._executor = ProcessPoolExecutor(max_workers=self.max_workers, mp_context=self._context)
        return self._executor

    def submit(self, func: Callable[P, T], *args: P.args, **kwargs: P.kwargs) -> Future[T]:
        return self.executor.submit(func, *args, **kwargs)

    def cancel_token(self) -> CancelToken:
        """New token backed by a manager Event, shareable with worker processes."""
        if self._manager is None:
            self._manager = self._context.Manager()
        return CancelToken(self._manager.Event())

    def shutdown(self, wait: bool = True, *, cancel_futures: bool = False) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=wait, cancel_futures=cancel_futures)
            self._executor = None
        if self._manager is not None:
            self._manager.shutdown()
            self._manager = None

    def __enter__(self) -> ProcessPool:
        _ = self.executor
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.shutdown(wait=True, cancel_futures=exc_val is not None)


def make_pool(kind: ExecutorKind, max_workers: int) -> ThreadPool | ProcessPool:
    """Pool of the requested kind sized to ``max_workers``."""
    match kind:
        case "thread": return ThreadPool(max_workers=max_workers)
        case "process": return ProcessPool(max_workers=max_workers)
        case _: raise ValueError(f"Unknown executor kind: {kind!r}. Use 'thread' or 'process'")
