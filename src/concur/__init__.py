"""concur - three concurrency patterns over shared and partitioned work.

1. Race: two threads mutate one counter, unguarded and then under a lock.
2. Search: a range is partitioned across workers; the first to find a
   divisor wins and the rest are cancelled at their next block boundary.
3. Aggregate: one task per text source; all are awaited, failures are
   isolated, and contributions are summed.

Quick Start:
    >>> from concur import run_race, ParallelSearchCoordinator, SourceAggregator, FileSource
    >>> run_race(100_000, safe=True).final
    0
    >>> ParallelSearchCoordinator(workers=4).search(15, 2, 15).outcome
    Found(factor=3)
    >>> SourceAggregator([FileSource("notes", "notes.txt")]).run().total
"""

from __future__ import annotations

__version__ = "0.1.0"

from .demos import (
    AggregationResult,
    Cancelled,
    CoordinatedSearch,
    FileSource,
    Found,
    NotFoundInRange,
    ParallelSearchCoordinator,
    RaceReport,
    SearchOutcome,
    SearchTask,
    SharedCounter,
    Source,
    SourceAggregator,
    SourceCount,
    UrlSource,
    partition,
    run_race,
    search_range,
)
from .foundation import ConcurError, SourceFailure, SourceIOError, get_settings

__all__ = [
    "__version__",
    "SharedCounter", "RaceReport", "run_race",
    "SearchTask", "SearchOutcome", "Found", "NotFoundInRange", "Cancelled",
    "search_range", "partition", "ParallelSearchCoordinator", "CoordinatedSearch",
    "Source", "FileSource", "UrlSource", "SourceAggregator", "AggregationResult", "SourceCount",
    "ConcurError", "SourceIOError", "SourceFailure", "get_settings",
]
