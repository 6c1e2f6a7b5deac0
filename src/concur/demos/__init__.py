"""The three concurrency demonstrations.

- counter: shared-state race and its lock-based fix
- search: partitioned factor search, first success wins
- aggregate: fan-out/fan-in long-word count with isolated failures
"""

from .aggregate import (
    AggregationResult,
    SourceAggregator,
    SourceCount,
    count_long_words,
    count_source,
)
from .counter import Discipline, RaceReport, SharedCounter, run_race
from .primes import is_prime, random_prime
from .search import (
    Cancelled,
    CoordinatedSearch,
    Found,
    NotFoundInRange,
    ParallelSearchCoordinator,
    SearchOutcome,
    SearchTask,
    partition,
    search_range,
)
from .sources import FileSource, Source, UrlSource, default_sources, parse_source

__all__ = [
    # Race
    "SharedCounter", "Discipline", "RaceReport", "run_race",
    # Search
    "SearchTask", "SearchOutcome", "Found", "NotFoundInRange", "Cancelled",
    "search_range", "partition", "ParallelSearchCoordinator", "CoordinatedSearch",
    "random_prime", "is_prime",
    # Aggregation
    "Source", "FileSource", "UrlSource", "parse_source", "default_sources",
    "SourceAggregator", "AggregationResult", "SourceCount", "count_long_words", "count_source",
]
