"""Fan-out/fan-in long-word count over independent sources.

Each source is counted by its own worker thread; the aggregator waits for
every worker and then sums. A source that cannot be opened or read
contributes 0 and is recorded as a SourceFailure; it never aborts its
siblings or the aggregation.
"""

from __future__ import annotations

import re
import time
from collections.abc import Sequence

from pydantic import BaseModel, Field, NonNegativeInt, computed_field

from concur.foundation.errors import SourceFailure
from concur.runtime.concurrency import Settled, ThreadPool, gather_settled
from concur.runtime.observability import get_logger, log_context

from .sources import Source

log = get_logger("aggregate")

DEFAULT_MIN_LENGTH = 12

# Maximal runs of letters; digits, underscores and punctuation separate words
_WORD = re.compile(r"[^\W\d_]+")


def count_long_words(line: str, min_length: int = DEFAULT_MIN_LENGTH) -> int:
    """Number of letter runs in ``line`` with at least ``min_length`` letters."""
    return sum(1 for word in _WORD.findall(line) if len(word) >= min_length)


def count_source(source: Source, min_length: int = DEFAULT_MIN_LENGTH) -> int:
    """Count long words in one source, streaming it line by line.

    Raises:
        SourceIOError: The source could not be opened or read
    """
    with source.open() as lines:
        return sum(count_long_words(line, min_length) for line in lines)


class SourceCount(BaseModel):
    """One source's contribution: a count, or 0 with the failure that caused it."""

    model_config = {"frozen": True}

    label: str
    count: NonNegativeInt = 0
    failure: SourceFailure | None = None
    elapsed: float = Field(default=0.0, ge=0.0, description="Seconds spent on this source")

    @computed_field
    @property
    def ok(self) -> bool:
        return self.failure is None


class AggregationResult(BaseModel):
    """Per-source contributions in input order, and their sum."""

    model_config = {"frozen": True}

    entries: list[SourceCount] = Field(default_factory=list)
    min_length: int = DEFAULT_MIN_LENGTH

    @computed_field
    @property
    def total(self) -> int:
        return sum(e.count for e in self.entries)

    @property
    def failures(self) -> list[SourceFailure]:
        return [e.failure for e in self.entries if e.failure is not None]

    @property
    def by_label(self) -> dict[str, SourceCount]:
        """Entries keyed by label (later duplicates win)."""
        return {e.label: e for e in self.entries}


class SourceAggregator:
    """Counts long words in every source concurrently and sums the results.

    Args:
        sources: Sources to count; each gets its own task
        min_length: Minimum letters for a word to count
        max_workers: Thread cap (default: one thread per source)

    Example:
        >>> result = SourceAggregator([FileSource("a", "a.txt"), UrlSource("b", url)]).run()
        >>> result.total, [f.label for f in result.failures]
    """

    __slots__ = ("sources", "min_length", "max_workers")

    def __init__(
        self,
        sources: Sequence[Source],
        *,
        min_length: int = DEFAULT_MIN_LENGTH,
        max_workers: int | None = None,
    ) -> None:
        if min_length < 1:
            raise ValueError(f"min_length must be >= 1, got {min_length}")
        if max_workers is not None and max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}")
        self.sources = list(sources)
        self.min_length = min_length
        self.max_workers = max_workers

    def _count_one(self, source: Source) -> SourceCount:
        label = source.describe()
        with log_context(source=label):
            log.info("source started")
            start = time.perf_counter()
            try:
                count = count_source(source, self.min_length)
            except Exception as e:
                elapsed = time.perf_counter() - start
                failure = SourceFailure.from_exception(label, e)
                log.warning("source failed", code=str(failure.code), error=failure.message)
                return SourceCount(label=label, failure=failure, elapsed=elapsed)
            elapsed = time.perf_counter() - start
            log.info("source finished", count=count, elapsed_ms=round(elapsed * 1000, 2))
            return SourceCount(label=label, count=count, elapsed=elapsed)

    def run(self) -> AggregationResult:
        """Fan out one task per source, wait for all of them, and fan in."""
        if not self.sources:
            return AggregationResult(min_length=self.min_length)

        workers = self.max_workers or len(self.sources)
        with ThreadPool(max_workers=workers, thread_name_prefix="concur-source-") as pool:
            settled = gather_settled([pool.submit(self._count_one, s) for s in self.sources])

        entries = [_entry(source, outcome) for source, outcome in zip(self.sources, settled)]
        result = AggregationResult(entries=entries, min_length=self.min_length)
        log.info("aggregation finished", sources=len(entries), failures=len(result.failures), total=result.total)
        return result


def _entry(source: Source, outcome: Settled[SourceCount]) -> SourceCount:
    # _count_one records its own failures; this covers errors raised outside it
    if outcome.is_fulfilled:
        return outcome.unwrap()
    error = outcome.error or RuntimeError("task failed without an error")
    return SourceCount(label=source.describe(), failure=SourceFailure.from_exception(source.describe(), error))
