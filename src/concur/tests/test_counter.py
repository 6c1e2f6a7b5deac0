"""Tests for the shared-counter race.

Validates:
- Locked discipline always balances to zero
- Unguarded discipline completes (its value is not asserted)
- Only the locked path is mutually exclusive
"""

from __future__ import annotations

import threading

import pytest

from concur.demos import Discipline, SharedCounter, run_race


def test_safe_race_balances() -> None:
    for steps in (0, 1, 10_000, 200_000):
        report = run_race(steps, safe=True)
        assert report.final == 0
        assert report.lost_updates == 0
        assert report.discipline is Discipline.SAFE
        assert report.steps == steps


def test_unsafe_race_completes() -> None:
    """Unguarded result is scheduler-dependent; only completion and bookkeeping are checked."""
    report = run_race(100_000, safe=False)
    assert report.discipline is Discipline.UNSAFE
    assert isinstance(report.final, int)
    assert report.lost_updates == abs(report.final)
    assert report.elapsed >= 0


def test_negative_steps_rejected() -> None:
    with pytest.raises(ValueError, match="steps"):
        run_race(-1, safe=True)


def test_race_workers_are_joined() -> None:
    run_race(1_000, safe=True)
    run_race(1_000, safe=False)
    assert not [t for t in threading.enumerate() if t.name.startswith("race-")]


def test_single_thread_mutations() -> None:
    counter = SharedCounter()
    counter.increment_unsafe()
    counter.increment_safe()
    counter.decrement_unsafe()
    assert counter.value == 1
    counter.decrement_safe()
    assert counter.value == 0


def test_unsafe_path_ignores_lock() -> None:
    """Holding the lock does not stop unguarded mutation."""
    counter = SharedCounter()
    with counter._lock:
        done = threading.Event()
        worker = threading.Thread(target=lambda: (counter.increment_unsafe(), done.set()))
        worker.start()
        assert done.wait(timeout=5)
        worker.join()
    assert counter.value == 1


def test_safe_path_waits_for_lock() -> None:
    """A locked mutation cannot proceed while another holder owns the lock."""
    counter = SharedCounter()
    done = threading.Event()
    worker = threading.Thread(target=lambda: (counter.increment_safe(), done.set()))
    with counter._lock:
        worker.start()
        assert not done.wait(timeout=0.2)
        assert counter.value == 0
    worker.join(timeout=5)
    assert done.is_set()
    assert counter.value == 1


def test_race_logs_outcome(captured_logs) -> None:  # noqa: ANN001
    run_race(10, safe=True)
    finished = [e for e in captured_logs.entries if e.event == "race finished"]
    assert len(finished) == 1
    assert finished[0].context["final"] == 0
    assert finished[0].context["discipline"] == "safe"


# ═════════════════════════════════════════════════════════════════════════════
# Interleaving between read and write
# ═════════════════════════════════════════════════════════════════════════════


def _pausing_counter(worker_name: str) -> tuple[SharedCounter, threading.Event, threading.Event]:
    """Counter whose mutations from ``worker_name`` stop between read and write until released."""
    paused, release = threading.Event(), threading.Event()

    def pause() -> None:
        if threading.current_thread().name == worker_name:
            paused.set()
            assert release.wait(timeout=5)

    return SharedCounter(pause=pause), paused, release


def test_unsafe_interleaving_loses_update() -> None:
    """A write landing between another worker's read and write is overwritten."""
    counter, paused, release = _pausing_counter("inc")
    worker = threading.Thread(target=counter.increment_unsafe, name="inc")
    worker.start()
    assert paused.wait(timeout=5)
    counter.decrement_unsafe()
    assert counter.value == -1
    release.set()
    worker.join(timeout=5)
    assert counter.value == 1


def test_safe_interleaving_preserves_update() -> None:
    """A locked mutation paused mid-update holds off the other worker until it writes."""
    counter, paused, release = _pausing_counter("inc")
    incrementer = threading.Thread(target=counter.increment_safe, name="inc")
    incrementer.start()
    assert paused.wait(timeout=5)
    decrementer = threading.Thread(target=counter.decrement_safe, name="dec")
    decrementer.start()
    decrementer.join(timeout=0.2)
    assert decrementer.is_alive()
    release.set()
    incrementer.join(timeout=5)
    decrementer.join(timeout=5)
    assert counter.value == 0


def test_pause_runs_once_per_mutation() -> None:
    calls: list[None] = []
    counter = SharedCounter(pause=lambda: calls.append(None))
    counter.increment_unsafe()
    counter.decrement_unsafe()
    counter.increment_safe()
    counter.decrement_safe()
    assert len(calls) == 4
    assert counter.value == 0
