"""Tests for pools, cancel tokens and wait strategies."""

from __future__ import annotations

import os
import pickle
import threading
import time
from concurrent.futures import FIRST_COMPLETED, CancelledError

import pytest

import concur.runtime.concurrency.wait as wait_module
from concur.runtime.concurrency import (
    CancelToken,
    SettledStatus,
    ThreadPool,
    available_cpus,
    first_success,
    gather_settled,
    make_pool,
)


def _value_after(value: int, delay: float) -> int:
    time.sleep(delay)
    return value


def _fail(message: str) -> int:
    raise RuntimeError(message)


def _wait_for(token: CancelToken, timeout: float = 5.0) -> str:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if token.cancelled:
            return "stopped"
        time.sleep(0.005)
    return "timed out"


# ═════════════════════════════════════════════════════════════════════════════
# CancelToken
# ═════════════════════════════════════════════════════════════════════════════


def test_cancel_token_is_idempotent() -> None:
    token = CancelToken.for_threads()
    assert not token.cancelled
    token.cancel()
    token.cancel()
    assert token.cancelled
    assert repr(token) == "CancelToken(cancelled=True)"


def test_cancel_token_from_manager_pickles() -> None:
    with make_pool("process", 1) as pool:
        token = pool.cancel_token()
        clone = pickle.loads(pickle.dumps(token))
        token.cancel()
        assert clone.cancelled


# ═════════════════════════════════════════════════════════════════════════════
# gather_settled
# ═════════════════════════════════════════════════════════════════════════════


def test_gather_settled_isolates_failures() -> None:
    with ThreadPool(3) as pool:
        settled = gather_settled([
            pool.submit(_value_after, 1, 0.02),
            pool.submit(_fail, "boom"),
            pool.submit(_value_after, 3, 0.0),
        ])
    assert [s.status for s in settled] == [SettledStatus.FULFILLED, SettledStatus.REJECTED, SettledStatus.FULFILLED]
    assert [s.unwrap_or(0) for s in settled] == [1, 0, 3]
    assert isinstance(settled[1].error, RuntimeError)
    with pytest.raises(RuntimeError, match="boom"):
        settled[1].unwrap()


def test_gather_settled_cancelled_future_is_rejected() -> None:
    with ThreadPool(1) as pool:
        blocker = pool.submit(_value_after, 0, 0.1)
        queued = pool.submit(_value_after, 1, 0.0)
        assert queued.cancel()
        settled = gather_settled([blocker, queued])
    assert settled[0].is_fulfilled
    assert settled[1].is_rejected
    assert isinstance(settled[1].error, CancelledError)


# ═════════════════════════════════════════════════════════════════════════════
# first_success
# ═════════════════════════════════════════════════════════════════════════════


def test_first_success_returns_fastest_accepted() -> None:
    with ThreadPool(3) as pool:
        won = first_success([
            pool.submit(_value_after, 1, 0.3),
            pool.submit(_value_after, 2, 0.0),
            pool.submit(_value_after, 3, 0.3),
        ])
    assert won is not None
    assert (won.value, won.index) == (2, 1)


def test_first_success_skips_rejected_and_failed() -> None:
    with ThreadPool(3) as pool:
        won = first_success(
            [pool.submit(_fail, "nope"), pool.submit(_value_after, 0, 0.0), pool.submit(_value_after, 5, 0.05)],
            accept=lambda v: v > 0,
        )
    assert won is not None
    assert won.value == 5
    assert won.index == 2


def test_first_success_none_when_nothing_accepted() -> None:
    with ThreadPool(2) as pool:
        futures = [pool.submit(_value_after, 0, 0.0), pool.submit(_value_after, 0, 0.01)]
        assert first_success(futures, accept=bool) is None


def test_first_success_raises_group_when_all_fail() -> None:
    with ThreadPool(2) as pool, pytest.raises(ExceptionGroup) as info:
        first_success([pool.submit(_fail, "a"), pool.submit(_fail, "b")])
    assert sorted(str(e) for e in info.value.exceptions) == ["a", "b"]


def test_first_success_stops_and_joins_siblings() -> None:
    with ThreadPool(2) as pool:
        token = pool.cancel_token()
        slow = pool.submit(_wait_for, token)
        won = first_success([pool.submit(_value_after, 7, 0.0), slow], stop=token.cancel)
        assert won is not None
        assert won.value == 7
        assert token.cancelled
        assert slow.done()
        assert slow.result() == "stopped"


def test_first_success_cancels_unstarted_work() -> None:
    with ThreadPool(1) as pool:
        futures = [pool.submit(_value_after, 1, 0.0)] + [pool.submit(_value_after, i, 0.2) for i in range(2, 6)]
        started = time.monotonic()
        won = first_success(futures)
        assert won is not None
        assert won.value == 1
        assert any(f.cancelled() for f in futures[1:])
        assert time.monotonic() - started < 0.8


def test_interrupt_during_wait_stops_and_joins_siblings(monkeypatch: pytest.MonkeyPatch) -> None:
    real_wait = wait_module.wait

    def interrupting_wait(fs: object, timeout: float | None = None, return_when: str = FIRST_COMPLETED) -> object:
        if return_when == FIRST_COMPLETED:
            raise KeyboardInterrupt
        return real_wait(fs, timeout=timeout, return_when=return_when)

    monkeypatch.setattr(wait_module, "wait", interrupting_wait)
    with ThreadPool(2) as pool:
        token = pool.cancel_token()
        futures = [pool.submit(_wait_for, token), pool.submit(_wait_for, token)]
        with pytest.raises(KeyboardInterrupt):
            first_success(futures, stop=token.cancel)
        assert token.cancelled
        assert all(f.done() for f in futures)
        assert all(f.cancelled() or f.result() == "stopped" for f in futures)


def test_thread_pool_joins_workers_on_exit() -> None:
    with ThreadPool(4, thread_name_prefix="concur-test-") as pool:
        for i in range(4):
            pool.submit(_value_after, i, 0.01)
    assert not [t for t in threading.enumerate() if t.name.startswith("concur-test-")]


def test_make_pool_rejects_unknown_kind() -> None:
    with pytest.raises(ValueError, match="executor"):
        make_pool("fiber", 2)  # type: ignore[arg-type]


def test_available_cpus_respects_affinity() -> None:
    assert available_cpus() >= 1
    if hasattr(os, "sched_getaffinity"):
        assert available_cpus() == len(os.sched_getaffinity(0))
