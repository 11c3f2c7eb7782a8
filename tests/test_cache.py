import threading
import time

from newsdesk.cache import (
    STATUS_CACHED,
    STATUS_FRESH,
    STATUS_STALE,
    STATUS_UNAVAILABLE,
    SnapshotCache,
)
from newsdesk.errors import FetchError, FetchErrorKind


class _Clock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def _wait_for(predicate, timeout: float = 5.0) -> None:
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not reached")
        time.sleep(0.005)


def test_second_get_within_ttl_does_not_reload():
    clock = _Clock()
    calls = []

    def _loader():
        calls.append(1)
        return ["a"]

    cache = SnapshotCache("news", _loader, ttl_seconds=60, clock=clock)
    try:
        first = cache.get()
        clock.now += 59
        second = cache.get()
    finally:
        cache.close()

    assert first.status == STATUS_FRESH
    assert second.status == STATUS_CACHED
    assert second.data == ["a"]
    assert len(calls) == 1


def test_get_after_ttl_reloads():
    clock = _Clock()
    versions = iter([["v1"], ["v2"]])
    cache = SnapshotCache("news", lambda: next(versions), ttl_seconds=60, clock=clock)
    try:
        assert cache.get().data == ["v1"]
        clock.now += 60
        result = cache.get()
    finally:
        cache.close()
    assert result.status == STATUS_FRESH
    assert result.data == ["v2"]
    assert cache.load_count == 2


def test_concurrent_callers_share_one_fetch():
    started = threading.Event()
    release = threading.Event()
    calls = []

    def _loader():
        calls.append(1)
        started.set()
        release.wait(5)
        return ["shared"]

    cache = SnapshotCache("news", _loader, ttl_seconds=60)
    results = []

    def _caller():
        results.append(cache.get())

    first = threading.Thread(target=_caller)
    second = threading.Thread(target=_caller)
    try:
        first.start()
        assert started.wait(5)
        second.start()
        _wait_for(lambda: cache.join_count == 1)
        release.set()
        first.join(5)
        second.join(5)
    finally:
        release.set()
        cache.close()

    assert len(calls) == 1
    assert [result.data for result in results] == [["shared"], ["shared"]]
    assert all(result.status == STATUS_FRESH for result in results)


def test_failure_with_previous_snapshot_serves_stale():
    outcomes = [["old"], FetchError(FetchErrorKind.TRANSIENT, "connection reset")]

    def _loader():
        outcome = outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    cache = SnapshotCache("news", _loader, ttl_seconds=60)
    try:
        cache.get()
        result = cache.get(force_refresh=True)
    finally:
        cache.close()

    assert result.status == STATUS_STALE
    assert result.stale is True
    assert result.available is True
    assert result.data == ["old"]
    assert result.error.kind is FetchErrorKind.TRANSIENT


def test_failure_without_snapshot_is_unavailable():
    def _loader():
        raise FetchError(FetchErrorKind.TRANSIENT, "dns failure")

    cache = SnapshotCache("news", _loader, ttl_seconds=60)
    try:
        result = cache.get()
    finally:
        cache.close()

    assert result.status == STATUS_UNAVAILABLE
    assert result.available is False
    assert result.data is None
    assert result.error.message == "dns failure"


def test_unexpected_loader_error_becomes_fatal_fetch_error():
    def _loader():
        raise KeyError("news")

    cache = SnapshotCache("news", _loader, ttl_seconds=60)
    try:
        result = cache.get()
    finally:
        cache.close()

    assert result.status == STATUS_UNAVAILABLE
    assert result.error.kind is FetchErrorKind.FATAL


def test_invalidate_forces_next_get_to_reload():
    calls = []

    def _loader():
        calls.append(1)
        return len(calls)

    cache = SnapshotCache("news", _loader, ttl_seconds=3600)
    try:
        cache.get()
        cache.invalidate()
        result = cache.get()
    finally:
        cache.close()
    assert result.data == 2
    assert result.status == STATUS_FRESH


def test_wait_timeout_does_not_cancel_refresh():
    release = threading.Event()

    def _loader():
        release.wait(5)
        return ["late"]

    cache = SnapshotCache("news", _loader, ttl_seconds=60)
    try:
        result = cache.get(timeout=0.05)
        assert result.status == STATUS_UNAVAILABLE
        assert result.error.kind is FetchErrorKind.TRANSIENT
        release.set()
        _wait_for(lambda: cache.peek() is not None)
        assert cache.get().data == ["late"]
        assert cache.load_count == 1
    finally:
        release.set()
        cache.close()


def test_stats_report_snapshot_state():
    cache = SnapshotCache("partners", lambda: [], ttl_seconds=10)
    try:
        assert cache.stats()["has_snapshot"] is False
        cache.get()
        stats = cache.stats()
    finally:
        cache.close()
    assert stats["name"] == "partners"
    assert stats["has_snapshot"] is True
    assert stats["fresh"] is True
    assert stats["in_flight"] is False
    assert stats["load_count"] == 1


def test_invalidate_during_refresh_is_not_lost():
    started = threading.Event()
    release = threading.Event()
    values = iter(["old", "new"])

    def _loader():
        value = next(values)
        if value == "old":
            started.set()
            release.wait(5)
        return value

    cache = SnapshotCache("news", _loader, ttl_seconds=3600)
    try:
        worker = threading.Thread(target=cache.get)
        worker.start()
        assert started.wait(5)
        cache.invalidate()
        release.set()
        worker.join(5)
        result = cache.get()
    finally:
        release.set()
        cache.close()
    assert result.data == "new"
    assert result.status == STATUS_FRESH
    assert cache.load_count == 2


def test_close_drops_queued_refresh():
    release = threading.Event()
    cache = SnapshotCache("news", lambda: ["after"], ttl_seconds=60)
    try:
        cache._ensure_executor().submit(release.wait, 5)
        assert cache.get(timeout=0.01).status == STATUS_UNAVAILABLE
        cache.close()
        release.set()
        result = cache.get(timeout=5)
    finally:
        release.set()
        cache.close()
    assert result.status == STATUS_FRESH
    assert result.data == ["after"]
