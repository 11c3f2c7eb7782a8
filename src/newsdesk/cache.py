from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import CancelledError, Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar

from .errors import FetchError, FetchErrorKind
from .utils import epoch_to_iso, log_event

T = TypeVar("T")

STATUS_FRESH = "fresh"
STATUS_CACHED = "cached"
STATUS_STALE = "stale"
STATUS_UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class Snapshot(Generic[T]):
    data: T
    fetched_at: float
    loaded_at: float


@dataclass(frozen=True)
class CacheResult(Generic[T]):
    data: T | None
    status: str
    fetched_at: float | None = None
    error: FetchError | None = None

    @property
    def available(self) -> bool:
        return self.status != STATUS_UNAVAILABLE

    @property
    def stale(self) -> bool:
        return self.status == STATUS_STALE

    @property
    def fetched_at_iso(self) -> str | None:
        return epoch_to_iso(self.fetched_at)


class SnapshotCache(Generic[T]):
    """Holds the latest snapshot of one remote document.

    A snapshot younger than ``ttl_seconds`` is served without calling the
    loader. Concurrent refreshes share a single loader call, which runs on a
    worker thread owned by the cache so a caller's ``timeout`` only bounds
    that caller's wait. Failed refreshes fall back to the previous snapshot;
    with nothing to fall back to the result is ``unavailable``.
    """

    def __init__(
        self,
        name: str,
        loader: Callable[[], T],
        ttl_seconds: float,
        *,
        logger: logging.Logger | None = None,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], float] = time.time,
    ) -> None:
        self.name = name
        self.ttl_seconds = ttl_seconds
        self._loader = loader
        self._logger = logger or logging.getLogger("newsdesk.cache")
        self._clock = clock
        self._wall_clock = wall_clock
        self._lock = threading.Lock()
        self._snapshot: Snapshot[T] | None = None
        self._expired = False
        self._generation = 0
        self._inflight: Future | None = None
        self._executor: ThreadPoolExecutor | None = None
        self.load_count = 0
        self.join_count = 0

    def get(self, *, force_refresh: bool = False, timeout: float | None = None) -> CacheResult[T]:
        if not force_refresh:
            with self._lock:
                snapshot = self._snapshot
                fresh = snapshot is not None and self._is_fresh(snapshot)
            if fresh:
                log_event(self._logger, logging.DEBUG, "cache_hit", cache=self.name)
                return CacheResult(snapshot.data, STATUS_CACHED, snapshot.fetched_at)
        return self.refresh(timeout=timeout)

    def refresh(self, timeout: float | None = None) -> CacheResult[T]:
        with self._lock:
            future = self._inflight
            if future is None:
                future = self._ensure_executor().submit(self._load)
                self._inflight = future
                event = "cache_refresh_started"
            else:
                self.join_count += 1
                event = "cache_refresh_joined"
        log_event(self._logger, logging.DEBUG, event, cache=self.name)
        try:
            snapshot = future.result(timeout=timeout)
        except FutureTimeoutError:
            log_event(
                self._logger,
                logging.WARNING,
                "cache_wait_timeout",
                cache=self.name,
                timeout=timeout,
            )
            error = FetchError(
                FetchErrorKind.TRANSIENT,
                f"{self.name} refresh did not finish within {timeout:g}s",
            )
            return self._fallback(error)
        except CancelledError:
            return self._fallback(FetchError(FetchErrorKind.TRANSIENT, f"{self.name} cache is closed"))
        except FetchError as exc:
            return self._fallback(exc)
        return CacheResult(snapshot.data, STATUS_FRESH, snapshot.fetched_at)

    def invalidate(self) -> None:
        with self._lock:
            self._expired = True
            self._generation += 1
        log_event(self._logger, logging.INFO, "cache_invalidated", cache=self.name)

    def peek(self) -> Snapshot[T] | None:
        with self._lock:
            return self._snapshot

    def stats(self) -> dict[str, Any]:
        with self._lock:
            snapshot = self._snapshot
            return {
                "name": self.name,
                "ttl_seconds": self.ttl_seconds,
                "has_snapshot": snapshot is not None,
                "fresh": snapshot is not None and self._is_fresh(snapshot),
                "fetched_at": epoch_to_iso(snapshot.fetched_at) if snapshot else None,
                "in_flight": self._inflight is not None,
                "load_count": self.load_count,
            }

    def close(self) -> None:
        with self._lock:
            executor = self._executor
            self._executor = None
            self._inflight = None
        if executor is not None:
            executor.shutdown(wait=False, cancel_futures=True)

    def _ensure_executor(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=1, thread_name_prefix=f"newsdesk-{self.name}"
            )
        return self._executor

    def _is_fresh(self, snapshot: Snapshot[T]) -> bool:
        if self._expired:
            return False
        return self._clock() - snapshot.loaded_at < self.ttl_seconds

    def _load(self) -> Snapshot[T]:
        try:
            with self._lock:
                self.load_count += 1
                generation = self._generation
            try:
                data = self._loader()
            except FetchError as exc:
                log_event(
                    self._logger,
                    logging.ERROR,
                    "cache_refresh_failed",
                    cache=self.name,
                    kind=exc.kind.value,
                    error=exc.message,
                )
                raise
            except Exception as exc:  # noqa: BLE001
                log_event(
                    self._logger,
                    logging.ERROR,
                    "cache_refresh_failed",
                    cache=self.name,
                    kind=FetchErrorKind.FATAL.value,
                    error=repr(exc),
                )
                raise FetchError(FetchErrorKind.FATAL, f"{type(exc).__name__}: {exc}") from exc
            snapshot = Snapshot(data=data, fetched_at=self._wall_clock(), loaded_at=self._clock())
            with self._lock:
                self._snapshot = snapshot
                if self._generation == generation:
                    self._expired = False
            log_event(self._logger, logging.INFO, "cache_refreshed", cache=self.name)
            return snapshot
        finally:
            with self._lock:
                self._inflight = None

    def _fallback(self, error: FetchError) -> CacheResult[T]:
        snapshot = self.peek()
        if snapshot is not None:
            log_event(
                self._logger,
                logging.WARNING,
                "cache_serving_stale",
                cache=self.name,
                error=error.message,
            )
            return CacheResult(snapshot.data, STATUS_STALE, snapshot.fetched_at, error)
        return CacheResult(None, STATUS_UNAVAILABLE, None, error)
