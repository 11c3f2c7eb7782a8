from __future__ import annotations

import hmac
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Iterable
from urllib.request import Request, urlopen

from .utils import epoch_to_iso, get_version, log_event

STATIC_PATHS = ("/", "/all-news", "/news")
MAX_RECENT_PATHS = 50


class RebuildTracker:
    def __init__(self, *, wall_clock: Callable[[], float] = time.time) -> None:
        self._wall_clock = wall_clock
        self._lock = threading.Lock()
        self._started_at = wall_clock()
        self.last_rebuild = self._started_at
        self.build_count = 0
        self.registered_slugs: list[str] = []
        self.recent_paths: list[dict[str, str]] = []

    def register_slug(self, slug: str) -> bool:
        with self._lock:
            if slug in self.registered_slugs:
                return False
            self.registered_slugs.append(slug)
            return True

    def trigger(self) -> int:
        with self._lock:
            self.last_rebuild = self._wall_clock()
            self.build_count += 1
            return self.build_count

    def record_path(self, path: str) -> None:
        with self._lock:
            self.recent_paths.append({"path": path, "at": epoch_to_iso(self._wall_clock())})
            del self.recent_paths[:-MAX_RECENT_PATHS]

    def status(self) -> dict[str, Any]:
        now = self._wall_clock()
        with self._lock:
            return {
                "last_rebuild": epoch_to_iso(self.last_rebuild),
                "build_count": self.build_count,
                "registered_slugs": list(self.registered_slugs),
                "recent_paths": list(self.recent_paths),
                "current_time": epoch_to_iso(now),
                "uptime_seconds": round(now - self._started_at, 3),
                "version": get_version(),
            }


def site_paths(slugs: Iterable[str], locales: Iterable[str]) -> list[str]:
    locales = list(locales)
    paths = list(STATIC_PATHS)
    for slug in slugs:
        paths.append(f"/news/{slug}")
        for locale in locales:
            paths.append(f"/{locale}/news/{slug}")
    return paths


def check_secret(candidate: str | None, expected: str) -> bool:
    if not expected or not candidate:
        return False
    return hmac.compare_digest(candidate.encode("utf-8"), expected.encode("utf-8"))


def warm_paths(
    base_url: str,
    paths: list[str],
    *,
    timeout: float,
    user_agent: str,
    logger: logging.Logger,
    max_workers: int = 4,
) -> dict[str, bool]:
    """Request every path once so the public site rebuilds its pages."""
    base_url = base_url.rstrip("/")

    def _warm(path: str) -> bool:
        request = Request(f"{base_url}{path}", headers={"User-Agent": user_agent})
        try:
            with urlopen(request, timeout=timeout) as response:
                response.read()
            return True
        except Exception as exc:  # noqa: BLE001
            log_event(logger, logging.WARNING, "warm_path_failed", path=path, error=str(exc))
            return False

    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as executor:
        results = list(executor.map(_warm, paths))
    return dict(zip(paths, results))
