from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable

from .cache import STATUS_UNAVAILABLE, CacheResult, SnapshotCache
from .config import Config
from .documents import (
    parse_linkedin_document,
    parse_news_document,
    parse_partners_document,
    parse_site_config_document,
)
from .errors import FetchError
from .fetcher import fetch_json
from .localization import normalize_locale, project_item, project_items
from .models import NewsCollection, NewsItem

JSON_SUFFIX = ".json"

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class NewsListing:
    items: list[NewsItem]
    locale: str
    status: str
    fetched_at: float | None
    error: FetchError | None = None

    @property
    def available(self) -> bool:
        return self.status != STATUS_UNAVAILABLE


@dataclass(frozen=True)
class NewsLookup:
    slug: str
    item: NewsItem | None
    locale: str
    status: str
    error: FetchError | None = None

    @property
    def available(self) -> bool:
        return self.status != STATUS_UNAVAILABLE

    @property
    def found(self) -> bool:
        return self.item is not None


def clean_slug(slug: str) -> str:
    if slug.endswith(JSON_SUFFIX):
        return slug[: -len(JSON_SUFFIX)]
    return slug


def sort_newest_first(items: list[NewsItem]) -> list[NewsItem]:
    # Stable sort keeps the upstream order for equal or missing dates.
    return sorted(
        items,
        key=lambda item: (item.published_at() is not None, item.published_at() or _OLDEST),
        reverse=True,
    )


class ContentService:
    """Read access to every remote content document, one cache per document."""

    def __init__(
        self,
        config: Config,
        *,
        logger: logging.Logger | None = None,
        fetch: Callable[..., Any] = fetch_json,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self.config = config
        self._logger = logger or logging.getLogger("newsdesk.content")
        self._fetch = fetch
        cache_kwargs: dict[str, Any] = {"logger": self._logger}
        if clock is not None:
            cache_kwargs["clock"] = clock
        ttl = config.cache.ttl_seconds
        content = config.content
        self.news_cache: SnapshotCache[NewsCollection] = SnapshotCache(
            "news",
            self._loader(content.news_path, parse_news_document),
            ttl,
            **cache_kwargs,
        )
        self.linkedin_cache: SnapshotCache[list[dict[str, Any]]] = SnapshotCache(
            "linkedin_posts",
            self._loader(content.linkedin_path, parse_linkedin_document),
            ttl,
            **cache_kwargs,
        )
        self.partners_cache: SnapshotCache[list[dict[str, Any]]] = SnapshotCache(
            "partners",
            self._loader(content.partners_path, parse_partners_document),
            ttl,
            **cache_kwargs,
        )
        self.site_config_cache: SnapshotCache[dict[str, Any]] = SnapshotCache(
            "site_config",
            self._loader(content.config_path, parse_site_config_document),
            ttl,
            **cache_kwargs,
        )

    @property
    def caches(self) -> list[SnapshotCache]:
        return [self.news_cache, self.linkedin_cache, self.partners_cache, self.site_config_cache]

    def _loader(self, path: str, parse: Callable[..., Any]) -> Callable[[], Any]:
        url = self.config.content.url_for(path)
        http = self.config.http

        def load() -> Any:
            document = self._fetch(
                url,
                max_attempts=http.max_attempts,
                base_timeout_seconds=http.base_timeout_seconds,
                backoff_seconds=http.backoff_seconds,
                user_agent=http.user_agent,
                logger=self._logger,
            )
            return parse(document, self._logger, url)

        return load

    def news(self, *, refresh: bool = False, timeout: float | None = None) -> CacheResult[NewsCollection]:
        return self.news_cache.get(force_refresh=refresh, timeout=timeout)

    def list_news(
        self,
        locale: str | None,
        *,
        refresh: bool = False,
        timeout: float | None = None,
    ) -> NewsListing:
        locale = normalize_locale(locale)
        result = self.news(refresh=refresh, timeout=timeout)
        items: list[NewsItem] = []
        if result.data is not None:
            items = sort_newest_first(project_items(result.data.items, locale))
        return NewsListing(
            items=items,
            locale=locale,
            status=result.status,
            fetched_at=result.fetched_at,
            error=result.error,
        )

    def get_news(self, slug: str, locale: str | None, *, timeout: float | None = None) -> NewsLookup:
        locale = normalize_locale(locale)
        slug = clean_slug(slug)
        result = self.news(timeout=timeout)
        item = None
        if result.data is not None:
            found = result.data.find(slug)
            if found is not None:
                item = project_item(found, locale)
        return NewsLookup(
            slug=slug,
            item=item,
            locale=locale,
            status=result.status,
            error=result.error,
        )

    def list_linkedin_posts(self, *, refresh: bool = False, timeout: float | None = None) -> CacheResult[list[dict[str, Any]]]:
        return self.linkedin_cache.get(force_refresh=refresh, timeout=timeout)

    def list_partners(self, *, refresh: bool = False, timeout: float | None = None) -> CacheResult[list[dict[str, Any]]]:
        return self.partners_cache.get(force_refresh=refresh, timeout=timeout)

    def get_site_config(self, *, refresh: bool = False, timeout: float | None = None) -> CacheResult[dict[str, Any]]:
        return self.site_config_cache.get(force_refresh=refresh, timeout=timeout)

    def refresh_all(self, timeout: float | None = None) -> dict[str, CacheResult]:
        return {cache.name: cache.refresh(timeout=timeout) for cache in self.caches}

    def invalidate_news(self) -> None:
        self.news_cache.invalidate()

    def known_slugs(self) -> list[str]:
        snapshot = self.news_cache.peek()
        if snapshot is None:
            return []
        return snapshot.data.slugs()

    def cache_stats(self) -> list[dict[str, Any]]:
        return [cache.stats() for cache in self.caches]

    def close(self) -> None:
        for cache in self.caches:
            cache.close()
