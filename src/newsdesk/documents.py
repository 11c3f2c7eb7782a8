from __future__ import annotations

import logging
from typing import Any

from .errors import FetchError, FetchErrorKind
from .models import NewsCollection, NewsItem
from .schemas import (
    LINKEDIN_DOCUMENT_SCHEMA,
    NEWS_DOCUMENT_SCHEMA,
    NEWS_ITEM_SCHEMA,
    PARTNERS_DOCUMENT_SCHEMA,
    RECORD_SCHEMA,
    SITE_CONFIG_SCHEMA,
    schema_errors,
)
from .utils import log_event


def parse_news_document(
    document: Any, logger: logging.Logger, url: str | None = None
) -> NewsCollection:
    _require_shape(document, NEWS_DOCUMENT_SCHEMA, "news", url)
    items: list[NewsItem] = []
    skipped = 0
    for index, record in enumerate(document["news"]):
        errors = schema_errors(record, NEWS_ITEM_SCHEMA)
        if errors:
            skipped += 1
            log_event(
                logger,
                logging.WARNING,
                "record_skipped",
                collection="news",
                index=index,
                error=errors[0],
            )
            continue
        items.append(NewsItem.from_dict(record))
    collection = NewsCollection.from_items(items, skipped=skipped)
    for slug in collection.duplicate_slugs:
        log_event(logger, logging.WARNING, "duplicate_slug", slug=slug, kept="first")
    return collection


def parse_linkedin_document(
    document: Any, logger: logging.Logger, url: str | None = None
) -> list[dict[str, Any]]:
    _require_shape(document, LINKEDIN_DOCUMENT_SCHEMA, "linkedin_posts", url)
    if "linkedinPosts" in document:
        records = document["linkedinPosts"]
    else:
        records = document["posts"]
    return _object_records(records, "linkedin_posts", logger)


def parse_partners_document(
    document: Any, logger: logging.Logger, url: str | None = None
) -> list[dict[str, Any]]:
    _require_shape(document, PARTNERS_DOCUMENT_SCHEMA, "partners", url)
    records = document if isinstance(document, list) else document["partners"]
    return _object_records(records, "partners", logger)


def parse_site_config_document(
    document: Any, logger: logging.Logger, url: str | None = None
) -> dict[str, Any]:
    _require_shape(document, SITE_CONFIG_SCHEMA, "site_config", url)
    return dict(document)


def _object_records(
    records: list[Any], collection: str, logger: logging.Logger
) -> list[dict[str, Any]]:
    kept = []
    for index, record in enumerate(records):
        if schema_errors(record, RECORD_SCHEMA):
            log_event(
                logger,
                logging.WARNING,
                "record_skipped",
                collection=collection,
                index=index,
                error="not an object",
            )
            continue
        kept.append(record)
    return kept


def _require_shape(document: Any, schema: dict[str, Any], collection: str, url: str | None) -> None:
    errors = schema_errors(document, schema)
    if errors:
        raise FetchError(
            FetchErrorKind.FATAL,
            f"unexpected {collection} document shape: {errors[0]}",
            url=url,
        )
