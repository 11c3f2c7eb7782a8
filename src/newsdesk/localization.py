from __future__ import annotations

import dataclasses
from typing import Iterable

from .models import NewsItem

ARABIC = "ar"
ENGLISH = "en"
SUPPORTED_LOCALES = (ENGLISH, ARABIC)


def normalize_locale(value: str | None) -> str:
    # Only the exact code "ar" selects Arabic.
    return ARABIC if value == ARABIC else ENGLISH


def project_item(item: NewsItem, locale: str | None) -> NewsItem:
    """Overlay the Arabic fields of ``item`` when ``locale`` is Arabic.

    Empty or missing Arabic values keep the English text. The ``_ar`` fields
    themselves are left on the record.
    """
    if normalize_locale(locale) != ARABIC:
        return item
    return dataclasses.replace(
        item,
        title=item.title_ar or item.title,
        short_description=item.short_description_ar or item.short_description,
        description=item.description_ar or item.description,
    )


def project_items(items: Iterable[NewsItem], locale: str | None) -> list[NewsItem]:
    return [project_item(item, locale) for item in items]
