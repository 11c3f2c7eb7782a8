from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .utils import parse_date_value

NEWS_FIELDS = (
    "id",
    "slug",
    "title",
    "title_ar",
    "shortDescription",
    "shortDescription_ar",
    "description",
    "description_ar",
    "images",
    "date",
)


@dataclass(frozen=True)
class NewsImage:
    url: str
    width: float | None = None
    height: float | None = None

    @classmethod
    def from_value(cls, value: Any) -> "NewsImage":
        if isinstance(value, str):
            return cls(url=value)
        return cls(url=str(value["url"]), width=value.get("width"), height=value.get("height"))

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"url": self.url}
        if self.width is not None:
            data["width"] = self.width
        if self.height is not None:
            data["height"] = self.height
        return data


@dataclass(frozen=True)
class NewsItem:
    id: str | int | None
    slug: str
    title: str
    title_ar: str | None = None
    short_description: str | None = None
    short_description_ar: str | None = None
    description: tuple[str, ...] = ()
    description_ar: tuple[str, ...] = ()
    images: tuple[NewsImage, ...] = ()
    date: str | None = None
    extra: dict[str, Any] = field(default_factory=dict, compare=False)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "NewsItem":
        return cls(
            id=data.get("id"),
            slug=str(data["slug"]),
            title=str(data.get("title") or ""),
            title_ar=data.get("title_ar"),
            short_description=data.get("shortDescription"),
            short_description_ar=data.get("shortDescription_ar"),
            description=_paragraphs(data.get("description")),
            description_ar=_paragraphs(data.get("description_ar")),
            images=tuple(NewsImage.from_value(image) for image in data.get("images") or []),
            date=data.get("date"),
            extra={key: value for key, value in data.items() if key not in NEWS_FIELDS},
        )

    def to_dict(self) -> dict[str, Any]:
        data = dict(self.extra)
        data.update(
            {
                "id": self.id,
                "slug": self.slug,
                "title": self.title,
                "title_ar": self.title_ar,
                "shortDescription": self.short_description,
                "shortDescription_ar": self.short_description_ar,
                "description": list(self.description),
                "description_ar": list(self.description_ar),
                "images": [image.to_dict() for image in self.images],
                "date": self.date,
            }
        )
        return data

    def published_at(self) -> datetime | None:
        return parse_date_value(self.date)


def _paragraphs(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,) if value else ()
    return tuple(str(item) for item in value)


@dataclass(frozen=True)
class NewsCollection:
    """One fetched snapshot of the news document.

    ``by_slug`` keeps the first record seen for each slug; later records with
    the same slug are only reported in ``duplicate_slugs``.
    """

    items: tuple[NewsItem, ...] = ()
    by_slug: dict[str, NewsItem] = field(default_factory=dict, compare=False, repr=False)
    duplicate_slugs: tuple[str, ...] = ()
    skipped: int = 0

    @classmethod
    def from_items(cls, items: list[NewsItem], skipped: int = 0) -> "NewsCollection":
        by_slug: dict[str, NewsItem] = {}
        duplicates: list[str] = []
        for item in items:
            if item.slug in by_slug:
                if item.slug not in duplicates:
                    duplicates.append(item.slug)
                continue
            by_slug[item.slug] = item
        return cls(
            items=tuple(items),
            by_slug=by_slug,
            duplicate_slugs=tuple(duplicates),
            skipped=skipped,
        )

    def find(self, slug: str) -> NewsItem | None:
        return self.by_slug.get(slug)

    def slugs(self) -> list[str]:
        return list(self.by_slug.keys())

    def __len__(self) -> int:
        return len(self.items)
