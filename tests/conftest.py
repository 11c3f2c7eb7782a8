from __future__ import annotations

import pytest

from newsdesk.config import config_from_dict
from newsdesk.errors import FetchError, FetchErrorKind


def news_document() -> dict:
    return {
        "news": [
            {
                "id": 1,
                "slug": "summit-opening",
                "title": "Summit opens",
                "title_ar": "افتتاح القمة",
                "shortDescription": "The summit opened today.",
                "shortDescription_ar": "افتتحت القمة اليوم.",
                "description": ["First paragraph.", "Second paragraph."],
                "description_ar": ["الفقرة الأولى."],
                "images": [{"url": "https://cdn.example.org/a.jpg", "width": 800, "height": 600}],
                "date": "2025-03-01",
            },
            {
                "id": 2,
                "slug": "partnership",
                "title": "New partnership",
                "title_ar": "",
                "shortDescription": "We signed a partnership.",
                "description": ["Details."],
                "images": ["https://cdn.example.org/b.jpg"],
                "date": "2025-05-10T09:00:00Z",
                "category": "press",
            },
            {
                "id": 3,
                "slug": "undated",
                "title": "Undated note",
            },
        ]
    }


class FakeFetch:
    def __init__(self, documents: dict[str, object]) -> None:
        self.documents = documents
        self.calls: list[str] = []

    def __call__(self, url: str, **kwargs):
        self.calls.append(url)
        for name, document in self.documents.items():
            if url.endswith("/" + name):
                if isinstance(document, Exception):
                    raise document
                return document
        raise FetchError(FetchErrorKind.NOT_FOUND, "HTTP Error 404: Not Found", url=url, status=404)

    def count(self, name: str) -> int:
        return sum(1 for url in self.calls if url.endswith("/" + name))


@pytest.fixture
def config():
    return config_from_dict(
        {
            "content": {"base_url": "https://raw.example.org/site/main"},
            "http": {"backoff_seconds": 0.0, "max_attempts": 1},
            "cache": {"ttl_seconds": 3600, "request_timeout_seconds": 5.0},
            "revalidate": {"secret": "s3cret"},
        }
    )


@pytest.fixture
def fake_fetch():
    return FakeFetch(
        {
            "news.json": news_document(),
            "linkedin-posts.json": {"linkedinPosts": [{"id": "p1", "date": "2025-01-01"}]},
            "partners.json": [{"name": "Acme", "logo": "acme.png"}],
            "config.json": {"summit": {"enabled": True}},
        }
    )


@pytest.fixture
def news_payload():
    return news_document()


@pytest.fixture
def make_fetch():
    return FakeFetch
