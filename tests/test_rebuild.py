import logging
from urllib.error import URLError

from newsdesk import rebuild
from newsdesk.rebuild import RebuildTracker, check_secret, site_paths, warm_paths


def test_site_paths_cover_every_locale():
    assert site_paths(["a"], ["en", "ar"]) == [
        "/",
        "/all-news",
        "/news",
        "/news/a",
        "/en/news/a",
        "/ar/news/a",
    ]


def test_check_secret():
    assert check_secret("s3cret", "s3cret") is True
    assert check_secret("wrong", "s3cret") is False
    assert check_secret(None, "s3cret") is False
    assert check_secret("", "") is False


def test_tracker_counts_and_deduplicates():
    now = [100.0]
    tracker = RebuildTracker(wall_clock=lambda: now[0])
    assert tracker.register_slug("a") is True
    assert tracker.register_slug("a") is False
    now[0] = 130.0
    assert tracker.trigger() == 1
    tracker.record_path("/news/a")
    status = tracker.status()
    assert status["build_count"] == 1
    assert status["registered_slugs"] == ["a"]
    assert status["uptime_seconds"] == 30.0
    assert status["recent_paths"][0]["path"] == "/news/a"


def test_warm_paths_reports_failures(monkeypatch):
    requested = []

    class _Response:
        def __enter__(self):
            return self

        def __exit__(self, *exc):
            return False

        def read(self):
            return b"<html></html>"

    def _fake_urlopen(request, timeout):
        requested.append(request.full_url)
        if request.full_url.endswith("/news"):
            raise URLError("refused")
        return _Response()

    monkeypatch.setattr(rebuild, "urlopen", _fake_urlopen)
    results = warm_paths(
        "https://example.org/",
        ["/", "/news"],
        timeout=1.0,
        user_agent="test",
        logger=logging.getLogger("test"),
        max_workers=2,
    )
    assert results == {"/": True, "/news": False}
    assert sorted(requested) == ["https://example.org/", "https://example.org/news"]
