from __future__ import annotations

import logging
import re
from contextlib import asynccontextmanager
from typing import Any

from fastapi import APIRouter, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from .cache import STATUS_STALE, CacheResult
from .config import Config, load_config
from .content import ContentService
from .errors import FetchError
from .rebuild import RebuildTracker, check_secret, site_paths, warm_paths
from .utils import configure_logging, epoch_to_iso, get_version, log_event, utc_now_iso

_ERROR_CODES = {
    400: "bad_request",
    401: "invalid_token",
    404: "not_found",
    405: "method_not_allowed",
    422: "invalid_request",
    503: "unavailable",
}

_NEWS_PATH = re.compile(r"^/(?:[a-z]{2}/)?news/(?P<slug>[^/]+)$")


class RevalidateRequest(BaseModel):
    secret: str | None = None


def error_response(
    status_code: int,
    error: str,
    message: str,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    return JSONResponse(
        {"success": False, "error": error, "message": message},
        status_code=status_code,
        headers=headers,
    )


def _unavailable(config: Config, error: FetchError | None, headers: dict[str, str] | None = None) -> JSONResponse:
    merged = dict(headers or {})
    merged["Retry-After"] = str(config.api.retry_after_seconds)
    message = error.message if error else "content is temporarily unavailable"
    return error_response(503, "unavailable", message, headers=merged)


def _listing_headers(config: Config) -> dict[str, str]:
    ttl = config.cache.ttl_seconds
    return {
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Methods": "GET",
        "Cache-Control": f"public, max-age={ttl}, stale-while-revalidate={ttl * 2}",
    }


def _collection_response(config: Config, result: CacheResult) -> JSONResponse:
    if not result.available:
        return _unavailable(config, result.error)
    data = result.data
    payload: dict[str, Any] = {
        "success": True,
        "data": data,
        "stale": result.status == STATUS_STALE,
        "fetched_at": result.fetched_at_iso,
    }
    if isinstance(data, list):
        payload["count"] = len(data)
    return JSONResponse(payload)


def api_router(config: Config, service: ContentService, tracker: RebuildTracker, logger: logging.Logger) -> APIRouter:
    router = APIRouter()
    timeout = config.cache.request_timeout_seconds

    @router.get("/health")
    def health() -> dict[str, object]:
        return {
            "ok": True,
            "version": get_version(),
            "time": utc_now_iso(),
            "caches": service.cache_stats(),
        }

    @router.get("/api/news")
    def news_list(locale: str | None = None, refresh: bool = False):
        headers = _listing_headers(config)
        listing = service.list_news(locale, refresh=refresh, timeout=timeout)
        if not listing.available:
            log_event(
                logger,
                logging.ERROR,
                "news_unavailable",
                masked=config.api.mask_outages,
                error=listing.error.message if listing.error else None,
            )
            if not config.api.mask_outages:
                cors = {key: value for key, value in headers.items() if key != "Cache-Control"}
                return _unavailable(config, listing.error, cors)
        return JSONResponse(
            {
                "success": True,
                "data": [item.to_dict() for item in listing.items],
                "count": len(listing.items),
                "locale": listing.locale,
                "stale": listing.status == STATUS_STALE,
                "fetched_at": epoch_to_iso(listing.fetched_at),
            },
            headers=headers,
        )

    @router.get("/api/news/{slug}")
    def news_detail(slug: str, locale: str | None = None):
        lookup = service.get_news(slug, locale, timeout=timeout)
        if not lookup.available:
            return _unavailable(config, lookup.error)
        if lookup.item is None:
            return error_response(
                404,
                "not_found",
                f"No article found with slug: {lookup.slug}",
            )
        return {
            "success": True,
            "data": lookup.item.to_dict(),
            "locale": lookup.locale,
            "stale": lookup.status == STATUS_STALE,
        }

    @router.get("/api/linkedin-posts")
    def linkedin_posts():
        return _collection_response(config, service.list_linkedin_posts(timeout=timeout))

    @router.get("/api/partners")
    def partners():
        return _collection_response(config, service.list_partners(timeout=timeout))

    @router.get("/api/site-config")
    def site_config():
        return _collection_response(config, service.get_site_config(timeout=timeout))

    @router.get("/api/rebuild-status")
    def rebuild_status(
        register_slug: str | None = Query(None, alias="registerSlug"),
        trigger_rebuild: str | None = Query(None, alias="triggerRebuild"),
    ):
        if register_slug:
            tracker.register_slug(register_slug)
        if trigger_rebuild == "true":
            tracker.trigger()
        return {"success": True, "data": tracker.status()}

    @router.post("/api/revalidate")
    def revalidate(payload: RevalidateRequest | None = None):
        candidate = payload.secret if payload else None
        if not check_secret(candidate, config.revalidate.secret):
            log_event(logger, logging.WARNING, "revalidate_rejected", reason="invalid_token")
            return error_response(401, "invalid_token", "Invalid token")
        results = service.refresh_all(timeout=timeout)
        news = results["news"]
        if not news.available:
            return _unavailable(config, news.error)
        paths = site_paths(news.data.slugs(), config.app.locales)
        build_count = tracker.trigger()
        warmed: dict[str, bool] = {}
        if config.revalidate.warm_pages:
            warmed = warm_paths(
                config.app.site_url,
                paths,
                timeout=config.revalidate.warm_timeout_seconds,
                user_agent=config.http.user_agent,
                logger=logger,
                max_workers=config.revalidate.max_workers,
            )
        succeeded = sum(1 for ok in warmed.values() if ok)
        failed = len(warmed) - succeeded
        log_event(
            logger,
            logging.INFO,
            "revalidated",
            paths=len(paths),
            warmed=succeeded,
            failed=failed,
            build_count=build_count,
        )
        return {
            "success": True,
            "revalidated": True,
            "paths": paths,
            "collections": {name: result.status for name, result in results.items()},
            "warmed": succeeded,
            "failed": failed,
            "build_count": build_count,
            "message": f"Refreshed {len(paths)} paths. Warmed: {succeeded}. Failed: {failed}.",
            "date": utc_now_iso(),
        }

    @router.api_route("/api/revalidate-path", methods=["GET", "POST"])
    def revalidate_path(secret: str | None = None, path: str | None = None):
        if not check_secret(secret, config.revalidate.secret):
            log_event(logger, logging.WARNING, "revalidate_rejected", reason="invalid_token")
            return error_response(401, "invalid_token", "Invalid token")
        if not path:
            return error_response(400, "missing_path", "Path parameter is required")
        service.invalidate_news()
        match = _NEWS_PATH.match(path)
        if match:
            tracker.register_slug(match.group("slug"))
        tracker.record_path(path)
        log_event(logger, logging.INFO, "path_revalidated", path=path)
        return {
            "success": True,
            "revalidated": True,
            "path": path,
            "date": utc_now_iso(),
        }

    return router


def create_app(
    config: Config | None = None,
    service: ContentService | None = None,
    tracker: RebuildTracker | None = None,
) -> FastAPI:
    logger = configure_logging("newsdesk.api")
    config = config or load_config()
    service = service or ContentService(config, logger=logging.getLogger("newsdesk.content"))
    tracker = tracker or RebuildTracker()

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        log_event(logger, logging.INFO, "api_started", content=config.content.base_url)
        yield
        service.close()
        log_event(logger, logging.INFO, "api_stopped")

    app = FastAPI(title="newsdesk API", lifespan=lifespan)
    app.state.config = config
    app.state.service = service
    app.state.tracker = tracker

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException):
        error = _ERROR_CODES.get(exc.status_code, "http_error")
        return error_response(exc.status_code, error, str(exc.detail), headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError):
        first = exc.errors()[0] if exc.errors() else {}
        location = ".".join(str(part) for part in first.get("loc", ()))
        message = f"{location}: {first.get('msg', 'invalid request')}" if location else "invalid request"
        return error_response(422, "invalid_request", message)

    app.include_router(api_router(config, service, tracker, logger))
    return app


_app: FastAPI | None = None


def __getattr__(name: str) -> Any:
    # ``newsdesk.api:app`` is built on first access, never at import.
    if name == "app":
        global _app
        if _app is None:
            _app = create_app()
        return _app
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
