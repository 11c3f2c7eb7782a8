from __future__ import annotations

import json
import logging
import socket
import time
from typing import Any, Callable
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from .errors import FetchError, FetchErrorKind
from .utils import log_event

_NOT_FOUND_STATUSES = {404, 410}
_TRANSIENT_STATUSES = {408, 425, 429, 500, 502, 503, 504}


def attempt_timeout(base_timeout_seconds: float, attempt: int) -> float:
    return base_timeout_seconds * (2 ** attempt)


def backoff_delay(backoff_seconds: float, attempt: int) -> float:
    return backoff_seconds * (2 ** attempt)


def fetch_json(
    url: str,
    *,
    max_attempts: int = 3,
    base_timeout_seconds: float = 3.0,
    backoff_seconds: float = 1.0,
    user_agent: str = "newsdesk/0.1",
    logger: logging.Logger | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> Any:
    """GET ``url`` and decode it as JSON, retrying transient failures.

    The socket timeout doubles on every attempt and attempts are separated
    by an exponential backoff. Not-found and fatal failures are raised
    immediately; after the last attempt the last error is raised.
    """
    logger = logger or logging.getLogger("newsdesk.fetcher")
    headers = {
        "User-Agent": user_agent,
        "Accept": "application/json",
        "Cache-Control": "no-cache",
    }
    last_error: FetchError | None = None
    for attempt in range(max(1, max_attempts)):
        timeout = attempt_timeout(base_timeout_seconds, attempt)
        try:
            return _get_json(url, headers, timeout)
        except FetchError as exc:
            last_error = exc
            log_event(
                logger,
                logging.WARNING,
                "fetch_attempt_failed",
                url=url,
                attempt=attempt + 1,
                timeout=timeout,
                kind=exc.kind.value,
                status=exc.status,
                error=exc.message,
            )
            if not exc.retryable:
                raise
            if attempt < max_attempts - 1:
                sleep(backoff_delay(backoff_seconds, attempt))
    if last_error is None:
        last_error = FetchError(FetchErrorKind.FATAL, "no fetch attempted", url=url)
    raise last_error


def _get_json(url: str, headers: dict[str, str], timeout: float) -> Any:
    request = Request(url, headers=headers)
    try:
        with urlopen(request, timeout=timeout) as response:
            status = response.getcode()
            content = response.read()
    except HTTPError as exc:
        raise _classify_http_error(url, exc.code, str(exc)) from exc
    except (socket.timeout, TimeoutError) as exc:
        raise FetchError(
            FetchErrorKind.TRANSIENT, f"timed out after {timeout:g}s", url=url
        ) from exc
    except URLError as exc:
        raise FetchError(FetchErrorKind.TRANSIENT, str(exc.reason), url=url) from exc
    except OSError as exc:
        raise FetchError(FetchErrorKind.TRANSIENT, str(exc), url=url) from exc
    if status is not None and status >= 400:
        raise _classify_http_error(url, status, f"HTTP Error {status}")
    return decode_json(url, content)


def _classify_http_error(url: str, status: int, message: str) -> FetchError:
    if status in _NOT_FOUND_STATUSES:
        kind = FetchErrorKind.NOT_FOUND
    elif status in _TRANSIENT_STATUSES or status >= 500:
        kind = FetchErrorKind.TRANSIENT
    else:
        kind = FetchErrorKind.FATAL
    return FetchError(kind, message, url=url, status=status)


def decode_json(url: str, content: bytes) -> Any:
    try:
        return json.loads(content.decode("utf-8-sig"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise FetchError(
            FetchErrorKind.FATAL, f"response is not valid JSON: {exc}", url=url
        ) from exc
