from __future__ import annotations

from enum import Enum


class ConfigError(ValueError):
    pass


class FetchErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    TRANSIENT = "transient"
    FATAL = "fatal"


class FetchError(Exception):
    """Failure to retrieve or decode a remote content document.

    ``kind`` decides what callers may do about it: only transient failures
    are worth another attempt.
    """

    def __init__(
        self,
        kind: FetchErrorKind,
        message: str,
        *,
        url: str | None = None,
        status: int | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.url = url
        self.status = status

    @property
    def retryable(self) -> bool:
        return self.kind is FetchErrorKind.TRANSIENT

    def to_dict(self) -> dict[str, object]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "url": self.url,
            "status": self.status,
        }

    def __repr__(self) -> str:
        return f"FetchError(kind={self.kind.value!r}, message={self.message!r}, status={self.status!r})"
