from __future__ import annotations

import copy
import os
from dataclasses import dataclass
from typing import Any

import yaml

from .errors import ConfigError


@dataclass(frozen=True)
class AppConfig:
    name: str
    site_url: str
    default_locale: str
    locales: list[str]


@dataclass(frozen=True)
class ContentConfig:
    base_url: str
    news_path: str
    linkedin_path: str
    partners_path: str
    config_path: str

    def url_for(self, path: str) -> str:
        return f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"


@dataclass(frozen=True)
class HttpConfig:
    user_agent: str
    max_attempts: int
    base_timeout_seconds: float
    backoff_seconds: float


@dataclass(frozen=True)
class CacheConfig:
    ttl_seconds: int
    request_timeout_seconds: float


@dataclass(frozen=True)
class ApiConfig:
    mask_outages: bool
    retry_after_seconds: int


@dataclass(frozen=True)
class RevalidateConfig:
    secret: str
    warm_pages: bool
    warm_timeout_seconds: float
    max_workers: int


@dataclass(frozen=True)
class Config:
    app: AppConfig
    content: ContentConfig
    http: HttpConfig
    cache: CacheConfig
    api: ApiConfig
    revalidate: RevalidateConfig


DEFAULT_CONFIG: dict[str, Any] = {
    "app": {
        "name": "newsdesk",
        "site_url": "https://example.org",
        "default_locale": "en",
        "locales": ["en", "ar"],
    },
    "content": {
        "base_url": "https://raw.githubusercontent.com/example/site-content/main",
        "news_path": "news.json",
        "linkedin_path": "linkedin-posts.json",
        "partners_path": "partners.json",
        "config_path": "config.json",
    },
    "http": {
        "user_agent": "newsdesk/0.1",
        "max_attempts": 3,
        "base_timeout_seconds": 3.0,
        "backoff_seconds": 1.0,
    },
    "cache": {
        "ttl_seconds": 3600,
        "request_timeout_seconds": 8.0,
    },
    "api": {
        "mask_outages": False,
        "retry_after_seconds": 30,
    },
    "revalidate": {
        "secret": "",
        "warm_pages": False,
        "warm_timeout_seconds": 10.0,
        "max_workers": 4,
    },
}

ENV_OVERRIDES: dict[str, tuple[str, str, type]] = {
    "ND_CONTENT_BASE_URL": ("content", "base_url", str),
    "ND_REVALIDATE_SECRET": ("revalidate", "secret", str),
    "ND_CACHE_TTL_SECONDS": ("cache", "ttl_seconds", int),
}


def get_config_path() -> str | None:
    return os.environ.get("ND_CONFIG_PATH") or None


def load_config(path: str | None = None) -> Config:
    cfg = load_raw_config(path)
    return _build_config(cfg)


def load_raw_config(path: str | None = None) -> dict[str, Any]:
    path = path or get_config_path()
    overrides: dict[str, Any] = {}
    if path:
        overrides = _read_yaml(path)
    cfg = _deep_merge(copy.deepcopy(DEFAULT_CONFIG), overrides)
    _apply_env_overrides(cfg)
    errors = validate_config(cfg)
    if errors:
        raise ConfigError("Invalid config: " + "; ".join(errors))
    return cfg


def _read_yaml(path: str) -> dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
    except FileNotFoundError as exc:
        raise ConfigError(f"Config file not found: {path}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Config file is not valid YAML: {path}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError("Config file must contain a mapping")
    return data


def _deep_merge(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            base[key] = _deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def _apply_env_overrides(cfg: dict[str, Any]) -> None:
    for env_name, (section, key, caster) in ENV_OVERRIDES.items():
        raw = os.environ.get(env_name)
        if raw is None or raw == "":
            continue
        try:
            value = caster(raw)
        except ValueError as exc:
            raise ConfigError(f"{env_name} must be {caster.__name__}") from exc
        section_cfg = cfg.get(section)
        if isinstance(section_cfg, dict):
            section_cfg[key] = value


def validate_config(cfg: dict[str, Any]) -> list[str]:
    errors: list[str] = []
    _validate_dict(cfg, DEFAULT_CONFIG, "config", errors)
    if errors:
        return errors
    if cfg["http"]["max_attempts"] < 1:
        errors.append("config.http.max_attempts must be at least 1")
    if cfg["cache"]["ttl_seconds"] < 0:
        errors.append("config.cache.ttl_seconds must not be negative")
    if cfg["revalidate"]["max_workers"] < 1:
        errors.append("config.revalidate.max_workers must be at least 1")
    if cfg["app"]["default_locale"] not in cfg["app"]["locales"]:
        errors.append("config.app.default_locale must be one of config.app.locales")
    return errors


def _validate_dict(value: dict[str, Any], schema: dict[str, Any], path: str, errors: list[str]) -> None:
    if not isinstance(value, dict):
        errors.append(f"{path} must be an object")
        return
    for key in schema.keys():
        if key not in value:
            errors.append(f"missing {path}.{key}")
    for key in value.keys():
        if key not in schema:
            errors.append(f"unknown {path}.{key}")
    for key, default in schema.items():
        if key not in value:
            continue
        _validate_value(value[key], default, f"{path}.{key}", errors)


def _validate_value(value: Any, default: Any, path: str, errors: list[str]) -> None:
    if isinstance(default, dict):
        if not isinstance(value, dict):
            errors.append(f"{path} must be an object")
            return
        _validate_dict(value, default, path, errors)
        return
    if isinstance(default, list):
        if not isinstance(value, list):
            errors.append(f"{path} must be a list")
            return
        for item in value:
            if not isinstance(item, str):
                errors.append(f"{path} must be a list of strings")
                break
        return
    if isinstance(default, bool):
        if not isinstance(value, bool):
            errors.append(f"{path} must be a boolean")
        return
    if isinstance(default, int):
        if not isinstance(value, int) or isinstance(value, bool):
            errors.append(f"{path} must be an integer")
        return
    if isinstance(default, float):
        if not isinstance(value, (int, float)) or isinstance(value, bool):
            errors.append(f"{path} must be a number")
        return
    if isinstance(default, str):
        if not isinstance(value, str):
            errors.append(f"{path} must be a string")
        return


def _build_config(cfg: dict[str, Any]) -> Config:
    app_cfg = cfg["app"]
    content_cfg = cfg["content"]
    http_cfg = cfg["http"]
    cache_cfg = cfg["cache"]
    api_cfg = cfg["api"]
    revalidate_cfg = cfg["revalidate"]

    app = AppConfig(
        name=str(app_cfg["name"]),
        site_url=str(app_cfg["site_url"]).rstrip("/"),
        default_locale=str(app_cfg["default_locale"]),
        locales=list(app_cfg["locales"]),
    )

    content = ContentConfig(
        base_url=str(content_cfg["base_url"]).rstrip("/"),
        news_path=str(content_cfg["news_path"]),
        linkedin_path=str(content_cfg["linkedin_path"]),
        partners_path=str(content_cfg["partners_path"]),
        config_path=str(content_cfg["config_path"]),
    )

    http = HttpConfig(
        user_agent=str(http_cfg["user_agent"]),
        max_attempts=int(http_cfg["max_attempts"]),
        base_timeout_seconds=float(http_cfg["base_timeout_seconds"]),
        backoff_seconds=float(http_cfg["backoff_seconds"]),
    )

    cache = CacheConfig(
        ttl_seconds=int(cache_cfg["ttl_seconds"]),
        request_timeout_seconds=float(cache_cfg["request_timeout_seconds"]),
    )

    api = ApiConfig(
        mask_outages=bool(api_cfg["mask_outages"]),
        retry_after_seconds=int(api_cfg["retry_after_seconds"]),
    )

    revalidate = RevalidateConfig(
        secret=str(revalidate_cfg["secret"]),
        warm_pages=bool(revalidate_cfg["warm_pages"]),
        warm_timeout_seconds=float(revalidate_cfg["warm_timeout_seconds"]),
        max_workers=int(revalidate_cfg["max_workers"]),
    )

    return Config(
        app=app,
        content=content,
        http=http,
        cache=cache,
        api=api,
        revalidate=revalidate,
    )


def config_from_dict(overrides: dict[str, Any] | None = None) -> Config:
    cfg = _deep_merge(copy.deepcopy(DEFAULT_CONFIG), overrides or {})
    errors = validate_config(cfg)
    if errors:
        raise ConfigError("Invalid config: " + "; ".join(errors))
    return _build_config(cfg)
