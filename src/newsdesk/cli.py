from __future__ import annotations

import argparse
import logging
import os
import sys

from .config import Config, ConfigError, load_config, load_raw_config
from .content import ContentService
from .rebuild import site_paths
from .utils import json_dumps, log_event


def _setup_logging() -> logging.Logger:
    level_name = os.environ.get("ND_LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.WARNING),
        format="%(asctime)s %(levelname)s %(message)s",
        stream=sys.stderr,
    )
    return logging.getLogger("newsdesk")


def _load(args: argparse.Namespace, logger: logging.Logger) -> Config | None:
    try:
        return load_config(args.config)
    except ConfigError as exc:
        log_event(logger, logging.ERROR, "config_error", error=str(exc))
        return None


def _print_json(value: object) -> None:
    sys.stdout.write(json_dumps(value, indent=2) + "\n")


def _cmd_serve(args: argparse.Namespace, logger: logging.Logger) -> int:
    config = _load(args, logger)
    if config is None:
        return 1
    import uvicorn

    from .api import create_app

    uvicorn.run(create_app(config), host=args.host, port=args.port)
    return 0


def _cmd_news_list(args: argparse.Namespace, logger: logging.Logger) -> int:
    config = _load(args, logger)
    if config is None:
        return 1
    service = ContentService(config, logger=logger)
    try:
        listing = service.list_news(args.locale, refresh=args.refresh)
    finally:
        service.close()
    if not listing.available:
        log_event(
            logger,
            logging.ERROR,
            "news_unavailable",
            error=listing.error.message if listing.error else None,
        )
        return 1
    _print_json(
        {
            "locale": listing.locale,
            "status": listing.status,
            "count": len(listing.items),
            "data": [item.to_dict() for item in listing.items],
        }
    )
    return 0


def _cmd_news_show(args: argparse.Namespace, logger: logging.Logger) -> int:
    config = _load(args, logger)
    if config is None:
        return 1
    service = ContentService(config, logger=logger)
    try:
        lookup = service.get_news(args.slug, args.locale)
    finally:
        service.close()
    if not lookup.available:
        log_event(
            logger,
            logging.ERROR,
            "news_unavailable",
            error=lookup.error.message if lookup.error else None,
        )
        return 1
    if lookup.item is None:
        log_event(logger, logging.ERROR, "news_not_found", slug=lookup.slug)
        return 1
    _print_json(lookup.item.to_dict())
    return 0


def _cmd_paths(args: argparse.Namespace, logger: logging.Logger) -> int:
    config = _load(args, logger)
    if config is None:
        return 1
    service = ContentService(config, logger=logger)
    try:
        result = service.news()
    finally:
        service.close()
    if not result.available:
        log_event(
            logger,
            logging.ERROR,
            "news_unavailable",
            error=result.error.message if result.error else None,
        )
        return 1
    locales = args.locale or config.app.locales
    for path in site_paths(result.data.slugs(), locales):
        sys.stdout.write(path + "\n")
    return 0


def _cmd_config_show(args: argparse.Namespace, logger: logging.Logger) -> int:
    try:
        cfg = load_raw_config(args.config)
    except ConfigError as exc:
        log_event(logger, logging.ERROR, "config_error", error=str(exc))
        return 1
    revalidate = dict(cfg["revalidate"])
    if revalidate.get("secret"):
        revalidate["secret"] = "***"
    _print_json({**cfg, "revalidate": revalidate})
    return 0


def _cmd_config_validate(args: argparse.Namespace, logger: logging.Logger) -> int:
    if _load(args, logger) is None:
        return 1
    sys.stdout.write("config ok\n")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="newsdesk", description="newsdesk CLI")
    parser.add_argument(
        "--config",
        dest="config",
        default=None,
        help="Path to config.yml (defaults to ND_CONFIG_PATH, then built-in defaults)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)
    serve_parser.set_defaults(func=_cmd_serve)

    news_parser = subparsers.add_parser("news", help="Read news from the content repository")
    news_subparsers = news_parser.add_subparsers(dest="news_command", required=True)

    news_list = news_subparsers.add_parser("list", help="Print every news record")
    news_list.add_argument("--locale", default="en", help="en or ar")
    news_list.add_argument("--refresh", action="store_true", help="Ignore the cache")
    news_list.set_defaults(func=_cmd_news_list)

    news_show = news_subparsers.add_parser("show", help="Print one news record")
    news_show.add_argument("slug")
    news_show.add_argument("--locale", default="en", help="en or ar")
    news_show.set_defaults(func=_cmd_news_show)

    paths_parser = subparsers.add_parser("paths", help="Print the site paths for every article")
    paths_parser.add_argument(
        "--locale",
        action="append",
        default=[],
        help="Locale prefix to include (repeatable, defaults to app.locales)",
    )
    paths_parser.set_defaults(func=_cmd_paths)

    config_parser = subparsers.add_parser("config", help="Configuration commands")
    config_subparsers = config_parser.add_subparsers(dest="config_command", required=True)

    config_show = config_subparsers.add_parser("show", help="Print the effective config")
    config_show.set_defaults(func=_cmd_config_show)

    config_validate = config_subparsers.add_parser("validate", help="Validate the config")
    config_validate.set_defaults(func=_cmd_config_validate)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logger = _setup_logging()
    return args.func(args, logger)


if __name__ == "__main__":
    raise SystemExit(main())
