"""pvdb-metrics command line entry point.

Usage:
    pvdb-metrics                                   # config file / env / defaults
    pvdb-metrics -d "host=db port=5432" --port 9200
    pvdb-metrics --config ./pvdb-metrics.toml --log.json

Exit codes: 0 after a graceful shutdown, 1 on any startup failure.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any

import structlog
import uvicorn
from sqlalchemy.exc import ArgumentError

from main import create_app
from shared.config import Settings, default_search_dirs, load_settings, resolve_config_file
from shared.database import create_db_engine, redact_dsn, wait_for_database
from shared.exceptions import DatabaseUnavailableError, ExporterError, ServerStartupError
from shared.logging import configure_logging

logger = structlog.get_logger()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pvdb-metrics",
        description="Run prometheus metrics collection for pvdb.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="config file (default: first pvdb-metrics.toml in /etc, ~/.config, .)",
    )
    parser.add_argument(
        "--log.json",
        dest="log_json",
        action="store_true",
        default=None,
        help="print logs as json to stderr",
    )
    parser.add_argument("--log-level", default=None, help="minimum log level")
    parser.add_argument(
        "-d", "--database-url", default=None, help="DSN for database connection"
    )
    parser.add_argument("--port", type=int, default=None, help="port to serve /metrics on")
    return parser


def flag_overrides(args: argparse.Namespace) -> dict[str, Any]:
    """Nested settings overrides for the flags that were actually given."""
    overrides: dict[str, dict[str, Any]] = {}
    if args.database_url is not None:
        overrides.setdefault("database", {})["url"] = args.database_url
    if args.port is not None:
        overrides.setdefault("server", {})["port"] = args.port
    if args.log_json is not None:
        overrides.setdefault("log", {})["json"] = args.log_json
    if args.log_level is not None:
        overrides.setdefault("log", {})["level"] = args.log_level
    return overrides


def serve(settings: Settings) -> None:
    """Connect, build the app and block in uvicorn until shutdown."""
    engine = create_db_engine(settings.database)
    try:
        connected = wait_for_database(
            engine, settings.database.url, attempts=settings.database.connect_attempts
        )
        if not connected and settings.database.fail_on_connect_error:
            raise DatabaseUnavailableError(
                redact_dsn(settings.database.url), settings.database.connect_attempts
            )
        app = create_app(settings, engine)
        run_server(app, settings.server.host, settings.server.port)
    finally:
        engine.dispose()


def run_server(app: Any, host: str, port: int) -> None:
    """Block in uvicorn until shutdown. Raises ServerStartupError if it never started."""
    server = uvicorn.Server(
        uvicorn.Config(app, host=host, port=port, log_config=None, access_log=False)
    )
    try:
        server.run()
    # uvicorn exits with STARTUP_FAILURE when the port cannot be bound
    except SystemExit as exc:
        raise ServerStartupError(host, port) from exc
    if not server.started:
        raise ServerStartupError(host, port)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as exc:
        return 0 if exc.code in (0, None) else 1

    try:
        config_file = resolve_config_file(args.config)
        settings = load_settings(config_file, **flag_overrides(args))
    # pydantic ValidationError, SettingsError and TOMLDecodeError are ValueErrors
    except (ExporterError, ValueError) as exc:
        configure_logging()
        logger.error("startup_failed", error=str(exc))
        return 1

    configure_logging(json_output=settings.log.as_json, level=settings.log.level)
    if config_file is not None:
        logger.debug("config_file_loaded", path=str(config_file))
    else:
        logger.debug("config_file_not_found", searched=[str(d) for d in default_search_dirs()])

    try:
        serve(settings)
    except (ExporterError, ArgumentError) as exc:
        logger.error("startup_failed", error=str(exc))
        return 1
    logger.info("exporter_stopped")
    return 0


if __name__ == "__main__":
    sys.exit(main())
