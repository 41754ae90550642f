from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import structlog
import uvicorn

from roomstream.domain.exceptions import StreamResolutionError
from roomstream.infrastructure.config import AppConfig, load_config
from roomstream.infrastructure.douyu.endpoints import is_room_page_url
from roomstream.infrastructure.logging.setup import configure_logging
from roomstream.interfaces.composition import (
    create_http_client,
    create_resolve_stream_use_case,
    create_signature_cache,
)
from roomstream.interfaces.main import build_app

log = structlog.get_logger(__name__)

EXIT_OK = 0
EXIT_NO_STREAM = 1
EXIT_ERROR = 2


def _add_config_flags(parser: argparse.ArgumentParser) -> None:
    # Config wiring flags (no business logic)
    parser.add_argument(
        "--config",
        default=None,
        help="Path to YAML config file.",
    )
    parser.add_argument(
        "--dotenv",
        default=None,
        help="Path to .env file.",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Override log level.",
    )
    parser.add_argument(
        "--log-format",
        default=None,
        choices=["json", "console"],
        help="Override log format.",
    )


def _parse_args(argv: Iterable[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="roomstream")
    commands = parser.add_subparsers(dest="command", required=True)

    serve = commands.add_parser("serve", help="Run the HTTP API.")
    serve.add_argument(
        "--host",
        default=None,
        help="Bind host (overrides HOST env).",
    )
    serve.add_argument(
        "--port",
        default=None,
        type=int,
        help="Bind port (overrides PORT env).",
    )
    _add_config_flags(serve)

    resolve = commands.add_parser("resolve", help="Resolve one room and print JSON.")
    resolve.add_argument("address", help="Numeric room id.")
    resolve.add_argument("--quality", default=None, help="Desired quality code.")
    resolve.add_argument("--circuit", default=None, help="Desired CDN circuit code.")
    _add_config_flags(resolve)

    return parser.parse_args(list(argv) if argv is not None else None)


def _load(args: argparse.Namespace) -> AppConfig:
    cli_overrides: dict[str, Any] = {}
    if args.log_level:
        cli_overrides["log_level"] = args.log_level
    if args.log_format:
        cli_overrides["log_format"] = args.log_format

    return load_config(
        config_path=Path(args.config) if args.config else None,
        dotenv_path=Path(args.dotenv) if args.dotenv else None,
        cli_overrides=cli_overrides,
    )


async def _resolve_once(
    config: AppConfig, address: str, quality: str | None, circuit: str | None
) -> int:
    async with create_http_client(config) as http_client:
        signature_cache = create_signature_cache(config, http_client)
        use_case = create_resolve_stream_use_case(config, http_client, signature_cache)
        try:
            result = await use_case.execute(address, quality, circuit)
        except StreamResolutionError as e:
            log.error("resolve_failed", address=address, error=str(e))
            return EXIT_ERROR

    if result is None:
        log.info("resolve_no_stream", address=address)
        return EXIT_NO_STREAM

    print(json.dumps(result.to_dict(), ensure_ascii=False))
    return EXIT_OK


def start(argv: Iterable[str] | None = None) -> int:
    """
    Process entrypoint.

    Loads config exactly once, then either serves the API or runs a
    one-shot resolution.
    """
    if argv is None:
        argv = sys.argv[1:]

    args = _parse_args(argv)
    config = _load(args)
    log_config = configure_logging(config)

    if args.command == "resolve":
        if is_room_page_url(args.address):
            log.error(
                "resolve_page_url_given",
                address=args.address,
                hint="pass the numeric room id, not the page URL",
            )
            return EXIT_ERROR
        return asyncio.run(
            _resolve_once(config, args.address, args.quality, args.circuit)
        )

    host = args.host or os.getenv("HOST", "0.0.0.0")
    port = int(args.port or os.getenv("PORT", "7979"))

    uvicorn.run(
        build_app(config),
        host=host,
        port=port,
        log_config=log_config,
    )
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(start())
