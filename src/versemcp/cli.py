# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#                  github.com/dedalus-labs/verse-mcp/LICENSE
# ==============================================================================

"""Command-line entry point.

Usage::

    versemcp                      # stdio
    versemcp --http-port 3000     # Streamable HTTP + SSE on /mcp
"""

from __future__ import annotations

import argparse
from collections.abc import Sequence
import dataclasses
from functools import partial
import sys

import anyio

from .app import create_application
from .config import ConfigurationError, Settings
from .utils import get_logger, setup_logger


_logger = get_logger("versemcp.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="versemcp", description="Verse (UEFN) documentation MCP server.")
    parser.add_argument("--http-port", metavar="PORT", help="serve over HTTP on PORT instead of stdio")
    parser.add_argument("--host", help="bind address for HTTP mode (default: 127.0.0.1)")
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error", "critical"],
        help="log level (default: VERSEMCP_LOG_LEVEL or info)",
    )
    return parser


def parse_port(raw: str) -> int | None:
    """Return *raw* as a TCP port, or ``None`` when it is not one."""
    try:
        port = int(raw, 10)
    except ValueError:
        return None
    if not 0 < port < 65536:
        return None
    return port


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    port: int | None = None
    if args.http_port is not None:
        port = parse_port(args.http_port)
        if port is None:
            print("Invalid port number", file=sys.stderr)
            return 1

    setup_logger(level=args.log_level.upper() if args.log_level else None, force=True)

    try:
        settings = Settings.from_env()
    except ConfigurationError as exc:
        _logger.error("Invalid configuration: %s", exc)
        return 1
    if args.host:
        settings = dataclasses.replace(settings, host=args.host)

    application = create_application(settings)

    try:
        anyio.run(partial(application.serve, port=port, log_level=args.log_level or "info"))
    except KeyboardInterrupt:
        _logger.info("Interrupted, shutting down")
    except Exception:
        _logger.exception("Fatal error while serving")
        return 1
    return 0


__all__ = ["build_parser", "main", "parse_port"]
