"""CLI entry point for the Solvent MCP server."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

import uvicorn

from .config import TRANSPORTS, Settings, get_settings
from .errors import SolventMcpError
from .logging import configure_logging, mask_token
from .server import build_server

logger = logging.getLogger(__name__)


TOKEN_PREFIX = "slvt_"

_EPILOG = """\
Environment variables:
  SOLVENT_API_TOKEN   Alternative to --token (SOLVENT_TOKEN also accepted)
  SOLVENT_API_URL     Alternative to --api-url
  MCP_TRANSPORT       Alternative to --transport
  A .env file in the working directory is read as well.

Generated tools:
  list_<entities>, get_<entity>, create_<entity>, update_<entity>,
  patch_<entity> and delete_<entity>, one per endpoint in the API metadata.
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="solvent-mcp",
        description=(
            "Solvent MCP Server. Discovers API endpoints from the Solvent API "
            "metadata and generates tools dynamically."
        ),
        epilog=_EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--token", help="Solvent API token (starts with slvt_)")
    parser.add_argument("--api-url", help="Solvent API URL (default: http://localhost:3000)")
    parser.add_argument("--transport", choices=TRANSPORTS, help="MCP transport (default: stdio)")
    parser.add_argument("--host", help="Bind host for HTTP transports")
    parser.add_argument("--port", type=int, help="Bind port for HTTP transports")
    parser.add_argument("--log-level", help="Logging level (default: INFO)")
    return parser


def resolve_settings(args: argparse.Namespace, settings: Settings) -> Settings:
    overrides = {
        "solvent_api_token": args.token,
        "solvent_api_url": args.api_url,
        "mcp_transport": args.transport,
        "mcp_host": args.host,
        "mcp_port": args.port,
        "mcp_log_level": args.log_level,
    }
    update = {key: value for key, value in overrides.items() if value is not None}
    resolved = settings.model_copy(update=update)

    if not resolved.solvent_api_token:
        raise SystemExit(
            "Error: --token is required (or set SOLVENT_API_TOKEN environment variable)"
        )
    if not resolved.solvent_api_token.startswith(TOKEN_PREFIX):
        logger.warning('Token should start with "%s" prefix', TOKEN_PREFIX)
    return resolved


async def _run(settings: Settings) -> None:
    logger.info("Solvent MCP Server starting (API URL: %s)", settings.solvent_api_url)
    logger.debug("Using token %s", mask_token(settings.solvent_api_token))

    mcp, app = await build_server(settings)
    transport = settings.mcp_transport.lower()

    if transport == "stdio":
        logger.info("Solvent MCP Server ready on stdio")
        await mcp.run_stdio_async()
        return

    if not app:
        raise RuntimeError(f"HTTP app unavailable for transport={transport}")
    config = uvicorn.Config(app, host=settings.mcp_host, port=settings.mcp_port)
    server = uvicorn.Server(config)
    logger.info(
        "Solvent MCP Server ready on %s:%s (%s)", settings.mcp_host, settings.mcp_port, transport
    )
    await server.serve()


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    base = get_settings()
    configure_logging(args.log_level or base.mcp_log_level)
    settings = resolve_settings(args, base)

    try:
        asyncio.run(_run(settings))
    except SolventMcpError as exc:
        logger.error("Failed to start Solvent MCP Server: %s", exc)
        sys.exit(1)


if __name__ == "__main__":
    main()
