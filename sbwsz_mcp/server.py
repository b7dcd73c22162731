"""SBWSZ MCP server.

Run over stdio (default), stateless streamable HTTP (``--http``) or the legacy
SSE transport (``--sse``):

    python -m sbwsz_mcp
    python -m sbwsz_mcp --http --port 3000
    TRANSPORT=sse PORT=8081 python -m sbwsz_mcp
"""

import logging
import sys

import anyio
import uvicorn
from mcp import types
from mcp.server import Server
from mcp.server.stdio import stdio_server

from sbwsz_mcp import tools
from sbwsz_mcp.api import SbwszClient
from sbwsz_mcp.config import ServerConfig, load_config
from sbwsz_mcp.dispatch import dispatch

SERVER_NAME = "mcp-server/sbwsz"
SERVER_VERSION = "1.0.2"

logger = logging.getLogger(__name__)


def create_server(client: SbwszClient) -> Server:
    srv = Server(SERVER_NAME, version=SERVER_VERSION)

    @srv.list_tools()
    async def list_tools() -> list[types.Tool]:
        return tools.list_tools()

    # Arguments go to the remote API as given; it reports bad input itself.
    @srv.call_tool(validate_input=False)
    async def call_tool(name: str, arguments: dict) -> types.CallToolResult:
        return await dispatch(client, name, arguments)

    return srv


def build_client(config: ServerConfig) -> SbwszClient:
    return SbwszClient(base_url=config.api_url, timeout=config.timeout)


async def serve_stdio(config: ServerConfig) -> None:
    async with build_client(config) as client:
        srv = create_server(client)
        async with stdio_server() as (read, write):
            logger.info("SBWSZ MCP server running on stdio")
            await srv.run(read, write, srv.create_initialization_options())


async def serve_http(config: ServerConfig) -> None:
    from sbwsz_mcp.http_app import create_sse_app, create_streamable_app

    client = build_client(config)
    if config.transport == "sse":
        app = create_sse_app(client)
    else:
        app = create_streamable_app(client)
    uv_config = uvicorn.Config(
        app=app, host=config.host, port=config.port, log_level=config.log_level.lower()
    )
    logger.info(
        "SBWSZ MCP server (%s) listening on http://%s:%d", config.transport, config.host, config.port
    )
    await uvicorn.Server(uv_config).serve()


async def main(config: ServerConfig) -> None:
    if config.transport == "stdio":
        await serve_stdio(config)
    else:
        await serve_http(config)


def configure_logging(level: str) -> None:
    # stdout carries the stdio transport, so logs always go to stderr
    logging.basicConfig(
        level=level,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def run(argv: list[str] | None = None) -> None:
    try:
        config = load_config(argv)
        configure_logging(config.log_level)
        anyio.run(main, config)
    except KeyboardInterrupt:
        pass
    except SystemExit as e:
        # argparse exits 2 on bad flags; every startup fault exits 1
        if e.code not in (0, None):
            sys.exit(1)
        raise
    except Exception:
        logging.getLogger(__name__).exception("Fatal error starting SBWSZ MCP server")
        sys.exit(1)


if __name__ == "__main__":
    run()
