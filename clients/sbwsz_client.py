import anyio, time, json, argparse, sys
from contextlib import AsyncExitStack
from mcp import ClientSession, types
from mcp.client.stdio import stdio_client, StdioServerParameters
from mcp.client.sse import sse_client
from mcp.client.streamable_http import streamablehttp_client


def render_result(result: types.CallToolResult) -> dict:
    """JSON-friendly summary of a tool result; image payloads are summarised, not dumped."""
    content = []
    for item in result.content:
        if isinstance(item, types.TextContent):
            content.append({"type": "text", "text": item.text})
        elif isinstance(item, types.ImageContent):
            content.append({"type": "image", "mime_type": item.mimeType, "base64_length": len(item.data)})
        else:
            content.append({"type": item.type})
    return {"is_error": bool(result.isError), "content": content}


class SbwszMcpClient:
    """Persistent MCP client for a running SBWSZ server on any transport."""

    def __init__(self, transport: str = "stdio", base_url: str = "http://127.0.0.1:3000") -> None:
        self._stack: AsyncExitStack | None = None
        self._session: ClientSession | None = None
        self._transport = transport
        self._base_url = base_url.rstrip("/")

    async def _open_streams(self, stack: AsyncExitStack):
        if self._transport == "stdio":
            server_params = StdioServerParameters(command=sys.executable, args=["-m", "sbwsz_mcp"])
            return await stack.enter_async_context(stdio_client(server_params))
        if self._transport == "sse":
            return await stack.enter_async_context(sse_client(f"{self._base_url}/sse"))
        if self._transport == "http":
            read, write, _ = await stack.enter_async_context(streamablehttp_client(f"{self._base_url}/mcp"))
            return read, write
        raise ValueError(f"unknown transport: {self._transport}")

    async def start(self) -> None:
        self._stack = AsyncExitStack()
        await self._stack.__aenter__()
        streams = await self._open_streams(self._stack)
        session = ClientSession(*streams)
        await self._stack.enter_async_context(session)
        await session.initialize()
        self._session = session

    async def list_tools(self) -> list[str]:
        if not self._session:
            raise RuntimeError("client not started")
        tools = await self._session.list_tools()
        return [t.name for t in tools.tools]

    async def call_tool(self, name: str, arguments: dict) -> tuple[float, types.CallToolResult]:
        if not self._session:
            raise RuntimeError("client not started")
        start = time.perf_counter()
        res = await self._session.call_tool(name, arguments)
        latency = (time.perf_counter() - start) * 1000
        return latency, res

    async def close(self) -> None:
        if self._stack:
            await self._stack.aclose()
            self._stack = None
            self._session = None


async def main():
    ap = argparse.ArgumentParser(description="Call a tool on a running SBWSZ MCP server")
    ap.add_argument("tool", nargs="?", default=None)
    ap.add_argument("--args", default="{}", help="tool arguments as a JSON object")
    ap.add_argument("--transport", choices=["stdio", "http", "sse"], default="stdio")
    ap.add_argument("--base-url", default="http://127.0.0.1:3000")
    ap.add_argument("--list", action="store_true", help="list the server's tools and exit")
    args = ap.parse_args()

    client = SbwszMcpClient(args.transport, args.base_url)
    await client.start()
    try:
        if args.list or not args.tool:
            print(json.dumps({"tools": await client.list_tools()}))
            return
        latency, res = await client.call_tool(args.tool, json.loads(args.args))
        print(json.dumps({"latency_ms": latency, **render_result(res)}, ensure_ascii=False))
    finally:
        await client.close()


if __name__ == "__main__":
    anyio.run(main)
