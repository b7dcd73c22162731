"""Starlette apps for the two HTTP transports.

``create_streamable_app`` serves stateless streamable HTTP on ``POST /mcp``.
``create_sse_app`` serves the legacy SSE pair ``GET /sse`` and
``POST /messages?sessionId=...``, one MCP server per open stream.
"""

import contextlib
import json
import logging
import uuid
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass

import anyio
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream
from mcp import types
from mcp.server import Server
from mcp.server.streamable_http_manager import StreamableHTTPSessionManager
from mcp.shared.message import SessionMessage
from pydantic import ValidationError
from sse_starlette.sse import EventSourceResponse
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route
from starlette.types import Message, Receive, Scope, Send

from sbwsz_mcp.api import SbwszClient
from sbwsz_mcp.server import create_server

logger = logging.getLogger(__name__)

PARSE_ERROR = -32700
INTERNAL_ERROR = -32603


def error_envelope(code: int, message: str, status_code: int) -> JSONResponse:
    return JSONResponse(
        {
            "jsonrpc": "2.0",
            "error": {"code": code, "message": message},
            "id": str(uuid.uuid4()),
        },
        status_code=status_code,
    )


class StatelessMcpEndpoint:
    """ASGI endpoint for ``POST /mcp``.

    The body is parsed up front so malformed JSON never reaches the MCP
    transport, then replayed into the session manager.
    """

    def __init__(self, session_manager: StreamableHTTPSessionManager) -> None:
        self.session_manager = session_manager

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        request = Request(scope, receive)
        body = await request.body()
        try:
            json.loads(body)
        except ValueError:
            logger.info("Rejected malformed JSON body on %s", request.url.path)
            await error_envelope(PARSE_ERROR, "Parse error", 400)(scope, receive, send)
            return

        replayed = False

        async def replay_receive() -> Message:
            nonlocal replayed
            if not replayed:
                replayed = True
                return {"type": "http.request", "body": body, "more_body": False}
            return await receive()

        response_started = False

        async def tracking_send(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.session_manager.handle_request(scope, replay_receive, tracking_send)
        except Exception:
            logger.exception("Error handling MCP request")
            if not response_started:
                await error_envelope(INTERNAL_ERROR, "Internal server error", 500)(
                    scope, receive, send
                )


def create_streamable_app(client: SbwszClient) -> Starlette:
    server = create_server(client)
    session_manager = StreamableHTTPSessionManager(app=server, json_response=True, stateless=True)

    @contextlib.asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        async with client, session_manager.run():
            logger.info("Stateless HTTP transport ready on /mcp")
            yield

    routes = [Route("/mcp", endpoint=StatelessMcpEndpoint(session_manager), methods=["POST"])]
    return Starlette(routes=routes, lifespan=lifespan)


@dataclass
class SseSession:
    session_id: str
    server: Server
    incoming: MemoryObjectSendStream[SessionMessage | Exception]


class SseSessionRegistry:
    """Open SSE sessions keyed by session id."""

    def __init__(self) -> None:
        self._sessions: dict[str, SseSession] = {}

    def register(self, session: SseSession) -> None:
        self._sessions[session.session_id] = session

    def lookup(self, session_id: str | None) -> SseSession | None:
        if not session_id:
            return None
        return self._sessions.get(session_id)

    def evict(self, session_id: str) -> SseSession | None:
        session = self._sessions.pop(session_id, None)
        if session is not None:
            session.incoming.close()
        return session

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions


async def sse_events(
    endpoint: str, outgoing: MemoryObjectReceiveStream[SessionMessage]
) -> AsyncIterator[dict[str, str]]:
    yield {"event": "endpoint", "data": endpoint}
    async with outgoing:
        async for session_message in outgoing:
            yield {
                "event": "message",
                "data": session_message.message.model_dump_json(by_alias=True, exclude_none=True),
            }


class SseStreamEndpoint:
    """ASGI endpoint for ``GET /sse``: one fresh server per stream."""

    def __init__(
        self,
        registry: SseSessionRegistry,
        server_factory: Callable[[], Server],
        message_path: str = "/messages",
    ) -> None:
        self.registry = registry
        self.server_factory = server_factory
        self.message_path = message_path

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        session_id = uuid.uuid4().hex
        incoming_writer, incoming_reader = anyio.create_memory_object_stream[
            SessionMessage | Exception
        ](0)
        outgoing_writer, outgoing_reader = anyio.create_memory_object_stream[SessionMessage](0)
        server = self.server_factory()
        self.registry.register(SseSession(session_id, server, incoming_writer))
        logger.info("SSE session opened: %s", session_id)

        endpoint = f"{self.message_path}?sessionId={session_id}"
        try:
            async with anyio.create_task_group() as tg:

                async def run_server() -> None:
                    async with incoming_reader, outgoing_writer:
                        await server.run(
                            incoming_reader, outgoing_writer, server.create_initialization_options()
                        )

                tg.start_soon(run_server)
                response = EventSourceResponse(sse_events(endpoint, outgoing_reader))
                await response(scope, receive, send)
                tg.cancel_scope.cancel()
        finally:
            self.registry.evict(session_id)
            logger.info("SSE session closed: %s", session_id)


class SseMessageEndpoint:
    """ASGI endpoint for ``POST /messages?sessionId=...``."""

    def __init__(self, registry: SseSessionRegistry) -> None:
        self.registry = registry

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        request = Request(scope, receive)
        session_id = request.query_params.get("sessionId")
        session = self.registry.lookup(session_id)
        if session is None:
            logger.info("POST for unknown SSE session: %s", session_id)
            await Response("Unknown session", status_code=404)(scope, receive, send)
            return

        body = await request.body()
        try:
            message = types.JSONRPCMessage.model_validate_json(body)
        except ValidationError as e:
            logger.info("Invalid JSON-RPC message for session %s: %s", session_id, e)
            await Response("Could not parse message", status_code=400)(scope, receive, send)
            return

        try:
            await session.incoming.send(SessionMessage(message))
        except (anyio.ClosedResourceError, anyio.BrokenResourceError):
            self.registry.evict(session.session_id)
            await Response("Unknown session", status_code=404)(scope, receive, send)
            return
        await Response("Accepted", status_code=202)(scope, receive, send)


def create_sse_app(client: SbwszClient, registry: SseSessionRegistry | None = None) -> Starlette:
    registry = registry if registry is not None else SseSessionRegistry()

    @contextlib.asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        async with client:
            logger.info("SSE transport ready on /sse")
            yield

    routes = [
        Route(
            "/sse",
            endpoint=SseStreamEndpoint(registry, lambda: create_server(client)),
            methods=["GET"],
        ),
        Route("/messages", endpoint=SseMessageEndpoint(registry), methods=["POST"]),
    ]
    app = Starlette(routes=routes, lifespan=lifespan)
    app.state.sessions = registry
    return app
