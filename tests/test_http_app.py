import json

from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route
from starlette.testclient import TestClient

from conftest import RecordingApi
from sbwsz_mcp.http_app import StatelessMcpEndpoint, create_streamable_app

MCP_HEADERS = {
    "Accept": "application/json, text/event-stream",
    "Content-Type": "application/json",
}


class EchoManager:
    """Stands in for the session manager and echoes the replayed body."""

    def __init__(self):
        self.bodies = []

    async def handle_request(self, scope, receive, send):
        body = await Request(scope, receive).body()
        self.bodies.append(body)
        await JSONResponse({"echo": json.loads(body)})(scope, receive, send)


class FailingManager:
    async def handle_request(self, scope, receive, send):
        raise RuntimeError("transport exploded")


def _app_with(manager):
    return Starlette(routes=[Route("/mcp", endpoint=StatelessMcpEndpoint(manager), methods=["POST"])])


def test_malformed_json_is_rejected_with_envelope(client):
    tc = TestClient(create_streamable_app(client))
    resp = tc.post("/mcp", content=b"{not json", headers=MCP_HEADERS)
    assert resp.status_code == 400
    body = resp.json()
    assert body["jsonrpc"] == "2.0"
    assert body["error"]["code"] == -32700
    assert body["id"]


def test_empty_body_is_rejected(client):
    tc = TestClient(create_streamable_app(client))
    resp = tc.post("/mcp", content=b"", headers=MCP_HEADERS)
    assert resp.status_code == 400


def test_get_is_not_allowed(client):
    tc = TestClient(create_streamable_app(client))
    resp = tc.get("/mcp")
    assert resp.status_code == 405
    assert resp.headers["allow"] == "POST"


def test_unknown_path_is_404(client):
    tc = TestClient(create_streamable_app(client))
    assert tc.post("/elsewhere", json={}).status_code == 404


def test_body_is_replayed_to_session_manager():
    manager = EchoManager()
    tc = TestClient(_app_with(manager))
    envelope = {"jsonrpc": "2.0", "id": 7, "method": "tools/list"}
    resp = tc.post("/mcp", json=envelope)
    assert resp.status_code == 200
    assert resp.json() == {"echo": envelope}
    assert json.loads(manager.bodies[0]) == envelope


def test_unhandled_error_becomes_500_envelope():
    tc = TestClient(_app_with(FailingManager()), raise_server_exceptions=False)
    resp = tc.post("/mcp", json={"jsonrpc": "2.0", "id": 1, "method": "tools/list"})
    assert resp.status_code == 500
    body = resp.json()
    assert body["error"]["code"] == -32603
    assert body["id"]


def test_stateless_round_trip():
    payload = {"sets": [{"code": "NEO"}]}
    api = RecordingApi(json=payload)
    with TestClient(create_streamable_app(api.client())) as tc:
        listed = tc.post(
            "/mcp",
            json={"jsonrpc": "2.0", "id": 1, "method": "tools/list", "params": {}},
            headers=MCP_HEADERS,
        )
        called = tc.post(
            "/mcp",
            json={
                "jsonrpc": "2.0",
                "id": 2,
                "method": "tools/call",
                "params": {"name": "get_sets", "arguments": {}},
            },
            headers=MCP_HEADERS,
        )

    assert listed.status_code == 200
    assert "mcp-session-id" not in listed.headers
    assert len(listed.json()["result"]["tools"]) == 6

    assert called.status_code == 200
    result = called.json()["result"]
    assert result["isError"] is False
    assert json.loads(result["content"][0]["text"]) == payload
