import json

import pytest
from mcp.shared.memory import create_connected_server_and_client_session

from conftest import RecordingApi
from sbwsz_mcp.server import SERVER_NAME, create_server, run

pytestmark = pytest.mark.anyio


async def test_list_tools_over_mcp(client):
    async with create_connected_server_and_client_session(create_server(client)) as session:
        result = await session.list_tools()
    assert [t.name for t in result.tools][:2] == ["get_card_by_set_and_number", "search_cards"]
    assert len(result.tools) == 6


async def test_call_tool_over_mcp():
    payload = {"code": "NEO", "name": "神河：霓朝纪"}
    api = RecordingApi(json=payload)
    async with create_connected_server_and_client_session(create_server(api.client())) as session:
        result = await session.call_tool("get_set", {"set_code": "neo"})
    assert result.isError is False
    assert json.loads(result.content[0].text) == payload
    assert api.last.url.path == "/api/v1/set/NEO"


async def test_unknown_tool_over_mcp(client):
    async with create_connected_server_and_client_session(create_server(client)) as session:
        result = await session.call_tool("not_a_tool", {})
    assert result.isError is True
    assert "not_a_tool" in result.content[0].text


async def test_schema_is_not_enforced_locally(api, client):
    async with create_connected_server_and_client_session(create_server(client)) as session:
        result = await session.call_tool("search_cards", {"q": "t:elf", "page_size": "lots"})
    assert result.isError is False
    assert api.last.url.params["page_size"] == "lots"


def test_server_identity(client):
    srv = create_server(client)
    assert srv.name == SERVER_NAME


@pytest.fixture
def startup_env(monkeypatch):
    for key in ("TRANSPORT", "HOST", "PORT", "SBWSZ_API_URL", "SBWSZ_TIMEOUT", "LOG_LEVEL"):
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


def test_startup_fault_exits_1(startup_env):
    startup_env.setenv("PORT", "eighty")
    with pytest.raises(SystemExit) as exc:
        run([])
    assert exc.value.code == 1


def test_bad_flag_exits_1(startup_env):
    with pytest.raises(SystemExit) as exc:
        run(["--bogus"])
    assert exc.value.code == 1


def test_help_exits_0(startup_env):
    with pytest.raises(SystemExit) as exc:
        run(["--help"])
    assert exc.value.code == 0
