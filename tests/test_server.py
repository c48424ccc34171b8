from __future__ import annotations

import httpx
import pytest
from fastmcp import Client

from solvent_mcp.config import Settings
from solvent_mcp.errors import MetadataFetchError
from solvent_mcp.executors import RestExecutor
from solvent_mcp.metadata import MetadataClient
from solvent_mcp.server import build_server


API_URL = "https://solvent.test"


def _settings(**overrides) -> Settings:
    values = {
        "solvent_api_url": API_URL,
        "solvent_api_token": "slvt_server",
        "mcp_transport": "stdio",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def upstream(metadata_document):
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if request.url.path == "/api/v1/meta":
            return httpx.Response(200, json={"success": True, "data": metadata_document})
        if request.url.path == "/api/v1/expenses/missing":
            return httpx.Response(404, json={"success": False, "error": "Expense not found"})
        return httpx.Response(200, json={"success": True, "data": {"path": request.url.path}})

    handler.requests = requests
    return handler


async def _build(settings: Settings, handler, mock_http):
    metadata_client = MetadataClient(
        api_url=settings.solvent_api_url,
        token=settings.solvent_api_token,
        http_client_factory=mock_http(handler),
    )
    executor = RestExecutor(http_client_factory=mock_http(handler))
    return await build_server(settings, metadata_client=metadata_client, executor=executor)


async def test_generated_tools_are_listed_with_their_schemas(upstream, mock_http):
    mcp, app = await _build(_settings(), upstream, mock_http)

    async with Client(mcp) as client:
        tools = {tool.name: tool for tool in await client.list_tools()}

    assert app is None
    assert len(tools) == 15
    schema = tools["create_recurring"].inputSchema
    assert schema["properties"]["frequency"]["enum"] == ["daily", "weekly", "monthly", "yearly"]
    assert schema["required"] == ["amount", "currency", "category_id", "frequency"]
    assert tools["delete_expense"].annotations.destructiveHint is True


async def test_tool_call_round_trips_through_the_dispatcher(upstream, mock_http):
    mcp, _ = await _build(_settings(), upstream, mock_http)

    async with Client(mcp) as client:
        result = await client.call_tool_mcp("get_income", {"id": "i-1"})

    assert not result.isError
    assert '"path": "/api/v1/incomes/i-1"' in result.content[0].text


async def test_upstream_failures_surface_as_tool_errors(upstream, mock_http):
    mcp, _ = await _build(_settings(), upstream, mock_http)

    async with Client(mcp) as client:
        result = await client.call_tool_mcp("get_expense", {"id": "missing"})

    assert result.isError
    assert "HTTP 404: Expense not found" in result.content[0].text


async def test_allowlist_limits_registered_tools(upstream, mock_http):
    mcp, _ = await _build(_settings(mcp_tool_allowlist="expenses"), upstream, mock_http)

    async with Client(mcp) as client:
        names = [tool.name for tool in await client.list_tools()]

    assert sorted(names) == sorted(
        ["list_expenses", "get_expense", "create_expense", "update_expense", "delete_expense"]
    )


async def test_failed_metadata_fetch_aborts_startup(mock_http):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"success": False, "error": "Invalid token"})

    with pytest.raises(MetadataFetchError, match="Invalid token"):
        await _build(_settings(), handler, mock_http)


async def test_http_app_serves_health_and_info(upstream, mock_http):
    _, app = await _build(_settings(mcp_transport="streamable-http"), upstream, mock_http)

    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="http://mcp.test"
    ) as client:
        health = await client.get("/health")
        info = await client.get("/info")

    assert health.json() == {"status": "ok"}
    payload = info.json()
    assert payload["version"] == "1.2.0"
    assert payload["endpoints"] == {"mcp": "/mcp"}
    assert "list_expenses" in payload["tools"]


async def test_http_app_requires_configured_token(upstream, mock_http):
    settings = _settings(mcp_transport="streamable-http", mcp_auth_token="secret")
    _, app = await _build(settings, upstream, mock_http)

    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="http://mcp.test"
    ) as client:
        denied = await client.post("/mcp", json={})
        health = await client.get("/health")

    assert denied.status_code == 401
    assert health.status_code == 200


async def test_info_reports_the_sse_endpoint(upstream, mock_http):
    _, app = await _build(_settings(mcp_transport="sse"), upstream, mock_http)

    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="http://mcp.test"
    ) as client:
        info = await client.get("/info")

    payload = info.json()
    assert payload["endpoints"] == {"mcp": "/sse"}
    assert payload["usage"].startswith("Connect to /sse ")
