"""MCP server setup for the Solvent API."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from fastmcp.tools import Tool
from fastmcp.tools.tool import ToolResult
from mcp.types import TextContent, ToolAnnotations
from pydantic import Field
from starlette.middleware import Middleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from .config import Settings
from .executors import RestExecutor
from .metadata import MetadataClient
from .models import ServerContext, ToolDescriptor
from .service import ToolDispatcher
from .tool_registry import ToolRegistry

logger = logging.getLogger(__name__)


MCP_PATH = "/mcp"
SSE_PATH = "/sse"
_PUBLIC_PATHS = ("/health", "/info")


class EndpointTool(Tool):
    """A generated tool that forwards its arguments to the dispatcher."""

    dispatcher: Any = Field(exclude=True)

    async def run(self, arguments: Dict[str, Any]) -> ToolResult:
        result = await self.dispatcher.call_tool(self.name, arguments)
        if result.is_error:
            raise ToolError(result.text)
        return ToolResult(
            content=[TextContent(type="text", text=item["text"]) for item in result.content]
        )


async def build_dispatcher(
    settings: Settings,
    metadata_client: Optional[MetadataClient] = None,
    executor: Optional[RestExecutor] = None,
) -> ToolDispatcher:
    """Fetch metadata and derive the tool set. Raises on any startup failure."""
    api_url = settings.solvent_api_url.rstrip("/")
    metadata_client = metadata_client or MetadataClient(
        api_url=api_url,
        token=settings.solvent_api_token,
        meta_path=settings.solvent_meta_path,
        timeout_seconds=settings.solvent_api_timeout_seconds,
        verify_ssl=settings.solvent_api_verify_ssl,
    )
    metadata = await metadata_client.fetch_metadata()
    logger.info(
        "Discovered %s entities with %s endpoints",
        len(metadata.entities),
        metadata.endpoint_count,
    )

    context = ServerContext(api_url=api_url, token=settings.solvent_api_token, metadata=metadata)
    registry = ToolRegistry.from_metadata(metadata, allowlist=settings.tool_allowlist())
    logger.info("Generated %s tools: %s", len(registry), ", ".join(registry.names))

    executor = executor or RestExecutor(
        timeout_seconds=settings.solvent_api_timeout_seconds,
        verify_ssl=settings.solvent_api_verify_ssl,
    )
    return ToolDispatcher(
        context,
        registry,
        executor=executor,
        validate_arguments=settings.mcp_validate_arguments,
    )


async def build_server(
    settings: Settings,
    metadata_client: Optional[MetadataClient] = None,
    executor: Optional[RestExecutor] = None,
) -> Tuple[FastMCP, object | None]:
    dispatcher = await build_dispatcher(settings, metadata_client, executor)
    metadata = dispatcher.context.metadata

    mcp = FastMCP(settings.service_name, instructions=_instructions())
    for descriptor in dispatcher.list_tools():
        mcp.add_tool(_endpoint_tool(dispatcher, descriptor))
        logger.debug("Registered tool: %s", descriptor.name)

    _attach_routes(mcp, settings, metadata.version, dispatcher.registry.names)
    app = _get_http_app(mcp, settings)
    return mcp, app


def _endpoint_tool(dispatcher: ToolDispatcher, descriptor: ToolDescriptor) -> EndpointTool:
    return EndpointTool(
        name=descriptor.name,
        description=descriptor.description,
        parameters=descriptor.input_schema,
        annotations=ToolAnnotations(**descriptor.annotations),
        dispatcher=dispatcher,
    )


def _attach_routes(
    mcp: FastMCP, settings: Settings, version: str, tool_names: List[str]
) -> None:
    @mcp.custom_route("/health", methods=["GET"])
    async def healthcheck(_request: Request) -> JSONResponse:
        return JSONResponse({"status": "ok"})

    endpoint_path = transport_path(settings)

    @mcp.custom_route("/info", methods=["GET"])
    async def info(_request: Request) -> JSONResponse:
        return JSONResponse(
            {
                "name": settings.service_name,
                "version": version,
                "description": "MCP server for Solvent - Personal Finance Manager",
                "endpoints": {"mcp": endpoint_path},
                "tools": tool_names,
                "usage": f"Connect to {endpoint_path} with an Authorization: Bearer <token> header",
            }
        )


def _instructions() -> str:
    return (
        "Solvent personal finance API. "
        "Tools are generated from the API metadata: list_<entity>, get_<entity>, "
        "create_<entity>, update_<entity>, patch_<entity> and delete_<entity>."
    )


def transport_path(settings: Settings) -> str:
    """Path the MCP endpoint is mounted at for the configured transport."""
    if settings.mcp_transport.lower() == "sse":
        return SSE_PATH
    return MCP_PATH


def _get_http_app(mcp: FastMCP, settings: Settings):  # type: ignore[no-untyped-def]
    transport = settings.mcp_transport.lower()
    middleware = _middleware(settings)
    if transport in {"http", "streamable-http", "streamablehttp"}:
        return mcp.http_app(
            path=MCP_PATH,
            transport="streamable-http",
            stateless_http=True,
            json_response=True,
            middleware=middleware,
        )
    if transport == "sse":
        return mcp.http_app(path=SSE_PATH, transport="sse", middleware=middleware)
    return None


def _middleware(settings: Settings) -> List[Middleware]:
    middleware = [
        Middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    ]
    if settings.mcp_auth_token:
        middleware.append(Middleware(BaseHTTPMiddleware, dispatch=_auth_dispatch(settings)))
    else:
        logger.warning("MCP_AUTH_TOKEN not set; HTTP transport is unauthenticated")
    return middleware


def _auth_dispatch(settings: Settings):  # type: ignore[no-untyped-def]
    async def auth_middleware(request, call_next):  # type: ignore[no-untyped-def]
        if request.method == "OPTIONS":
            return await call_next(request)
        if request.url.path.endswith(_PUBLIC_PATHS):
            return await call_next(request)

        auth_header = request.headers.get("authorization", "")
        token = auth_header.replace("Bearer", "", 1).strip()
        if token and token == settings.mcp_auth_token:
            return await call_next(request)

        logger.warning("Rejected unauthenticated request to %s", request.url.path)
        return JSONResponse({"error": "Missing or invalid Authorization header"}, status_code=401)

    return auth_middleware
