"""
Roblox Studio MCP server.

Exposes the Studio tool catalog over MCP stdio. Tool calls are parked on the
bridge until the Studio plugin polls the HTTP server for them and posts the
result back. With ROBLOX_STUDIO_BRIDGE_URL set, calls are forwarded to a
bridge that another process already hosts.
"""

from __future__ import annotations

import asyncio
from typing import Any, Optional, Union

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.shared.exceptions import McpError
from mcp.types import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    METHOD_NOT_FOUND,
    CallToolRequest,
    CallToolResult,
    ErrorData,
    ServerResult,
    TextContent,
    Tool,
)

from .bridge.client import StudioHttpClient
from .bridge.http_server import BridgeHTTPServer
from .bridge.service import BridgeService
from .shared.config import AppConfig, load_config
from .shared.errors import InvalidArgument, RobloxStudioError, TransportFailure, UnknownOperation
from .shared.logging import configure_logging, get_logger
from .tools.dispatch import ToolDispatcher
from .tools.facade import RobloxStudioTools
from .tools.registry import list_definitions

SERVER_NAME = "robloxstudio-mcp"

app = Server(SERVER_NAME)
logger = get_logger(__name__)

bridge = BridgeService()
tools = RobloxStudioTools(bridge)
dispatcher = ToolDispatcher(tools)
backend: Union[ToolDispatcher, StudioHttpClient] = dispatcher


def _tool_definitions() -> list[Tool]:
    return [
        Tool(name=tool.name, description=tool.description, inputSchema=tool.input_schema)
        for tool in list_definitions()
    ]


def _to_text_content(envelope: dict[str, Any]) -> list[TextContent]:
    return [
        TextContent(type="text", text=str(block.get("text", "")))
        for block in envelope.get("content", [])
        if isinstance(block, dict)
    ]


@app.list_tools()
async def list_tools() -> list[Tool]:
    return _tool_definitions()


async def call_tool(name: str, arguments: Optional[dict[str, Any]]) -> list[TextContent]:
    try:
        envelope = await backend.dispatch(name, arguments or {})
    except UnknownOperation as exc:
        raise McpError(ErrorData(code=METHOD_NOT_FOUND, message=exc.message)) from exc
    except InvalidArgument as exc:
        raise McpError(ErrorData(code=INVALID_PARAMS, message=exc.message)) from exc
    except RobloxStudioError as exc:
        raise McpError(
            ErrorData(code=INTERNAL_ERROR, message=f"Tool execution failed: {exc.message}")
        ) from exc
    return _to_text_content(envelope)


async def _handle_call_tool(request: CallToolRequest) -> ServerResult:
    # McpError raised here is answered as a JSON-RPC error, not an isError result.
    content = await call_tool(request.params.name, request.params.arguments)
    return ServerResult(CallToolResult(content=content, isError=False))


app.request_handlers[CallToolRequest] = _handle_call_tool


def _start_local_bridge(config: AppConfig) -> BridgeHTTPServer:
    global bridge, tools, dispatcher, backend
    bridge = BridgeService(timeout=config.bridge.timeout)
    tools = RobloxStudioTools(bridge)
    dispatcher = ToolDispatcher(tools)
    backend = dispatcher

    try:
        http_server = BridgeHTTPServer(
            bridge,
            dispatcher,
            host=config.bridge.host,
            port=config.bridge.port,
        )
    except OSError as exc:
        raise TransportFailure(
            f"Could not listen on {config.bridge.host}:{config.bridge.port}: {exc}"
        ) from exc
    http_server.start()
    bridge.start_sweeper(config.bridge.sweep_interval)
    return http_server


async def run_server(config: Optional[AppConfig] = None) -> None:
    global backend
    config = config or load_config()
    logger.info("Starting Roblox Studio MCP server")

    http_server: Optional[BridgeHTTPServer] = None
    if config.bridge.url:
        backend = StudioHttpClient(config.bridge.url, timeout=config.bridge.timeout + 5.0)
        logger.info("Forwarding tool calls to bridge at %s", config.bridge.url)
    else:
        http_server = _start_local_bridge(config)
        logger.info("Waiting for Studio plugin to connect...")

    try:
        async with stdio_server() as (read_stream, write_stream):
            await app.run(read_stream, write_stream, app.create_initialization_options())
    finally:
        if http_server is not None:
            http_server.stop()
            bridge.close()


def main() -> None:
    config = load_config()
    configure_logging(config.logging)
    try:
        asyncio.run(run_server(config))
    except TransportFailure as exc:
        logger.error("Server failed to start: %s", exc)
        raise SystemExit(1) from exc
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")


if __name__ == "__main__":
    main()
