from __future__ import annotations

import argparse
import json
from contextlib import asynccontextmanager
from typing import Any, Iterable

import uvicorn
from starlette.applications import Starlette
from starlette.routing import Route

from mcp.server import Server
from mcp.server.streamable_http_manager import StreamableHTTPSessionManager
from mcp.types import CallToolResult, TextContent, Tool

from .config import load_config
from .log import log
from .tools import ToolDispatcher


def mcp_tools(dispatcher: ToolDispatcher) -> list[Tool]:
    tools: list[Tool] = []
    for item in dispatcher.list_tools()["tools"]:
        tools.append(
            Tool(
                name=item["name"],
                description=item.get("description"),
                inputSchema=item.get("inputSchema") or {"type": "object", "properties": {}},
            )
        )
    return tools


def tool_result_payload(result: object) -> CallToolResult:
    if isinstance(result, (dict, list)):
        text = json.dumps(result, ensure_ascii=False, indent=2)
    else:
        text = json.dumps({"value": result}, ensure_ascii=False, indent=2)
    structured = result if isinstance(result, dict) else None
    return CallToolResult(content=[TextContent(type="text", text=text)], structuredContent=structured)


def build_app(
    dispatcher: ToolDispatcher,
    *,
    path: str,
    json_response: bool,
    stateless: bool,
) -> Starlette:
    server = Server("maf-stream")

    @server.list_tools()
    async def list_tools() -> Iterable[Tool]:
        return mcp_tools(dispatcher)

    @server.call_tool()
    async def call_tool(name: str, arguments: dict[str, Any]):
        log(f"tools/call {name}")
        return tool_result_payload(dispatcher.call_tool(name, arguments or {}))

    session_manager = StreamableHTTPSessionManager(
        app=server,
        json_response=json_response,
        stateless=stateless,
    )

    @asynccontextmanager
    async def lifespan(_: Starlette):
        async with session_manager.run():
            yield

    route_path = path if path.startswith("/") else f"/{path}"
    return Starlette(
        routes=[Route(route_path, session_manager.handle_request)],
        lifespan=lifespan,
    )


def main(argv: list[str] | None = None) -> None:
    cfg = load_config()

    parser = argparse.ArgumentParser()
    parser.add_argument("--host", default=cfg.http.host)
    parser.add_argument("--port", type=int, default=cfg.http.port)
    parser.add_argument("--path", default=cfg.http.path)
    parser.add_argument(
        "--json-response",
        action="store_true",
        help="Return JSON responses instead of SSE streams.",
    )
    parser.add_argument(
        "--stateless",
        action="store_true",
        help="Disable session tracking (stateless StreamableHTTP).",
    )
    args = parser.parse_args(argv)

    app = build_app(
        ToolDispatcher(cfg.parse),
        path=str(args.path),
        json_response=bool(args.json_response),
        stateless=bool(args.stateless),
    )
    log(f"maf-stream MCP HTTP server on {args.host}:{args.port}{args.path}")
    uvicorn.run(app, host=str(args.host), port=int(args.port), log_level="info")


if __name__ == "__main__":
    main()
