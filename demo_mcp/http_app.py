"""FastAPI application exposing the MCP dispatch core over HTTP."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from .protocol import ErrorResponse
from .server import MCPServer, ServerConfig, create_server

logger = logging.getLogger(__name__)


def create_app(
    server: Optional[MCPServer] = None,
    config: Optional[ServerConfig] = None,
) -> FastAPI:
    """
    Create the HTTP application.

    All requests share one server, and with it one handshake state and the
    read-only tool registry. Nothing else is kept between requests.
    """
    if server is None:
        server = create_server(config)

    app = FastAPI(
        title=server.config.name,
        description="Tool server speaking a simplified MCP dialect",
        version=server.config.version,
    )
    app.state.server = server

    @app.post("/mcp")
    async def handle_mcp(request: Request) -> JSONResponse:
        """Run a batch of tool calls (or a handshake) from the request body."""
        body = await request.body()
        response = server.dispatch(body)

        if isinstance(response, ErrorResponse):
            logger.error(f"Rejected request: {response.error.message}")
            return JSONResponse(response.to_dict(), status_code=400)

        return JSONResponse(response.to_dict())

    @app.get("/mcp/introspection")
    async def introspection() -> dict:
        """List the tool catalog."""
        return server.introspect()

    @app.get("/health", response_class=PlainTextResponse)
    async def health() -> str:
        """Basic health check."""
        return "OK"

    return app
