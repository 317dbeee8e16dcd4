"""
MCP Server implementation.

Transport-agnostic dispatch core: classifies raw messages, answers
handshakes, runs tool batches and serves introspection. The streaming
session loop lives here too; the HTTP adapter is in ``http_app``.
"""

import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from .handshake import PROTOCOL_VERSION, HandshakeGate, HandshakeState
from .protocol import (
    Batch,
    BatchRequest,
    BatchResponse,
    ErrorCode,
    ErrorResponse,
    Handshake,
    InitializeResponse,
    ServerInfo,
    TransportReadError,
    classify_message,
)
from .tools import ToolInvoker, ToolRegistry, default_registry
from .transport import Transport, StdioTransport


logger = logging.getLogger(__name__)


@dataclass
class ServerConfig:
    """Configuration for MCP server."""
    name: str = "demo-mcp"
    version: str = "0.1.0"
    vendor: Optional[str] = None
    protocol_version: str = PROTOCOL_VERSION
    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "ServerConfig":
        """Build a config from PORT, HOST, MCP_LOG_LEVEL and MCP_SERVER_VENDOR."""
        environ = os.environ if environ is None else environ
        config = cls()

        port = environ.get("PORT")
        if port:
            try:
                config.port = int(port)
            except ValueError:
                raise ValueError(f"PORT must be an integer, got {port!r}") from None

        config.host = environ.get("HOST") or config.host
        config.log_level = environ.get("MCP_LOG_LEVEL") or config.log_level
        config.vendor = environ.get("MCP_SERVER_VENDOR") or config.vendor
        return config

    def server_info(self) -> ServerInfo:
        return ServerInfo(name=self.name, version=self.version, vendor=self.vendor)


class MCPServer:
    """
    MCP Server that handles message classification, dispatch and the
    streaming session loop.

    Each instance owns one HandshakeState. A streaming session gets its own
    server; the HTTP app shares one instance across requests.
    """

    def __init__(
        self,
        config: Optional[ServerConfig] = None,
        registry: Optional[ToolRegistry] = None,
        state: Optional[HandshakeState] = None,
    ):
        self.config = config or ServerConfig()
        self.registry = registry if registry is not None else default_registry()
        self.invoker = ToolInvoker(self.registry)
        self.gate = HandshakeGate(
            self.config.server_info(),
            state=state,
            protocol_version=self.config.protocol_version,
        )
    @property
    def state(self) -> HandshakeState:
        return self.gate.state

    def process_batch(self, request: BatchRequest) -> BatchResponse:
        """Run every tool call of a batch in order."""
        if not self.state.initialized:
            logger.debug("Serving tool calls before handshake")
        return BatchResponse(results=self.invoker.invoke_batch(request.tools))

    def introspect(self) -> dict:
        """Describe the tool catalog."""
        return {
            "version": self.config.version,
            "tools": [t.to_dict() for t in self.registry.list_tools()],
        }

    def dispatch(
        self, raw: Union[str, bytes, dict]
    ) -> Union[InitializeResponse, BatchResponse, ErrorResponse]:
        """Classify a raw message and produce its response object."""
        message = classify_message(raw)

        if isinstance(message, Handshake):
            return self.gate.negotiate(message.request)

        if isinstance(message, Batch):
            return self.process_batch(message.request)

        logger.error(f"Failed to decode request: {message.reason}")
        return ErrorResponse.from_code(
            ErrorCode.PARSE_ERROR,
            f"Invalid request format: {message.reason}",
        )

    def handle_message(self, raw: Union[str, bytes, dict]) -> Dict[str, Any]:
        """Handle an incoming message and return the response as a dict."""
        try:
            return self.dispatch(raw).to_dict()
        except Exception as e:
            logger.exception(f"Error handling message: {e}")
            return ErrorResponse.from_code(ErrorCode.INTERNAL_ERROR, str(e)).to_dict()

    async def run(self, transport: Optional[Transport] = None) -> None:
        """
        Run the streaming session loop until end of input.

        Raises:
            TransportWriteError: if a response cannot be written.
        """
        transport = transport or StdioTransport()
        logger.info(f"MCP Server {self.config.name} v{self.config.version} starting")

        try:
            async with transport:
                while True:
                    try:
                        raw = await transport.receive()
                    except TransportReadError as e:
                        logger.error(f"Error reading from input: {e}")
                        continue

                    if raw is None:
                        logger.info("Input closed, shutting down")
                        break

                    if not raw.strip():
                        continue

                    await transport.send(self.handle_message(raw))
        finally:
            logger.info("Server stopped")


def create_server(
    config: Optional[ServerConfig] = None,
    registry: Optional[ToolRegistry] = None,
) -> MCPServer:
    """
    Create an MCP server with configuration and tools.

    Args:
        config: Server configuration, read from the environment if omitted
        registry: Tool catalog, the built-in one if omitted

    Returns:
        Configured MCPServer instance
    """
    config = config or ServerConfig.from_env()
    server = MCPServer(config, registry=registry)
    logger.debug(f"Created server with {len(server.registry)} tools")
    return server
