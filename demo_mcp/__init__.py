"""
demo-mcp - A small tool server speaking a simplified MCP dialect.

Clients negotiate a protocol version, discover tools through
introspection and invoke them in ordered batches, over line-delimited
JSON on stdio or JSON over HTTP.
"""

__version__ = "0.1.0"

from .protocol import (
    Batch,
    BatchRequest,
    BatchResponse,
    ErrorCode,
    ErrorResponse,
    Handshake,
    InitializeRequest,
    InitializeResponse,
    Malformed,
    MCPError,
    MCPServerError,
    ServerInfo,
    Tool,
    ToolCall,
    ToolExecutionError,
    ToolParameter,
    ToolResult,
    TransportError,
    TransportReadError,
    TransportWriteError,
    classify_message,
)
from .handshake import HandshakeGate, HandshakeState, PROTOCOL_VERSION
from .server import MCPServer, ServerConfig, create_server
from .tools import (
    BaseTool,
    ToolInvoker,
    ToolRegistry,
    default_registry,
    validate_params,
)
from .transport import (
    Transport,
    StdioTransport,
)
from .weather import WeatherData, WeatherTool, get_weather

__all__ = [
    # Protocol
    "Batch",
    "BatchRequest",
    "BatchResponse",
    "ErrorCode",
    "ErrorResponse",
    "Handshake",
    "InitializeRequest",
    "InitializeResponse",
    "Malformed",
    "MCPError",
    "MCPServerError",
    "ServerInfo",
    "Tool",
    "ToolCall",
    "ToolExecutionError",
    "ToolParameter",
    "ToolResult",
    "TransportError",
    "TransportReadError",
    "TransportWriteError",
    "classify_message",
    # Handshake
    "HandshakeGate",
    "HandshakeState",
    "PROTOCOL_VERSION",
    # Server
    "MCPServer",
    "ServerConfig",
    "create_server",
    # Tools
    "BaseTool",
    "ToolInvoker",
    "ToolRegistry",
    "default_registry",
    "validate_params",
    "WeatherData",
    "WeatherTool",
    "get_weather",
    # Transport
    "Transport",
    "StdioTransport",
]
