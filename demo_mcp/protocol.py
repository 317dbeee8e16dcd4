"""
MCP Protocol definitions.

Implements the message types of the simplified MCP dialect spoken by the
server, plus the classifier that routes a raw message to the handshake or
batch tool-call path.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union


class ErrorCode(Enum):
    """Stable machine-readable error codes."""
    PARSE_ERROR = "parse_error"
    INVALID_REQUEST = "invalid_request"
    UNKNOWN_TOOL = "unknown_tool"
    TOOL_EXECUTION_ERROR = "tool_execution_error"
    UNSUPPORTED_VERSION = "unsupported_version"
    INTERNAL_ERROR = "internal_error"


class MCPServerError(Exception):
    """Base exception for server errors."""


class ToolExecutionError(MCPServerError):
    """A tool call failed validation or raised while running."""


class TransportError(MCPServerError):
    """Base for transport failures."""


class TransportReadError(TransportError):
    """Reading the next message failed. The session may keep reading."""


class TransportWriteError(TransportError):
    """Writing a response failed. Fatal for the session."""


@dataclass
class MCPError:
    """MCP Error object."""
    code: str
    message: str
    data: Optional[Any] = None

    @classmethod
    def from_code(cls, code: ErrorCode, message: str, data: Any = None) -> "MCPError":
        return cls(code=code.value, message=message, data=data)

    def to_dict(self) -> dict:
        result = {"code": self.code, "message": self.message}
        if self.data is not None:
            result["data"] = self.data
        return result


@dataclass
class ErrorResponse:
    """Protocol-level error envelope, not tied to a single tool call."""
    error: MCPError

    def to_dict(self) -> dict:
        return {"error": self.error.to_dict()}

    @classmethod
    def from_code(cls, code: ErrorCode, message: str, data: Any = None) -> "ErrorResponse":
        return cls(error=MCPError.from_code(code, message, data))


@dataclass(frozen=True)
class ToolParameter:
    """Tool parameter definition."""
    name: str
    type: str
    description: str
    required: bool = False
    default: Optional[Any] = None
    enum: Optional[tuple] = None

    def to_json_schema(self) -> dict:
        """Convert to JSON schema property."""
        schema = {
            "type": self.type,
            "description": self.description,
        }
        if self.enum is not None:
            schema["enum"] = list(self.enum)
        return schema


def object_schema(parameters) -> dict:
    """Render an ordered parameter list as a JSON schema object."""
    properties = {}
    required = []

    for param in parameters:
        properties[param.name] = param.to_json_schema()
        if param.required:
            required.append(param.name)

    schema = {"type": "object", "properties": properties}
    if required:
        schema["required"] = required
    return schema


@dataclass(frozen=True)
class Tool:
    """Tool definition exposed through introspection."""
    name: str
    description: str
    parameters: tuple = ()
    returns: Optional[tuple] = None

    def to_dict(self) -> dict:
        """Convert to the introspection catalog entry format."""
        result = {
            "name": self.name,
            "description": self.description,
            "parameters": object_schema(self.parameters),
        }
        if self.returns is not None:
            result["returns"] = object_schema(self.returns)
        return result


@dataclass
class ToolCall:
    """A single tool invocation inside a batch."""
    id: str
    name: str
    params: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> "ToolCall":
        if not isinstance(data, dict):
            raise ValueError("tool call must be a JSON object")

        call_id = data.get("id")
        if call_id is None:
            call_id = ""
        if not isinstance(call_id, str):
            raise ValueError("tool call id must be a string")

        name = data.get("name")
        if name is None:
            name = ""
        if not isinstance(name, str):
            raise ValueError("tool call name must be a string")

        params = data.get("params")
        if params is None:
            params = {}
        if not isinstance(params, dict):
            raise ValueError("tool call params must be a JSON object")

        return cls(id=call_id, name=name, params=params)


@dataclass
class ToolResult:
    """Outcome of one tool call: a result payload or an error, never both."""
    id: str
    result: Optional[Any] = None
    error: Optional[MCPError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict:
        result = {"id": self.id}
        if self.error is not None:
            result["error"] = self.error.to_dict()
        else:
            result["result"] = self.result
        return result

    @classmethod
    def success(cls, id: str, result: Any) -> "ToolResult":
        return cls(id=id, result=result)

    @classmethod
    def failure(cls, id: str, error: MCPError) -> "ToolResult":
        return cls(id=id, error=error)


@dataclass
class BatchRequest:
    """Ordered group of tool calls."""
    tools: List[ToolCall] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "BatchRequest":
        tools = data.get("tools")
        if tools is None:
            return cls()
        if not isinstance(tools, list):
            raise ValueError("'tools' must be a list")
        calls = []
        for index, entry in enumerate(tools):
            try:
                calls.append(ToolCall.from_dict(entry))
            except ValueError as e:
                raise ValueError(f"tools[{index}]: {e}") from e
        return cls(tools=calls)


@dataclass
class BatchResponse:
    """Results of a batch, one per call, in call order."""
    results: List[ToolResult] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"results": [r.to_dict() for r in self.results]}


@dataclass
class InitializeRequest:
    """Handshake request."""
    protocol_version: str
    capabilities: Dict[str, bool] = field(default_factory=dict)
    params: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> "InitializeRequest":
        version = data.get("protocolVersion")
        if not isinstance(version, str):
            raise ValueError("'protocolVersion' must be a string")

        capabilities = data.get("capabilities")
        if capabilities is None:
            capabilities = {}
        if not isinstance(capabilities, dict):
            raise ValueError("'capabilities' must be a JSON object")
        for key, value in capabilities.items():
            if not isinstance(value, bool):
                raise ValueError(f"capability '{key}' must be a boolean")

        params = data.get("params")
        if params is None:
            params = {}
        if not isinstance(params, dict):
            raise ValueError("'params' must be a JSON object")
        for key, value in params.items():
            if not isinstance(value, str):
                raise ValueError(f"param '{key}' must be a string")

        return cls(protocol_version=version, capabilities=capabilities, params=params)


@dataclass(frozen=True)
class ServerInfo:
    """Server identity metadata."""
    name: str
    version: str
    vendor: Optional[str] = None

    def to_dict(self) -> dict:
        result = {"name": self.name, "version": self.version}
        if self.vendor is not None:
            result["vendor"] = self.vendor
        return result


@dataclass
class InitializeResponse:
    """Successful handshake response."""
    protocol_version: str
    capabilities: Dict[str, bool]
    server_info: ServerInfo

    def to_dict(self) -> dict:
        return {
            "protocolVersion": self.protocol_version,
            "capabilities": dict(self.capabilities),
            "serverInfo": self.server_info.to_dict(),
        }


@dataclass
class Handshake:
    """Classified as a handshake attempt."""
    request: InitializeRequest


@dataclass
class Batch:
    """Classified as a batch of tool calls."""
    request: BatchRequest


@dataclass
class Malformed:
    """Message could not be parsed."""
    reason: str


Classified = Union[Handshake, Batch, Malformed]

HANDSHAKE_FIELD = "protocolVersion"


def classify_message(data: Union[str, bytes, dict]) -> Classified:
    """
    Decide what kind of message a raw input is.

    The message is decoded as a generic JSON object first. A
    ``protocolVersion`` key marks a handshake; anything else is parsed as a
    batch of tool calls. Never raises: parse failures come back as
    ``Malformed``.
    """
    if isinstance(data, (str, bytes, bytearray)):
        try:
            data = json.loads(data)
        except (json.JSONDecodeError, UnicodeDecodeError, RecursionError) as e:
            return Malformed(f"Invalid JSON: {e}")

    if not isinstance(data, dict):
        return Malformed("Message must be a JSON object")

    try:
        if HANDSHAKE_FIELD in data:
            return Handshake(InitializeRequest.from_dict(data))
        return Batch(BatchRequest.from_dict(data))
    except ValueError as e:
        return Malformed(str(e))
