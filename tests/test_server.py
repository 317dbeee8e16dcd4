"""Tests for demo_mcp.server module."""

import pytest
import io
import json

from demo_mcp.handshake import PROTOCOL_VERSION, HandshakeState
from demo_mcp.protocol import (
    BatchRequest,
    ErrorResponse,
    InitializeResponse,
    ToolCall,
    ToolParameter,
    TransportReadError,
    TransportWriteError,
)
from demo_mcp.server import MCPServer, ServerConfig, create_server
from demo_mcp.tools import BaseTool, ToolRegistry
from demo_mcp.transport import StdioTransport


class ObjectTool(BaseTool):
    """Returns a value JSON cannot encode."""

    @property
    def name(self) -> str:
        return "object"

    @property
    def description(self) -> str:
        return "Returns an unserialisable object"

    @property
    def parameters(self):
        return []

    def execute(self):
        return object()


class ScriptedTransport(StdioTransport):
    """Replays a script of lines and read errors."""

    def __init__(self, script):
        super().__init__(io.StringIO(), io.StringIO())
        self.script = list(script)

    async def receive(self):
        if not self.script:
            return None
        item = self.script.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


def weather_batch(*calls):
    return json.dumps({
        "tools": [
            {"id": call_id, "name": "get_weather", "params": params}
            for call_id, params in calls
        ]
    })


def responses(transport):
    return [json.loads(line) for line in transport.output.getvalue().splitlines()]


class TestServerConfig:
    def test_defaults(self):
        config = ServerConfig()
        assert config.name == "demo-mcp"
        assert config.port == 8080
        assert config.protocol_version == PROTOCOL_VERSION

    def test_from_env(self):
        config = ServerConfig.from_env({
            "PORT": "9090",
            "HOST": "127.0.0.1",
            "MCP_LOG_LEVEL": "DEBUG",
            "MCP_SERVER_VENDOR": "acme",
        })
        assert config.port == 9090
        assert config.host == "127.0.0.1"
        assert config.log_level == "DEBUG"
        assert config.vendor == "acme"

    def test_from_env_empty(self):
        assert ServerConfig.from_env({}) == ServerConfig()

    def test_from_env_bad_port(self):
        with pytest.raises(ValueError, match="PORT"):
            ServerConfig.from_env({"PORT": "eighty"})


class TestMCPServer:
    def test_create(self):
        server = MCPServer()
        assert "get_weather" in server.registry
        assert server.state.initialized is False

    def test_create_with_empty_registry(self):
        server = MCPServer(registry=ToolRegistry())
        assert len(server.registry) == 0

    def test_shared_state(self):
        state = HandshakeState()
        server = MCPServer(state=state)
        assert server.state is state

    def test_process_batch(self):
        server = MCPServer()
        response = server.process_batch(BatchRequest(tools=[
            ToolCall("1", "get_weather", {"location": "Paris"}),
            ToolCall("2", "unknown", {}),
        ]))
        assert [r.id for r in response.results] == ["1", "2"]
        assert response.results[0].ok
        assert response.results[1].error.code == "unknown_tool"

    def test_introspect(self):
        server = MCPServer()
        first = server.introspect()
        assert first["version"] == "0.1.0"
        assert first["tools"][0]["name"] == "get_weather"
        assert server.introspect() == first

    def test_dispatch_handshake(self):
        server = MCPServer()
        response = server.dispatch(json.dumps({"protocolVersion": PROTOCOL_VERSION, "capabilities": {}}))
        assert isinstance(response, InitializeResponse)
        assert server.state.initialized is True

    def test_dispatch_bad_version(self):
        server = MCPServer()
        response = server.dispatch(json.dumps({"protocolVersion": "0.0.1", "capabilities": {}}))
        assert isinstance(response, ErrorResponse)
        assert response.error.code == "unsupported_version"
        assert server.state.initialized is False

    def test_dispatch_malformed(self):
        server = MCPServer()
        response = server.dispatch("{not json")
        assert isinstance(response, ErrorResponse)
        assert response.error.code == "parse_error"
        assert response.error.message.startswith("Invalid request format:")

    def test_dispatch_deeply_nested(self):
        server = MCPServer()
        response = server.dispatch("[" * 100000 + "]" * 100000)
        assert isinstance(response, ErrorResponse)
        assert response.error.code == "parse_error"

    def test_tool_calls_allowed_before_handshake(self):
        server = MCPServer()
        response = server.handle_message(weather_batch(("1", {"location": "Paris"})))
        assert server.state.initialized is False
        assert response["results"][0]["result"]["units"] == "metric"

    def test_handle_message_preserves_order(self):
        server = MCPServer()
        calls = [(str(i), {"location": f"City {i}"}) for i in range(10)]
        response = server.handle_message(weather_batch(*calls))
        assert [r["id"] for r in response["results"]] == [str(i) for i in range(10)]
        assert [r["result"]["location"] for r in response["results"]] == [f"City {i}" for i in range(10)]

    def test_handle_message_empty_batch(self):
        server = MCPServer()
        assert server.handle_message('{"tools": []}') == {"results": []}


class TestRunLoop:
    @pytest.mark.asyncio
    async def test_session(self):
        server = MCPServer()
        transport = ScriptedTransport([
            json.dumps({"protocolVersion": PROTOCOL_VERSION, "capabilities": {"tools": True}}),
            weather_batch(("a", {"location": "Paris"}), ("b", {"units": "kelvin"})),
        ])

        await server.run(transport)

        first, second = responses(transport)
        assert first["protocolVersion"] == PROTOCOL_VERSION
        assert first["serverInfo"]["name"] == "demo-mcp"
        assert [r["id"] for r in second["results"]] == ["a", "b"]
        assert "error" in second["results"][1]
        assert server.state.initialized is True

    @pytest.mark.asyncio
    async def test_malformed_line_does_not_stop_loop(self):
        server = MCPServer()
        transport = ScriptedTransport([
            "this is not json",
            weather_batch(("1", {"location": "Paris"})),
        ])

        await server.run(transport)

        first, second = responses(transport)
        assert first["error"]["code"] == "parse_error"
        assert second["results"][0]["result"]["location"] == "Paris"

    @pytest.mark.asyncio
    async def test_read_error_does_not_stop_loop(self):
        server = MCPServer()
        transport = ScriptedTransport([
            TransportReadError("hiccup"),
            weather_batch(("1", {"location": "Paris"})),
        ])

        await server.run(transport)

        (only,) = responses(transport)
        assert only["results"][0]["id"] == "1"

    @pytest.mark.asyncio
    async def test_blank_lines_skipped(self):
        server = MCPServer()
        transport = ScriptedTransport(["", "   ", '{"tools": []}'])

        await server.run(transport)

        assert responses(transport) == [{"results": []}]

    @pytest.mark.asyncio
    async def test_unencodable_result(self):
        server = MCPServer(registry=ToolRegistry([ObjectTool()]))
        transport = ScriptedTransport([
            '{"tools": [{"id": "1", "name": "object", "params": {}}]}',
            '{"tools": []}',
        ])

        await server.run(transport)

        first, second = responses(transport)
        assert first["error"]["code"] == "internal_error"
        assert second == {"results": []}

    @pytest.mark.asyncio
    async def test_write_failure_is_fatal(self):
        server = MCPServer()
        transport = ScriptedTransport(['{"tools": []}'])
        await transport.close()

        with pytest.raises(TransportWriteError):
            await server.run(transport)

    @pytest.mark.asyncio
    async def test_eof_ends_cleanly(self):
        server = MCPServer()
        transport = StdioTransport(io.StringIO(""), io.StringIO())
        await server.run(transport)
        assert transport.output.getvalue() == ""


class TestCreateServer:
    def test_reads_env(self, monkeypatch):
        monkeypatch.setenv("MCP_SERVER_VENDOR", "acme")
        server = create_server()
        assert server.config.vendor == "acme"

    def test_custom_registry(self):
        registry = ToolRegistry([ObjectTool()])
        server = create_server(config=ServerConfig(), registry=registry)
        assert server.registry is registry
        assert "get_weather" not in server.registry
