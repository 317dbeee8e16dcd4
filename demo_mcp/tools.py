"""
MCP Tools implementation.

Provides the tool base class, the schema-driven parameter validator, the
static tool registry and the invoker that turns a tool call into a result.
"""

import dataclasses
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional

from .protocol import (
    ErrorCode,
    MCPError,
    Tool,
    ToolCall,
    ToolExecutionError,
    ToolParameter,
    ToolResult,
)


logger = logging.getLogger(__name__)


class BaseTool(ABC):
    """Base class for MCP tools."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Tool name."""
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        """Tool description."""
        pass

    @property
    @abstractmethod
    def parameters(self) -> List[ToolParameter]:
        """Tool parameters."""
        pass

    @property
    def returns(self) -> Optional[List[ToolParameter]]:
        """Properties of the result payload, if described."""
        return None

    @abstractmethod
    def execute(self, **kwargs) -> Any:
        """Execute the tool with validated parameters."""
        pass

    def get_definition(self) -> Tool:
        """Get the MCP tool definition."""
        returns = self.returns
        return Tool(
            name=self.name,
            description=self.description,
            parameters=tuple(self.parameters),
            returns=tuple(returns) if returns is not None else None,
        )


def _matches_type(value: Any, type_name: str) -> bool:
    # bool is an int subclass but never a number here
    if type_name == "string":
        return isinstance(value, str)
    if type_name == "boolean":
        return isinstance(value, bool)
    if isinstance(value, bool):
        return False
    if type_name == "number":
        return isinstance(value, (int, float))
    if type_name == "integer":
        return isinstance(value, int) or (isinstance(value, float) and value.is_integer())
    raise ValueError(f"Unsupported parameter type: {type_name}")


def _allowed_values(values: Iterable[Any]) -> str:
    quoted = [f"'{v}'" for v in values]
    if len(quoted) == 2:
        return f"either {quoted[0]} or {quoted[1]}"
    return "one of " + ", ".join(quoted)


def validate_params(
    parameters: Iterable[ToolParameter],
    params: Dict[str, Any],
) -> Dict[str, Any]:
    """
    Validate and coerce a loosely typed parameter bag against a schema.

    Absent values (missing key or null) take the declared default, required
    ones are rejected. Present values must match the declared primitive
    type and, for enumerated parameters, the allowed set. Keys the schema
    does not declare are dropped.

    Returns:
        The keyword arguments to call the tool with.

    Raises:
        ToolExecutionError: on the first violation found.
    """
    parameters = list(parameters)
    validated = {}

    for param in parameters:
        value = params.get(param.name)

        if value is None:
            if param.required:
                raise ToolExecutionError(f"{param.name} parameter is required")
            if param.default is not None:
                validated[param.name] = param.default
            continue

        if not _matches_type(value, param.type):
            article = "an" if param.type[0] in "aeiou" else "a"
            raise ToolExecutionError(f"{param.name} must be {article} {param.type}")

        if param.type == "integer":
            value = int(value)

        if param.enum is not None and value not in param.enum:
            raise ToolExecutionError(
                f"{param.name} must be {_allowed_values(param.enum)}"
            )

        validated[param.name] = value

    ignored = set(params) - {p.name for p in parameters}
    if ignored:
        logger.debug(f"Ignoring undeclared parameters: {sorted(ignored)}")

    return validated


class ToolRegistry:
    """
    Static catalog of tools.

    Populated once at construction. Lookup is case-insensitive and the
    rendered definitions are cached so introspection output never changes
    within a process.
    """

    def __init__(self, tools: Iterable[BaseTool] = ()):
        self._tools: Dict[str, BaseTool] = {}
        for tool in tools:
            key = tool.name.lower()
            if key in self._tools:
                raise ValueError(f"Duplicate tool name: {tool.name}")
            self._tools[key] = tool
        self._definitions = [tool.get_definition() for tool in self._tools.values()]

    def lookup(self, name: str) -> Optional[BaseTool]:
        """Get a tool by name, ignoring case."""
        return self._tools.get(name.lower())

    def list_tools(self) -> List[Tool]:
        """List all tools as MCP Tool definitions, in catalog order."""
        return list(self._definitions)

    def __contains__(self, name: str) -> bool:
        return self.lookup(name) is not None

    def __len__(self) -> int:
        return len(self._tools)


def default_registry() -> ToolRegistry:
    """Create the registry holding the built-in tool catalog."""
    from .weather import WeatherTool

    return ToolRegistry([WeatherTool()])


def _to_payload(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    return value


class ToolInvoker:
    """
    Runs tool calls against a registry.

    This is the fault-isolation boundary for tool calls: whatever goes wrong
    inside a call comes back as a failed ToolResult, so one bad call never
    affects its siblings in a batch.
    """

    def __init__(self, registry: ToolRegistry):
        self.registry = registry

    def invoke(self, call: ToolCall) -> ToolResult:
        """Execute one tool call."""
        logger.info(f"Processing tool call: {call.name}")

        tool = self.registry.lookup(call.name)
        if tool is None:
            error = MCPError.from_code(
                ErrorCode.UNKNOWN_TOOL,
                f"Unknown tool: {call.name}",
            )
            return ToolResult.failure(call.id, error)

        try:
            kwargs = validate_params(tool.parameters, call.params)
            payload = tool.execute(**kwargs)
        except Exception as e:
            logger.warning(f"Tool {tool.name} failed: {e}")
            error = MCPError.from_code(ErrorCode.TOOL_EXECUTION_ERROR, str(e))
            return ToolResult.failure(call.id, error)

        return ToolResult.success(call.id, _to_payload(payload))

    def invoke_batch(self, calls: Iterable[ToolCall]) -> List[ToolResult]:
        """Execute calls sequentially, preserving order."""
        return [self.invoke(call) for call in calls]
