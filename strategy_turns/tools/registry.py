"""Tool registry - tool definitions with strict schemas and their handlers."""

from __future__ import annotations
from typing import Any, Callable, Optional, TYPE_CHECKING
from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from strategy_turns.systems.store import StrategyStore
    from strategy_turns.systems.turn_coordinator import TurnCoordinator
    from strategy_turns.tools.formatter import ToolResponse


class ToolParameter(BaseModel):
    """Definition of a tool parameter."""
    name: str
    type: str  # "string", "integer", "number", "boolean", "object", "array"
    description: str
    required: bool = True
    enum: Optional[list[str]] = None
    properties: Optional[dict[str, Any]] = None  # For object types
    items: Optional[dict[str, Any]] = None  # For array types


class Tool(BaseModel):
    """A tool that agents (or the console) can call."""
    name: str
    description: str
    parameters: list[ToolParameter] = Field(default_factory=list)

    def to_openai_schema(self) -> dict[str, Any]:
        """Convert to OpenAI function calling schema."""
        properties = {}
        required = []

        for param in self.parameters:
            prop: dict[str, Any] = {
                "type": param.type,
                "description": param.description,
            }
            if param.enum:
                prop["enum"] = param.enum
            if param.properties:
                prop["properties"] = param.properties
            if param.items:
                prop["items"] = param.items

            properties[param.name] = prop

            if param.required:
                required.append(param.name)

        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": {
                    "type": "object",
                    "properties": properties,
                    "required": required,
                }
            }
        }


class ToolRegistry:
    """Registry of all available tools."""

    def __init__(self) -> None:
        self._tools: dict[str, Tool] = {}
        self._handlers: dict[str, Callable[..., "ToolResponse"]] = {}

    def register(self, tool: Tool, handler: Optional[Callable[..., "ToolResponse"]] = None) -> None:
        self._tools[tool.name] = tool
        if handler is not None:
            self._handlers[tool.name] = handler

    def get(self, name: str) -> Optional[Tool]:
        return self._tools.get(name)

    def get_handler(self, name: str) -> Optional[Callable[..., "ToolResponse"]]:
        return self._handlers.get(name)

    def list_tools(self) -> list[Tool]:
        return list(self._tools.values())

    def get_openai_tools(self, names: Optional[list[str]] = None) -> list[dict[str, Any]]:
        """Get tools in OpenAI function calling format, optionally restricted to ``names``."""
        tools = self.list_tools() if names is None else [t for t in self.list_tools() if t.name in names]
        return [t.to_openai_schema() for t in tools]

    def execute(self, tool_name: str, **kwargs: Any) -> "ToolResponse":
        """Execute a tool by name."""
        handler = self._handlers.get(tool_name)
        if not handler:
            raise ValueError(f"No handler registered for tool: {tool_name}")
        return handler(**kwargs)


def build_registry(coordinator: "TurnCoordinator", store: "StrategyStore", threshold: int = 60) -> ToolRegistry:
    """Registry with turn_manage and strategy_manage wired to one coordinator and store."""
    from strategy_turns.tools.turn_manage import TurnManageTool
    from strategy_turns.tools.strategy_manage import StrategyManageTool

    registry = ToolRegistry()
    turn_tool = TurnManageTool(coordinator, threshold=threshold)
    strategy_tool = StrategyManageTool(store, coordinator, threshold=threshold)
    registry.register(TurnManageTool.tool_definition(), turn_tool)
    registry.register(StrategyManageTool.tool_definition(), strategy_tool)
    return registry
