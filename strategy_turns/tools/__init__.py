"""Consolidated tools exposed to agents and the console."""

from .registry import ToolRegistry, Tool, ToolParameter, build_registry
from .router import ActionRouter, ActionDefinition
from .formatter import ToolResponse
from .turn_manage import TurnManageTool
from .strategy_manage import StrategyManageTool

__all__ = [
    "ToolRegistry",
    "Tool",
    "ToolParameter",
    "build_registry",
    "ActionRouter",
    "ActionDefinition",
    "ToolResponse",
    "TurnManageTool",
    "StrategyManageTool",
]
