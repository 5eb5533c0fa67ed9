"""LLM agents that play nations."""

from .nation_agent import NationAgent

__all__ = ["NationAgent"]
