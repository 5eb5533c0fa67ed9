"""LLM client for OpenRouter API integration."""

from .openrouter import OpenRouterClient, LLMResponse, ToolCall

__all__ = ["OpenRouterClient", "LLMResponse", "ToolCall"]
