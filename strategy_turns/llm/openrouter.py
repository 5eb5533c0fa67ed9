"""OpenRouter API client with function calling support."""

from __future__ import annotations
import json
import logging
from typing import Any, Optional
from dataclasses import dataclass

import httpx

from strategy_turns.config import get_settings


logger = logging.getLogger("strategy-turns.llm")


@dataclass
class ToolCall:
    """A tool call extracted from model response."""
    id: str
    name: str
    arguments: dict[str, Any]


@dataclass
class LLMResponse:
    """Structured response from LLM."""
    content: Optional[str]
    tool_calls: list[ToolCall]
    finish_reason: str
    model: str
    usage: dict[str, int]

    @property
    def has_tool_calls(self) -> bool:
        return len(self.tool_calls) > 0


class OpenRouterClient:
    """Client for OpenRouter API with function calling support."""

    BASE_URL = "https://openrouter.ai/api/v1"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        settings = get_settings()
        self.api_key = api_key or settings.openrouter_api_key
        if not self.api_key:
            raise ValueError("OPENROUTER_API_KEY not set")

        self.model = model or settings.agent_model

        self._client = httpx.Client(
            base_url=self.BASE_URL,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "X-Title": "Strategy Turns",
                "Content-Type": "application/json",
            },
            timeout=60.0,
            transport=transport,
        )

    def _parse_response(self, data: dict[str, Any]) -> LLMResponse:
        """Parse API response into structured format."""
        choice = data["choices"][0]
        message = choice["message"]

        tool_calls = []
        if "tool_calls" in message and message["tool_calls"]:
            for tc in message["tool_calls"]:
                try:
                    args = json.loads(tc["function"]["arguments"] or "{}")
                except json.JSONDecodeError:
                    logger.warning("Unparseable arguments for tool call %s", tc["function"]["name"])
                    args = {}
                tool_calls.append(ToolCall(
                    id=tc.get("id", ""),
                    name=tc["function"]["name"],
                    arguments=args,
                ))

        return LLMResponse(
            content=message.get("content"),
            tool_calls=tool_calls,
            finish_reason=choice.get("finish_reason", "stop"),
            model=data.get("model", "unknown"),
            usage=data.get("usage", {}),
        )

    def chat(
        self,
        messages: list[dict[str, Any]],
        tools: Optional[list[dict[str, Any]]] = None,
        tool_choice: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 2048,
    ) -> LLMResponse:
        """Send a chat completion request."""
        payload: dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }

        if tools:
            payload["tools"] = tools
            if tool_choice:
                payload["tool_choice"] = tool_choice

        response = self._client.post("/chat/completions", json=payload)
        response.raise_for_status()

        return self._parse_response(response.json())

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> "OpenRouterClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
