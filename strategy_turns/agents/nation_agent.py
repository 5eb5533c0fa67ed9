"""Nation agent - an LLM playing one nation through the turn tools."""

from __future__ import annotations
import json
import logging
from typing import Any, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from strategy_turns.llm.openrouter import OpenRouterClient
    from strategy_turns.tools.registry import ToolRegistry

from strategy_turns.tools.formatter import ToolResponse, error_block, embed_json


logger = logging.getLogger("strategy-turns.agents")


class NationAgent:
    """Plans one nation's turn: reads its state, submits actions, marks ready.

    The agent can only act as its own nation in its own world. Whatever ids
    the model puts in a tool call, ``worldId``, ``nationId`` and
    ``fromNationId`` are overwritten before the call is executed.
    """

    TOOLS = ["turn_manage", "strategy_manage"]
    # strategy_manage actions reserved for the operator
    OPERATOR_ACTIONS = {"create_nation", "create_region", "resolve_turn"}
    MAX_STEPS = 6

    def __init__(
        self,
        nation_id: str,
        world_id: str,
        llm_client: "OpenRouterClient",
        registry: "ToolRegistry",
    ):
        self.nation_id = nation_id
        self.world_id = world_id
        self.llm = llm_client
        self.registry = registry

    def _private_state(self) -> dict[str, Any]:
        response = self.registry.execute(
            "strategy_manage", action="get_state", nationId=self.nation_id, viewType="private",
        )
        if response.is_error:
            raise ValueError(response.data.get("message", "Nation not found"))
        return response.data

    def system_prompt(self, state: dict[str, Any]) -> str:
        nation = state["nation"]
        resources = nation.get("resources", {})
        relations = state.get("relations") or []
        relation_lines = "\n".join(
            f"- {r['toNationId']}: opinion {r['opinion']:g}{' (allied)' if r['isAllied'] else ''}"
            for r in relations
        ) or "- none yet"

        return f"""You are {nation['leader']}, ruler of {nation['name']}, a {nation['ideology']} nation.

PERSONALITY (0-100):
Aggression: {nation['aggression']}  |  Trust: {nation['trust']}  |  Paranoia: {nation['paranoia']}

ECONOMY:
GDP: {nation['gdp']}
Food: {resources.get('food')}  |  Metal: {resources.get('metal')}  |  Oil: {resources.get('oil')}

RELATIONS:
{relation_lines}

PRIVATE MEMORY:
{json.dumps(nation.get('privateMemory') or {})}

HOW TO PLAY A TURN:
1. Look at the world with strategy_manage get_state (fog_of_war view)
2. Submit all your actions in one turn_manage submit_actions call
3. Call turn_manage mark_ready when you are done

Claims on regions are settled when every nation is ready. Alliances, messages and
opinion changes take effect immediately. Act as {nation['leader']} would.
"""

    def _execute_tool(self, tool_name: str, arguments: dict[str, Any]) -> ToolResponse:
        args = dict(arguments)
        args["worldId"] = self.world_id
        args["nationId"] = self.nation_id
        if tool_name == "strategy_manage":
            args["fromNationId"] = self.nation_id
            handler = self.registry.get_handler(tool_name)
            matched = handler.router.match(str(args.get("action", ""))) if handler else None
            if matched is not None and matched.action in self.OPERATOR_ACTIONS:
                data = {"error": True, "code": "Forbidden", "message": f"{matched.action} is not available to nations"}
                return ToolResponse(text=error_block("Strategy Error", data) + embed_json(data, "STRATEGY_MANAGE"), data=data)

        try:
            return self.registry.execute(tool_name, **args)
        except ValueError as e:
            data = {"error": True, "code": "UnknownTool", "message": str(e)}
            return ToolResponse(text=error_block("Tool Error", data), data=data)

    def play_turn(self) -> dict[str, Any]:
        """Run the planning loop for the current turn. Always ends with the nation ready."""
        status = self.registry.execute("turn_manage", action="get_status", worldId=self.world_id)
        if status.is_error:
            return {"nationId": self.nation_id, "error": status.data.get("message")}
        turn = status.data["currentTurn"]

        state = self._private_state()
        name = state["nation"]["name"]
        messages: list[dict[str, Any]] = [
            {"role": "system", "content": self.system_prompt(state)},
            {"role": "user", "content": f"Turn {turn} has begun. Plan your moves.\n\n{status.text}"},
        ]
        tools = self.registry.get_openai_tools(self.TOOLS)

        tool_results: list[dict[str, Any]] = []
        marked: Optional[ToolResponse] = None
        content: Optional[str] = None

        for _ in range(self.MAX_STEPS):
            response = self.llm.chat(messages=messages, tools=tools, temperature=0.7)
            content = response.content
            if not response.has_tool_calls:
                break

            messages.append({
                "role": "assistant",
                "content": response.content,
                "tool_calls": [
                    {
                        "id": tc.id,
                        "type": "function",
                        "function": {"name": tc.name, "arguments": json.dumps(tc.arguments)},
                    }
                    for tc in response.tool_calls
                ],
            })
            for tc in response.tool_calls:
                result = self._execute_tool(tc.name, tc.arguments)
                tool_results.append({"tool": tc.name, "arguments": tc.arguments, "result": result.data})
                messages.append({"role": "tool", "tool_call_id": tc.id, "content": result.text})
                if result.data.get("actionType") == "mark_ready" and not result.is_error:
                    marked = result

            if marked is not None:
                break

        if marked is None:
            logger.info("%s did not mark ready on its own; marking it ready", name)
            marked = self.registry.execute(
                "turn_manage", action="mark_ready", worldId=self.world_id, nationId=self.nation_id,
            )

        return {
            "nationId": self.nation_id,
            "nation": name,
            "turn": turn,
            "response": content,
            "toolCalls": tool_results,
            "ready": marked.data,
        }
