"""turn_manage tool - the multi-nation turn lifecycle."""

from __future__ import annotations
from typing import Any, TYPE_CHECKING
from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from strategy_turns.systems.turn_coordinator import TurnCoordinator

from strategy_turns.models.turn_state import TurnAction, TurnActionType
from strategy_turns.tools.formatter import ToolResponse, header, key_value, embed_json, error_block
from strategy_turns.tools.router import ActionDefinition, ActionRouter
from strategy_turns.tools.registry import Tool, ToolParameter


class TurnParams(BaseModel):
    model_config = {"populate_by_name": True, "extra": "ignore"}

    world_id: str = Field(alias="worldId", description="World ID")


class InitParams(TurnParams):
    pass


class GetStatusParams(TurnParams):
    pass


class SubmitActionsParams(TurnParams):
    nation_id: str = Field(alias="nationId", description="Nation submitting actions")
    actions: list[TurnAction] = Field(description="Actions to submit")


class MarkReadyParams(TurnParams):
    nation_id: str = Field(alias="nationId", description="Nation marking ready")


class PollResultsParams(TurnParams):
    turn_number: int = Field(alias="turnNumber", description="Turn number to poll results for")


DESCRIPTION = """Turn-based strategy lifecycle for multi-agent play.

Turn cycle:
1. init - Initialize turn state (once per world)
2. get_status - Current turn, phase and which nations are ready
3. submit_actions - Submit batched actions (claims, alliances, diplomacy)
4. mark_ready - Signal planning complete
5. poll_results - Get resolved turn events

Each agent controls one nation. The turn resolves automatically when ALL
nations have called mark_ready.

Action types for submit_actions: """ + ", ".join(t.value for t in TurnActionType) + """

Actions: init, get_status, submit_actions, mark_ready, poll_results"""


class TurnManageTool:
    """Routes turn_manage calls onto the turn coordinator."""

    name = "turn_manage"
    json_tag = "TURN_MANAGE"

    def __init__(self, coordinator: "TurnCoordinator", threshold: int = 60):
        self.coordinator = coordinator
        self.router = ActionRouter({
            "init": ActionDefinition(
                schema=InitParams,
                handler=self._init,
                aliases=["initialize", "init_turn", "start_turns", "setup"],
                description="Initialize turn management for a world",
            ),
            "get_status": ActionDefinition(
                schema=GetStatusParams,
                handler=self._get_status,
                aliases=["status", "turn_status", "check_turn", "get_turn"],
                description="Get current turn status and which nations are ready",
            ),
            "submit_actions": ActionDefinition(
                schema=SubmitActionsParams,
                handler=self._submit_actions,
                aliases=["submit", "actions", "queue_actions", "turn_actions"],
                description="Submit actions for this turn",
            ),
            "mark_ready": ActionDefinition(
                schema=MarkReadyParams,
                handler=self._mark_ready,
                aliases=["ready", "done", "end_planning", "finish_planning"],
                description="Signal that the nation is done planning for this turn",
            ),
            "poll_results": ActionDefinition(
                schema=PollResultsParams,
                handler=self._poll_results,
                aliases=["results", "poll", "check_results", "get_results"],
                description="Check if a turn has resolved and get its results",
            ),
        }, threshold=threshold)

    # ===== Handlers =====

    def _init(self, p: InitParams) -> dict[str, Any]:
        return self.coordinator.init(p.world_id)

    def _get_status(self, p: GetStatusParams) -> dict[str, Any]:
        return self.coordinator.get_status(p.world_id)

    def _submit_actions(self, p: SubmitActionsParams) -> dict[str, Any]:
        return self.coordinator.submit_actions(p.world_id, p.nation_id, p.actions)

    def _mark_ready(self, p: MarkReadyParams) -> dict[str, Any]:
        return self.coordinator.mark_ready(p.world_id, p.nation_id)

    def _poll_results(self, p: PollResultsParams) -> dict[str, Any]:
        return self.coordinator.poll_results(p.world_id, p.turn_number)

    # ===== Entry point =====

    def __call__(self, **args: Any) -> ToolResponse:
        data = self.router.route(args)
        return ToolResponse(text=self.render(data) + embed_json(data, self.json_tag), data=data)

    def render(self, data: dict[str, Any]) -> str:
        if data.get("error"):
            return error_block("Turn Management Error", data)

        action = data.get("actionType")
        if action == "init":
            return header("Turn State") + key_value({
                "World": data.get("worldId"),
                "Current Turn": data.get("currentTurn"),
                "Phase": data.get("phase"),
                "Status": "Already initialized" if data.get("alreadyInitialized") else "Newly initialized",
            })

        if action == "get_status":
            output = header("Turn Status") + key_value({
                "World": data.get("worldId"),
                "Turn": data.get("currentTurn"),
                "Phase": data.get("phase"),
                "Nations Ready": f"{data.get('nationsReady')}/{data.get('totalNations')}",
                "Can Submit": "Yes" if data.get("canSubmitActions") else "No",
                "Last Error": data.get("lastError"),
            })
            waiting = data.get("waitingFor") or []
            if waiting:
                output += "\n**Waiting for:**\n"
                output += "".join(f"  - {n['name']} ({n['id']})\n" for n in waiting)
            return output

        if action == "submit_actions":
            output = header("Actions Submitted") + key_value({
                "Nation": data.get("nationName"),
                "Turn": data.get("turn"),
                "Submitted": data.get("actionsSubmitted"),
            })
            processed = data.get("processedActions") or []
            if processed:
                output += "\n**Processed:**\n"
                output += "".join(f"  - {line}\n" for line in processed)
            return output

        if action == "mark_ready":
            if data.get("allReady"):
                return header("Turn Resolved") + key_value({
                    "Nation": data.get("nationName"),
                    "Turn Resolved": data.get("turnResolved"),
                    "Next Turn": data.get("nextTurn"),
                }) + f"\n{data.get('message')}\n"
            output = header("Nation Ready") + key_value({
                "Nation": data.get("nationName"),
                "Ready": f"{data.get('nationsReady')}/{data.get('totalNations')}",
            })
            waiting = data.get("waitingFor") or []
            if waiting:
                output += "\n**Still waiting for:** " + ", ".join(n["name"] for n in waiting) + "\n"
            return output

        if action == "poll_results":
            output = header("Turn Results") + key_value({
                "World": data.get("worldId"),
                "Turn": data.get("turnNumber"),
                "Resolved": "Yes" if data.get("resolved") else "No",
                "Events": data.get("eventsCount"),
                "Last Error": data.get("lastError"),
            })
            if data.get("message"):
                output += f"\n{data['message']}\n"
            for event in data.get("events") or []:
                log = event.get("details", {}).get("log") or ", ".join(event.get("involvedNations", []))
                output += f"  - {event['eventType']}: {log}\n"
            return output

        return header("Turn Management")

    @classmethod
    def tool_definition(cls) -> Tool:
        return Tool(
            name=cls.name,
            description=DESCRIPTION,
            parameters=[
                ToolParameter(
                    name="action",
                    type="string",
                    description="Action to perform",
                    enum=["init", "get_status", "submit_actions", "mark_ready", "poll_results"],
                ),
                ToolParameter(name="worldId", type="string", description="World ID"),
                ToolParameter(
                    name="nationId",
                    type="string",
                    description="Nation ID (for submit_actions, mark_ready)",
                    required=False,
                ),
                ToolParameter(
                    name="actions",
                    type="array",
                    description="Actions to submit (for submit_actions)",
                    items={"type": "object", "properties": {
                        "type": {"type": "string", "enum": [t.value for t in TurnActionType]},
                        "regionId": {"type": "string"},
                        "toNationId": {"type": "string"},
                        "justification": {"type": "string"},
                        "intent": {"type": "string"},
                        "message": {"type": "string"},
                        "opinionDelta": {"type": "number"},
                    }, "required": ["type"]},
                    required=False,
                ),
                ToolParameter(
                    name="turnNumber",
                    type="integer",
                    description="Turn number (for poll_results)",
                    required=False,
                ),
            ],
        )
