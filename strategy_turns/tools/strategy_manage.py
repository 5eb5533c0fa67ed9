"""strategy_manage tool - nations, regions, world views and direct diplomacy."""

from __future__ import annotations
import logging
from typing import Any, Literal, Optional, TYPE_CHECKING
from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from strategy_turns.systems.store import StrategyStore
    from strategy_turns.systems.turn_coordinator import TurnCoordinator

from strategy_turns.models.nation import Nation, NationResources, Ideology
from strategy_turns.models.region import Region, RegionType
from strategy_turns.models.diplomacy import TerritorialClaim
from strategy_turns.systems.diplomacy_engine import DiplomacyEngine
from strategy_turns.systems.fog_of_war import FogOfWar
from strategy_turns.systems.errors import StrategyError, NationNotFound, RegionNotFound
from strategy_turns.tools.formatter import ToolResponse, header, key_value, embed_json, error_block
from strategy_turns.tools.router import ActionDefinition, ActionRouter
from strategy_turns.tools.registry import Tool, ToolParameter


logger = logging.getLogger("strategy-turns.strategy")

STARTING_INTENT = "Survival"


class StrategyParams(BaseModel):
    model_config = {"populate_by_name": True, "extra": "ignore"}


class StartingResources(BaseModel):
    food: int = Field(default=100, ge=0)
    metal: int = Field(default=50, ge=0)
    oil: int = Field(default=10, ge=0)


class CreateNationParams(StrategyParams):
    world_id: str = Field(alias="worldId")
    name: str
    leader: str
    ideology: Ideology
    aggression: int = Field(default=50, ge=0, le=100)
    trust: int = Field(default=50, ge=0, le=100)
    paranoia: int = Field(default=50, ge=0, le=100)
    starting_resources: Optional[StartingResources] = Field(default=None, alias="startingResources")


class CreateRegionParams(StrategyParams):
    world_id: str = Field(alias="worldId")
    name: str
    type: RegionType = RegionType.PLAINS
    center_x: float = Field(default=0, alias="centerX")
    center_y: float = Field(default=0, alias="centerY")
    color: str = "#888888"
    owner_nation_id: Optional[str] = Field(default=None, alias="ownerNationId")
    control_level: int = Field(default=0, ge=0, le=100, alias="controlLevel")


class GetStateParams(StrategyParams):
    nation_id: str = Field(alias="nationId")
    world_id: Optional[str] = Field(default=None, alias="worldId")
    view_type: Literal["public", "private", "fog_of_war"] = Field(default="fog_of_war", alias="viewType")


class WorldParams(StrategyParams):
    world_id: str = Field(alias="worldId")


class ProposeAllianceParams(StrategyParams):
    from_nation_id: str = Field(alias="fromNationId")
    to_nation_id: str = Field(alias="toNationId")


class BreakAllianceParams(ProposeAllianceParams):
    pass


class SendMessageParams(ProposeAllianceParams):
    message: str = Field(min_length=1)


class AdjustOpinionParams(ProposeAllianceParams):
    opinion_delta: float = Field(alias="opinionDelta")


class ClaimRegionParams(StrategyParams):
    nation_id: str = Field(alias="nationId")
    region_id: str = Field(alias="regionId")
    justification: Optional[str] = None


class ResolveTurnParams(StrategyParams):
    world_id: str = Field(alias="worldId")
    turn_number: int = Field(alias="turnNumber", ge=1)


DESCRIPTION = """Grand strategy nation management for multi-agent games.

Setup:
- create_nation - Define a nation with ideology, traits (0-100) and starting resources
- create_region - Add a region to the map, optionally owned
- list_nations / list_regions - See what a world contains
- get_state - Query a nation (public, private or fog_of_war view)

Diplomacy:
- propose_alliance - Offer a pact; accepted if the target likes you enough
- break_alliance - End a pact; the other side will hold a grudge
- send_message - Send a diplomatic message to another nation
- adjust_opinion - Change how you regard another nation (clamped to -100..100)
- claim_region - Assert a claim, settled when the current turn resolves

Turns:
- resolve_turn - Operator override: process a turn without advancing it.
  Use turn_manage for the normal lifecycle.

Actions: create_nation, create_region, get_state, list_nations, list_regions, propose_alliance,
break_alliance, send_message, adjust_opinion, claim_region, resolve_turn"""


class StrategyManageTool:
    """Routes strategy_manage calls onto the store and the strategy systems."""

    name = "strategy_manage"
    json_tag = "STRATEGY_MANAGE"

    def __init__(self, store: "StrategyStore", coordinator: "TurnCoordinator", threshold: int = 60):
        self.store = store
        self.coordinator = coordinator
        self.diplomacy = DiplomacyEngine(store)
        self.fog_of_war = FogOfWar(store)
        self.router = ActionRouter({
            "create_nation": ActionDefinition(
                schema=CreateNationParams,
                handler=self._create_nation,
                aliases=["new_nation", "add_nation", "spawn_nation"],
                description="Create a new nation in the world",
            ),
            "create_region": ActionDefinition(
                schema=CreateRegionParams,
                handler=self._create_region,
                aliases=["new_region", "add_region"],
                description="Add a region to the world map",
            ),
            "get_state": ActionDefinition(
                schema=GetStateParams,
                handler=self._get_state,
                aliases=["nation_state", "get_nation", "view_state", "strategy_state"],
                description="Get nation or world state (public, private, or fog of war)",
            ),
            "list_nations": ActionDefinition(
                schema=WorldParams,
                handler=self._list_nations,
                aliases=["nations", "all_nations", "get_nations"],
                description="List all nations in a world",
            ),
            "list_regions": ActionDefinition(
                schema=WorldParams,
                handler=self._list_regions,
                aliases=["regions", "all_regions", "get_regions", "map"],
                description="List all regions in a world",
            ),
            "propose_alliance": ActionDefinition(
                schema=ProposeAllianceParams,
                handler=self._propose_alliance,
                aliases=["alliance", "ally", "offer_alliance"],
                description="Propose an alliance to another nation",
            ),
            "break_alliance": ActionDefinition(
                schema=BreakAllianceParams,
                handler=self._break_alliance,
                aliases=["end_alliance", "betray", "cancel_alliance"],
                description="End an alliance with another nation",
            ),
            "send_message": ActionDefinition(
                schema=SendMessageParams,
                handler=self._send_message,
                aliases=["message", "diplomatic_message", "send_diplomatic_message"],
                description="Send a diplomatic message to another nation",
            ),
            "adjust_opinion": ActionDefinition(
                schema=AdjustOpinionParams,
                handler=self._adjust_opinion,
                aliases=["opinion", "change_opinion", "adjust_relations"],
                description="Adjust this nation's opinion of another nation",
            ),
            "claim_region": ActionDefinition(
                schema=ClaimRegionParams,
                handler=self._claim_region,
                aliases=["claim", "claim_territory", "territorial_claim"],
                description="Assert a territorial claim on a region",
            ),
            "resolve_turn": ActionDefinition(
                schema=ResolveTurnParams,
                handler=self._resolve_turn,
                aliases=["process_turn", "end_turn", "turn_resolution"],
                description="Process a full turn (economy, conflicts, consumption)",
            ),
        }, threshold=threshold)

    def _nation(self, nation_id: str) -> Nation:
        nation = self.store.get_nation(nation_id)
        if nation is None:
            raise NationNotFound(nation_id)
        return nation

    # ===== Handlers =====

    def _create_nation(self, p: CreateNationParams) -> dict[str, Any]:
        start = p.starting_resources or StartingResources()
        with self.coordinator.world_lock(p.world_id):
            nation = self.store.add_nation(Nation(
                world_id=p.world_id,
                name=p.name,
                leader=p.leader,
                ideology=p.ideology,
                aggression=p.aggression,
                trust=p.trust,
                paranoia=p.paranoia,
                resources=NationResources(food=start.food, metal=start.metal, oil=start.oil),
                public_intent=STARTING_INTENT,
            ))
        logger.info("Created nation %s (%s) in world %s", nation.name, nation.id, nation.world_id)
        return {
            "nationId": nation.id,
            "worldId": nation.world_id,
            "name": nation.name,
            "leader": nation.leader,
            "ideology": nation.ideology.value,
            "traits": {
                "aggression": nation.aggression,
                "trust": nation.trust,
                "paranoia": nation.paranoia,
            },
            "resources": nation.resources.model_dump(),
        }

    def _create_region(self, p: CreateRegionParams) -> dict[str, Any]:
        with self.coordinator.world_lock(p.world_id):
            if p.owner_nation_id is not None:
                owner = self._nation(p.owner_nation_id)
                if owner.world_id != p.world_id:
                    raise NationNotFound(p.owner_nation_id, p.world_id)

            region = self.store.add_region(Region(
                world_id=p.world_id,
                name=p.name,
                type=p.type,
                center_x=p.center_x,
                center_y=p.center_y,
                color=p.color,
                owner_nation_id=p.owner_nation_id,
                control_level=p.control_level,
            ))
        return {
            "regionId": region.id,
            "worldId": region.world_id,
            "name": region.name,
            "type": region.type.value,
            "ownerNationId": region.owner_nation_id,
            "controlLevel": region.control_level,
        }

    def _get_state(self, p: GetStateParams) -> dict[str, Any]:
        nation = self._nation(p.nation_id)

        if p.view_type == "private":
            return {
                "viewType": "private",
                "nation": nation.model_dump(mode="json", by_alias=True),
                "relations": [r.to_dict() for r in self.store.relations_from(nation.id)],
            }

        if p.view_type == "public":
            return {"viewType": "public", "nation": nation.public_view()}

        if not p.world_id:
            raise StrategyError("worldId required for fog_of_war view")
        return {
            "viewType": "fog_of_war",
            "viewingNation": nation.name,
            "worldState": self.fog_of_war.view_for(nation.id, p.world_id),
        }

    def _list_nations(self, p: WorldParams) -> dict[str, Any]:
        nations = self.store.nations_in_world(p.world_id)
        return {
            "worldId": p.world_id,
            "count": len(nations),
            "nations": [n.public_view() for n in nations],
        }

    def _list_regions(self, p: WorldParams) -> dict[str, Any]:
        regions = self.store.regions_in_world(p.world_id)
        return {
            "worldId": p.world_id,
            "count": len(regions),
            "regions": [
                {
                    "id": r.id,
                    "name": r.name,
                    "type": r.type.value,
                    "ownerNationId": r.owner_nation_id,
                    "controlLevel": r.control_level,
                }
                for r in regions
            ],
        }

    def _pair(self, from_nation_id: str, to_nation_id: str) -> tuple[Nation, Nation]:
        """Both nations of a diplomatic action. They must share a world."""
        from_nation = self._nation(from_nation_id)
        to_nation = self._nation(to_nation_id)
        if to_nation.world_id != from_nation.world_id:
            raise NationNotFound(to_nation_id, from_nation.world_id)
        return from_nation, to_nation

    def _propose_alliance(self, p: ProposeAllianceParams) -> dict[str, Any]:
        from_nation, to_nation = self._pair(p.from_nation_id, p.to_nation_id)
        with self.coordinator.world_lock(from_nation.world_id):
            result = self.diplomacy.propose_alliance(from_nation.id, to_nation.id)
        return {
            "fromNation": from_nation.name,
            "toNation": to_nation.name,
            "result": result,
        }

    def _break_alliance(self, p: BreakAllianceParams) -> dict[str, Any]:
        from_nation, to_nation = self._pair(p.from_nation_id, p.to_nation_id)
        with self.coordinator.world_lock(from_nation.world_id):
            relation = self.store.get_relation(from_nation.id, to_nation.id)
            if relation is None or not relation.is_allied:
                raise StrategyError(f"{from_nation.name} is not allied with {to_nation.name}")
            self.diplomacy.break_alliance(from_nation.id, to_nation.id)
        return {
            "fromNation": from_nation.name,
            "toNation": to_nation.name,
            "relation": self.store.get_relation(from_nation.id, to_nation.id).to_dict(),
        }

    def _send_message(self, p: SendMessageParams) -> dict[str, Any]:
        from_nation, to_nation = self._pair(p.from_nation_id, p.to_nation_id)
        with self.coordinator.world_lock(from_nation.world_id):
            event = self.diplomacy.send_message(from_nation.id, to_nation.id, p.message)
        return {
            "fromNation": from_nation.name,
            "toNation": to_nation.name,
            "message": p.message,
            "eventId": event.id,
            "turnNumber": event.turn_number,
        }

    def _adjust_opinion(self, p: AdjustOpinionParams) -> dict[str, Any]:
        from_nation, to_nation = self._pair(p.from_nation_id, p.to_nation_id)
        with self.coordinator.world_lock(from_nation.world_id):
            relation = self.diplomacy.adjust_opinion(from_nation.id, to_nation.id, p.opinion_delta)
        return {
            "fromNation": from_nation.name,
            "toNation": to_nation.name,
            "relation": relation.to_dict(),
        }

    def _claim_region(self, p: ClaimRegionParams) -> dict[str, Any]:
        nation = self._nation(p.nation_id)
        region = self.store.get_region(p.region_id)
        if region is None or region.world_id != nation.world_id:
            raise RegionNotFound(p.region_id)

        with self.coordinator.world_lock(nation.world_id):
            state = self.store.get_turn_state(nation.world_id)
            turn_number = state.current_turn if state else 1
            claim = self.store.add_claim(TerritorialClaim(
                nation_id=nation.id,
                region_id=region.id,
                justification=p.justification,
                turn_number=turn_number,
            ))
        return {
            "claimId": claim.id,
            "nation": nation.name,
            "region": region.name,
            "turnNumber": turn_number,
            "justification": p.justification or "No justification provided",
        }

    def _resolve_turn(self, p: ResolveTurnParams) -> dict[str, Any]:
        self.coordinator.resolve_turn(p.world_id, p.turn_number)
        events = self.store.events_for_world(p.world_id, p.turn_number)
        return {
            "worldId": p.world_id,
            "turnNumber": p.turn_number,
            "status": "Turn Resolved",
            "eventsCount": len(events),
            "events": [e.to_dict() for e in events[:self.coordinator.event_sample_size]],
        }

    # ===== Entry point =====

    def __call__(self, **args: Any) -> ToolResponse:
        data = self.router.route(args)
        return ToolResponse(text=self.render(data) + embed_json(data, self.json_tag), data=data)

    def render(self, data: dict[str, Any]) -> str:
        if data.get("error"):
            return error_block("Strategy Error", data)

        action = data.get("actionType")
        if action == "create_nation":
            traits = data.get("traits", {})
            resources = data.get("resources", {})
            return header("Nation Created") + key_value({
                "Nation ID": data.get("nationId"),
                "Name": data.get("name"),
                "Leader": data.get("leader"),
                "Ideology": data.get("ideology"),
                "Aggression": traits.get("aggression"),
                "Trust": traits.get("trust"),
                "Paranoia": traits.get("paranoia"),
            }) + (
                "\n**Starting Resources:**\n"
                f"  Food: {resources.get('food')}, Metal: {resources.get('metal')}, Oil: {resources.get('oil')}\n"
            )

        if action == "create_region":
            return header("Region Created") + key_value({
                "Region ID": data.get("regionId"),
                "Name": data.get("name"),
                "Type": data.get("type"),
                "Owner": data.get("ownerNationId") or "unclaimed",
                "Control": data.get("controlLevel"),
            })

        if action == "get_state":
            view = data.get("viewType")
            output = header(f"Nation State ({view})")
            if view == "public":
                nation = data.get("nation", {})
                output += key_value({
                    "ID": nation.get("id"),
                    "Name": nation.get("name"),
                    "Leader": nation.get("leader"),
                    "Ideology": nation.get("ideology"),
                    "Public Intent": nation.get("publicIntent"),
                })
            elif view == "private":
                output += "Full nation state included in JSON\n"
            else:
                output += f"Viewing as: {data.get('viewingNation')}\nWorld state with fog of war applied\n"
            return output

        if action == "list_nations":
            output = header("Nations List") + f"World: {data.get('worldId')}\nCount: {data.get('count')}\n\n"
            nations = data.get("nations") or []
            if not nations:
                return output + "No nations in this world.\n"
            return output + "".join(f"• {n['name']} ({n['ideology']}) - {n['leader']}\n" for n in nations)

        if action == "list_regions":
            output = header("Regions List") + f"World: {data.get('worldId')}\nCount: {data.get('count')}\n\n"
            regions = data.get("regions") or []
            if not regions:
                return output + "No regions in this world.\n"
            return output + "".join(
                f"• {r['name']} ({r['type']}) - {r['ownerNationId'] or 'unclaimed'}, control {r['controlLevel']}\n"
                for r in regions
            )

        if action == "propose_alliance":
            result = data.get("result", {})
            return header("Alliance Proposal") + key_value({
                "From": data.get("fromNation"),
                "To": data.get("toNation"),
                "Result": "Accepted" if result.get("success") else result.get("reason"),
            })

        if action in ("break_alliance", "adjust_opinion"):
            relation = data.get("relation", {})
            title = "Alliance Broken" if action == "break_alliance" else "Opinion Adjusted"
            return header(title) + key_value({
                "From": data.get("fromNation"),
                "To": data.get("toNation"),
                "Opinion": relation.get("opinion"),
                "Allied": "Yes" if relation.get("isAllied") else "No",
            })

        if action == "send_message":
            return header("Message Sent") + key_value({
                "From": data.get("fromNation"),
                "To": data.get("toNation"),
                "Turn": data.get("turnNumber"),
            }) + f"\n> {data.get('message')}\n"

        if action == "claim_region":
            return header("Territorial Claim") + key_value({
                "Nation": data.get("nation"),
                "Region": data.get("region"),
                "Turn": data.get("turnNumber"),
                "Justification": data.get("justification"),
            })

        if action == "resolve_turn":
            return header("Turn Resolved") + key_value({
                "World": data.get("worldId"),
                "Turn": data.get("turnNumber"),
                "Status": data.get("status"),
                "Events": data.get("eventsCount"),
            })

        return header("Strategy")

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
                    enum=[
                        "create_nation", "create_region", "get_state", "list_nations",
                        "list_regions", "propose_alliance", "break_alliance", "send_message",
                        "adjust_opinion", "claim_region", "resolve_turn",
                    ],
                ),
                ToolParameter(name="worldId", type="string", description="World ID", required=False),
                ToolParameter(name="nationId", type="string", description="Nation ID", required=False),
                ToolParameter(name="name", type="string", description="Name of the new nation or region", required=False),
                ToolParameter(name="leader", type="string", description="Nation leader (create_nation)", required=False),
                ToolParameter(
                    name="ideology",
                    type="string",
                    description="Political ideology (create_nation)",
                    enum=[i.value for i in Ideology],
                    required=False,
                ),
                ToolParameter(name="aggression", type="integer", description="Aggression trait 0-100", required=False),
                ToolParameter(name="trust", type="integer", description="Trust trait 0-100", required=False),
                ToolParameter(name="paranoia", type="integer", description="Paranoia trait 0-100", required=False),
                ToolParameter(
                    name="startingResources",
                    type="object",
                    description="Starting stockpiles (create_nation)",
                    properties={
                        "food": {"type": "integer"},
                        "metal": {"type": "integer"},
                        "oil": {"type": "integer"},
                    },
                    required=False,
                ),
                ToolParameter(
                    name="type",
                    type="string",
                    description="Region type (create_region)",
                    enum=[t.value for t in RegionType],
                    required=False,
                ),
                ToolParameter(
                    name="viewType",
                    type="string",
                    description="public=basic info, private=full nation state, fog_of_war=world view with visibility",
                    enum=["public", "private", "fog_of_war"],
                    required=False,
                ),
                ToolParameter(name="fromNationId", type="string", description="Nation taking the diplomatic action", required=False),
                ToolParameter(name="toNationId", type="string", description="Target nation of the diplomatic action", required=False),
                ToolParameter(name="message", type="string", description="Message text (send_message)", required=False),
                ToolParameter(name="opinionDelta", type="number", description="Opinion change (adjust_opinion)", required=False),
                ToolParameter(name="regionId", type="string", description="Region being claimed", required=False),
                ToolParameter(name="justification", type="string", description="Reason for the claim", required=False),
                ToolParameter(name="turnNumber", type="integer", description="Turn number (resolve_turn)", required=False),
            ],
        )
