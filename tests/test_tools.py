"""
Tests for the consolidated tools.

Covers:
- ActionRouter: exact, alias and fuzzy matching, unknown actions, validation errors,
  error conversion
- turn_manage end to end through the registry
- strategy_manage: nations, regions, views, alliances, messages, opinions, claims,
  same-world diplomacy, operator resolve_turn
- ToolRegistry OpenAI schemas and handler wiring
"""

import pytest
from pydantic import BaseModel, Field

from strategy_turns.models import Nation, TurnPhase
from strategy_turns.systems.errors import NationNotFound
from strategy_turns.tools.formatter import extract_json
from strategy_turns.tools.router import ActionDefinition, ActionRouter


WORLD = "w1"


# ---------------------------------------------------------------------------
# ActionRouter
# ---------------------------------------------------------------------------

class EchoParams(BaseModel):
    model_config = {"populate_by_name": True, "extra": "ignore"}

    world_id: str = Field(alias="worldId")


def echo(p: EchoParams) -> dict:
    return {"worldId": p.world_id}


def missing(p: EchoParams) -> dict:
    raise NationNotFound("n9")


def broken(p: EchoParams) -> dict:
    raise RuntimeError("boom")


@pytest.fixture
def router() -> ActionRouter:
    return ActionRouter({
        "get_status": ActionDefinition(schema=EchoParams, handler=echo, aliases=["status"]),
        "mark_ready": ActionDefinition(schema=EchoParams, handler=missing, aliases=["ready"]),
        "poll_results": ActionDefinition(schema=EchoParams, handler=broken),
    })


class TestActionRouter:

    def test_exact_match(self, router):
        result = router.route({"action": "get_status", "worldId": "w"})
        assert result["success"] is True
        assert result["actionType"] == "get_status"
        assert result["worldId"] == "w"
        assert "_fuzzyMatch" not in result

    def test_case_and_dashes_are_normalized(self, router):
        result = router.route({"action": "Get-Status", "worldId": "w"})
        assert result["actionType"] == "get_status"
        assert "_fuzzyMatch" not in result

    def test_alias(self, router):
        result = router.route({"action": "status", "worldId": "w"})
        assert result["actionType"] == "get_status"
        assert result["_fuzzyMatch"] == {"requested": "status", "resolved": "get_status", "similarity": 95}

    def test_fuzzy_typo(self, router):
        result = router.route({"action": "get_staus", "worldId": "w"})
        assert result["actionType"] == "get_status"
        assert result["_fuzzyMatch"]["resolved"] == "get_status"
        assert result["_fuzzyMatch"]["similarity"] >= 60

    def test_unknown_action_has_suggestions(self, router):
        result = router.route({"action": "xyzzy", "worldId": "w"})
        assert result["error"] is True
        assert result["code"] == "UnknownAction"
        assert len(result["suggestions"]) == 3
        assert set(result["validActions"]) == {"get_status", "mark_ready", "poll_results"}

    def test_missing_action(self, router):
        result = router.route({"worldId": "w"})
        assert result["error"] is True
        assert result["code"] == "InvalidAction"

    def test_validation_error_lists_fields(self, router):
        result = router.route({"action": "get_status"})
        assert result["error"] is True
        assert result["code"] == "ValidationError"
        assert result["fields"][0]["field"] == "worldId"

    def test_strategy_error_becomes_payload(self, router):
        result = router.route({"action": "mark_ready", "worldId": "w"})
        assert result["error"] is True
        assert result["code"] == "NationNotFound"
        assert result["nationId"] == "n9"
        assert result["actionType"] == "mark_ready"

    def test_unexpected_error_becomes_internal_error(self, router):
        result = router.route({"action": "poll_results", "worldId": "w"})
        assert result["error"] is True
        assert result["code"] == "InternalError"
        assert result["message"] == "boom"


# ---------------------------------------------------------------------------
# turn_manage
# ---------------------------------------------------------------------------

class TestTurnManage:

    def test_full_turn_through_the_tool(self, registry, nation_a, nation_b, region, store):
        init = registry.execute("turn_manage", action="init", worldId=WORLD)
        assert init.data["currentTurn"] == 1

        submitted = registry.execute(
            "turn_manage",
            action="submit_actions",
            worldId=WORLD,
            nationId="nation-a",
            actions=[
                {"type": "claim_region", "regionId": "r1"},
                {"type": "adjust_relations", "toNationId": "nation-b", "opinionDelta": 10},
                {"type": "trade_request"},
            ],
        )
        assert submitted.data["processedActions"] == [
            "Claimed region r1",
            "Relations adjusted with nation-b: +10",
        ]

        registry.execute("turn_manage", action="ready", worldId=WORLD, nationId="nation-a")
        done = registry.execute("turn_manage", action="mark_ready", worldId=WORLD, nationId="nation-b")
        assert done.data["allReady"] is True
        assert "TURN RESOLVED" in done.text

        polled = registry.execute("turn_manage", action="poll_results", worldId=WORLD, turnNumber=1)
        assert polled.data["resolved"] is True
        assert extract_json(polled.text, "TURN_MANAGE") == polled.data
        assert store.get_region("r1").owner_nation_id == "nation-a"

    def test_errors_come_back_as_responses(self, registry):
        response = registry.execute("turn_manage", action="get_status", worldId="nowhere")
        assert response.is_error
        assert response.data["code"] == "NotInitialized"
        assert "Turn state not initialized" in response.text

    def test_wrong_phase_response(self, registry, world, store):
        store.get_turn_state(WORLD).set_phase(TurnPhase.RESOLUTION)
        response = registry.execute(
            "turn_manage", action="submit_actions", worldId=WORLD, nationId="nation-a", actions=[],
        )
        assert response.data["code"] == "WrongPhase"
        assert response.data["phase"] == "resolution"

    def test_missing_turn_number(self, registry, world):
        response = registry.execute("turn_manage", action="poll_results", worldId=WORLD)
        assert response.data["code"] == "ValidationError"
        assert response.data["fields"][0]["field"] == "turnNumber"

    def test_to_mcp(self, registry, world):
        mcp = registry.execute("turn_manage", action="get_status", worldId=WORLD).to_mcp()
        assert mcp["content"][0]["type"] == "text"
        assert "TURN STATUS" in mcp["content"][0]["text"]


# ---------------------------------------------------------------------------
# strategy_manage
# ---------------------------------------------------------------------------

class TestStrategyManage:

    def test_create_nation_defaults(self, registry, store):
        response = registry.execute(
            "strategy_manage", action="create_nation",
            worldId=WORLD, name="Caldera", leader="Ixa", ideology="theocracy",
        )
        data = response.data
        assert data["success"] is True
        assert data["traits"] == {"aggression": 50, "trust": 50, "paranoia": 50}
        assert data["resources"] == {"food": 100, "metal": 50, "oil": 10}

        nation = store.get_nation(data["nationId"])
        assert nation.gdp == 1000
        assert nation.public_intent == "Survival"

    def test_create_nation_rejects_bad_traits(self, registry):
        response = registry.execute(
            "strategy_manage", action="create_nation",
            worldId=WORLD, name="X", leader="Y", ideology="tribal", aggression=150,
        )
        assert response.data["code"] == "ValidationError"

    def test_create_region_with_owner(self, registry, nation_a, store):
        response = registry.execute(
            "strategy_manage", action="create_region",
            worldId=WORLD, name="Ironhold", type="mountain", ownerNationId="nation-a", controlLevel=60,
        )
        region = store.get_region(response.data["regionId"])
        assert region.owner_nation_id == "nation-a"
        assert region.control_level == 60

    def test_create_region_unknown_owner(self, registry):
        response = registry.execute(
            "strategy_manage", action="create_region", worldId=WORLD, name="Nowhere", ownerNationId="ghost",
        )
        assert response.data["code"] == "NationNotFound"

    def test_list_nations_and_regions(self, registry, nation_a, nation_b, region):
        nations = registry.execute("strategy_manage", action="list_nations", worldId=WORLD)
        assert nations.data["count"] == 2
        assert {n["name"] for n in nations.data["nations"]} == {"Aldoria", "Brevik"}

        regions = registry.execute("strategy_manage", action="regions", worldId=WORLD)
        assert regions.data["actionType"] == "list_regions"
        assert regions.data["regions"][0]["ownerNationId"] is None

    def test_get_state_views(self, registry, nation_a, nation_b):
        public = registry.execute("strategy_manage", action="get_state", nationId="nation-a", viewType="public")
        assert public.data["nation"] == {
            "id": "nation-a",
            "name": "Aldoria",
            "leader": "Queen Maren",
            "ideology": "democracy",
            "publicIntent": None,
        }

        private = registry.execute("strategy_manage", action="get_state", nationId="nation-a", viewType="private")
        assert private.data["nation"]["privateMemory"] == {}

        fog = registry.execute("strategy_manage", action="get_state", nationId="nation-a", worldId=WORLD)
        assert fog.data["viewType"] == "fog_of_war"
        assert len(fog.data["worldState"]["nations"]) == 2

    def test_fog_of_war_needs_world(self, registry, nation_a):
        response = registry.execute("strategy_manage", action="get_state", nationId="nation-a")
        assert response.is_error
        assert "worldId required" in response.data["message"]

    def test_propose_alliance_refused_then_accepted(self, registry, store, nation_a, nation_b):
        refused = registry.execute(
            "strategy_manage", action="propose_alliance", fromNationId="nation-a", toNationId="nation-b",
        )
        assert refused.data["result"] == {"success": False, "reason": "Refused: Opinion too low"}

        store.get_nation("nation-b").paranoia = 0
        accepted = registry.execute(
            "strategy_manage", action="propose_alliance", fromNationId="nation-a", toNationId="nation-b",
        )
        assert accepted.data["result"] == {"success": True}
        assert store.get_relation("nation-a", "nation-b").is_allied
        assert store.get_relation("nation-b", "nation-a").opinion == 75

    def test_propose_alliance_across_worlds(self, registry, store, nation_a):
        store.add_nation(Nation(id="far", world_id="w2", name="Farland", leader="X", paranoia=0))
        response = registry.execute(
            "strategy_manage", action="propose_alliance", fromNationId="nation-a", toNationId="far",
        )
        assert response.data["code"] == "NationNotFound"
        assert response.data["nationId"] == "far"
        assert response.data["worldId"] == WORLD
        assert store.get_relation("nation-a", "far") is None
        assert store.get_relation("far", "nation-a") is None

    def test_break_alliance(self, registry, store, world):
        store.get_nation("nation-b").paranoia = 0
        registry.execute("strategy_manage", action="propose_alliance", fromNationId="nation-a", toNationId="nation-b")

        response = registry.execute(
            "strategy_manage", action="break_alliance", fromNationId="nation-a", toNationId="nation-b",
        )
        assert response.data["relation"]["opinion"] == -20
        assert response.data["relation"]["isAllied"] is False
        assert store.get_relation("nation-b", "nation-a").opinion == -50
        assert "ALLIANCE BROKEN" in response.text

    def test_break_alliance_requires_alliance(self, registry, world):
        response = registry.execute(
            "strategy_manage", action="break_alliance", fromNationId="nation-a", toNationId="nation-b",
        )
        assert response.data["code"] == "StrategyError"
        assert "not allied" in response.data["message"]

    def test_send_message(self, registry, store, world):
        response = registry.execute(
            "strategy_manage", action="send_message",
            fromNationId="nation-a", toNationId="nation-b", message="Lower your banners.",
        )
        assert response.data["turnNumber"] == 1
        event = store.events_for_world(WORLD)[-1]
        assert event.id == response.data["eventId"]
        assert event.details == {"message": "Lower your banners."}

    def test_adjust_opinion_is_clamped(self, registry, store, nation_a, nation_b):
        response = registry.execute(
            "strategy_manage", action="adjust_opinion",
            fromNationId="nation-a", toNationId="nation-b", opinionDelta=80,
        )
        assert response.data["relation"]["opinion"] == 100
        assert store.get_relation("nation-a", "nation-b").opinion == 100

    def test_diplomacy_stays_within_a_world(self, registry, store, nation_a):
        store.add_nation(Nation(id="far", world_id="w2", name="Farland", leader="X"))
        for action, extra in (
            ("send_message", {"message": "Hello"}),
            ("adjust_opinion", {"opinionDelta": 5}),
            ("break_alliance", {}),
        ):
            response = registry.execute(
                "strategy_manage", action=action, fromNationId="nation-a", toNationId="far", **extra,
            )
            assert response.data["code"] == "NationNotFound", action
        assert store.events_for_world("w2") == []
        assert store.get_relation("nation-a", "far") is None

    def test_claim_region_uses_current_turn(self, registry, world, coordinator, store):
        coordinator.mark_ready(WORLD, "nation-a")
        coordinator.mark_ready(WORLD, "nation-b")

        response = registry.execute(
            "strategy_manage", action="claim", nationId="nation-b", regionId="r1",
        )
        assert response.data["turnNumber"] == 2
        assert response.data["justification"] == "No justification provided"
        assert store.claims_for_region("r1", 2)[0].nation_id == "nation-b"

    def test_claim_unknown_region(self, registry, nation_a):
        response = registry.execute("strategy_manage", action="claim_region", nationId="nation-a", regionId="zz")
        assert response.data["code"] == "RegionNotFound"

    def test_resolve_turn_does_not_advance(self, registry, world, store):
        registry.execute("strategy_manage", action="claim_region", nationId="nation-a", regionId="r1")
        response = registry.execute("strategy_manage", action="resolve_turn", worldId=WORLD, turnNumber=1)

        assert response.data["status"] == "Turn Resolved"
        assert response.data["eventsCount"] == 1
        assert store.get_region("r1").owner_nation_id == "nation-a"
        assert store.get_turn_state(WORLD).current_turn == 1


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

class TestRegistry:

    def test_openai_schemas(self, registry):
        tools = registry.get_openai_tools()
        names = [t["function"]["name"] for t in tools]
        assert names == ["turn_manage", "strategy_manage"]

        turn = tools[0]["function"]["parameters"]
        assert turn["required"] == ["action", "worldId"]
        assert "claim_region" in turn["properties"]["actions"]["items"]["properties"]["type"]["enum"]

    def test_every_tool_has_its_handler(self, registry):
        for tool in registry.list_tools():
            assert registry.get_handler(tool.name) is not None

    def test_restrict_by_name(self, registry):
        tools = registry.get_openai_tools(["strategy_manage"])
        assert [t["function"]["name"] for t in tools] == ["strategy_manage"]

    def test_unknown_tool(self, registry):
        with pytest.raises(ValueError):
            registry.execute("dice_roll", action="roll")
