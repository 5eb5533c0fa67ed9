"""Fog of war - what one nation is allowed to see of its world."""

from __future__ import annotations
import math
from typing import Any, TYPE_CHECKING

if TYPE_CHECKING:
    from strategy_turns.systems.store import StrategyStore

from strategy_turns.models.nation import Nation
from strategy_turns.models.region import Region


def blur(value: float) -> int:
    """Round to the nearest 10 below 100, the nearest 100 from there up. Halves round up."""
    step = 10 if value < 100 else 100
    return int(math.floor(value / step + 0.5)) * step


class FogOfWar:
    """Filters a world's nations for a single viewer.

    The viewer sees itself in full, allies see everything except private
    memory, everyone else sees blurred traits and stockpiles and no
    relations. The map itself is fully visible.
    """

    def __init__(self, store: "StrategyStore"):
        self.store = store

    def allies_of(self, viewer_id: str, nations: list[Nation]) -> set[str]:
        allies = set()
        for nation in nations:
            if nation.id == viewer_id:
                continue
            relation = self.store.get_relation(viewer_id, nation.id)
            if relation is not None and relation.is_allied:
                allies.add(nation.id)
        return allies

    def mask_nation(self, nation: Nation) -> dict[str, Any]:
        r = nation.resources
        return {
            "id": nation.id,
            "worldId": nation.world_id,
            "name": nation.name,
            "leader": nation.leader,
            "ideology": nation.ideology.value,
            "publicIntent": nation.public_intent,
            "aggression": blur(nation.aggression),
            "trust": blur(nation.trust),
            "paranoia": blur(nation.paranoia),
            "gdp": blur(nation.gdp),
            "resources": {"food": blur(r.food), "metal": blur(r.metal), "oil": blur(r.oil)},
            "relations": {},
            "createdAt": nation.created_at.isoformat(),
            "updatedAt": nation.updated_at.isoformat(),
        }

    def filter_world_state(self, viewer_id: str, nations: list[Nation], regions: list[Region]) -> dict[str, Any]:
        allies = self.allies_of(viewer_id, nations)

        visible: list[dict[str, Any]] = []
        for nation in nations:
            if nation.id == viewer_id:
                visible.append(nation.model_dump(mode="json", by_alias=True))
            elif nation.id in allies:
                visible.append(nation.model_dump(mode="json", by_alias=True, exclude={"private_memory"}))
            else:
                visible.append(self.mask_nation(nation))

        return {
            "nations": visible,
            "regions": [region.model_dump(mode="json", by_alias=True) for region in regions],
        }

    def view_for(self, viewer_id: str, world_id: str) -> dict[str, Any]:
        return self.filter_world_state(
            viewer_id,
            self.store.nations_in_world(world_id),
            self.store.regions_in_world(world_id),
        )
