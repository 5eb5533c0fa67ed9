"""Turn processor - runs one full resolution pass over a world."""

from __future__ import annotations
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from strategy_turns.systems.store import StrategyStore

from strategy_turns.models.nation import Nation, NationResources
from strategy_turns.models.region import Region
from strategy_turns.models.diplomacy import NationEvent, NationEventType
from strategy_turns.systems.conflict_resolver import ConflictResolver


logger = logging.getLogger("strategy-turns.processor")

# Per-turn production and upkeep
PRODUCTION = {"food": 10, "metal": 5, "oil": 2}
FOOD_UPKEEP = 5
INITIAL_CONTROL = 10


class TurnProcessor:
    """Economy, then territorial conflicts, then consumption.

    Only the turn coordinator calls this (from inside its per-world lock),
    plus the operator ``resolve_turn`` override which takes the same lock.
    """

    def __init__(self, store: "StrategyStore", conflict_resolver: ConflictResolver | None = None):
        self.store = store
        self.conflict_resolver = conflict_resolver or ConflictResolver()

    def process_turn(self, world_id: str, turn_number: int) -> list[NationEvent]:
        """Resolve ``turn_number`` for ``world_id``. Returns the events it logged."""
        nations = self.store.nations_in_world(world_id)
        logger.info("Processing turn %d for world %s (%d nations)", turn_number, world_id, len(nations))

        self._process_economy(nations)
        events = self._process_conflicts(world_id, turn_number)
        self._process_consumption(nations)

        logger.info("Turn %d for world %s produced %d events", turn_number, world_id, len(events))
        return events

    def _process_economy(self, nations: list[Nation]) -> None:
        for nation in nations:
            r = nation.resources
            self.store.update_resources(nation.id, NationResources(
                food=r.food + PRODUCTION["food"],
                metal=r.metal + PRODUCTION["metal"],
                oil=r.oil + PRODUCTION["oil"],
            ))

    def _process_conflicts(self, world_id: str, turn_number: int) -> list[NationEvent]:
        events: list[NationEvent] = []

        for region in self.store.regions_in_world(world_id):
            claimants = self._claimants(region, turn_number)
            if not claimants:
                continue

            # Uncontested claim on an unowned region
            if len(claimants) == 1 and not region.owner_nation_id:
                winner = claimants[0]
                self.store.update_ownership(region.id, winner.id, INITIAL_CONTROL)
                events.append(self.store.log_event(NationEvent(
                    world_id=world_id,
                    turn_number=turn_number,
                    event_type=NationEventType.REGION_CLAIMED,
                    involved_nations=[winner.id],
                    details={"log": f"{winner.name} established control over {region.name}", "regionId": region.id},
                )))
                continue

            # The owner reasserting its own claim changes nothing
            if len(claimants) == 1 and claimants[0].id == region.owner_nation_id:
                continue

            participants = list(claimants)
            if region.owner_nation_id and all(n.id != region.owner_nation_id for n in participants):
                owner = self.store.get_nation(region.owner_nation_id)
                if owner:
                    participants.append(owner)

            if len(participants) < 2:
                continue

            result = self.conflict_resolver.resolve_region_conflict(
                region,
                participants,
                seed=f"{world_id}-{turn_number}-{region.id}",
            )
            new_owner = result.new_owner_id if result.new_control_level > 0 else None
            self.store.update_ownership(region.id, new_owner, result.new_control_level)

            logger.debug("Region %s contested: %s", region.id, result.log)
            events.append(self.store.log_event(NationEvent(
                world_id=world_id,
                turn_number=turn_number,
                event_type=NationEventType.REGION_CONQUERED if result.conquered else NationEventType.REGION_CLAIMED,
                involved_nations=[result.winner_id, result.loser_id],
                details={
                    "log": result.log,
                    "regionId": region.id,
                    "controlLevel": result.new_control_level,
                    "scores": {s.nation_id: s.score for s in result.scores},
                },
            )))

        return events

    def _claimants(self, region: Region, turn_number: int) -> list[Nation]:
        """Nations with a claim on the region placed this turn, first claim first."""
        seen: set[str] = set()
        nations: list[Nation] = []
        for claim in self.store.claims_for_region(region.id, turn_number):
            if claim.nation_id in seen:
                continue
            nation = self.store.get_nation(claim.nation_id)
            if nation is None or nation.world_id != region.world_id:
                continue
            seen.add(claim.nation_id)
            nations.append(nation)
        return nations

    def _process_consumption(self, nations: list[Nation]) -> None:
        for nation in nations:
            current = self.store.get_nation(nation.id) or nation
            r = current.resources
            self.store.update_resources(nation.id, NationResources(
                food=max(0, r.food - FOOD_UPKEEP),
                metal=r.metal,
                oil=r.oil,
            ))
