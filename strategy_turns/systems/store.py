"""Strategy store - keyed record storage for nations, regions, diplomacy and turn state."""

from __future__ import annotations
import threading
from datetime import datetime
from typing import Any, Optional

from strategy_turns.models.nation import Nation, NationResources
from strategy_turns.models.region import Region
from strategy_turns.models.diplomacy import DiplomaticRelation, TerritorialClaim, NationEvent
from strategy_turns.models.turn_state import TurnState


class WorldSnapshot:
    """Deep copy of every record belonging to one world, and when it was taken."""

    def __init__(
        self,
        world_id: str,
        nations: list[Nation],
        regions: list[Region],
        relations: list[DiplomaticRelation],
        claims: list[TerritorialClaim],
        events: list[NationEvent],
        taken_at: Optional[datetime] = None,
    ):
        self.world_id = world_id
        self.nations = nations
        self.regions = regions
        self.relations = relations
        self.claims = claims
        self.events = events
        self.taken_at = taken_at or datetime.now()


class StrategyStore:
    """In-memory record store.

    Records are looked up by primary key or by world. Nothing here coordinates
    turns; callers that need atomicity across several calls hold the
    coordinator's per-world lock.
    """

    def __init__(self) -> None:
        self._nations: dict[str, Nation] = {}
        self._regions: dict[str, Region] = {}
        self._relations: dict[tuple[str, str], DiplomaticRelation] = {}
        self._claims: list[TerritorialClaim] = []
        self._events: list[NationEvent] = []
        self._turn_states: dict[str, TurnState] = {}
        self._next_event_id: int = 1
        self._lock = threading.Lock()  # Guards list appends and the event counter

    # ===== Nations =====

    def add_nation(self, nation: Nation) -> Nation:
        self._nations[nation.id] = nation
        return nation

    def get_nation(self, nation_id: str) -> Optional[Nation]:
        return self._nations.get(nation_id)

    def nations_in_world(self, world_id: str) -> list[Nation]:
        return [n for n in self._nations.values() if n.world_id == world_id]

    def update_resources(self, nation_id: str, resources: NationResources) -> None:
        nation = self._nations.get(nation_id)
        if nation is None:
            raise KeyError(f"Nation {nation_id} not found")
        nation.resources = resources
        nation.touch()

    # ===== Regions =====

    def add_region(self, region: Region) -> Region:
        self._regions[region.id] = region
        return region

    def get_region(self, region_id: str) -> Optional[Region]:
        return self._regions.get(region_id)

    def regions_in_world(self, world_id: str) -> list[Region]:
        return [r for r in self._regions.values() if r.world_id == world_id]

    def update_ownership(self, region_id: str, owner_nation_id: Optional[str], control_level: int) -> None:
        region = self._regions.get(region_id)
        if region is None:
            raise KeyError(f"Region {region_id} not found")
        region.set_owner(owner_nation_id, control_level)

    # ===== Relations =====

    def get_relation(self, from_nation_id: str, to_nation_id: str) -> Optional[DiplomaticRelation]:
        return self._relations.get((from_nation_id, to_nation_id))

    def upsert_relation(self, relation: DiplomaticRelation) -> DiplomaticRelation:
        self._relations[relation.key] = relation
        return relation

    def relations_from(self, nation_id: str) -> list[DiplomaticRelation]:
        return [r for r in self._relations.values() if r.from_nation_id == nation_id]

    # ===== Claims =====

    def add_claim(self, claim: TerritorialClaim) -> TerritorialClaim:
        with self._lock:
            self._claims.append(claim)
        return claim

    def claims_for_region(self, region_id: str, turn_number: Optional[int] = None) -> list[TerritorialClaim]:
        claims = [c for c in self._claims if c.region_id == region_id]
        if turn_number is not None:
            claims = [c for c in claims if c.turn_number == turn_number]
        return claims

    def claims_by_nation(self, nation_id: str) -> list[TerritorialClaim]:
        return [c for c in self._claims if c.nation_id == nation_id]

    # ===== Events =====

    def log_event(self, event: NationEvent) -> NationEvent:
        with self._lock:
            event.id = self._next_event_id
            self._next_event_id += 1
            self._events.append(event)
        return event

    def events_for_world(self, world_id: str, turn_number: Optional[int] = None) -> list[NationEvent]:
        events = [e for e in self._events if e.world_id == world_id]
        if turn_number is not None:
            events = [e for e in events if e.turn_number == turn_number]
        return events

    # ===== Turn state =====

    def get_turn_state(self, world_id: str) -> Optional[TurnState]:
        return self._turn_states.get(world_id)

    def create_turn_state(self, turn_state: TurnState) -> TurnState:
        if turn_state.world_id in self._turn_states:
            raise ValueError(f"Turn state for world {turn_state.world_id} already exists")
        self._turn_states[turn_state.world_id] = turn_state
        return turn_state

    # ===== Snapshots =====

    def snapshot_world(self, world_id: str) -> WorldSnapshot:
        """Copy everything a turn resolution can touch for one world."""
        taken_at = datetime.now()
        nations = self.nations_in_world(world_id)
        nation_ids = {n.id for n in nations}
        with self._lock:
            claims = [c.model_copy(deep=True) for c in self._claims if c.nation_id in nation_ids]
            events = [e.model_copy(deep=True) for e in self._events if e.world_id == world_id]
        return WorldSnapshot(
            world_id=world_id,
            nations=[n.model_copy(deep=True) for n in nations],
            regions=[r.model_copy(deep=True) for r in self.regions_in_world(world_id)],
            relations=[
                r.model_copy(deep=True)
                for r in self._relations.values()
                if r.from_nation_id in nation_ids
            ],
            claims=claims,
            events=events,
            taken_at=taken_at,
        )

    def restore_world(self, snapshot: WorldSnapshot) -> None:
        """Put one world's records back as they were when snapshotted.

        Only records the snapshot captured, or records created after it was
        taken, are replaced or dropped. Anything else in the world is left alone.
        """
        world_id = snapshot.world_id
        taken_at = snapshot.taken_at
        captured = {n.id for n in snapshot.nations}
        created = {
            n.id for n in self.nations_in_world(world_id)
            if n.id not in captured and n.created_at >= taken_at
        }
        touched = captured | created

        for nation_id in touched:
            self._nations.pop(nation_id, None)
        for nation in snapshot.nations:
            self._nations[nation.id] = nation

        captured_regions = {r.id for r in snapshot.regions}
        for region in self.regions_in_world(world_id):
            if region.id in captured_regions or region.created_at >= taken_at:
                del self._regions[region.id]
        for region in snapshot.regions:
            self._regions[region.id] = region

        for key in [k for k, r in self._relations.items() if r.from_nation_id in touched]:
            del self._relations[key]
        for relation in snapshot.relations:
            self._relations[relation.key] = relation

        captured_events = {e.id for e in snapshot.events}
        with self._lock:
            self._claims = [c for c in self._claims if c.nation_id not in touched] + snapshot.claims
            self._events = [
                e for e in self._events
                if e.world_id != world_id or (e.id not in captured_events and e.timestamp < taken_at)
            ] + snapshot.events

    # ===== Serialization =====

    def export(self) -> dict[str, Any]:
        """Export all records for a save file."""
        with self._lock:
            claims = [c.model_dump(mode="json") for c in self._claims]
            events = [e.model_dump(mode="json") for e in self._events]
        return {
            "nations": [n.model_dump(mode="json") for n in self._nations.values()],
            "regions": [r.model_dump(mode="json") for r in self._regions.values()],
            "relations": [r.model_dump(mode="json") for r in self._relations.values()],
            "claims": claims,
            "events": events,
            "turn_states": [t.model_dump(mode="json") for t in self._turn_states.values()],
        }

    def import_data(self, data: dict[str, Any]) -> None:
        """Replace all records with serialized data."""
        self._nations = {n.id: n for n in (Nation(**d) for d in data.get("nations", []))}
        self._regions = {r.id: r for r in (Region(**d) for d in data.get("regions", []))}
        self._relations = {
            r.key: r for r in (DiplomaticRelation(**d) for d in data.get("relations", []))
        }
        self._turn_states = {
            t.world_id: t for t in (TurnState(**d) for d in data.get("turn_states", []))
        }
        with self._lock:
            self._claims = [TerritorialClaim(**d) for d in data.get("claims", [])]
            self._events = [NationEvent(**d) for d in data.get("events", [])]
            max_id = max((e.id or 0 for e in self._events), default=0)
            self._next_event_id = max_id + 1
