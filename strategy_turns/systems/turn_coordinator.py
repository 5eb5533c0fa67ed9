"""Turn coordinator - the per-world planning/resolution cycle.

Every nation submits actions during planning and then marks itself ready.
The call that completes the readiness barrier resolves the turn before it
returns:

    planning -> resolution -> finished -> planning (turn + 1)

Diplomatic actions take effect the moment they are submitted, so a nation's
relations can change mid-planning because of what others submit. Territorial
claims only take effect when the turn resolves.

Each world has its own re-entrant lock. Every operation that reads or writes a
world's turn state holds it, which makes the barrier check-and-trigger atomic:
two nations marking ready at the same moment cannot both miss the barrier or
both fire it.
"""

from __future__ import annotations
import logging
import threading
from typing import Any, Iterable, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from strategy_turns.systems.store import StrategyStore

from strategy_turns.models.nation import Nation
from strategy_turns.models.diplomacy import DiplomaticRelation, TerritorialClaim, DEFAULT_OPINION
from strategy_turns.models.turn_state import TurnState, TurnPhase, TurnAction, TurnActionType
from strategy_turns.systems.turn_processor import TurnProcessor
from strategy_turns.systems.errors import (
    NotInitialized,
    NationNotFound,
    WorldNotFound,
    WrongPhase,
    ResolutionFailed,
)


logger = logging.getLogger("strategy-turns.turns")

CLAIM_STRENGTH = 100
ALLIANCE_MIN_OPINION = 50


class TurnCoordinator:
    """Owns the turn state of every world in a store."""

    def __init__(
        self,
        store: "StrategyStore",
        processor: Optional[TurnProcessor] = None,
        event_sample_size: int = 10,
    ):
        self.store = store
        self.processor = processor or TurnProcessor(store)
        self.event_sample_size = event_sample_size
        self._locks: dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()

    def world_lock(self, world_id: str) -> threading.RLock:
        """The lock serializing all turn operations on one world."""
        with self._locks_guard:
            lock = self._locks.get(world_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[world_id] = lock
            return lock

    # ===== Lookups =====

    def _require_state(self, world_id: str) -> TurnState:
        state = self.store.get_turn_state(world_id)
        if state is None:
            raise NotInitialized(world_id)
        return state

    def _require_nation(self, world_id: str, nation_id: str) -> Nation:
        nation = self.store.get_nation(nation_id)
        if nation is None or nation.world_id != world_id:
            raise NationNotFound(nation_id, world_id)
        return nation

    @staticmethod
    def _waiting_for(state: TurnState, nations: Iterable[Nation]) -> list[dict[str, str]]:
        return [{"id": n.id, "name": n.name} for n in nations if n.id not in state.nations_ready]

    # ===== Operations =====

    def init(self, world_id: str) -> dict[str, Any]:
        """Create the world's turn state, or report the existing one untouched."""
        with self.world_lock(world_id):
            existing = self.store.get_turn_state(world_id)
            if existing is not None:
                return {
                    "worldId": world_id,
                    "alreadyInitialized": True,
                    "currentTurn": existing.current_turn,
                    "phase": existing.turn_phase.value,
                    "message": "Turn state already initialized",
                }

            state = self.store.create_turn_state(TurnState(world_id=world_id))
            logger.info("Initialized turn state for world %s", world_id)
            return {
                "worldId": world_id,
                "currentTurn": state.current_turn,
                "phase": state.turn_phase.value,
                "message": "Turn state initialized",
            }

    def get_status(self, world_id: str) -> dict[str, Any]:
        with self.world_lock(world_id):
            state = self._require_state(world_id)
            nations = self.store.nations_in_world(world_id)
            waiting = self._waiting_for(state, nations)

            status: dict[str, Any] = {
                "worldId": world_id,
                "currentTurn": state.current_turn,
                "phase": state.turn_phase.value,
                "phaseStartedAt": state.phase_started_at.isoformat(),
                "nationsReady": len(state.nations_ready),
                "totalNations": len(nations),
                "waitingFor": waiting,
                "canSubmitActions": state.accepts_actions,
                "allReady": not waiting and len(nations) > 0,
            }
            if state.last_error:
                status["lastError"] = state.last_error
            return status

    def submit_actions(self, world_id: str, nation_id: str, actions: list[TurnAction]) -> dict[str, Any]:
        """Apply a nation's actions immediately. Returns one description per applied action."""
        with self.world_lock(world_id):
            state = self._require_state(world_id)
            if not state.accepts_actions:
                raise WrongPhase(
                    state.turn_phase.value,
                    f"Cannot submit actions in {state.turn_phase.value} phase. Only allowed during planning.",
                )
            nation = self._require_nation(world_id, nation_id)

            processed: list[str] = []
            for action in actions:
                description = self._apply_action(nation, action, state.current_turn)
                if description is None:
                    logger.debug("Skipped %s action from %s: %s", action.type, nation_id, action.to_dict())
                    continue
                processed.append(description)

            logger.info(
                "Nation %s submitted %d actions for turn %d (%d applied)",
                nation_id, len(actions), state.current_turn, len(processed),
            )
            return {
                "worldId": world_id,
                "nationId": nation_id,
                "nationName": nation.name,
                "turn": state.current_turn,
                "actionsSubmitted": len(actions),
                "processedActions": processed,
            }

    def _apply_action(self, nation: Nation, action: TurnAction, turn_number: int) -> Optional[str]:
        """Apply one action against the store. None means it was skipped."""
        kind = action.action_type

        if kind == TurnActionType.CLAIM_REGION:
            if not action.region_id:
                return None
            self.store.add_claim(TerritorialClaim(
                nation_id=nation.id,
                region_id=action.region_id,
                claim_strength=CLAIM_STRENGTH,
                justification=action.justification,
                turn_number=turn_number,
            ))
            return f"Claimed region {action.region_id}"

        if kind == TurnActionType.PROPOSE_ALLIANCE:
            if not action.to_nation_id:
                return None
            relation = self.store.get_relation(nation.id, action.to_nation_id)
            if relation is not None and relation.opinion < ALLIANCE_MIN_OPINION:
                return None
            self.store.upsert_relation(DiplomaticRelation(
                from_nation_id=nation.id,
                to_nation_id=action.to_nation_id,
                opinion=relation.opinion if relation else DEFAULT_OPINION,
                is_allied=True,
            ))
            return f"Alliance proposed to {action.to_nation_id}"

        if kind == TurnActionType.BREAK_ALLIANCE:
            if not action.to_nation_id:
                return None
            relation = self.store.get_relation(nation.id, action.to_nation_id)
            if relation is None or not relation.is_allied:
                return None
            self.store.upsert_relation(relation.model_copy(update={"is_allied": False}))
            return f"Alliance broken with {action.to_nation_id}"

        if kind == TurnActionType.DECLARE_INTENT:
            if not action.intent:
                return None
            nation.public_intent = action.intent
            nation.touch()
            return f"Intent declared: {action.intent}"

        if kind == TurnActionType.SEND_MESSAGE:
            if not action.message or not action.to_nation_id:
                return None
            return f"Message sent to {action.to_nation_id}"

        if kind == TurnActionType.ADJUST_RELATIONS:
            if not action.to_nation_id or action.opinion_delta is None:
                return None
            relation = self.store.get_relation(nation.id, action.to_nation_id)
            base = relation.opinion if relation else DEFAULT_OPINION
            self.store.upsert_relation(DiplomaticRelation(
                from_nation_id=nation.id,
                to_nation_id=action.to_nation_id,
                opinion=base + action.opinion_delta,
                is_allied=relation.is_allied if relation else False,
                truce_until=relation.truce_until if relation else None,
            ))
            sign = "+" if action.opinion_delta > 0 else ""
            return f"Relations adjusted with {action.to_nation_id}: {sign}{action.opinion_delta:g}"

        return None

    def mark_ready(self, world_id: str, nation_id: str) -> dict[str, Any]:
        """Mark a nation ready; resolve the turn if it was the last one."""
        with self.world_lock(world_id):
            state = self._require_state(world_id)
            if not state.accepts_actions:
                raise WrongPhase(state.turn_phase.value, f"Cannot mark ready in {state.turn_phase.value} phase")
            nation = self._require_nation(world_id, nation_id)

            state.add_ready(nation_id)
            nations = self.store.nations_in_world(world_id)
            total = len(nations)

            if total > 0 and len(state.nations_ready) == total:
                resolved_turn = self._resolve(state)
                return {
                    "worldId": world_id,
                    "nationId": nation_id,
                    "nationName": nation.name,
                    "allReady": True,
                    "turnResolved": resolved_turn,
                    "nextTurn": resolved_turn + 1,
                    "message": "All nations ready! Turn resolved automatically.",
                }

            return {
                "worldId": world_id,
                "nationId": nation_id,
                "nationName": nation.name,
                "allReady": False,
                "nationsReady": len(state.nations_ready),
                "totalNations": total,
                "waitingFor": self._waiting_for(state, nations),
            }

    def _resolve(self, state: TurnState) -> int:
        """Run the resolution pass. Caller holds the world lock."""
        world_id = state.world_id
        turn_number = state.current_turn
        snapshot = self.store.snapshot_world(world_id)

        state.set_phase(TurnPhase.RESOLUTION)
        logger.info("World %s: all nations ready, resolving turn %d", world_id, turn_number)

        try:
            self.processor.process_turn(world_id, turn_number)
        except Exception as e:
            logger.exception("World %s: turn %d failed to resolve, rolling back", world_id, turn_number)
            self.store.restore_world(snapshot)
            state.clear_ready()
            state.last_error = f"{type(e).__name__}: {e}"
            state.set_phase(TurnPhase.PLANNING)
            raise ResolutionFailed(world_id, turn_number, state.last_error) from e

        state.set_phase(TurnPhase.FINISHED)
        state.advance_turn()
        state.clear_ready()
        state.last_error = None
        state.set_phase(TurnPhase.PLANNING)
        logger.info("World %s: turn %d resolved, now planning turn %d", world_id, turn_number, state.current_turn)
        return turn_number

    def poll_results(self, world_id: str, turn_number: int) -> dict[str, Any]:
        with self.world_lock(world_id):
            state = self.store.get_turn_state(world_id)
            if state is None:
                raise WorldNotFound(world_id)

            if state.current_turn > turn_number:
                events = self.store.events_for_world(world_id, turn_number)
                return {
                    "worldId": world_id,
                    "turnNumber": turn_number,
                    "resolved": True,
                    "eventsCount": len(events),
                    "events": [e.to_dict() for e in events[:self.event_sample_size]],
                    "nextTurn": state.current_turn,
                    "currentPhase": state.turn_phase.value,
                    "message": f"Turn {turn_number} resolved",
                }

            if state.turn_phase == TurnPhase.RESOLUTION and turn_number == state.current_turn:
                return {
                    "worldId": world_id,
                    "turnNumber": turn_number,
                    "resolved": False,
                    "phase": TurnPhase.RESOLUTION.value,
                    "message": "Turn is being resolved...",
                }

            result: dict[str, Any] = {
                "worldId": world_id,
                "turnNumber": turn_number,
                "resolved": False,
                "phase": state.turn_phase.value,
                "currentTurn": state.current_turn,
            }
            if turn_number == state.current_turn:
                result["message"] = "Turn not yet resolved. Waiting for all nations to mark ready."
                if state.last_error:
                    result["lastError"] = state.last_error
            else:
                result["message"] = f"Turn {turn_number} is in the future (current: {state.current_turn})"
            return result

    def resolve_turn(self, world_id: str, turn_number: int) -> list:
        """Operator override: run the processor without touching turn state."""
        with self.world_lock(world_id):
            return self.processor.process_turn(world_id, turn_number)
