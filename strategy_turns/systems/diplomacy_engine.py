"""Diplomacy engine - direct alliance and opinion changes outside the turn batch."""

from __future__ import annotations
import logging
from typing import Any, TYPE_CHECKING

if TYPE_CHECKING:
    from strategy_turns.systems.store import StrategyStore

from strategy_turns.models.diplomacy import DiplomaticRelation, NationEvent, NationEventType, DEFAULT_OPINION
from strategy_turns.systems.errors import NationNotFound


logger = logging.getLogger("strategy-turns.diplomacy")

ALLIANCE_OPINION = 75
BREAKER_OPINION = -20
BROKEN_OPINION = -50
OPINION_MIN = -100
OPINION_MAX = 100


class DiplomacyEngine:
    """Alliance proposals, breaks and messages between two nations.

    Unlike the ``adjust_relations`` turn action, opinions changed here are
    clamped to [-100, 100] and alliances are always kept symmetric.
    """

    def __init__(self, store: "StrategyStore"):
        self.store = store

    def _current_turn(self, world_id: str) -> int:
        state = self.store.get_turn_state(world_id)
        return state.current_turn if state else 0

    def _log(self, world_id: str, event_type: NationEventType, involved: list[str], details: dict[str, Any]) -> NationEvent:
        return self.store.log_event(NationEvent(
            world_id=world_id,
            turn_number=self._current_turn(world_id),
            event_type=event_type,
            involved_nations=involved,
            details=details,
        ))

    def propose_alliance(self, from_nation_id: str, to_nation_id: str) -> dict[str, Any]:
        """Offer an alliance. The target accepts if it likes the proposer enough.

        Acceptance needs opinion >= 50 + paranoia / 2, where paranoia is the
        target's.
        """
        from_nation = self.store.get_nation(from_nation_id)
        to_nation = self.store.get_nation(to_nation_id)
        if from_nation is None:
            raise NationNotFound(from_nation_id)
        if to_nation is None:
            raise NationNotFound(to_nation_id)

        relation = self.store.get_relation(from_nation_id, to_nation_id)
        if relation is not None and relation.is_allied:
            return {"success": False, "reason": "Already allied"}

        opinion = relation.opinion if relation else DEFAULT_OPINION
        threshold = 50 + to_nation.paranoia / 2
        if opinion < threshold:
            logger.info("%s refused alliance with %s (opinion %g < %g)", to_nation.name, from_nation.name, opinion, threshold)
            return {"success": False, "reason": "Refused: Opinion too low"}

        self._establish_alliance(from_nation.world_id, from_nation_id, to_nation_id)
        logger.info("Alliance formed: %s and %s", from_nation.name, to_nation.name)
        return {"success": True}

    def _establish_alliance(self, world_id: str, first_id: str, second_id: str) -> None:
        for a, b in ((first_id, second_id), (second_id, first_id)):
            existing = self.store.get_relation(a, b)
            self.store.upsert_relation(DiplomaticRelation(
                from_nation_id=a,
                to_nation_id=b,
                opinion=ALLIANCE_OPINION,
                is_allied=True,
                truce_until=existing.truce_until if existing else None,
            ))
        self._log(world_id, NationEventType.ALLIANCE_FORMED, [first_id, second_id], {})

    def break_alliance(self, from_nation_id: str, to_nation_id: str) -> None:
        """End an alliance in both directions. The betrayed side holds the bigger grudge."""
        nation = self.store.get_nation(from_nation_id)
        if nation is None:
            raise NationNotFound(from_nation_id)

        self.store.upsert_relation(DiplomaticRelation(
            from_nation_id=from_nation_id,
            to_nation_id=to_nation_id,
            opinion=BREAKER_OPINION,
            is_allied=False,
        ))
        self.store.upsert_relation(DiplomaticRelation(
            from_nation_id=to_nation_id,
            to_nation_id=from_nation_id,
            opinion=BROKEN_OPINION,
            is_allied=False,
        ))
        self._log(nation.world_id, NationEventType.ALLIANCE_BROKEN, [from_nation_id, to_nation_id], {"initiator": from_nation_id})
        logger.info("Alliance broken by %s with %s", from_nation_id, to_nation_id)

    def adjust_opinion(self, from_nation_id: str, to_nation_id: str, delta: float) -> DiplomaticRelation:
        current = self.store.get_relation(from_nation_id, to_nation_id)
        base = current.opinion if current else DEFAULT_OPINION
        return self.store.upsert_relation(DiplomaticRelation(
            from_nation_id=from_nation_id,
            to_nation_id=to_nation_id,
            opinion=max(OPINION_MIN, min(OPINION_MAX, base + delta)),
            is_allied=current.is_allied if current else False,
            truce_until=current.truce_until if current else None,
        ))

    def send_message(self, from_nation_id: str, to_nation_id: str, message: str) -> NationEvent:
        nation = self.store.get_nation(from_nation_id)
        if nation is None:
            raise NationNotFound(from_nation_id)
        return self._log(
            nation.world_id,
            NationEventType.DIPLOMATIC_MESSAGE,
            [from_nation_id, to_nation_id],
            {"message": message},
        )
