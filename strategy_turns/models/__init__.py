"""Pydantic data models for nations, regions, diplomacy and turn state."""

from .nation import Nation, NationResources, Ideology
from .region import Region, RegionType
from .diplomacy import DiplomaticRelation, TerritorialClaim, NationEvent, NationEventType, DEFAULT_OPINION
from .turn_state import TurnState, TurnPhase, TurnAction, TurnActionType

__all__ = [
    "Nation",
    "NationResources",
    "Ideology",
    "Region",
    "RegionType",
    "DiplomaticRelation",
    "TerritorialClaim",
    "NationEvent",
    "NationEventType",
    "DEFAULT_OPINION",
    "TurnState",
    "TurnPhase",
    "TurnAction",
    "TurnActionType",
]
