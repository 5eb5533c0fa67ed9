"""Core strategy systems: storage, turn coordination, resolution and diplomacy."""

from .store import StrategyStore, WorldSnapshot
from .conflict_resolver import ConflictResolver, ConflictResult
from .turn_processor import TurnProcessor
from .turn_coordinator import TurnCoordinator
from .diplomacy_engine import DiplomacyEngine
from .fog_of_war import FogOfWar

__all__ = [
    "StrategyStore",
    "WorldSnapshot",
    "ConflictResolver",
    "ConflictResult",
    "TurnProcessor",
    "TurnCoordinator",
    "DiplomacyEngine",
    "FogOfWar",
]
