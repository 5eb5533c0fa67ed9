"""Exceptions raised by the strategy systems.

Each carries a machine-readable ``code``; the tool layer turns them into
structured error responses so they never reach the transport.
"""

from __future__ import annotations
from typing import Any, Optional


class StrategyError(Exception):
    """Base class for expected, caller-facing failures."""

    code = "StrategyError"

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"error": True, "code": self.code, "message": self.message}
        data.update(self.details)
        return data


class NotInitialized(StrategyError):
    code = "NotInitialized"

    def __init__(self, world_id: str, message: Optional[str] = None):
        super().__init__(message or "Turn state not initialized. Call init first.", worldId=world_id)


class NotFound(StrategyError):
    code = "NotFound"


class WorldNotFound(NotFound):
    code = "WorldNotFound"

    def __init__(self, world_id: str):
        super().__init__("Turn state not found", worldId=world_id)


class NationNotFound(NotFound):
    code = "NationNotFound"

    def __init__(self, nation_id: str, world_id: Optional[str] = None):
        details: dict[str, Any] = {"nationId": nation_id}
        if world_id is not None:
            details["worldId"] = world_id
        super().__init__("Nation not found", **details)


class RegionNotFound(NotFound):
    code = "RegionNotFound"

    def __init__(self, region_id: str):
        super().__init__("Region not found", regionId=region_id)


class WrongPhase(StrategyError):
    code = "WrongPhase"

    def __init__(self, phase: str, message: str):
        super().__init__(message, phase=phase)


class ResolutionFailed(StrategyError):
    """Turn processing raised; the world was rolled back to planning."""

    code = "ResolutionFailed"

    def __init__(self, world_id: str, turn_number: int, cause: str):
        super().__init__(
            f"Turn {turn_number} failed to resolve: {cause}. "
            "The world was restored to planning; all nations must mark ready again.",
            worldId=world_id,
            turnNumber=turn_number,
        )
