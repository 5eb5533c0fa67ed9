"""Diplomacy schemas - relations, territorial claims and the nation event log."""

from __future__ import annotations
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, Field
import uuid


DEFAULT_OPINION = 50


class DiplomaticRelation(BaseModel):
    """How one nation regards another. Directed: A->B and B->A are separate records."""
    from_nation_id: str
    to_nation_id: str
    # Not clamped: adjust_relations accumulates freely.
    opinion: float = DEFAULT_OPINION
    is_allied: bool = False
    truce_until: Optional[int] = Field(default=None, description="Turn number when truce expires")
    updated_at: datetime = Field(default_factory=datetime.now)

    @property
    def key(self) -> tuple[str, str]:
        return (self.from_nation_id, self.to_nation_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "fromNationId": self.from_nation_id,
            "toNationId": self.to_nation_id,
            "opinion": self.opinion,
            "isAllied": self.is_allied,
            "truceUntil": self.truce_until,
        }


class TerritorialClaim(BaseModel):
    """A nation's assertion over a region. Claims are never edited once made."""
    id: str = Field(default_factory=lambda: f"claim-{uuid.uuid4().hex[:12]}")
    nation_id: str
    region_id: str
    claim_strength: int = Field(default=100, ge=0, le=100)
    justification: Optional[str] = None
    turn_number: int = 0
    created_at: datetime = Field(default_factory=datetime.now)


class NationEventType(str, Enum):
    """Categories of diplomatic and territorial events."""
    ALLIANCE_FORMED = "ALLIANCE_FORMED"
    ALLIANCE_BROKEN = "ALLIANCE_BROKEN"
    WAR_DECLARED = "WAR_DECLARED"
    PEACE_SIGNED = "PEACE_SIGNED"
    REGION_CLAIMED = "REGION_CLAIMED"
    REGION_CONQUERED = "REGION_CONQUERED"
    REGION_TRANSFERRED = "REGION_TRANSFERRED"
    DIPLOMATIC_MESSAGE = "DIPLOMATIC_MESSAGE"
    RESOURCE_TRANSFER = "RESOURCE_TRANSFER"


class NationEvent(BaseModel):
    """Something that happened between nations, keyed by (world, turn)."""
    id: Optional[int] = None  # Assigned by the store
    world_id: str
    turn_number: int
    event_type: NationEventType
    involved_nations: list[str] = Field(default_factory=list)
    details: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "worldId": self.world_id,
            "turnNumber": self.turn_number,
            "eventType": self.event_type.value,
            "involvedNations": list(self.involved_nations),
            "details": dict(self.details),
            "timestamp": self.timestamp.isoformat(),
        }

    def summary(self) -> str:
        log = self.details.get("log") or ", ".join(self.involved_nations)
        return f"[Turn {self.turn_number}] {self.event_type.value}: {log}"
