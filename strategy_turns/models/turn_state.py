"""Turn state schemas - the per-world turn cycle and the actions nations submit into it."""

from __future__ import annotations
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, Field


class TurnPhase(str, Enum):
    """Phases of a turn. Only PLANNING is ever observed at rest."""
    PLANNING = "planning"
    RESOLUTION = "resolution"
    FINISHED = "finished"


class TurnState(BaseModel):
    """Where a world is in its turn cycle."""
    world_id: str
    current_turn: int = Field(default=1, ge=1)
    turn_phase: TurnPhase = TurnPhase.PLANNING
    phase_started_at: datetime = Field(default_factory=datetime.now)
    nations_ready: set[str] = Field(default_factory=set)
    last_error: Optional[str] = None

    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    @property
    def accepts_actions(self) -> bool:
        return self.turn_phase == TurnPhase.PLANNING

    def set_phase(self, phase: TurnPhase) -> None:
        now = datetime.now()
        self.turn_phase = phase
        self.phase_started_at = now
        self.updated_at = now

    def add_ready(self, nation_id: str) -> bool:
        """Mark a nation ready. Returns False if it already was."""
        if nation_id in self.nations_ready:
            return False
        self.nations_ready.add(nation_id)
        self.updated_at = datetime.now()
        return True

    def clear_ready(self) -> None:
        self.nations_ready.clear()
        self.updated_at = datetime.now()

    def advance_turn(self) -> None:
        self.current_turn += 1
        self.updated_at = datetime.now()

    def summary(self) -> str:
        return (
            f"Turn {self.current_turn} ({self.turn_phase.value}), "
            f"{len(self.nations_ready)} ready"
        )


class TurnActionType(str, Enum):
    """Things a nation can do during planning."""
    CLAIM_REGION = "claim_region"
    PROPOSE_ALLIANCE = "propose_alliance"
    BREAK_ALLIANCE = "break_alliance"
    DECLARE_INTENT = "declare_intent"
    SEND_MESSAGE = "send_message"
    ADJUST_RELATIONS = "adjust_relations"


class TurnAction(BaseModel):
    """One entry of a submit_actions batch.

    ``type`` stays a plain string so a batch containing an unknown type still
    parses; such entries are skipped when the batch is applied.
    """
    type: str
    region_id: Optional[str] = Field(default=None, alias="regionId")
    to_nation_id: Optional[str] = Field(default=None, alias="toNationId")
    justification: Optional[str] = None
    intent: Optional[str] = None
    message: Optional[str] = None
    opinion_delta: Optional[float] = Field(default=None, alias="opinionDelta")

    model_config = {"populate_by_name": True, "extra": "ignore"}

    @property
    def action_type(self) -> Optional[TurnActionType]:
        try:
            return TurnActionType(self.type)
        except ValueError:
            return None

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)
