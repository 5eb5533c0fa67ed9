"""Nation schemas - the actors of a strategy world."""

from __future__ import annotations
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
import uuid


class Ideology(str, Enum):
    """Political ideology of a nation."""
    DEMOCRACY = "democracy"
    AUTOCRACY = "autocracy"
    THEOCRACY = "theocracy"
    TRIBAL = "tribal"


class NationResources(BaseModel):
    """Stockpiles a nation draws on each turn."""
    food: int = Field(default=0, ge=0)
    metal: int = Field(default=0, ge=0)
    oil: int = Field(default=0, ge=0)

    model_config = {"extra": "allow"}


class Nation(BaseModel):
    """A nation, controlled by one agent for the lifetime of a world."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4())[:8])
    world_id: str
    name: str
    leader: str = Field(description="Name of the persona leading this nation")
    ideology: Ideology = Ideology.DEMOCRACY

    # Personality traits (0-100)
    aggression: int = Field(default=50, ge=0, le=100)
    trust: int = Field(default=50, ge=0, le=100)
    paranoia: int = Field(default=50, ge=0, le=100)

    # Economy
    gdp: float = Field(default=1000, ge=0)
    resources: NationResources = Field(default_factory=NationResources)
    relations: dict[str, Any] = Field(default_factory=dict)

    # Agent-facing state
    private_memory: dict[str, Any] = Field(default_factory=dict, description="Visible to the owning agent only")
    public_intent: Optional[str] = Field(default=None, description="Publicly declared intent")

    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    model_config = {"extra": "allow", "alias_generator": to_camel, "populate_by_name": True}

    @property
    def power(self) -> float:
        """Raw strength used when regions are contested."""
        return self.gdp + (self.resources.oil * 2) + self.resources.metal

    def touch(self) -> None:
        self.updated_at = datetime.now()

    def public_view(self) -> dict[str, Any]:
        """What any other nation is allowed to know."""
        return {
            "id": self.id,
            "name": self.name,
            "leader": self.leader,
            "ideology": self.ideology.value,
            "publicIntent": self.public_intent,
        }

    def summary(self) -> str:
        """One-line description."""
        r = self.resources
        return (
            f"{self.name} ({self.ideology.value}, led by {self.leader}): "
            f"food {r.food}, metal {r.metal}, oil {r.oil}, gdp {self.gdp:g}"
        )
