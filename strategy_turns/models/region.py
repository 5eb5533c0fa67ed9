"""Region schemas - the territory nations compete over."""

from __future__ import annotations
from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
import uuid


class RegionType(str, Enum):
    """Kinds of region on the strategy map."""
    KINGDOM = "kingdom"
    DUCHY = "duchy"
    COUNTY = "county"
    WILDERNESS = "wilderness"
    WATER = "water"
    PLAINS = "plains"
    FOREST = "forest"
    MOUNTAIN = "mountain"
    DESERT = "desert"
    CITY = "city"


class Region(BaseModel):
    """A region of a world, optionally held by a nation."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4())[:8])
    world_id: str
    name: str
    type: RegionType = RegionType.PLAINS
    center_x: float = 0
    center_y: float = 0
    color: str = "#888888"

    owner_nation_id: Optional[str] = None
    control_level: int = Field(default=0, ge=0, le=100)

    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    model_config = {"extra": "allow", "alias_generator": to_camel, "populate_by_name": True}

    def set_owner(self, nation_id: Optional[str], control_level: int) -> None:
        """Change hands (or lose its owner) and record the new control level."""
        self.owner_nation_id = nation_id
        self.control_level = max(0, min(100, control_level))
        self.updated_at = datetime.now()

    def summary(self) -> str:
        owner = self.owner_nation_id or "unclaimed"
        return f"{self.name} ({self.type.value}): {owner}, control {self.control_level}"
