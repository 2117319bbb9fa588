"""Dynamic map models."""

from __future__ import annotations

from typing import Any

from pydantic import Field, field_validator

from pyfoxhole._constants import FLAG_SCORCHED, FLAG_VICTORY_BASE
from pyfoxhole.models._base import EpochTimestamp, FoxholeBaseModel
from pyfoxhole.models.icon import icon_info, is_conquerable
from pyfoxhole.models.team import Team, resolve_team


class MapItem(FoxholeBaseModel):
    """A single marker on a region's dynamic map.

    ``x`` and ``y`` are normalized (0-1) coordinates inside the hex and
    stay fixed for the life of a war.
    """

    team_id: Team = Team.NEUTRAL
    icon_type: int
    x: float
    y: float
    flags: int = 0

    @field_validator("team_id", mode="before")
    @classmethod
    def _resolve_team(cls, value: Any) -> Team:
        return resolve_team(value)

    @property
    def conquerable(self) -> bool:
        return is_conquerable(self.icon_type)

    @property
    def label(self) -> str:
        info = icon_info(self.icon_type)
        return info.label if info is not None else f"Icon {self.icon_type}"

    @property
    def is_victory_base(self) -> bool:
        return bool(self.flags & FLAG_VICTORY_BASE)

    @property
    def is_scorched(self) -> bool:
        return bool(self.flags & FLAG_SCORCHED)


class DynamicMap(FoxholeBaseModel):
    """Public dynamic data for one region (``/maps/{region}/dynamic/public``)."""

    region_id: int | None = None
    map_items: list[MapItem] = Field(default_factory=list)
    last_updated: EpochTimestamp = None
    version: int | None = None

    def conquerable_items(self) -> list[MapItem]:
        """Only the items that represent capturable territory."""
        return [item for item in self.map_items if item.conquerable]
