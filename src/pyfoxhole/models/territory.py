"""Territory control models.

These are owned by the territory store, not parsed from the War API.
:class:`ConquerStatus` is the read-only projection handed to renderers.
"""

from __future__ import annotations

from collections import Counter
from datetime import UTC, datetime, timedelta

from pydantic import BaseModel, ConfigDict, Field

from pyfoxhole.models.team import Team


class TerritoryKey(BaseModel):
    """Identity of a territory across cycles.

    Type and position together identify a town for the life of a war.
    """

    model_config = ConfigDict(frozen=True)

    icon_type: int
    x: float
    y: float
    region: str

    def __str__(self) -> str:
        return f"{self.region}:{self.icon_type}:{self.x:g}:{self.y:g}"


class TerritoryRecord(BaseModel):
    """Last known controller of one territory."""

    model_config = ConfigDict(frozen=True)

    key: TerritoryKey
    team: Team
    label: str
    updated_at: datetime | None = None

    @property
    def region(self) -> str:
        return self.key.region


class UpsertResult(BaseModel):
    """Outcome of reconciling one observation with the store."""

    model_config = ConfigDict(frozen=True)

    key: TerritoryKey
    changed: bool
    previous_team: Team | None = None


class ConquerStatus(BaseModel):
    """Point-in-time snapshot of every known territory."""

    model_config = ConfigDict(frozen=True)

    territories: tuple[TerritoryRecord, ...] = ()
    war_number: int | None = None
    conquest_start_time: datetime | None = None
    required_victory_towns: int = 0
    taken_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def get(self, key: TerritoryKey) -> TerritoryRecord | None:
        for record in self.territories:
            if record.key == key:
                return record
        return None

    def team_counts(self) -> dict[Team, int]:
        """Territories held per team (every team present, zero if none)."""
        counts = Counter(record.team for record in self.territories)
        return {team: counts.get(team, 0) for team in Team}

    def by_region(self) -> dict[str, dict[Team, int]]:
        """Per-region territory counts, regions in sorted order."""
        result: dict[str, dict[Team, int]] = {}
        for record in sorted(self.territories, key=lambda r: r.region):
            counts = result.setdefault(record.region, {team: 0 for team in Team})
            counts[record.team] += 1
        return result

    def war_elapsed(self) -> timedelta | None:
        if self.conquest_start_time is None:
            return None
        return max(self.taken_at - self.conquest_start_time, timedelta(0))
