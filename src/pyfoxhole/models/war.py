"""War state model."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any

from pydantic import field_validator

from pyfoxhole.models._base import EpochTimestamp, FoxholeBaseModel
from pyfoxhole.models.team import Team, resolve_team


class WarState(FoxholeBaseModel):
    """Current war as reported by ``/worldconquest/war``.

    Parameters
    ----------
    war_id : str
        Opaque war identifier.
    war_number : int
        Sequential war number; changes when a new war starts.
    winner : Team
        Winning faction, :attr:`Team.NEUTRAL` while the war is running.
    conquest_start_time : datetime or None
        When the conquest phase started.
    conquest_end_time : datetime or None
        When the war ended.
    resistance_start_time : datetime or None
        When the resistance phase started.
    required_victory_towns : int
        Victory towns a faction must hold to win.
    """

    war_id: str = ""
    war_number: int
    winner: Team = Team.NEUTRAL
    conquest_start_time: EpochTimestamp = None
    conquest_end_time: EpochTimestamp = None
    resistance_start_time: EpochTimestamp = None
    required_victory_towns: int = 0

    @field_validator("winner", mode="before")
    @classmethod
    def _resolve_winner(cls, value: Any) -> Team:
        return resolve_team(value)

    @property
    def is_over(self) -> bool:
        return self.conquest_end_time is not None

    def elapsed(self, now: datetime | None = None) -> timedelta | None:
        """Time since the conquest started, ``None`` before it starts."""
        if self.conquest_start_time is None:
            return None
        end = self.conquest_end_time or now or datetime.now(UTC)
        return max(end - self.conquest_start_time, timedelta(0))
