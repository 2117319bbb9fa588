"""Factions that can control territory."""

from __future__ import annotations

from enum import StrEnum
from typing import Any


class Team(StrEnum):
    """Controlling faction, valued by the raw War API ``teamId``.

    Unknown identifiers resolve to :attr:`NEUTRAL` instead of raising.
    """

    WARDENS = "WARDENS"
    COLONIALS = "COLONIALS"
    NEUTRAL = "NONE"

    @classmethod
    def _missing_(cls, value: object) -> Team:
        if isinstance(value, str):
            normalized = value.strip().upper()
            for member in cls:
                if member.value == normalized:
                    return member
        return cls.NEUTRAL

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]


_DISPLAY_NAMES: dict[Team, str] = {
    Team.WARDENS: "Wardens",
    Team.COLONIALS: "Colonials",
    Team.NEUTRAL: "Neutral",
}


def resolve_team(raw: Any) -> Team:
    """Resolve a raw ``teamId`` (or ``None``) to a :class:`Team`."""
    if raw is None:
        return Team.NEUTRAL
    if isinstance(raw, Team):
        return raw
    return Team(str(raw))
