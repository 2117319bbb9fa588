"""Data models for War API responses and territory state."""

from pyfoxhole.models._base import EpochTimestamp, FoxholeBaseModel, parse_epoch_timestamp
from pyfoxhole.models.icon import ICON_TYPES, IconInfo, icon_info, is_conquerable
from pyfoxhole.models.map import DynamicMap, MapItem
from pyfoxhole.models.team import Team, resolve_team
from pyfoxhole.models.territory import ConquerStatus, TerritoryKey, TerritoryRecord, UpsertResult
from pyfoxhole.models.war import WarState

__all__ = [
    "ConquerStatus",
    "DynamicMap",
    "EpochTimestamp",
    "FoxholeBaseModel",
    "ICON_TYPES",
    "IconInfo",
    "MapItem",
    "Team",
    "TerritoryKey",
    "TerritoryRecord",
    "UpsertResult",
    "WarState",
    "icon_info",
    "is_conquerable",
    "parse_epoch_timestamp",
    "resolve_team",
]
