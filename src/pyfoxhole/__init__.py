"""pyfoxhole - Track Foxhole territory control and render it for e-paper displays."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyfoxhole")
except PackageNotFoundError:
    __version__ = "0+local"
from pyfoxhole.client import FoxholeClient, StateSource
from pyfoxhole.config import FoxholeConfig
from pyfoxhole.exceptions import (
    FoxholeApiError,
    FoxholeConfigError,
    FoxholeCycleError,
    FoxholeError,
    FoxholeFetchError,
    FoxholeRenderError,
    FoxholeStoreError,
    FoxholeTransportError,
)
from pyfoxhole.models import (
    ConquerStatus,
    DynamicMap,
    MapItem,
    Team,
    TerritoryKey,
    TerritoryRecord,
    UpsertResult,
    WarState,
)
from pyfoxhole.render import EpaperRenderer, Renderer
from pyfoxhole.service import ConquestService
from pyfoxhole.state import TerritoryStore
from pyfoxhole.sync import CycleResult, RegionFailure, RegionOutcome, Scheduler, SchedulerState, SyncEngine

__all__ = [
    "__version__",
    "ConquerStatus",
    "ConquestService",
    "CycleResult",
    "DynamicMap",
    "EpaperRenderer",
    "FoxholeApiError",
    "FoxholeClient",
    "FoxholeConfig",
    "FoxholeConfigError",
    "FoxholeCycleError",
    "FoxholeError",
    "FoxholeFetchError",
    "FoxholeRenderError",
    "FoxholeStoreError",
    "FoxholeTransportError",
    "MapItem",
    "RegionFailure",
    "RegionOutcome",
    "Renderer",
    "Scheduler",
    "SchedulerState",
    "StateSource",
    "SyncEngine",
    "Team",
    "TerritoryKey",
    "TerritoryRecord",
    "TerritoryStore",
    "UpsertResult",
    "WarState",
]
