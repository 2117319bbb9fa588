"""Poll-diff-trigger engine: sync cycles and their scheduling."""

from pyfoxhole.sync.engine import (
    CycleResult,
    RegionFailure,
    RegionOutcome,
    SyncEngine,
    fold_region_results,
)
from pyfoxhole.sync.scheduler import Scheduler, SchedulerState

__all__ = [
    "CycleResult",
    "RegionFailure",
    "RegionOutcome",
    "Scheduler",
    "SchedulerState",
    "SyncEngine",
    "fold_region_results",
]
