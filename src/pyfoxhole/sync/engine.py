"""One poll cycle: fetch, reconcile per region, aggregate.

Region fetches are independent.  Each one produces either a
:class:`RegionOutcome` or a :class:`RegionFailure`; the cycle result is
a fold over those, so a broken region can never abort the others.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from pyfoxhole.client import StateSource
from pyfoxhole.exceptions import FoxholeCycleError, FoxholeFetchError, FoxholeStoreError
from pyfoxhole.models.map import DynamicMap
from pyfoxhole.models.territory import TerritoryKey
from pyfoxhole.models.war import WarState
from pyfoxhole.state.policy import is_new_war
from pyfoxhole.state.store import TerritoryStore

_logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RegionOutcome:
    """A region that was fetched and reconciled."""

    region: str
    reconciled: int = 0
    changed: int = 0


@dataclass(frozen=True, slots=True)
class RegionFailure:
    """A region that could not be processed this cycle."""

    region: str
    error: FoxholeFetchError


RegionResult = RegionOutcome | RegionFailure


@dataclass(frozen=True, slots=True)
class CycleResult:
    """Aggregate of one cycle across all regions."""

    war_number: int | None
    total_reconciled: int = 0
    changed: int = 0
    regions: tuple[RegionResult, ...] = field(default_factory=tuple)
    war_changed: bool = False

    @property
    def failures(self) -> tuple[RegionFailure, ...]:
        return tuple(r for r in self.regions if isinstance(r, RegionFailure))


def fold_region_results(
    war_number: int | None,
    results: Iterable[RegionResult],
    *,
    war_changed: bool = False,
) -> CycleResult:
    """Sum successful regions into a :class:`CycleResult`; failures add nothing."""
    collected = tuple(results)
    total = 0
    changed = 0
    for result in collected:
        if isinstance(result, RegionOutcome):
            total += result.reconciled
            changed += result.changed
    return CycleResult(
        war_number=war_number,
        total_reconciled=total,
        changed=changed,
        regions=collected,
        war_changed=war_changed,
    )


class SyncEngine:
    """Reconcile the remote war state into a :class:`TerritoryStore`."""

    def __init__(
        self,
        source: StateSource,
        store: TerritoryStore,
        *,
        max_concurrent_fetches: int = 8,
        reset_on_new_war: bool = True,
    ) -> None:
        self._source = source
        self._store = store
        self._fetch_slots = asyncio.Semaphore(max_concurrent_fetches)
        self._reset_on_new_war = reset_on_new_war

    async def run_cycle(self) -> CycleResult:
        """Run one fetch-reconcile-aggregate pass over every active region.

        Raises
        ------
        FoxholeCycleError
            The war state or the region list could not be fetched.  The
            store is left untouched.
        """
        _logger.debug("Updating town control data...")
        try:
            war = await self._source.get_war()
            regions = await self._source.get_maps()
        except Exception as exc:
            raise FoxholeCycleError(f"Could not fetch war state or region list: {exc}") from exc

        war_changed = await self._observe_war(war)

        _logger.debug("Processing %d regions from API", len(regions))
        results = await asyncio.gather(*(self._sync_region(region) for region in regions))
        cycle = fold_region_results(war.war_number, results, war_changed=war_changed)

        for failure in cycle.failures:
            _logger.error("Error processing region %s: %s", failure.region, failure.error)
        if cycle.changed > 0:
            _logger.info(
                "Town control update: %d towns changed (%d total tracked)",
                cycle.changed,
                cycle.total_reconciled,
            )
        else:
            _logger.debug("Data update complete. No changes (%d towns tracked)", cycle.total_reconciled)
        return cycle

    async def _observe_war(self, war: WarState) -> bool:
        try:
            previous, dropped = await asyncio.to_thread(self._store.begin_war, war, reset=self._reset_on_new_war)
        except FoxholeStoreError as exc:
            raise FoxholeCycleError(f"Could not record war {war.war_number}: {exc}") from exc
        if not is_new_war(previous, war.war_number):
            return False
        if self._reset_on_new_war:
            _logger.warning(
                "War changed from %s to %d; dropped %d territories from the previous war",
                previous,
                war.war_number,
                dropped,
            )
        else:
            _logger.warning(
                "War changed from %s to %d; keeping territory state from the previous war",
                previous,
                war.war_number,
            )
        return True

    async def _sync_region(self, region: str) -> RegionResult:
        async with self._fetch_slots:
            _logger.debug("Processing region: %s", region)
            try:
                snapshot = await self._source.get_dynamic_map(region)
                return await self._reconcile(region, snapshot)
            except Exception as exc:
                error = FoxholeFetchError(f"{type(exc).__name__}: {exc}", region=region)
                error.__cause__ = exc
                return RegionFailure(region=region, error=error)

    async def _reconcile(self, region: str, snapshot: DynamicMap | None) -> RegionOutcome:
        if snapshot is None:
            return RegionOutcome(region=region)

        items = snapshot.conquerable_items()
        observations = [
            (
                TerritoryKey(icon_type=item.icon_type, x=item.x, y=item.y, region=region),
                item.team_id,
                item.label,
            )
            for item in items
        ]
        if not observations:
            return RegionOutcome(region=region)

        # SQLite I/O stays off the event loop.
        results = await asyncio.to_thread(self._store.upsert_many, observations)
        changed = 0
        for (_key, team, label), result in zip(observations, results, strict=True):
            if result.changed:
                changed += 1
                _logger.debug("Town captured: %s (%s) -> %s", label, region, team.display_name)
        return RegionOutcome(region=region, reconciled=len(observations), changed=changed)
