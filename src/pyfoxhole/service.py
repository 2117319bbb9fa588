"""Operator-facing service: wires client, store, engine, scheduler and renderer."""

from __future__ import annotations

import logging
from typing import Any

import aiohttp

from pyfoxhole.client import FoxholeClient, StateSource
from pyfoxhole.config import FoxholeConfig
from pyfoxhole.models.territory import ConquerStatus
from pyfoxhole.render.base import Renderer
from pyfoxhole.render.epaper import EpaperRenderer
from pyfoxhole.state.store import TerritoryStore
from pyfoxhole.sync.engine import CycleResult, SyncEngine
from pyfoxhole.sync.scheduler import Scheduler, SchedulerState

_logger = logging.getLogger(__name__)


class ConquestService:
    """Keep a territory store in sync with the War API and re-render on change.

    Usage::

        async with ConquestService(FoxholeConfig.from_env()) as service:
            await service.start()
            ...
            status = service.get_conquer_status()

    Leaving the context stops both timers, waits for in-flight work and
    closes the store.
    """

    def __init__(
        self,
        config: FoxholeConfig,
        *,
        source: StateSource | None = None,
        store: TerritoryStore | None = None,
        renderer: Renderer | None = None,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._config = config
        self._client: FoxholeClient | None = None
        if source is None:
            self._client = FoxholeClient(config, session=session)
            source = self._client
        self._store = store if store is not None else TerritoryStore.from_path(config.database_path)
        self._renderer = renderer if renderer is not None else EpaperRenderer.from_config(config)
        self._engine = SyncEngine(
            source,
            self._store,
            max_concurrent_fetches=config.max_concurrent_fetches,
            reset_on_new_war=config.reset_on_new_war,
        )
        self._scheduler = Scheduler(
            self._engine,
            self._store,
            self._renderer,
            poll_interval=config.poll_interval,
            fallback_interval=config.fallback_interval,
        )

    async def __aenter__(self) -> ConquestService:
        if self._client is not None:
            await self._client.__aenter__()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    @property
    def scheduler_state(self) -> SchedulerState:
        return self._scheduler.state

    @property
    def renderer(self) -> Renderer:
        return self._renderer

    async def start(self) -> None:
        await self._scheduler.start()

    async def stop(self) -> None:
        await self._scheduler.stop()

    async def run_once(self) -> CycleResult | None:
        """One cycle plus one render, without arming the timers."""
        return await self._scheduler.run_once()

    def get_conquer_status(self) -> ConquerStatus:
        """Read-only snapshot of every known territory."""
        return self._store.read_snapshot()

    async def close(self) -> None:
        await self._scheduler.stop()
        if self._client is not None:
            await self._client.__aexit__(None, None, None)
        self._store.close()
        _logger.debug("Service closed")
