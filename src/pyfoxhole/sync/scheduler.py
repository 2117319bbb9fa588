"""Poll and render scheduling.

Two worker loops share one gate:

* the primary loop sleeps ``poll_interval`` and then starts a sync
  cycle, unless the previous cycle still holds the gate (the tick is
  skipped, never queued);
* the fallback loop sleeps ``fallback_interval`` and re-renders the
  current snapshot regardless of changes.

Renders run as tracked background tasks, one at a time, and a failed
render never stops either loop.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from collections.abc import Coroutine
from datetime import UTC, datetime
from typing import Any

from pyfoxhole.exceptions import FoxholeCycleError
from pyfoxhole.render.base import Renderer
from pyfoxhole.state.store import TerritoryStore
from pyfoxhole.sync.engine import CycleResult, SyncEngine

_logger = logging.getLogger(__name__)

INITIAL_RENDER_REASON = "Initial generation"
FALLBACK_RENDER_REASON = "Scheduled fallback"
MANUAL_RENDER_REASON = "Manual run"


def change_render_reason(cycle: CycleResult | None) -> str | None:
    """Why *cycle* warrants a render, or ``None`` if it does not."""
    if cycle is None:
        return None
    if cycle.changed > 0:
        return f"{cycle.changed} town changes"
    if cycle.war_changed:
        # The previous war may have been wiped with nothing reconciled yet.
        return f"War {cycle.war_number} started"
    return None


@dataclasses.dataclass
class SchedulerState:
    """Mutable scheduler state, owned by a single :class:`Scheduler`."""

    running: bool = False
    cycle_in_progress: bool = False
    completed_cycles: int = 0
    failed_cycles: int = 0
    skipped_ticks: int = 0
    renders: int = 0
    failed_renders: int = 0
    last_cycle: CycleResult | None = None
    last_render_reason: str | None = None
    last_render_at: datetime | None = None


class Scheduler:
    """Drive a :class:`SyncEngine` and a :class:`Renderer` on two timers."""

    def __init__(
        self,
        engine: SyncEngine,
        store: TerritoryStore,
        renderer: Renderer,
        *,
        poll_interval: float = 5.0,
        fallback_interval: float = 5 * 60.0,
    ) -> None:
        self._engine = engine
        self._store = store
        self._renderer = renderer
        self._poll_interval = poll_interval
        self._fallback_interval = fallback_interval
        self._state = SchedulerState()
        self._loops: list[asyncio.Task[None]] = []
        self._inflight: set[asyncio.Task[Any]] = set()
        self._render_lock = asyncio.Lock()
        # Bumped by stop(), so a start() that outlived it never arms timers.
        self._stop_count = 0

    @property
    def state(self) -> SchedulerState:
        """A copy of the current scheduler state."""
        return dataclasses.replace(self._state)

    @property
    def is_running(self) -> bool:
        return self._state.running

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Run one cycle and one render, then arm both timers.

        The first cycle and render run as a tracked task, so a
        :meth:`stop` issued meanwhile waits for them and no timer is armed.
        """
        if self._state.running:
            _logger.warning("Data updater is already running")
            return

        self._state.running = True
        _logger.info("Starting data updater service...")

        stop_count = self._stop_count
        self._state.cycle_in_progress = True
        await self._spawn(self._initial_generation())
        if not self._state.running or stop_count != self._stop_count:
            _logger.info("Stopped during startup; timers not armed")
            return

        self._loops = [
            asyncio.create_task(self._primary_loop(), name="pyfoxhole-primary"),
            asyncio.create_task(self._fallback_loop(), name="pyfoxhole-fallback"),
        ]

    async def stop(self) -> None:
        """Cancel both timers and wait for in-flight cycles and renders."""
        if not self._state.running:
            return
        self._state.running = False
        self._stop_count += 1

        loops, self._loops = self._loops, []
        for task in loops:
            task.cancel()
        await asyncio.gather(*loops, return_exceptions=True)

        await self.wait_idle()

        _logger.info("Data updater service stopped")

    async def wait_idle(self) -> None:
        """Wait until no cycle or render task is in flight."""
        # Finishing cycles may spawn renders, so drain until empty.
        while self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

    async def run_once(self) -> CycleResult | None:
        """Run a single cycle followed by a render, both awaited.

        Returns ``None`` when the cycle failed or another cycle held the gate.
        """
        if self._state.cycle_in_progress:
            _logger.debug("Cycle already in progress; not starting another")
            return None
        self._state.cycle_in_progress = True
        cycle = await self._run_cycle()
        reason = change_render_reason(cycle) or MANUAL_RENDER_REASON
        await self._render(reason)
        return cycle

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------

    async def _primary_loop(self) -> None:
        while True:
            await asyncio.sleep(self._poll_interval)
            self.tick()

    async def _fallback_loop(self) -> None:
        while True:
            await asyncio.sleep(self._fallback_interval)
            self.request_render(FALLBACK_RENDER_REASON)

    def tick(self) -> asyncio.Task[None] | None:
        """Primary timer fire: start a cycle unless one is still running."""
        if self._state.cycle_in_progress:
            self._state.skipped_ticks += 1
            _logger.debug("Previous update still running; skipping tick (%d skipped)", self._state.skipped_ticks)
            return None
        # Claimed before the first await, so no other tick can slip in.
        self._state.cycle_in_progress = True
        return self._spawn(self._cycle_then_render())

    def request_render(self, reason: str) -> asyncio.Task[None]:
        """Render the current snapshot in the background."""
        return self._spawn(self._render(reason))

    # ------------------------------------------------------------------
    # Work
    # ------------------------------------------------------------------

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> asyncio.Task[None]:
        task = asyncio.create_task(coro)
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return task

    async def _initial_generation(self) -> None:
        await self._run_cycle()
        await self._render(INITIAL_RENDER_REASON)

    async def _cycle_then_render(self) -> None:
        cycle = await self._run_cycle()
        reason = change_render_reason(cycle)
        if reason is None:
            return
        if not self._state.running:
            _logger.debug("Stopping; not rendering (%s)", reason)
            return
        self.request_render(reason)

    async def _run_cycle(self) -> CycleResult | None:
        """Run one cycle; the caller must already hold the gate."""
        try:
            cycle = await self._engine.run_cycle()
        except FoxholeCycleError as exc:
            self._state.failed_cycles += 1
            _logger.error("Error updating data: %s", exc, exc_info=exc)
            return None
        except Exception:
            self._state.failed_cycles += 1
            _logger.exception("Unexpected error updating data")
            return None
        finally:
            self._state.cycle_in_progress = False

        self._state.completed_cycles += 1
        self._state.last_cycle = cycle
        return cycle

    async def _render(self, reason: str) -> None:
        async with self._render_lock:
            _logger.info("Generating PNG: %s", reason)
            try:
                await asyncio.to_thread(self._render_snapshot, reason)
            except Exception as exc:
                self._state.failed_renders += 1
                _logger.error("Failed to generate PNG (%s): %s", reason, exc, exc_info=exc)
                return
            self._state.renders += 1
            self._state.last_render_reason = reason
            self._state.last_render_at = datetime.now(UTC)

    def _render_snapshot(self, reason: str) -> None:
        # Runs in a worker thread: both the SQLite read and the drawing block.
        snapshot = self._store.read_snapshot()
        self._renderer.render(snapshot, reason=reason)
