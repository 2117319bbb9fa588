from __future__ import annotations

import asyncio

import pytest
from _fakes import FakeWarSource, RecordingRenderer, town

from pyfoxhole.state.store import TerritoryStore
from pyfoxhole.sync.engine import CycleResult, RegionOutcome, SyncEngine
from pyfoxhole.sync.scheduler import (
    FALLBACK_RENDER_REASON,
    INITIAL_RENDER_REASON,
    Scheduler,
    change_render_reason,
)

_NEVER = 3600.0


class _CountingEngine:
    """Wraps a SyncEngine and records how many cycles overlap."""

    def __init__(self, engine: SyncEngine) -> None:
        self._engine = engine
        self.active = 0
        self.max_active = 0
        self.cycles = 0

    async def run_cycle(self) -> CycleResult:
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            return await self._engine.run_cycle()
        finally:
            self.active -= 1
            self.cycles += 1


def _scheduler(
    source: FakeWarSource,
    renderer: RecordingRenderer,
    store: TerritoryStore | None = None,
    *,
    poll_interval: float = _NEVER,
    fallback_interval: float = _NEVER,
) -> tuple[Scheduler, _CountingEngine, TerritoryStore]:
    store = store if store is not None else TerritoryStore()
    engine = _CountingEngine(SyncEngine(source, store))  # type: ignore[arg-type]
    scheduler = Scheduler(
        engine,  # type: ignore[arg-type]
        store,
        renderer,
        poll_interval=poll_interval,
        fallback_interval=fallback_interval,
    )
    return scheduler, engine, store


@pytest.mark.asyncio
async def test_start_runs_one_cycle_and_one_render() -> None:
    source = FakeWarSource(regions={"A": [town()]})
    renderer = RecordingRenderer()
    scheduler, engine, _store = _scheduler(source, renderer)

    await scheduler.start()
    try:
        assert engine.cycles == 1
        assert renderer.reasons == [INITIAL_RENDER_REASON]
        # The first render already sees the first cycle's data.
        status, _reason = renderer.calls[0]
        assert len(status.territories) == 1
        state = scheduler.state
        assert state.running
        assert not state.cycle_in_progress
        assert state.completed_cycles == 1
        assert state.renders == 1
    finally:
        await scheduler.stop()

    assert not scheduler.is_running


@pytest.mark.asyncio
async def test_start_twice_is_a_no_op() -> None:
    source = FakeWarSource(regions={})
    renderer = RecordingRenderer()
    scheduler, engine, _store = _scheduler(source, renderer)

    await scheduler.start()
    await scheduler.start()
    await scheduler.stop()

    assert engine.cycles == 1
    assert renderer.reasons == [INITIAL_RENDER_REASON]


@pytest.mark.asyncio
async def test_renders_only_when_towns_change() -> None:
    source = FakeWarSource(regions={})
    renderer = RecordingRenderer()
    scheduler, _engine, _store = _scheduler(source, renderer)
    await scheduler.start()

    try:
        # Unseen town appears.
        source.regions = {"A": [town(icon_type=5, x=10, y=20, team="WARDENS")]}
        scheduler.tick()
        await scheduler.wait_idle()

        # Town flips.
        source.regions = {"A": [town(icon_type=5, x=10, y=20, team="COLONIALS")]}
        scheduler.tick()
        await scheduler.wait_idle()

        # Same owner again: nothing to render.
        scheduler.tick()
        await scheduler.wait_idle()
    finally:
        await scheduler.stop()

    assert renderer.reasons == [INITIAL_RENDER_REASON, "1 town changes", "1 town changes"]
    last_cycle = scheduler.state.last_cycle
    assert last_cycle is not None and last_cycle.changed == 0


@pytest.mark.asyncio
async def test_zero_conquerables_trigger_no_render() -> None:
    source = FakeWarSource(regions={"A": [town(icon_type=11)], "B": None})
    renderer = RecordingRenderer()
    scheduler, _engine, _store = _scheduler(source, renderer)
    await scheduler.start()

    try:
        scheduler.tick()
        await scheduler.wait_idle()
    finally:
        await scheduler.stop()

    assert renderer.reasons == [INITIAL_RENDER_REASON]
    assert scheduler.state.completed_cycles == 2


@pytest.mark.asyncio
async def test_slow_cycles_skip_ticks_and_never_overlap() -> None:
    source = FakeWarSource(regions={"A": [town()], "B": [town(x=0.1)]}, region_delay=0.05)
    renderer = RecordingRenderer()
    scheduler, engine, _store = _scheduler(source, renderer, poll_interval=0.01)

    await scheduler.start()
    await asyncio.sleep(0.3)
    await scheduler.stop()

    state = scheduler.state
    assert state.skipped_ticks > 0
    assert engine.max_active == 1
    assert engine.cycles >= 2
    assert not state.cycle_in_progress


@pytest.mark.asyncio
async def test_fallback_renders_existing_snapshot_without_touching_store() -> None:
    source = FakeWarSource(regions={"A": [town()]})
    renderer = RecordingRenderer()
    scheduler, engine, store = _scheduler(source, renderer, fallback_interval=0.1)
    await scheduler.start()
    before = store.read_snapshot()

    await asyncio.sleep(0.15)
    await scheduler.stop()

    assert renderer.reasons == [INITIAL_RENDER_REASON, FALLBACK_RENDER_REASON]
    assert engine.cycles == 1
    assert store.read_snapshot().territories == before.territories
    fallback_status, _reason = renderer.calls[1]
    assert fallback_status.territories == before.territories


@pytest.mark.asyncio
async def test_render_failure_does_not_stop_later_work() -> None:
    source = FakeWarSource(regions={})
    renderer = RecordingRenderer(fail_times=1)
    scheduler, engine, _store = _scheduler(source, renderer)

    await scheduler.start()
    try:
        assert scheduler.state.failed_renders == 1
        source.regions = {"A": [town()]}
        scheduler.tick()
        await scheduler.wait_idle()
    finally:
        await scheduler.stop()

    assert engine.cycles == 2
    assert renderer.reasons == ["1 town changes"]
    state = scheduler.state
    assert state.renders == 1
    assert state.last_render_reason == "1 town changes"
    assert state.last_render_at is not None


@pytest.mark.asyncio
async def test_cycle_failure_is_counted_and_next_tick_retries() -> None:
    source = FakeWarSource(regions={"A": [town()]}, fail_maps=True)
    renderer = RecordingRenderer()
    scheduler, _engine, store = _scheduler(source, renderer)

    await scheduler.start()
    try:
        assert scheduler.state.failed_cycles == 1
        assert store.read_snapshot().territories == ()

        source.fail_maps = False
        scheduler.tick()
        await scheduler.wait_idle()
    finally:
        await scheduler.stop()

    state = scheduler.state
    assert state.completed_cycles == 1
    assert len(store.read_snapshot().territories) == 1
    assert renderer.reasons == [INITIAL_RENDER_REASON, "1 town changes"]


@pytest.mark.asyncio
async def test_stop_waits_for_in_flight_cycle() -> None:
    source = FakeWarSource(regions={})
    renderer = RecordingRenderer()
    scheduler, engine, store = _scheduler(source, renderer)
    await scheduler.start()

    source.regions = {"A": [town()]}
    source.region_delay = 0.05
    task = scheduler.tick()
    assert task is not None
    assert scheduler.tick() is None
    await scheduler.stop()

    assert task.done()
    assert engine.cycles == 2
    assert len(store.read_snapshot().territories) == 1
    # Changes finishing after stop are stored but not rendered.
    assert renderer.reasons == [INITIAL_RENDER_REASON]
    assert scheduler.state.skipped_ticks == 1


@pytest.mark.asyncio
async def test_run_once_renders_after_cycle() -> None:
    source = FakeWarSource(regions={"A": [town(), town(x=0.9)]})
    renderer = RecordingRenderer()
    scheduler, _engine, _store = _scheduler(source, renderer)

    cycle = await scheduler.run_once()
    again = await scheduler.run_once()

    assert cycle is not None and cycle.changed == 2
    assert again is not None and again.changed == 0
    assert renderer.reasons == ["2 town changes", "Manual run"]
    assert not scheduler.is_running


@pytest.mark.asyncio
async def test_stop_during_start_waits_and_never_arms_timers() -> None:
    source = FakeWarSource(regions={"A": [town()]}, region_delay=0.1)
    renderer = RecordingRenderer()
    scheduler, engine, store = _scheduler(source, renderer, poll_interval=0.01, fallback_interval=0.01)

    starting = asyncio.create_task(scheduler.start())
    await asyncio.sleep(0.02)
    await scheduler.stop()

    # The startup cycle and render finished before stop returned.
    assert engine.cycles == 1
    assert renderer.reasons == [INITIAL_RENDER_REASON]
    assert len(store.read_snapshot().territories) == 1

    await starting
    await asyncio.sleep(0.1)

    assert not scheduler.is_running
    assert engine.cycles == 1
    assert renderer.reasons == [INITIAL_RENDER_REASON]
    assert scheduler.state.skipped_ticks == 0


@pytest.mark.asyncio
async def test_stop_waits_for_in_flight_render() -> None:
    source = FakeWarSource(regions={})
    renderer = RecordingRenderer()
    scheduler, _engine, _store = _scheduler(source, renderer)
    await scheduler.start()

    renderer.delay = 0.1
    task = scheduler.request_render("Operator request")
    await scheduler.stop()

    assert task.done()
    assert renderer.reasons == [INITIAL_RENDER_REASON, "Operator request"]
    assert scheduler.state.renders == 2


@pytest.mark.asyncio
async def test_war_change_renders_even_without_town_changes() -> None:
    source = FakeWarSource(war_number=100, regions={"A": [town()]})
    renderer = RecordingRenderer()
    scheduler, _engine, store = _scheduler(source, renderer)
    await scheduler.start()

    try:
        source.war_number = 101
        source.failing_regions = {"A"}
        scheduler.tick()
        await scheduler.wait_idle()
    finally:
        await scheduler.stop()

    assert renderer.reasons == [INITIAL_RENDER_REASON, "War 101 started"]
    status, _reason = renderer.calls[1]
    assert status.war_number == 101
    assert status.territories == ()
    assert store.read_snapshot().territories == ()


def test_change_render_reason() -> None:
    assert change_render_reason(None) is None
    assert change_render_reason(CycleResult(war_number=100, regions=(RegionOutcome(region="A"),))) is None
    assert change_render_reason(CycleResult(war_number=100, changed=3)) == "3 town changes"
    assert change_render_reason(CycleResult(war_number=101, war_changed=True)) == "War 101 started"
    assert change_render_reason(CycleResult(war_number=101, changed=2, war_changed=True)) == "2 town changes"
