import asyncio
import random
import threading

from floorplan.world import build_world_config
from incidents.models import Event
from incidents.store import EventStore
from patrol.robot import Robot, RobotMode
from patrol.session import SimulationSession
from patrol.simulator import PatrolSimulator

NOW_MS = 1767225600000


def make_session(world, robot_count=2, tick_ms=10):
    sim = PatrolSimulator(world, robot_count=robot_count, rng=random.Random(1), tick_ms=tick_ms)
    return SimulationSession(sim, EventStore(), clock=lambda: NOW_MS)


def test_run_ticks_spawns_and_advances(world):
    session = make_session(world, robot_count=3)
    robots = session.run_ticks(5)
    assert len(robots) == 3
    assert session.simulator.tick_count == 5
    assert session.robots == robots


def test_tick_reads_store_snapshot(world):
    session = make_session(world, robot_count=1)
    session.simulator.set_robots(
        [
            Robot(
                id="robot-1", label="R1", zone_id="zone-b", x=0.5, y=0.5, target_x=0.5, target_y=0.45,
                heading_rad=0.0, speed=0.03, base_speed=0.03,
            )
        ]
    )
    session.store.upsert(
        [
            Event(
                id="ev-1", store_id="s-test", detected_at=NOW_MS, ingested_at=NOW_MS,
                type="fight", severity=3, zone_id="zone-b", x=0.55, y=0.5,
            )
        ]
    )
    robot = session.tick_once()[0]
    assert robot.mode == RobotMode.RESPONDING
    assert robot.assigned_event_id == "ev-1"


def test_start_and_stop_loop(world):
    session = make_session(world)

    async def scenario():
        await session.start()
        assert session.running
        # second start is a no-op
        await session.start()
        await asyncio.sleep(0.06)
        await session.stop()
        await session.stop()

    asyncio.run(scenario())
    assert not session.running
    assert session.simulator.tick_count >= 1
    assert len(session.robots) == 2


def test_reload_world_rebinds(world, zone_map_raw):
    session = make_session(world)
    zone_map_raw["store_id"] = "s-reloaded"
    reloaded = build_world_config(zone_map_raw)

    async def scenario():
        await session.start()
        result = await session.reload_world(lambda: reloaded)
        await session.stop()
        return result

    assert asyncio.run(scenario()) is reloaded
    assert session.simulator.world is reloaded


def test_reload_finishing_after_stop_is_discarded(world, zone_map_raw):
    session = make_session(world)
    reloaded = build_world_config(zone_map_raw)
    gate = threading.Event()

    def slow_loader():
        gate.wait(5)
        return reloaded

    async def scenario():
        await session.start()
        pending = asyncio.create_task(session.reload_world(slow_loader))
        await asyncio.sleep(0.02)
        await session.stop()
        gate.set()
        return await pending

    assert asyncio.run(scenario()) is None
    assert session.simulator.world is world


def test_failing_tick_is_logged_and_loop_continues(world, monkeypatch, caplog):
    session = make_session(world)
    real_tick = session.simulator.tick
    calls = {"n": 0}

    def flaky_tick(events, now_ms):
        calls["n"] += 1
        if calls["n"] == 1:
            raise RuntimeError("boom")
        return real_tick(events, now_ms)

    monkeypatch.setattr(session.simulator, "tick", flaky_tick)

    async def scenario():
        await session.start()
        await asyncio.sleep(0.06)
        await session.stop()

    asyncio.run(scenario())
    assert calls["n"] >= 2
    assert session.simulator.tick_count >= 1
    assert "Simulation tick failed" in caplog.text
