from __future__ import annotations

import random
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, List, Optional

from fastapi import Body, FastAPI, HTTPException, Query, status
from pydantic import BaseModel

from floorplan.walkable import resolve_marker_point
from floorplan.world import WorldConfig, WorldConfigError, load_world_config
from incidents.models import Event
from incidents.store import EventStore
from incidents.sync import parse_sync_payload
from patrol.session import SimulationSession, wall_clock_ms
from patrol.simulator import PatrolSimulator

from .config import SiteSettings


class HealthOut(BaseModel):
    status: str
    time_utc: datetime
    store_id: str
    zones: int
    events: int
    simulation_running: bool
    uptime_seconds: int

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "status": "ok",
                    "time_utc": "2026-02-18T12:00:00Z",
                    "store_id": "s001",
                    "zones": 3,
                    "events": 12,
                    "simulation_running": True,
                    "uptime_seconds": 42,
                }
            ]
        }
    }


class ZoneOut(BaseModel):
    zone_id: str
    name: str
    centroid: List[float]
    outer: List[List[float]]
    holes: List[List[List[float]]]


class EventOut(Event):
    """Event plus the point where its marker is drawn (kept clear of fixtures)."""
    marker_x: float
    marker_y: float


class RemoveResultOut(BaseModel):
    removed: int
    total: int


class ReloadResultOut(BaseModel):
    store_id: str
    zones: int
    cameras: int


class SyncResultOut(BaseModel):
    mode: str
    upserted: int
    removed: int
    total: int


class RobotOut(BaseModel):
    id: str
    label: str
    zone_id: str
    x: float
    y: float
    target_x: float
    target_y: float
    heading_rad: float
    speed: float
    base_speed: float
    mode: str
    assigned_event_id: Optional[str] = None
    stuck_ticks: int
    abandoned_event_id: Optional[str] = None
    abandon_cooldown: int


def build_session(cfg: SiteSettings, world: WorldConfig, store: EventStore) -> SimulationSession:
    simulator = PatrolSimulator(
        world,
        robot_count=cfg.robot_count,
        rng=random.Random(cfg.random_seed),
        tick_ms=cfg.tick_ms,
        live_window_ms=cfg.live_window_sec * 1000,
    )
    return SimulationSession(simulator, store, tick_ms=cfg.tick_ms)


def create_app(cfg: SiteSettings, world: Optional[WorldConfig] = None) -> FastAPI:
    """
    Create the Site Agent HTTP API app.

    The world is loaded from cfg when not given; a broken zone map raises
    WorldConfigError here, before the app exists.
    """
    if world is None:
        world = load_world_config(cfg.zone_map_path, cfg.camera_calibration_path)

    store = EventStore(cfg.max_events)
    session = build_session(cfg, world, store)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await session.start()
        try:
            yield
        finally:
            await session.stop()

    app = FastAPI(
        title="Store Floor - Site Agent API",
        version="0.3.0",
        description="Normalized incident events, zone geometry and patrol robot state.",
        lifespan=lifespan,
    )
    app.state.world = world
    app.state.store = store
    app.state.session = session


    started_monotonic = time.monotonic()

    def event_out(event: Event) -> EventOut:
        mx, my = resolve_marker_point(app.state.world, event.x, event.y, event.zone_id)
        return EventOut(**event.model_dump(), marker_x=mx, marker_y=my)

    @app.get("/")
    def root():
        return {"status": "site agent running"}

    @app.get("/health", response_model=HealthOut, tags=["health"])
    def health() -> HealthOut:
        """Liveness check plus a small status snapshot."""
        current = app.state.world
        return HealthOut(
            status="ok",
            time_utc=datetime.now(timezone.utc),
            store_id=current.store_id,
            zones=len(current.zones),
            events=len(store),
            simulation_running=session.running,
            uptime_seconds=int(time.monotonic() - started_monotonic),
        )

    @app.get("/api/zones", response_model=List[ZoneOut], tags=["floor"])
    def zones() -> List[ZoneOut]:
        return [
            ZoneOut(
                zone_id=z.zone_id,
                name=z.name,
                centroid=list(z.centroid),
                outer=[list(p) for p in z.outer],
                holes=[[list(p) for p in hole] for hole in z.holes],
            )
            for z in app.state.world.zones
        ]

    @app.post("/api/world/reload", response_model=ReloadResultOut, tags=["floor"])
    async def reload_world() -> ReloadResultOut:
        """Re-read the zone map and calibration files and rebind the robots."""
        try:
            reloaded = await session.reload_world(
                lambda: load_world_config(cfg.zone_map_path, cfg.camera_calibration_path)
            )
        except WorldConfigError as e:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=str(e),
            ) from e
        if reloaded is None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Simulation stopped while the world was reloading",
            )
        app.state.world = reloaded
        return ReloadResultOut(store_id=reloaded.store_id, zones=len(reloaded.zones), cameras=len(reloaded.cameras))

    @app.get("/api/events", response_model=List[EventOut], tags=["events"])
    def events(
        limit: Optional[int] = Query(None, ge=1, le=1000),
        live: bool = Query(False, description="Only unresolved events inside the live window"),
    ) -> List[EventOut]:
        """Current events, newest first."""
        if live:
            snapshot = store.live(wall_clock_ms(), cfg.live_window_sec * 1000)
        else:
            snapshot = list(store.snapshot())
        if limit is not None:
            snapshot = snapshot[:limit]
        return [event_out(e) for e in snapshot]

    @app.get("/api/events/{event_id}", response_model=EventOut, tags=["events"])
    def get_event(event_id: str) -> EventOut:
        event = store.get(event_id)
        if event is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Event {event_id} not found")
        return event_out(event)

    @app.delete("/api/events/{event_id}", response_model=RemoveResultOut, tags=["events"])
    def delete_event(event_id: str) -> RemoveResultOut:
        removed = store.remove([event_id])
        if not removed:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Event {event_id} not found")
        return RemoveResultOut(removed=removed, total=len(store))

    @app.delete("/api/events", response_model=RemoveResultOut, tags=["events"])
    def clear_events() -> RemoveResultOut:
        return RemoveResultOut(removed=store.clear(), total=0)

    @app.post("/api/events/sync", response_model=SyncResultOut, tags=["events"])
    def sync_events(payload: Any = Body(...)) -> SyncResultOut:
        """Accepts any supported sync payload (envelope, bare list, single record)."""
        batch = parse_sync_payload(
            payload,
            app.state.world,
            max_events=store.max_events,
            fallback_store_id=cfg.store_id,
            default_source=cfg.default_source,
        )
        before = {e.id for e in store.snapshot()}
        after = store.apply(batch) if batch.has_mutation else store.snapshot()
        after_ids = {e.id for e in after}
        return SyncResultOut(
            mode=batch.mode.value,
            upserted=len(batch.upsert),
            removed=len(before - after_ids),
            total=len(after),
        )

    @app.get("/api/robots", response_model=List[RobotOut], tags=["robots"])
    def robots() -> List[RobotOut]:
        return [RobotOut(**r.to_dict()) for r in session.robots]

    return app
