from __future__ import annotations

import argparse
import json
import logging
import random

from floorplan.world import load_world_config
from incidents.feed import normalize_event_feed
from incidents.store import EventStore
from patrol.session import SimulationSession
from patrol.simulator import PatrolSimulator

from .config import SiteSettings
from .logging import configure_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Store Floor - Site Agent")
    parser.add_argument("--print-config", action="store_true", help="Print resolved configuration and exit.")
    parser.add_argument("--http-serve", action="store_true", help="Start Site HTTP API server (/health, /api/*).")
    parser.add_argument("--normalize", metavar="PATH", help="Normalize a JSON array of raw records and print events.")
    parser.add_argument(
        "--simulate",
        metavar="N",
        type=int,
        help="Run N patrol ticks headless (against --normalize events, if given) and print robot states.",
    )
    return parser


def _read_records(path: str):
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def run(argv: list[str] | None = None, cfg: SiteSettings | None = None) -> int:
    """
    Site Agent entrypoint.
    """
    try:
        args = build_parser().parse_args(argv)

        # Load settings from environment / .env
        cfg = cfg or SiteSettings()

        configure_logging(cfg.log_level)

        logger.info("Site Agent starting")
        logger.info(
            "Resolved config: store_id=%s zone_map=%s calibration=%s",
            cfg.store_id, cfg.zone_map_path, cfg.camera_calibration_path
        )

        if args.print_config:
            print(cfg.model_dump())
            return 0

        if args.http_serve:
            import uvicorn
            from .site_api import create_app

            app = create_app(cfg)

            logger.info("Starting Site HTTP API at http://%s:%s", cfg.http_host, cfg.http_port)
            uvicorn.run(
                app,
                host=cfg.http_host,
                port=cfg.http_port,
                log_level=cfg.log_level.lower(),
            )
            return 0

        if args.normalize or args.simulate is not None:
            world = load_world_config(cfg.zone_map_path, cfg.camera_calibration_path)
            store = EventStore(cfg.max_events)

            if args.normalize:
                events = normalize_event_feed(
                    _read_records(args.normalize),
                    world,
                    max_events=cfg.max_events,
                    fallback_store_id=cfg.store_id,
                    default_source=cfg.default_source,
                )
                store.upsert(events)
                logger.info("Normalized %d events from %s", len(events), args.normalize)

            if args.simulate is None:
                print(json.dumps([e.model_dump(mode="json") for e in store.snapshot()], indent=2))
                return 0

            simulator = PatrolSimulator(
                world,
                robot_count=cfg.robot_count,
                rng=random.Random(cfg.random_seed),
                tick_ms=cfg.tick_ms,
                live_window_ms=cfg.live_window_sec * 1000,
            )
            robots = SimulationSession(simulator, store, tick_ms=cfg.tick_ms).run_ticks(args.simulate)
            print(json.dumps([r.to_dict() for r in robots], indent=2))
            return 0

        logger.info("Nothing to do. Use --print-config, --http-serve, --normalize or --simulate.")
        return 0

    except Exception:
        # Log unexpected exceptions (including WorldConfigError) so the service is diagnosable.
        logger.exception("Site Agent crashed due to an unexpected error")
        if cfg is not None and (cfg.debug or cfg.log_level.upper() == "DEBUG"):
            raise
        return 1


if __name__ == "__main__":
    raise SystemExit(run())
