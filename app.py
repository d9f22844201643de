from __future__ import annotations

import argparse
import logging

import uvicorn

from kvstore import create_app
from kvstore.config import StoreConfig, parse_duration
from kvstore.models import PersistenceMode, ValueFormat

logger = logging.getLogger(__name__)


def parse_args(argv=None) -> StoreConfig:
    defaults = StoreConfig()
    p = argparse.ArgumentParser(prog="kvstore", description="Run the snapshotting key-value store")
    p.add_argument("--host", default=defaults.host, help="Bind address")
    p.add_argument("--port", type=int, default=defaults.port, help="HTTP port")
    p.add_argument("--savepath", default=str(defaults.save_path), help="Snapshot file path")
    p.add_argument(
        "--saveinterval",
        type=parse_duration,
        default=defaults.save_interval_seconds,
        help="Snapshot interval, e.g. 10s, 500ms, 1m",
    )
    p.add_argument(
        "--mode",
        choices=[mode.value for mode in PersistenceMode],
        default=defaults.persistence_mode.value,
        help="threshold: snapshot on writes; timer: snapshot from a background loop",
    )
    p.add_argument(
        "--value-format",
        choices=[fmt.value for fmt in ValueFormat],
        default=defaults.value_format.value,
        help="How GET renders values",
    )
    p.add_argument(
        "--delete-missing-not-found",
        action="store_true",
        default=defaults.delete_missing_not_found,
        help="Answer 404 when deleting a key that does not exist",
    )
    p.add_argument("--log-level", default=defaults.log_level, help="Logging level")
    args = p.parse_args(argv)
    return StoreConfig(
        host=args.host,
        port=args.port,
        save_path=args.savepath,
        save_interval_seconds=args.saveinterval,
        persistence_mode=args.mode,
        value_format=args.value_format,
        delete_missing_not_found=args.delete_missing_not_found,
        log_level=args.log_level.upper(),
    )


def main(argv=None) -> None:
    config = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logger.info("Starting key-value store on %s:%d", config.host, config.port)
    logger.info("Config: %s", config.as_dict())
    app = create_app(config)
    uvicorn.run(app, host=config.host, port=config.port, log_level=config.log_level.lower())


if __name__ == "__main__":
    main()
