from __future__ import annotations

import asyncio
import contextlib
import logging

from fastapi import FastAPI

from kvstore.codec import DecodeError
from kvstore.config import StoreConfig
from kvstore.models import PersistenceMode
from kvstore.persistence import PersistenceScheduler
from kvstore.storage import KeyValueStore
from kvstore.web import build_app

logger = logging.getLogger(__name__)


def create_app(config: StoreConfig | None = None) -> FastAPI:
    config = config or StoreConfig()
    config.ensure_dirs()
    store = KeyValueStore()
    scheduler = PersistenceScheduler(
        store,
        config.save_path,
        config.save_interval_seconds,
        mode=config.persistence_mode,
    )

    @contextlib.asynccontextmanager
    async def lifespan(app: FastAPI):
        try:
            await scheduler.load()
        except (DecodeError, OSError) as exc:
            logger.critical("Cannot load snapshot %s, refusing to start: %s", config.save_path, exc)
            raise

        task: asyncio.Task | None = None
        if scheduler.mode is PersistenceMode.TIMER:
            task = asyncio.create_task(scheduler.run())
        app.state.persistence_task = task
        try:
            yield
        finally:
            await scheduler.stop()
            if task:
                await task
            await scheduler.flush()

    app = build_app(config=config, store=store, lifespan=lifespan)
    app.state.config = config
    app.state.store = store
    app.state.scheduler = scheduler
    return app
