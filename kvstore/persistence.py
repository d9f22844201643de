from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path
from typing import Any, Callable, Dict

from kvstore.codec import EncodingError, decode, encode, read_snapshot, write_snapshot
from kvstore.models import PersistenceMode
from kvstore.storage import KeyValueStore

logger = logging.getLogger(__name__)


class PersistenceScheduler:
    """Decides when the store is snapshotted to disk and performs the startup load.

    In threshold mode the scheduler hooks into every mutation and writes once the
    interval has elapsed since the last attempt. In timer mode ``run`` drives the
    same check from a background loop until ``stop`` is called.
    """

    def __init__(
        self,
        store: KeyValueStore,
        path: Path,
        interval_seconds: float,
        mode: PersistenceMode = PersistenceMode.THRESHOLD,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.store = store
        self.path = Path(path)
        self.interval_seconds = interval_seconds
        self.mode = PersistenceMode(mode)
        self.clock = clock
        self.writes = 0
        self._persist_lock = asyncio.Lock()
        self._stop_event = asyncio.Event()
        if self.mode is PersistenceMode.THRESHOLD:
            store.set_mutation_hook(self.maybe_persist)

    async def load(self) -> int:
        """Populate the store from the snapshot file, creating it when missing.

        Raises ``DecodeError`` for a malformed file; callers treat that as fatal.
        """
        raw = await asyncio.to_thread(read_snapshot, self.path)
        if raw is None:
            await asyncio.to_thread(write_snapshot, self.path, encode({}))
            await self.store.replace({})
            logger.info("No snapshot at %s, created an empty one", self.path)
            return 0
        data = decode(raw)
        await self.store.replace(data)
        logger.info("Loaded %d keys from %s", len(data), self.path)
        return len(data)

    def due(self) -> bool:
        last = self.store.last_saved
        return last is None or self.clock() - last >= self.interval_seconds

    async def maybe_persist(self) -> bool:
        async with self._persist_lock:
            if not self.due():
                return False
            return await self._persist()

    async def flush(self) -> bool:
        """Write a snapshot now, regardless of the interval."""
        async with self._persist_lock:
            return await self._persist()

    async def _persist(self) -> bool:
        try:
            data = await self.store.snapshot()
            return await self._write(data)
        finally:
            # failed attempts count too, so a broken disk is not hammered
            self.store.mark_saved(self.clock())

    async def _write(self, data: Dict[str, Any]) -> bool:
        try:
            payload = encode(data)
        except EncodingError:
            logger.exception("Skipping snapshot of %d keys", len(data))
            return False
        try:
            await asyncio.to_thread(write_snapshot, self.path, payload)
        except OSError as exc:
            logger.error("Failed to write snapshot to %s: %s", self.path, exc)
            return False
        self.writes += 1
        logger.debug("Wrote snapshot of %d keys to %s", len(data), self.path)
        return True

    async def stop(self) -> None:
        self._stop_event.set()

    def next_delay(self) -> float:
        last = self.store.last_saved
        if last is None:
            return self.interval_seconds
        return max(0.0, last + self.interval_seconds - self.clock())

    async def run(self) -> None:
        logger.info("Snapshot timer started, interval %.3gs", self.interval_seconds)
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.next_delay())
            except asyncio.TimeoutError:
                await self.maybe_persist()
        logger.info("Snapshot timer stopped")
