from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Tuple

from kvstore.codec import copy_value
from kvstore.locks import ReadWriteLock

MutationHook = Callable[[], Awaitable[None]]

_MISSING = object()


class NotFoundError(KeyError):
    """Raised when a lookup targets a key the store does not hold."""

    def __init__(self, key: str) -> None:
        super().__init__(key)
        self.key = key

    def __str__(self) -> str:
        return f"Key not found: {self.key}"


class KeyValueStore:
    """In-memory key-value store guarded by a single readers-writer lock.

    The store also owns the persistence clock: the monotonic timestamp of the
    last snapshot attempt, or ``None`` if no snapshot has been attempted yet.
    """

    def __init__(self, data: Optional[Mapping[str, Any]] = None) -> None:
        self._data: Dict[str, Any] = {key: copy_value(value) for key, value in (data or {}).items()}
        self._lock = ReadWriteLock()
        self._hook: Optional[MutationHook] = None
        self.last_saved: Optional[float] = None

    def set_mutation_hook(self, hook: Optional[MutationHook]) -> None:
        self._hook = hook

    def mark_saved(self, timestamp: float) -> None:
        self.last_saved = timestamp

    async def get(self, key: str) -> Tuple[Any, bool]:
        async with self._lock.read():
            if key not in self._data:
                return None, False
            return copy_value(self._data[key]), True

    async def require(self, key: str) -> Any:
        value, found = await self.get(key)
        if not found:
            raise NotFoundError(key)
        return value

    async def set(self, key: str, value: Any) -> None:
        if not key:
            raise ValueError("key must be a non-empty string")
        stored = copy_value(value)
        async with self._lock.write():
            self._data[key] = stored
        await self._notify()

    async def delete(self, key: str) -> bool:
        async with self._lock.write():
            removed = self._data.pop(key, _MISSING) is not _MISSING
        await self._notify()
        return removed

    async def keys(self) -> List[str]:
        async with self._lock.read():
            return sorted(self._data)

    async def snapshot(self) -> Dict[str, Any]:
        """Point-in-time copy of the whole mapping."""
        async with self._lock.read():
            return {key: copy_value(value) for key, value in self._data.items()}

    async def replace(self, data: Mapping[str, Any]) -> None:
        fresh = {key: copy_value(value) for key, value in data.items()}
        async with self._lock.write():
            self._data = fresh

    async def _notify(self) -> None:
        # runs outside the exclusive lock; the snapshot needs a shared one
        if self._hook is not None:
            await self._hook()
