from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict

from kvstore.models import PersistenceMode, ValueFormat

_DURATION_RE = re.compile(r"^\s*(\d+(?:\.\d+)?|\.\d+)\s*(ms|s|m|h)?\s*$")
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


def parse_duration(raw: str | float | int) -> float:
    """Convert ``"10s"``, ``"500ms"``, ``"1m"`` or a bare number of seconds to seconds."""
    if isinstance(raw, (int, float)):
        seconds = float(raw)
    else:
        match = _DURATION_RE.match(raw)
        if not match:
            raise ValueError(f"Invalid duration: {raw!r}")
        number, unit = match.groups()
        seconds = float(number) * _DURATION_UNITS[unit or "s"]
    if seconds <= 0:
        raise ValueError(f"Duration must be positive: {raw!r}")
    return seconds


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class StoreConfig:
    """Static configuration for the service."""

    host: str = field(default_factory=lambda: os.getenv("KVSTORE_HOST", "127.0.0.1"))
    port: int = field(default_factory=lambda: int(os.getenv("KVSTORE_PORT", "8080")))
    save_path: Path = field(default_factory=lambda: Path(os.getenv("KVSTORE_SAVE_PATH", "data.json")))
    save_interval_seconds: float = field(
        default_factory=lambda: parse_duration(os.getenv("KVSTORE_SAVE_INTERVAL", "10s"))
    )
    persistence_mode: PersistenceMode = field(
        default_factory=lambda: PersistenceMode(os.getenv("KVSTORE_PERSISTENCE_MODE", "threshold"))
    )
    value_format: ValueFormat = field(
        default_factory=lambda: ValueFormat(os.getenv("KVSTORE_VALUE_FORMAT", "text"))
    )
    delete_missing_not_found: bool = field(
        default_factory=lambda: _env_bool("KVSTORE_DELETE_MISSING_NOT_FOUND", False)
    )
    log_level: str = field(default_factory=lambda: os.getenv("KVSTORE_LOG_LEVEL", "INFO").upper())

    def __post_init__(self) -> None:
        self.save_path = Path(self.save_path).expanduser()
        self.save_interval_seconds = parse_duration(self.save_interval_seconds)
        self.persistence_mode = PersistenceMode(self.persistence_mode)
        self.value_format = ValueFormat(self.value_format)

    def ensure_dirs(self) -> None:
        self.save_path.parent.mkdir(parents=True, exist_ok=True)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "host": self.host,
            "port": self.port,
            "save_path": str(self.save_path),
            "save_interval_seconds": self.save_interval_seconds,
            "persistence_mode": self.persistence_mode.value,
            "value_format": self.value_format.value,
            "delete_missing_not_found": self.delete_missing_not_found,
            "log_level": self.log_level,
        }
