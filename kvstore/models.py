from __future__ import annotations

from enum import Enum


class PersistenceMode(str, Enum):
    THRESHOLD = "threshold"
    TIMER = "timer"


class ValueFormat(str, Enum):
    TEXT = "text"
    JSON = "json"
