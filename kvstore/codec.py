from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Mapping, Optional


class EncodingError(ValueError):
    """Raised when the mapping holds a value JSON cannot represent."""


class DecodeError(ValueError):
    """Raised when snapshot bytes are not a JSON object."""


def encode(mapping: Mapping[str, Any]) -> bytes:
    try:
        raw = json.dumps(dict(mapping), indent=2, sort_keys=True, allow_nan=False)
    except (TypeError, ValueError) as exc:
        raise EncodingError(f"Snapshot is not JSON serializable: {exc}") from exc
    return (raw + "\n").encode("utf-8")


def decode(data: bytes) -> Dict[str, Any]:
    """Parse snapshot bytes; empty input is an empty store."""
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise DecodeError(f"Snapshot is not valid UTF-8: {exc}") from exc
    if not text.strip():
        return {}
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise DecodeError(f"Snapshot is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise DecodeError(f"Snapshot must be a JSON object, got {type(payload).__name__}")
    return payload


def copy_value(value: Any) -> Any:
    """Detach a JSON value from the caller's containers."""
    if isinstance(value, dict):
        return {key: copy_value(item) for key, item in value.items()}
    if isinstance(value, list):
        return [copy_value(item) for item in value]
    return value


def read_snapshot(path: Path) -> Optional[bytes]:
    try:
        return path.read_bytes()
    except FileNotFoundError:
        return None


def write_snapshot(path: Path, data: bytes) -> None:
    """Write to a temp sibling, then swap it into place."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_bytes(data)
    tmp_path.replace(path)
