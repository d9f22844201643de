from __future__ import annotations

import json
import math
from typing import Any, Callable, Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from kvstore.config import StoreConfig
from kvstore.models import ValueFormat
from kvstore.storage import KeyValueStore, NotFoundError


def build_app(
    *,
    config: StoreConfig,
    store: KeyValueStore,
    lifespan: Optional[Callable[[FastAPI], Any]] = None,
) -> FastAPI:
    app = FastAPI(lifespan=lifespan)

    @app.get("/health")
    async def health():
        return JSONResponse({"status": "healthy"})

    @app.get("/store")
    async def list_keys():
        keys = await store.keys()
        return JSONResponse({"keys": keys, "count": len(keys)})

    @app.get("/store/{key:path}")
    async def get_value(key: str) -> Response:
        _require_key(key)
        try:
            value = await store.require(key)
        except NotFoundError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Key not found") from exc
        return _render(value, config.value_format)

    @app.api_route("/store/{key:path}", methods=["POST", "PUT"])
    async def set_value(request: Request, key: str):
        _require_key(key)
        value = await _read_value(request)
        await store.set(key, value)
        return JSONResponse({"ok": True, "key": key})

    @app.delete("/store/{key:path}")
    async def delete_value(key: str):
        _require_key(key)
        removed = await store.delete(key)
        if not removed and config.delete_missing_not_found:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Key not found")
        return JSONResponse({"ok": True, "key": key})

    return app


def _require_key(key: str) -> None:
    if not key:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No key provided")


async def _read_value(request: Request) -> Any:
    """Pull the value out of a JSON body, a form, or the query string."""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        try:
            payload = _loads_finite(await request.body())
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid JSON body") from exc
        if not isinstance(payload, dict) or payload.get("value", "") == "":
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No value provided")
        return payload["value"]

    form = await request.form()
    value = form.get("value")
    if value is None:
        value = request.query_params.get("value")
    if not isinstance(value, str) or value == "":
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No value provided")
    return value


def _render(value: Any, value_format: ValueFormat) -> Response:
    if value_format is ValueFormat.JSON:
        return JSONResponse(value)
    if isinstance(value, str):
        return PlainTextResponse(value)
    return PlainTextResponse(json.dumps(value, sort_keys=True))


def _reject_constant(name: str) -> float:
    raise ValueError(f"Non-finite number {name} is not allowed")


def _finite_float(raw: str) -> float:
    number = float(raw)
    if not math.isfinite(number):
        raise ValueError(f"Number {raw} is out of range")
    return number


def _loads_finite(body: bytes) -> Any:
    """Parse JSON, refusing NaN and infinities the snapshot could not encode."""
    return json.loads(body, parse_constant=_reject_constant, parse_float=_finite_float)
