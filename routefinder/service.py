"""FastAPI service surface and runtime state helpers."""

from __future__ import annotations

from dataclasses import dataclass
from functools import partial
from math import isfinite
from typing import Dict, Optional

import httpx
from fastapi import FastAPI, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .cache import DatasetCache, DatasetUnavailableError
from .datatypes import ResolvedConfig, RouteDataset
from .logging_utils import get_logger, timed_event
from .ranking import nearest_routes
from .upstream import fetch_routes
from .viewport import points_in_viewport

logger = get_logger("routefinder.service")

DEFAULT_COUNT = 10

app = FastAPI(title="Route Finder", version="0.1.0")
app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["GET"], allow_headers=["*"])


@dataclass
class ServiceState:
    """Objects shared by every request: the dataset cache and its settings."""

    cache: DatasetCache
    default_count: int = DEFAULT_COUNT
    config: Optional[ResolvedConfig] = None


def create_state(config: ResolvedConfig, client: Optional[httpx.AsyncClient] = None) -> ServiceState:
    """Build the runtime state for a resolved configuration."""

    fetcher = partial(
        fetch_routes,
        config.upstream_url,
        client=client,
        timeout_s=config.request_timeout_s,
    )
    cache = DatasetCache(fetcher, ttl_s=config.cache_ttl_s)
    return ServiceState(cache=cache, default_count=config.default_count, config=config)


def attach_state(state: ServiceState) -> None:
    """Attach the runtime state to the FastAPI app."""

    app.state.runtime = state


def get_state() -> Optional[ServiceState]:
    """Return the attached runtime state if available."""

    return getattr(app.state, "runtime", None)


def _require_state() -> ServiceState:
    state = get_state()
    if state is None:
        raise HTTPException(status_code=503, detail="Service state not initialised")
    return state


@app.exception_handler(StarletteHTTPException)
async def _error_payload(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


def _parse_coordinate(raw: Optional[str]) -> Optional[float]:
    if raw is None:
        return None
    try:
        value = float(raw)
    except ValueError:
        return None
    return value if isfinite(value) else None


def _parse_count(raw: Optional[str], default: int) -> Optional[int]:
    if raw is None or raw == "":
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        return None
    return value if value > 0 else None


async def _load_dataset(state: ServiceState) -> RouteDataset:
    try:
        return await state.cache.get_dataset()
    except DatasetUnavailableError as exc:
        logger.error("query_dataset_unavailable", extra={"event": "query_dataset_unavailable", "error": str(exc)})
        raise HTTPException(status_code=503, detail="Route data is currently unavailable.") from exc


@app.get("/health")
async def health() -> dict[str, object]:
    """Return service liveness plus dataset cache freshness."""

    state = get_state()
    payload: Dict[str, object] = {"status": "initializing"}
    if state is None:
        return payload

    cache = state.cache
    payload.update(
        {
            "status": "ok",
            "message": "Service is active and running!",
            "dataset_loaded": cache.dataset is not None,
            "dataset_fresh": cache.is_fresh(),
            "cached_routes": len(cache.dataset.routes) if cache.dataset is not None else 0,
            "cache_age_s": cache.age_s(),
        }
    )
    if cache.last_error:
        payload["status"] = "degraded"
        payload["error"] = cache.last_error
    return payload


@app.get("/api/findNearestRoutes")
async def find_nearest_routes(
    lng: Optional[str] = None,
    lat: Optional[str] = None,
    count: Optional[str] = None,
) -> dict[str, object]:
    """Return the routes whose regions lie closest to (lng, lat)."""

    state = _require_state()

    longitude = _parse_coordinate(lng)
    latitude = _parse_coordinate(lat)
    if longitude is None or latitude is None:
        raise HTTPException(status_code=400, detail="Incorrect latitude and longitude parameters")

    limit = _parse_count(count, state.default_count)
    if limit is None:
        raise HTTPException(status_code=400, detail="Invalid counting parameter")

    dataset = await _load_dataset(state)
    with timed_event(logger, "nearest_routes_query", count=limit) as details:
        routes = await run_in_threadpool(nearest_routes, dataset, longitude, latitude, limit)
        details["results"] = len(routes)
    return {"routes": [route.model_dump(mode="json", by_alias=True, exclude_unset=True) for route in routes]}


@app.get("/api/findPointsInViewport")
async def find_points_in_viewport(
    lng1: Optional[str] = None,
    lat1: Optional[str] = None,
    lng2: Optional[str] = None,
    lat2: Optional[str] = None,
) -> dict[str, object]:
    """Return the unique points whose regions overlap the viewport."""

    state = _require_state()

    corners = [_parse_coordinate(value) for value in (lng1, lat1, lng2, lat2)]
    if any(value is None for value in corners):
        raise HTTPException(status_code=400, detail="Invalid viewport parameters.")
    first_lng, first_lat, second_lng, second_lat = corners

    dataset = await _load_dataset(state)
    with timed_event(logger, "viewport_query") as details:
        points = await run_in_threadpool(
            points_in_viewport, dataset, first_lng, first_lat, second_lng, second_lat
        )
        details["results"] = len(points)
    return {"points": [point.model_dump(mode="json", by_alias=True, exclude_unset=True) for point in points]}
