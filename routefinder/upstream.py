"""HTTP client for the upstream route feed."""

from __future__ import annotations

from typing import Any, List, Mapping, Optional

import httpx
from pydantic import ValidationError

from .datatypes import Route, RouteDataset
from .logging_utils import get_logger

logger = get_logger("routefinder.upstream")

DEFAULT_UPSTREAM_URL = "http://chat.codeasy.com/api/public/job-application"

_DEFAULT_TIMEOUT_S = 30.0
_ENVELOPE_KEYS = ("routes", "data")


class UpstreamError(RuntimeError):
    """Base error raised when the route feed cannot be used."""


class UpstreamEndpointError(UpstreamError):
    """Raised when the feed is unreachable or responds with an error status."""


class UpstreamDecodeError(UpstreamError):
    """Raised when the feed payload cannot be decoded as JSON."""


class UpstreamShapeError(UpstreamError):
    """Raised when the feed payload is not a collection of routes."""


async def fetch_routes(
    url: str = DEFAULT_UPSTREAM_URL,
    *,
    client: Optional[httpx.AsyncClient] = None,
    timeout_s: Optional[float] = None,
) -> RouteDataset:
    """Download and parse the full route collection."""

    request_timeout = timeout_s or _DEFAULT_TIMEOUT_S
    owns_client = client is None
    http_client = client or httpx.AsyncClient(timeout=request_timeout)

    try:
        try:
            response = await http_client.get(url, timeout=request_timeout)
        except httpx.HTTPError as exc:
            raise UpstreamEndpointError("Failed to reach the route feed") from exc

        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise UpstreamEndpointError(f"Route feed returned HTTP {exc.response.status_code}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamDecodeError("Unable to decode route feed response as JSON") from exc
    finally:
        if owns_client:
            await http_client.aclose()

    routes = parse_routes(payload)
    dataset = RouteDataset(routes=tuple(routes), source_url=url)

    logger.info(
        "upstream_fetch_completed",
        extra={
            "event": "upstream_fetch_completed",
            "routes": len(dataset.routes),
            "url": url,
        },
    )
    return dataset


def parse_routes(payload: Any) -> List[Route]:
    """Validate route records, skipping entries that are not route objects."""

    records = _extract_route_records(payload)

    routes: List[Route] = []
    skipped = 0
    for record in records:
        if not isinstance(record, Mapping):
            skipped += 1
            continue
        try:
            routes.append(Route.model_validate(record))
        except ValidationError as exc:
            skipped += 1
            logger.warning(
                "upstream_route_invalid",
                extra={"event": "upstream_route_invalid", "error": str(exc)},
            )

    if skipped:
        logger.warning(
            "upstream_records_skipped",
            extra={"event": "upstream_records_skipped", "skipped": skipped, "kept": len(routes)},
        )
    return routes


def _extract_route_records(payload: Any) -> List[Any]:
    """Accept a bare list or a ``{"routes"|"data": [...]}`` envelope."""

    if isinstance(payload, list):
        return payload
    if isinstance(payload, Mapping):
        for key in _ENVELOPE_KEYS:
            value = payload.get(key)
            if isinstance(value, list):
                return value
    raise UpstreamShapeError("Route payload did not include a list of routes")
