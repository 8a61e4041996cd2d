"""Distance-to-route evaluation and nearest-route ranking."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from shapely.errors import GEOSException

from .coordinates import Position, sanitize_rings
from .datatypes import Point, Route, RouteDataset
from .geo import build_polygon, min_distance_to_rings_km, point_in_polygon
from .logging_utils import get_logger

logger = get_logger("routefinder.ranking")

UNREACHABLE_KM = float("inf")


class RegionOutcome(str, Enum):
    """Result of measuring a query position against one point's region."""

    INSIDE = "inside"
    OUTSIDE = "outside"
    UNUSABLE = "unusable"


@dataclass(slots=True, frozen=True)
class RegionDistance:
    """Per-region evaluation result."""

    outcome: RegionOutcome
    distance_km: float
    reason: Optional[str] = None

    @classmethod
    def inside(cls) -> "RegionDistance":
        return cls(RegionOutcome.INSIDE, 0.0)

    @classmethod
    def outside(cls, distance_km: float) -> "RegionDistance":
        return cls(RegionOutcome.OUTSIDE, distance_km)

    @classmethod
    def unusable(cls, reason: str) -> "RegionDistance":
        return cls(RegionOutcome.UNUSABLE, UNREACHABLE_KM, reason)


@dataclass(slots=True, frozen=True)
class RankedRoute:
    """A route paired with its distance to the query position."""

    route: Route
    distance_km: float


def region_distance(point: Point, query: Position) -> RegionDistance:
    """Measure how far ``query`` is from the region owned by ``point``."""

    rings = sanitize_rings(point.raw_rings)
    if rings is None:
        return RegionDistance.unusable("no usable rings")

    try:
        polygon = build_polygon(rings)
        if point_in_polygon(query, polygon):
            return RegionDistance.inside()
    except (GEOSException, ValueError) as exc:
        logger.warning(
            "region_polygon_invalid",
            extra={"event": "region_polygon_invalid", "point_id": point.id, "error": str(exc)},
        )
        return RegionDistance.unusable(f"invalid polygon: {exc}")

    return RegionDistance.outside(min_distance_to_rings_km(query, rings))


def distance_to_route(route: Route, query: Position) -> float:
    """Minimum distance from ``query`` to any region on the route.

    Returns ``0.0`` as soon as the query lies inside one region and
    :data:`UNREACHABLE_KM` when no region on the route is usable.
    """

    best = UNREACHABLE_KM
    for point in route.points():
        result = region_distance(point, query)
        if result.outcome is RegionOutcome.INSIDE:
            return 0.0
        if result.outcome is RegionOutcome.OUTSIDE and result.distance_km < best:
            best = result.distance_km
    return best


def rank_routes(dataset: RouteDataset, query: Position) -> List[RankedRoute]:
    """Score every route and sort ascending; ties keep dataset order."""

    ranked: List[RankedRoute] = []
    for route in dataset.routes:
        try:
            distance = distance_to_route(route, query)
        except Exception as exc:
            logger.exception(
                "route_distance_failed",
                extra={"event": "route_distance_failed", "route_id": route.id, "error": str(exc)},
            )
            distance = UNREACHABLE_KM
        ranked.append(RankedRoute(route=route, distance_km=distance))

    ranked.sort(key=lambda item: item.distance_km)
    return ranked


def nearest_routes(dataset: RouteDataset, lng: float, lat: float, count: int = 1) -> List[Route]:
    """Return up to ``count`` routes ordered by distance to (lng, lat)."""

    if count < 1:
        raise ValueError("count must be positive")

    ranked = rank_routes(dataset, (lng, lat))
    logger.debug(
        "nearest_routes_ranked",
        extra={
            "event": "nearest_routes_ranked",
            "routes": len(ranked),
            "requested": count,
            "reachable": sum(1 for item in ranked if item.distance_km != UNREACHABLE_KM),
        },
    )
    return [item.route for item in ranked[:count]]
