"""Geometry helpers working on (longitude, latitude) positions in degrees."""

from __future__ import annotations

from math import asin, cos, radians, sin, sqrt
from typing import Sequence, Tuple

from shapely.geometry import Point as ShapelyPoint
from shapely.geometry import Polygon, box

from .coordinates import Position, Ring, ring_edges

EARTH_RADIUS_KM = 6371.0

BBox = Tuple[float, float, float, float]


def haversine_km(a: Sequence[float], b: Sequence[float]) -> float:
    """Great-circle distance between two lng/lat pairs in kilometres."""
    lng1, lat1 = a[0], a[1]
    lng2, lat2 = b[0], b[1]
    dlat = radians(lat2 - lat1)
    dlng = radians(lng2 - lng1)

    h = sin(dlat / 2) ** 2 + cos(radians(lat1)) * cos(radians(lat2)) * sin(dlng / 2) ** 2
    return 2 * EARTH_RADIUS_KM * asin(sqrt(min(1.0, h)))


def point_to_segment_km(point: Sequence[float], start: Sequence[float], end: Sequence[float]) -> float:
    """Distance from ``point`` to the segment ``start``-``end`` in kilometres.

    The projection is planar in degree space and only the final leg is
    measured on the sphere, which is adequate at city or regional scale.
    """

    px, py = point[0], point[1]
    x1, y1 = start[0], start[1]
    x2, y2 = end[0], end[1]

    if x1 == x2 and y1 == y2:
        return haversine_km((px, py), (x1, y1))

    dx = x2 - x1
    dy = y2 - y1
    t = ((px - x1) * dx + (py - y1) * dy) / (dx * dx + dy * dy)

    if t <= 0:
        nearest = (x1, y1)
    elif t >= 1:
        nearest = (x2, y2)
    else:
        nearest = (x1 + t * dx, y1 + t * dy)

    return haversine_km((px, py), nearest)


def min_distance_to_rings_km(point: Position, rings: Sequence[Ring]) -> float:
    """Smallest point-to-edge distance over every edge of every ring."""

    best = float("inf")
    for ring in rings:
        for start, end in ring_edges(ring):
            distance = point_to_segment_km(point, start, end)
            if distance < best:
                best = distance
    return best


def bbox_from_corners(corner_a: Sequence[float], corner_b: Sequence[float]) -> BBox:
    """Return (min_lng, min_lat, max_lng, max_lat) for two opposite corners in any order."""
    return (
        min(corner_a[0], corner_b[0]),
        min(corner_a[1], corner_b[1]),
        max(corner_a[0], corner_b[0]),
        max(corner_a[1], corner_b[1]),
    )


def bbox_polygon(bbox: BBox) -> Polygon:
    min_lng, min_lat, max_lng, max_lat = bbox
    return box(min_lng, min_lat, max_lng, max_lat)


def build_polygon(rings: Sequence[Ring]) -> Polygon:
    """Build a polygon whose first ring is the shell and the rest are holes.

    Raises ``shapely.errors.GEOSException`` or ``ValueError`` for geometry
    that shapely refuses to construct.
    """

    shell, *holes = rings
    return Polygon(shell, holes)


def point_in_polygon(point: Position, polygon: Polygon) -> bool:
    """Containment test where a point on the boundary counts as inside."""
    return bool(polygon.covers(ShapelyPoint(point[0], point[1])))


def polygon_intersects_bbox(polygon: Polygon, bbox_shape: Polygon) -> bool:
    """True if the polygon and the box share any boundary or interior point."""
    return bool(polygon.intersects(bbox_shape))
