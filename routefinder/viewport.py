"""Selection of points whose regions overlap a rectangular viewport."""

from __future__ import annotations

from typing import Dict, List, Union

from shapely.errors import GEOSException
from shapely.geometry import Polygon

from .coordinates import validate_rings
from .datatypes import Point, RouteDataset
from .geo import bbox_from_corners, bbox_polygon, build_polygon, polygon_intersects_bbox
from .logging_utils import get_logger

logger = get_logger("routefinder.viewport")


def region_intersects(point: Point, bbox_shape: Polygon) -> bool:
    """Return True if the point's region is a well-formed polygon touching ``bbox_shape``."""

    if point.geometry_type != "Polygon":
        return False

    rings = validate_rings(point.raw_rings)
    if rings is None:
        return False

    try:
        return polygon_intersects_bbox(build_polygon(rings), bbox_shape)
    except (GEOSException, ValueError) as exc:
        logger.warning(
            "viewport_polygon_invalid",
            extra={"event": "viewport_polygon_invalid", "point_id": point.id, "error": str(exc)},
        )
        return False


def points_in_viewport(
    dataset: RouteDataset,
    lng1: float,
    lat1: float,
    lng2: float,
    lat2: float,
) -> List[Point]:
    """Return unique points whose region intersects the box spanned by two corners.

    Corners may be given in any order. Points are deduplicated by identifier
    and returned in the order they are first encountered; points without an
    identifier are skipped.
    """

    bbox_shape = bbox_polygon(bbox_from_corners((lng1, lat1), (lng2, lat2)))

    selected: Dict[Union[int, str], Point] = {}
    for point in dataset.iter_points():
        if point.id is None or point.id in selected:
            continue
        if region_intersects(point, bbox_shape):
            selected[point.id] = point

    logger.debug(
        "viewport_points_selected",
        extra={"event": "viewport_points_selected", "points": len(selected)},
    )
    return list(selected.values())
