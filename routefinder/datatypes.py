"""Typed models for the route finder service."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple, Union
from urllib.parse import urlsplit, urlunsplit

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _identifier_or_none(value: Any) -> Optional[Union[int, str]]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, str)):
        return value
    return None


class _UpstreamModel(BaseModel):
    """Base for records mirrored from the upstream payload.

    Unknown keys are preserved so records can be echoed back unchanged, and
    wire names are the upstream camelCase keys.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")


class Geometry(_UpstreamModel):
    """GeoJSON-style geometry; coordinates stay untyped until sanitized."""

    type: Optional[str] = None
    coordinates: Any = None

    @field_validator("type", mode="before")
    @classmethod
    def _loose_type(cls, value: Any) -> Optional[str]:
        return value if isinstance(value, str) else None


class Region(_UpstreamModel):
    """Polygonal area attached to a point, plus informational metadata."""

    type: Optional[str] = None
    geometry: Optional[Geometry] = None
    properties: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("type", mode="before")
    @classmethod
    def _loose_type(cls, value: Any) -> Optional[str]:
        return value if isinstance(value, str) else None

    @field_validator("geometry", mode="before")
    @classmethod
    def _loose_geometry(cls, value: Any) -> Any:
        return value if isinstance(value, (Mapping, Geometry)) else None

    @field_validator("properties", mode="before")
    @classmethod
    def _loose_properties(cls, value: Any) -> Any:
        return value if isinstance(value, Mapping) else {}

    @property
    def center(self) -> Any:
        return self.properties.get("center")

    @property
    def radius(self) -> Any:
        return self.properties.get("radius")


class Point(_UpstreamModel):
    """Point of interest owning exactly one region."""

    id: Optional[Union[int, str]] = None
    created_at: Any = Field(default=None, alias="createdAt")
    region: Optional[Region] = None

    @field_validator("id", mode="before")
    @classmethod
    def _loose_id(cls, value: Any) -> Optional[Union[int, str]]:
        return _identifier_or_none(value)

    @field_validator("region", mode="before")
    @classmethod
    def _loose_region(cls, value: Any) -> Any:
        return value if isinstance(value, (Mapping, Region)) else None

    @property
    def geometry_type(self) -> Optional[str]:
        if self.region is None or self.region.geometry is None:
            return None
        return self.region.geometry.type

    @property
    def raw_rings(self) -> Any:
        """Return the region's ring coordinates exactly as received."""
        if self.region is None or self.region.geometry is None:
            return None
        return self.region.geometry.coordinates


class PointOnRoute(_UpstreamModel):
    """Link record between a route and a point it references."""

    point: Point


class Route(_UpstreamModel):
    """Ordered collection of referenced points."""

    id: Optional[Union[int, str]] = None
    created_at: Any = Field(default=None, alias="createdAt")
    points_on_routes: List[PointOnRoute] = Field(default_factory=list, alias="pointsOnRoutes")

    @field_validator("id", mode="before")
    @classmethod
    def _loose_id(cls, value: Any) -> Optional[Union[int, str]]:
        return _identifier_or_none(value)

    @field_validator("points_on_routes", mode="before")
    @classmethod
    def _drop_unlinked_points(cls, value: Any) -> List[Any]:
        if not isinstance(value, (list, tuple)):
            return []
        return [
            entry
            for entry in value
            if isinstance(entry, PointOnRoute)
            or (isinstance(entry, Mapping) and isinstance(entry.get("point"), (Mapping, Point)))
        ]

    def points(self) -> List[Point]:
        return [entry.point for entry in self.points_on_routes]


class RouteDataset(BaseModel):
    """Immutable snapshot of every route returned by one upstream fetch."""

    model_config = ConfigDict(frozen=True)

    routes: Tuple[Route, ...] = ()
    fetched_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    source_url: Optional[str] = None

    def iter_points(self) -> Iterator[Point]:
        """Yield every referenced point in route order, repeats included."""
        for route in self.routes:
            yield from route.points()


class CacheStatus(str, Enum):
    """How a dataset snapshot was obtained."""

    FRESH = "fresh"
    REFRESHED = "refreshed"
    STALE = "stale"


class DatasetSnapshot(BaseModel):
    """Dataset handed to a query together with its freshness."""

    model_config = ConfigDict(frozen=True)

    dataset: RouteDataset
    status: CacheStatus
    age_s: float
    error: Optional[str] = None

    @property
    def degraded(self) -> bool:
        return self.status is CacheStatus.STALE


class ResolvedConfig(BaseModel):
    """Runtime configuration resolved from settings file/env/CLI."""

    model_config = ConfigDict(frozen=True)

    upstream_url: str
    cache_ttl_s: float
    request_timeout_s: float
    default_count: int
    host: str
    port: int
    log_level: str

    def redacted_dict(self) -> Dict[str, Any]:
        """Return every setting with credentials stripped from the upstream URL."""
        data = self.model_dump()
        data["upstream_url"] = _strip_credentials(self.upstream_url)
        return data


def _strip_credentials(url: str) -> str:
    parts = urlsplit(url)
    if "@" not in parts.netloc:
        return url
    host = parts.netloc.rsplit("@", 1)[1]
    return urlunsplit((parts.scheme, f"<redacted>@{host}", parts.path, parts.query, parts.fragment))
