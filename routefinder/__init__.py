"""Route finder package initialization."""

from . import (
    cache,
    config,
    coordinates,
    datatypes,
    geo,
    logging_utils,
    ranking,
    service,
    upstream,
    viewport,
)

__all__ = [
    "config",
    "datatypes",
    "logging_utils",
    "coordinates",
    "geo",
    "ranking",
    "viewport",
    "upstream",
    "cache",
    "service",
]
