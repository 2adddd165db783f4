"""Pydantic schemas package."""

from jukenmap.schemas.geo import Coordinate
from jukenmap.schemas.school import (
    Establishment,
    School,
    SchoolType,
    SchoolWithDistance,
)
from jukenmap.schemas.filters import DEVIATION_MAX, DEVIATION_MIN, Filters
from jukenmap.schemas.transit import (
    AggregatorState,
    TransitInfo,
    TransitProgress,
    TransitTimesRequest,
    TransitTimesResponse,
)

__all__ = [
    # Geo
    "Coordinate",
    # School
    "Establishment",
    "School",
    "SchoolType",
    "SchoolWithDistance",
    # Filters
    "DEVIATION_MAX",
    "DEVIATION_MIN",
    "Filters",
    # Transit
    "AggregatorState",
    "TransitInfo",
    "TransitProgress",
    "TransitTimesRequest",
    "TransitTimesResponse",
]
