"""Pydantic schemas for school records."""

import math
from enum import Enum

from pydantic import BaseModel, ConfigDict, model_validator

from jukenmap.schemas.geo import Coordinate


class Establishment(str, Enum):
    """Establishment category of a school."""

    PRIVATE = "私立"
    NATIONAL = "国立"
    PUBLIC_INTEGRATED = "公立中高一貫"


class SchoolType(str, Enum):
    """Student body type."""

    BOYS = "男子校"
    GIRLS = "女子校"
    COED = "共学校"


class School(BaseModel):
    """Immutable reference data for one school.

    Field names follow the published ``schools.json`` dataset so records can
    be written and read back without a mapping layer.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    study_id: str
    mext_code: str | None = None
    school_name: str
    yotsuya_deviation_value: int | None = None
    establishment: Establishment
    school_type: SchoolType
    area: str
    prefecture: str
    address: str
    postal_code: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    nearest_station: str | None = None
    school_url: str | None = None
    study_url: str | None = None

    @model_validator(mode="after")
    def _check_coordinate_pair(self) -> "School":
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("latitude and longitude must both be set or both be null")
        if self.latitude is not None:
            if not (math.isfinite(self.latitude) and math.isfinite(self.longitude)):
                raise ValueError("coordinates must be finite")
            if not (-90 <= self.latitude <= 90 and -180 <= self.longitude <= 180):
                raise ValueError("coordinates out of range")
        return self

    @property
    def coordinate(self) -> Coordinate | None:
        if self.latitude is None or self.longitude is None:
            return None
        return Coordinate(lat=self.latitude, lng=self.longitude)

    def with_coordinate(self, coordinate: Coordinate | None) -> "School":
        """Return a copy with the coordinate replaced (or cleared)."""
        if coordinate is None:
            return self.model_copy(update={"latitude": None, "longitude": None})
        return self.model_copy(update={"latitude": coordinate.lat, "longitude": coordinate.lng})


class SchoolWithDistance(School):
    """School annotated with straight-line distance from the current origin."""

    distance_km: float | None = None
    estimated_commute_minutes: int | None = None
