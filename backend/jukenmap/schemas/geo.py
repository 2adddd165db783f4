"""Pydantic schemas for coordinates."""

from pydantic import BaseModel, ConfigDict, Field


class Coordinate(BaseModel):
    """A WGS84 point, latitude first."""

    model_config = ConfigDict(frozen=True)

    lat: float = Field(ge=-90, le=90, allow_inf_nan=False)
    lng: float = Field(ge=-180, le=180, allow_inf_nan=False)

    def as_param(self) -> str:
        """Format as the "lat,lng" string Google Maps endpoints expect."""
        return f"{self.lat},{self.lng}"
