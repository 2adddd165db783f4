"""Pydantic schemas for transit-time lookups."""

from enum import Enum

from pydantic import BaseModel, ConfigDict

from jukenmap.schemas.geo import Coordinate


class TransitInfo(BaseModel):
    """Transit duration for one origin/destination pair."""

    model_config = ConfigDict(frozen=True)

    duration_minutes: int
    duration_text: str


class TransitProgress(BaseModel):
    """Destinations processed so far out of the total to look up."""

    done: int = 0
    total: int = 0


class AggregatorState(str, Enum):
    IDLE = "idle"
    COMPUTING = "computing"
    DONE = "done"
    CANCELLED = "cancelled"


class TransitTimesRequest(BaseModel):
    """Request body for the transit-times endpoint."""

    origin: Coordinate | None = None
    school_ids: list[str] | None = None


class TransitTimesResponse(BaseModel):
    state: AggregatorState
    progress: TransitProgress
    results: dict[str, TransitInfo]
