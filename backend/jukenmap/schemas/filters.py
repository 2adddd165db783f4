"""Pydantic schemas for user-selected school filters."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from jukenmap.schemas.geo import Coordinate
from jukenmap.schemas.school import Establishment, SchoolType

DEVIATION_MIN = 30
DEVIATION_MAX = 73


class Filters(BaseModel):
    """Filter configuration for one session.

    Empty collections mean "no restriction". The score range is inclusive and
    kept ordered by clamping rather than rejecting.
    """

    model_config = ConfigDict(frozen=True)

    establishments: frozenset[Establishment] = frozenset()
    school_types: frozenset[SchoolType] = frozenset()
    deviation_min: int = DEVIATION_MIN
    deviation_max: int = DEVIATION_MAX
    areas: frozenset[str] = frozenset()
    keyword: str = ""
    origin: Coordinate | None = None
    max_distance_km: float | None = Field(default=None, gt=0)

    @model_validator(mode="before")
    @classmethod
    def _clamp_score_range(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        low = data.get("deviation_min", DEVIATION_MIN)
        high = data.get("deviation_max", DEVIATION_MAX)
        if isinstance(low, (int, float)) and isinstance(high, (int, float)) and low > high:
            data = {**data, "deviation_min": high}
        return data

    def with_deviation_min(self, value: int) -> "Filters":
        """Move the lower bound, never past the upper bound."""
        return self.model_copy(update={"deviation_min": min(value, self.deviation_max)})

    def with_deviation_max(self, value: int) -> "Filters":
        """Move the upper bound, never below the lower bound."""
        return self.model_copy(update={"deviation_max": max(value, self.deviation_min)})
