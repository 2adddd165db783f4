"""School search API endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Query

from jukenmap.config import get_settings
from jukenmap.dependencies.services import get_repository
from jukenmap.schemas.filters import Filters
from jukenmap.schemas.geo import Coordinate
from jukenmap.schemas.school import Establishment, School, SchoolType, SchoolWithDistance
from jukenmap.services import filter_engine
from jukenmap.services.school_repository import SchoolRepository

router = APIRouter(prefix="/schools", tags=["schools"])


@router.get("", response_model=list[SchoolWithDistance])
async def list_schools(
    repository: SchoolRepository = Depends(get_repository),
    establishment: list[Establishment] = Query([], description="Allowed establishment categories"),
    school_type: list[SchoolType] = Query([], description="Allowed school types"),
    area: list[str] = Query([], description="Allowed areas"),
    score_min: int | None = Query(None, description="Lowest deviation value (inclusive, default from settings)"),
    score_max: int | None = Query(None, description="Highest deviation value (inclusive, default from settings)"),
    keyword: str = Query("", description="Search in name, address and nearest station"),
    origin_lat: float | None = Query(None, ge=-90, le=90, description="Origin latitude"),
    origin_lng: float | None = Query(None, ge=-180, le=180, description="Origin longitude"),
    max_distance_km: float | None = Query(None, gt=0, description="Straight-line radius from origin"),
):
    """
    List schools matching the filters.

    With an origin, results are ordered by straight-line distance and schools
    without coordinates come last.
    """
    if (origin_lat is None) != (origin_lng is None):
        raise HTTPException(status_code=400, detail="origin_lat and origin_lng must be given together")

    settings = get_settings()

    origin = Coordinate(lat=origin_lat, lng=origin_lng) if origin_lat is not None else None
    filters = Filters(
        establishments=frozenset(establishment),
        school_types=frozenset(school_type),
        areas=frozenset(area),
        deviation_min=settings.score_min if score_min is None else score_min,
        deviation_max=settings.score_max if score_max is None else score_max,
        keyword=keyword.strip(),
        origin=origin,
        max_distance_km=max_distance_km,
    )

    schools = await repository.load()
    return filter_engine.apply(schools, filters)


@router.get("/{study_id}", response_model=School)
async def get_school(
    study_id: str,
    repository: SchoolRepository = Depends(get_repository),
):
    """Get a single school by its study id."""
    await repository.load()
    school = repository.get(study_id)
    if not school:
        raise HTTPException(status_code=404, detail="School not found")
    return school
