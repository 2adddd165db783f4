"""Transit-time lookup endpoint."""

from fastapi import APIRouter, Depends, HTTPException

from jukenmap.dependencies.services import get_maps_client, get_repository, get_transit_cache
from jukenmap.schemas.transit import TransitTimesRequest, TransitTimesResponse
from jukenmap.services.google_maps import GoogleMapsClient
from jukenmap.services.school_repository import SchoolRepository
from jukenmap.services.transit_times import TransitCache, TransitTimeAggregator

router = APIRouter(prefix="/transit-times", tags=["transit"])

MAX_SCHOOLS_PER_REQUEST = 500


@router.post("", response_model=TransitTimesResponse)
async def compute_transit_times(
    body: TransitTimesRequest,
    repository: SchoolRepository = Depends(get_repository),
    cache: TransitCache = Depends(get_transit_cache),
    maps: GoogleMapsClient = Depends(get_maps_client),
):
    """
    Transit times from an origin to the given schools (all schools if omitted).

    Schools without coordinates, and schools whose lookup failed, are absent
    from ``results``.
    """
    schools = await repository.load()
    if body.school_ids is not None:
        if len(body.school_ids) > MAX_SCHOOLS_PER_REQUEST:
            raise HTTPException(status_code=400, detail=f"At most {MAX_SCHOOLS_PER_REQUEST} schools per request")
        wanted = set(body.school_ids)
        schools = [s for s in schools if s.study_id in wanted]

    aggregator = TransitTimeAggregator(maps, cache)
    results = await aggregator.compute(body.origin, schools)
    return TransitTimesResponse(state=aggregator.state, progress=aggregator.progress, results=results)
