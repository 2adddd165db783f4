"""Transit directions proxy endpoint."""

from fastapi import APIRouter, Depends, HTTPException, Query

from jukenmap.dependencies.services import get_maps_client
from jukenmap.services.google_maps import DirectionsError, GoogleMapsClient
from jukenmap.services.transit_times import next_weekday_morning

router = APIRouter(prefix="/directions", tags=["directions"])


@router.get("")
async def get_directions(
    origin: str | None = Query(None, description="Origin address or 'lat,lng'"),
    destination: str | None = Query(None, description="Destination address or 'lat,lng'"),
    maps: GoogleMapsClient = Depends(get_maps_client),
):
    """
    Proxy a Google Directions transit request.

    The departure time is always the canonical weekday-morning instant, so
    the route shown matches the commute times in the list.
    """
    if not origin or not destination:
        raise HTTPException(status_code=400, detail="origin and destination required")

    try:
        return await maps.directions(origin, destination, next_weekday_morning())
    except DirectionsError as e:
        raise HTTPException(status_code=502, detail=str(e))
