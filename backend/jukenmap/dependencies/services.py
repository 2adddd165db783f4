"""Service dependencies for FastAPI routes.

Long-lived objects (school repository, transit cache) live on ``app.state``
and are created in the application lifespan.
"""

from fastapi import Request

from jukenmap.services.google_maps import GoogleMapsClient
from jukenmap.services.school_repository import SchoolRepository
from jukenmap.services.transit_times import TransitCache


def get_repository(request: Request) -> SchoolRepository:
    return request.app.state.repository


def get_transit_cache(request: Request) -> TransitCache:
    return request.app.state.transit_cache


def get_maps_client(request: Request) -> GoogleMapsClient:
    """Return the shared Google Maps client, built on first use.

    Raises ConfigurationError when the API key is missing.
    """
    client = getattr(request.app.state, "maps_client", None)
    if client is None:
        client = GoogleMapsClient(transport=getattr(request.app.state, "maps_transport", None))
        request.app.state.maps_client = client
    return client
