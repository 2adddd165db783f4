"""Geocoding service using the GSI (国土地理院) address search API."""

import logging

import httpx

from jukenmap.config import get_settings
from jukenmap.schemas.geo import Coordinate

logger = logging.getLogger(__name__)


# Japan bounding box for sanity-checking geocode results
JAPAN_LAT_MIN, JAPAN_LAT_MAX = 20.0, 46.0
JAPAN_LNG_MIN, JAPAN_LNG_MAX = 122.0, 154.0


def _is_in_japan(lat: float, lng: float) -> bool:
    """Check if coordinates fall within the Japan bounding box."""
    return JAPAN_LAT_MIN <= lat <= JAPAN_LAT_MAX and JAPAN_LNG_MIN <= lng <= JAPAN_LNG_MAX


class Geocoder:
    """
    Single-address geocoder backed by the GSI address search API.

    The API answers with a JSON list of GeoJSON features ranked by relevance;
    each feature's coordinates are ``[longitude, latitude]``. The first
    feature is taken as the answer.

    No retries and no rate limiting happen here: callers decide when to try
    again and how long to wait between requests.
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize geocoder.

        Args:
            base_url: Address search endpoint (default from settings)
            timeout: Request timeout in seconds (default from settings)
            transport: Optional httpx transport, used to stub the upstream service
        """
        settings = get_settings()
        self.base_url = base_url or settings.gsi_geocoder_url
        self.timeout = timeout if timeout is not None else settings.http_timeout
        self._transport = transport

    async def resolve(self, address: str) -> Coordinate | None:
        """
        Geocode an address.

        Args:
            address: Free-text address

        Returns:
            Coordinate if found, None on no match, network error or malformed response
        """
        if not address or not address.strip():
            return None

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(self.base_url, params={"q": address})
                response.raise_for_status()

                results = response.json()
                if not results:
                    logger.debug(f"No geocoding results for: {address}")
                    return None

                lng, lat = results[0]["geometry"]["coordinates"][:2]
                lat, lng = float(lat), float(lng)

                if not _is_in_japan(lat, lng):
                    logger.debug(f"Geocoding result outside Japan bounds for '{address}': {lat}, {lng}")
                    return None

                return Coordinate(lat=lat, lng=lng)

        except httpx.HTTPError as e:
            logger.error(f"Geocoding HTTP error for '{address}': {e}")
            return None
        except (KeyError, IndexError, TypeError, ValueError) as e:
            logger.error(f"Geocoding parse error for '{address}': {e}")
            return None
