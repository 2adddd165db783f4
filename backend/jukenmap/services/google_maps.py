"""Async client for the Google Maps Distance Matrix and Directions APIs."""

import logging
from collections.abc import Sequence
from datetime import datetime
from typing import Any

import httpx

from jukenmap.config import get_settings
from jukenmap.schemas.geo import Coordinate
from jukenmap.schemas.transit import TransitInfo
from jukenmap.services.distance import round_half_up

logger = logging.getLogger(__name__)


class TransitLookupError(Exception):
    """A whole Distance Matrix call failed (network, status or payload)."""


class DirectionsError(Exception):
    """The Directions API could not be reached or returned garbage."""


class GoogleMapsClient:
    """Client for the Google Maps web services used by the transit features.

    Construction fails with ``ConfigurationError`` when no API key is
    configured, so nothing downstream ever sends a keyless request.
    """

    # Google Distance Matrix allows up to 25 destinations per request
    DISTANCE_MATRIX_MAX_DESTINATIONS = 25

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        settings = get_settings()
        self.api_key = api_key or settings.require_google_maps_key()
        self.base_url = base_url or settings.google_maps_base_url
        self.timeout = timeout if timeout is not None else settings.http_timeout
        self.language = settings.directions_language
        self.region = settings.directions_region
        self._transport = transport

    async def _get(self, endpoint: str, params: dict[str, Any]) -> dict:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.get(f"{self.base_url}/{endpoint}/json", params={**params, "key": self.api_key})
            response.raise_for_status()
            return response.json()

    async def transit_times_batch(
        self,
        origin: Coordinate,
        destinations: Sequence[Coordinate],
        departure_time: datetime,
    ) -> list[TransitInfo | None]:
        """
        Transit durations from one origin to up to 25 destinations in one call.

        Returns one entry per destination, in order; None where that
        destination had no route.

        Raises:
            TransitLookupError: the call as a whole failed
        """
        if not destinations:
            return []
        if len(destinations) > self.DISTANCE_MATRIX_MAX_DESTINATIONS:
            raise ValueError(f"At most {self.DISTANCE_MATRIX_MAX_DESTINATIONS} destinations per call")

        params = {
            "origins": origin.as_param(),
            "destinations": "|".join(d.as_param() for d in destinations),
            "mode": "transit",
            "departure_time": int(departure_time.timestamp()),
            "language": self.language,
        }

        try:
            data = await self._get("distancematrix", params)
        except httpx.HTTPError as e:
            raise TransitLookupError(f"Distance Matrix request failed: {e}") from e
        except ValueError as e:
            raise TransitLookupError(f"Distance Matrix returned invalid JSON: {e}") from e

        if not isinstance(data, dict) or data.get("status") != "OK":
            status = data.get("status") if isinstance(data, dict) else type(data).__name__
            raise TransitLookupError(f"Distance Matrix API failed: {status}")

        try:
            elements = data["rows"][0]["elements"]
        except (KeyError, IndexError, TypeError) as e:
            raise TransitLookupError(f"Distance Matrix payload malformed: {e}") from e

        results: list[TransitInfo | None] = []
        for idx in range(len(destinations)):
            elem = elements[idx] if idx < len(elements) else {}
            if not isinstance(elem, dict) or elem.get("status") != "OK":
                results.append(None)
                continue
            try:
                minutes = round_half_up(elem["duration"]["value"] / 60)
                results.append(TransitInfo(
                    duration_minutes=minutes,
                    duration_text=elem["duration"].get("text") or f"{minutes}分",
                ))
            except (KeyError, TypeError):
                results.append(None)
        return results

    async def directions(
        self,
        origin: str,
        destination: str,
        departure_time: datetime,
    ) -> dict:
        """
        Transit directions between two addresses or "lat,lng" strings.

        Returns the upstream JSON unchanged (routes, status, ...).

        Raises:
            DirectionsError: network failure or non-JSON response
        """
        params = {
            "origin": origin,
            "destination": destination,
            "mode": "transit",
            "alternatives": "true",
            "language": self.language,
            "region": self.region,
            "departure_time": int(departure_time.timestamp()),
        }
        try:
            return await self._get("directions", params)
        except httpx.HTTPError as e:
            logger.error(f"Directions HTTP error for '{origin}' → '{destination}': {e}")
            raise DirectionsError(f"Failed to fetch directions: {e}") from e
        except ValueError as e:
            logger.error(f"Directions parse error for '{origin}' → '{destination}': {e}")
            raise DirectionsError(f"Failed to parse directions: {e}") from e
