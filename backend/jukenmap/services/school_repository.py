"""School dataset access with an explicit, clearable in-process cache."""

import asyncio
import logging
from pathlib import Path

import httpx

from jukenmap.config import get_settings
from jukenmap.schemas.school import School
from jukenmap.services.bulk_geocoder import BulkGeocodingPipeline, key_by_address
from jukenmap.services.geocode_cache import GeocodeCache
from jukenmap.services.geocoder import Geocoder
from jukenmap.services.school_loader import DatasetError, load_dataset, parse_schools_csv

logger = logging.getLogger(__name__)


class SchoolRepository:
    """
    Loads the school list once and serves it from memory afterwards.

    Source order:
    1. A published sheet CSV (``sheet_url``), geocoding addresses the bundled
       dataset does not already know
    2. The bundled schools.json
    """

    def __init__(
        self,
        dataset_path: Path | str | None = None,
        sheet_url: str | None = None,
        geocoder: Geocoder | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        settings = get_settings()
        self.dataset_path = Path(dataset_path) if dataset_path is not None else settings.schools_json_path
        self.sheet_url = sheet_url if sheet_url is not None else settings.school_sheet_csv_url
        self.geocoder = geocoder
        self.timeout = settings.http_timeout
        self._transport = transport
        self._schools: list[School] | None = None
        self._by_id: dict[str, School] = {}
        self._lock = asyncio.Lock()

    @property
    def loaded(self) -> bool:
        return self._schools is not None

    def clear(self) -> None:
        self._schools = None
        self._by_id = {}

    def set_schools(self, schools: list[School]) -> None:
        self._schools = list(schools)
        self._by_id = {s.study_id: s for s in self._schools}

    async def load(self) -> list[School]:
        """Return all schools, loading them on first use."""
        if self._schools is not None:
            return self._schools

        async with self._lock:
            if self._schools is None:
                bundled = self._load_bundled()
                schools = bundled
                if self.sheet_url:
                    try:
                        schools = await self._load_from_sheet(bundled)
                    except (httpx.HTTPError, DatasetError) as e:
                        logger.error(f"Sheet load failed, using bundled dataset: {e}")
                self.set_schools(schools)
                logger.info(f"Loaded {len(schools)} schools")
        return self._schools

    def get(self, study_id: str) -> School | None:
        return self._by_id.get(study_id)

    def _load_bundled(self) -> list[School]:
        try:
            return load_dataset(self.dataset_path)
        except DatasetError as e:
            logger.error(f"Bundled dataset unavailable: {e}")
            return []

    async def _load_from_sheet(self, bundled: list[School]) -> list[School]:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.get(self.sheet_url, follow_redirects=True)
            response.raise_for_status()

        rows = parse_schools_csv(response.text)
        if not rows:
            raise DatasetError("Sheet CSV contained no usable rows")

        # Known addresses resolve from the bundled dataset without a request
        cache = GeocodeCache()
        cache.seed_from_schools(bundled, key_func=key_by_address)

        pipeline = BulkGeocodingPipeline(
            self.geocoder or Geocoder(transport=self._transport),
            cache,
            key_func=key_by_address,
        )
        result = await pipeline.run(rows)
        return result.schools
