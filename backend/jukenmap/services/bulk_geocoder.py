"""Bulk geocoding pipeline for the school dataset.

Each school goes through:
1. Cache hit by key → done, no network call
2. Primary attempt with the full address
3. Retry attempt with the shortened address
4. Failure → coordinates left null, counted, and the run moves on

Requests are strictly sequential. A short delay follows every record that
touched the network and an extra delay follows every retry attempt. The cache
is flushed every ``checkpoint_interval`` records and once at the end, so an
interrupted run resumes where it stopped.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum

from jukenmap.config import get_settings
from jukenmap.schemas.geo import Coordinate
from jukenmap.schemas.school import School
from jukenmap.services.address_normalizer import shorten
from jukenmap.services.geocode_cache import GeocodeCache
from jukenmap.services.geocoder import Geocoder

logger = logging.getLogger(__name__)


class ResolutionSource(str, Enum):
    CACHE = "cache"
    EXISTING = "existing"
    PRIMARY = "primary"
    RETRY = "retry"
    FAILED = "failed"


@dataclass
class GeocodeOutcome:
    """Result of resolving one school."""

    school: School
    source: ResolutionSource
    network_calls: int = 0

    @property
    def resolved(self) -> bool:
        return self.source != ResolutionSource.FAILED


@dataclass
class GeocodeSummary:
    total: int = 0
    success: int = 0
    failed: int = 0
    from_cache: int = 0
    retry_resolved: int = 0

    def record(self, outcome: GeocodeOutcome) -> None:
        self.total += 1
        if not outcome.resolved:
            self.failed += 1
            return
        self.success += 1
        if outcome.source == ResolutionSource.CACHE:
            self.from_cache += 1
        elif outcome.source == ResolutionSource.RETRY:
            self.retry_resolved += 1


@dataclass
class GeocodeRunResult:
    schools: list[School] = field(default_factory=list)
    outcomes: list[GeocodeOutcome] = field(default_factory=list)
    summary: GeocodeSummary = field(default_factory=GeocodeSummary)


def key_by_study_id(school: School) -> str:
    return school.study_id


def key_by_address(school: School) -> str:
    return school.address


class BulkGeocodingPipeline:
    """Sequential, rate-limited, resumable geocoding over a school list."""

    def __init__(
        self,
        geocoder: Geocoder,
        cache: GeocodeCache,
        *,
        delay_seconds: float | None = None,
        retry_delay_seconds: float | None = None,
        checkpoint_interval: int | None = None,
        key_func: Callable[[School], str] = key_by_study_id,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        settings = get_settings()
        self.geocoder = geocoder
        self.cache = cache
        self.delay_seconds = settings.geocode_delay_seconds if delay_seconds is None else delay_seconds
        self.retry_delay_seconds = (
            settings.geocode_retry_delay_seconds if retry_delay_seconds is None else retry_delay_seconds
        )
        self.checkpoint_interval = checkpoint_interval or settings.geocode_checkpoint_interval
        self.key_func = key_func
        self._sleep = sleep

    async def resolve_one(self, school: School) -> GeocodeOutcome:
        """Resolve a single school, writing the cache on success.

        Applies the retry delay after a retry attempt; the per-record delay is
        the caller's concern.
        """
        key = self.key_func(school)

        cached = self.cache.get(key)
        if cached is not None:
            return GeocodeOutcome(school.with_coordinate(cached), ResolutionSource.CACHE)

        if school.coordinate is not None:
            self.cache.set(key, school.coordinate)
            return GeocodeOutcome(school, ResolutionSource.EXISTING)

        coordinate = await self.geocoder.resolve(school.address)
        if coordinate is not None:
            self.cache.set(key, coordinate)
            return GeocodeOutcome(school.with_coordinate(coordinate), ResolutionSource.PRIMARY, network_calls=1)

        short_address = shorten(school.address)
        if not short_address or short_address == school.address:
            return GeocodeOutcome(school.with_coordinate(None), ResolutionSource.FAILED, network_calls=1)

        coordinate = await self.geocoder.resolve(short_address)
        await self._sleep(self.retry_delay_seconds)
        if coordinate is not None:
            self.cache.set(key, coordinate)
            return GeocodeOutcome(school.with_coordinate(coordinate), ResolutionSource.RETRY, network_calls=2)

        return GeocodeOutcome(school.with_coordinate(None), ResolutionSource.FAILED, network_calls=2)

    async def run(self, schools: Sequence[School]) -> GeocodeRunResult:
        """Geocode every school, preserving input order."""
        if not self.cache.loaded:
            self.cache.load_from_durable_store()
        result = GeocodeRunResult()
        total = len(schools)

        for index, school in enumerate(schools):
            progress = f"[{index + 1}/{total}]"
            outcome = await self.resolve_one(school)
            result.outcomes.append(outcome)
            result.schools.append(outcome.school)
            result.summary.record(outcome)

            coordinate: Coordinate | None = outcome.school.coordinate
            if outcome.source in (ResolutionSource.PRIMARY, ResolutionSource.RETRY):
                tag = " (retry)" if outcome.source == ResolutionSource.RETRY else ""
                logger.info(f"{progress} ✓ {school.school_name}{tag} → {coordinate.lat}, {coordinate.lng}")
            elif outcome.source == ResolutionSource.FAILED:
                logger.warning(f"{progress} ✗ {school.school_name} FAILED ({school.address})")

            if (index + 1) % self.checkpoint_interval == 0 and self.cache.flush():
                logger.info(f"{progress} Checkpoint: {len(self.cache)} cache entries saved")

            if outcome.network_calls:
                await self._sleep(self.delay_seconds)

        self.cache.flush()
        summary = result.summary
        logger.info(
            f"Geocoding complete: total={summary.total} success={summary.success} "
            f"failed={summary.failed} (cache={summary.from_cache}, retry={summary.retry_resolved})"
        )
        return result
