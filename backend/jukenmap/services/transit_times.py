"""Batched, cached, cancellable transit-time enrichment.

Given an origin and the schools currently shown, look up real transit
durations in batches of destinations. Cached pairs are answered without a
request; fresh answers are written to the shared cache as they arrive.
Batches run one at a time with a delay in between, progress is reported after
each batch, and starting a new computation cancels the previous one.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from jukenmap.config import get_settings
from jukenmap.schemas.geo import Coordinate
from jukenmap.schemas.school import School
from jukenmap.schemas.transit import AggregatorState, TransitInfo, TransitProgress
from jukenmap.services.google_maps import GoogleMapsClient

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[TransitProgress], None]


def next_weekday_morning(now: datetime | None = None) -> datetime:
    """Canonical departure time: the next (strictly future) Monday at 08:00.

    Weekday, hour and timezone come from settings. Using one fixed instant
    keeps durations comparable across schools no matter when they were fetched.
    """
    settings = get_settings()
    tz = ZoneInfo(settings.departure_timezone)
    now = now.astimezone(tz) if now is not None else datetime.now(tz)

    days_ahead = (settings.departure_weekday - now.weekday()) % 7 or 7
    target = now + timedelta(days=days_ahead)
    return target.replace(hour=settings.departure_hour, minute=0, second=0, microsecond=0)


def cache_key(origin: Coordinate, destination: Coordinate) -> str:
    """Key rounded to 4 decimals (~10 m) so near-identical origins share entries."""
    return f"{origin.lat:.4f},{origin.lng:.4f}→{destination.lat:.4f},{destination.lng:.4f}"


class TransitCache:
    """Session-wide in-memory cache of transit durations per coordinate pair."""

    def __init__(self):
        self._entries: dict[str, TransitInfo] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, origin: Coordinate, destination: Coordinate) -> TransitInfo | None:
        return self._entries.get(cache_key(origin, destination))

    def set(self, origin: Coordinate, destination: Coordinate, info: TransitInfo) -> None:
        self._entries[cache_key(origin, destination)] = info

    def clear(self) -> None:
        self._entries.clear()


class _Run:
    """Cancellation token for one computation."""

    __slots__ = ("cancelled",)

    def __init__(self):
        self.cancelled = False


class TransitTimeAggregator:
    """
    Transit-time lookups for one consumer (a map view, an API request, ...).

    State: IDLE → COMPUTING → DONE, or CANCELLED when superseded or detached.
    ``results`` maps study_id → TransitInfo; a missing school means "not known
    yet", never "unreachable".
    """

    def __init__(
        self,
        client: GoogleMapsClient,
        cache: TransitCache,
        *,
        batch_size: int | None = None,
        batch_delay_seconds: float | None = None,
        departure_time_factory: Callable[[], datetime] = next_weekday_morning,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        settings = get_settings()
        self.client = client
        self.cache = cache
        self.batch_size = min(
            batch_size or settings.transit_batch_size,
            GoogleMapsClient.DISTANCE_MATRIX_MAX_DESTINATIONS,
        )
        self.batch_delay_seconds = (
            settings.transit_batch_delay_seconds if batch_delay_seconds is None else batch_delay_seconds
        )
        self.departure_time_factory = departure_time_factory
        self._sleep = sleep

        self.state = AggregatorState.IDLE
        self.progress = TransitProgress()
        self._results: dict[str, TransitInfo] = {}
        self._current: _Run | None = None

    @property
    def results(self) -> dict[str, TransitInfo]:
        return dict(self._results)

    def cancel(self) -> None:
        """Stop the running computation after its in-flight batch (consumer detached)."""
        if self._current is not None and not self._current.cancelled:
            self._current.cancelled = True
            if self.state == AggregatorState.COMPUTING:
                self.state = AggregatorState.CANCELLED

    async def compute(
        self,
        origin: Coordinate | None,
        schools: Sequence[School],
        on_progress: ProgressCallback | None = None,
    ) -> dict[str, TransitInfo]:
        """
        Look up transit times from ``origin`` to every school with coordinates.

        Any computation still running on this aggregator is cancelled first.

        Returns:
            The results this run published (cache hits plus fresh lookups)
        """
        self.cancel()
        run = _Run()
        self._current = run

        if origin is None:
            self._results = {}
            self.progress = TransitProgress()
            self.state = AggregatorState.IDLE
            return {}

        results: dict[str, TransitInfo] = {}
        misses: list[tuple[School, Coordinate]] = []
        for school in schools:
            destination = school.coordinate
            if destination is None:
                continue
            cached = self.cache.get(origin, destination)
            if cached is not None:
                results[school.study_id] = cached
            else:
                misses.append((school, destination))

        self._results = dict(results)
        self.progress = TransitProgress(done=0, total=len(misses))

        if not misses:
            self.state = AggregatorState.DONE
            return dict(results)

        self.state = AggregatorState.COMPUTING
        departure_time = self.departure_time_factory()
        total = len(misses)

        for start in range(0, total, self.batch_size):
            if run.cancelled:
                break

            batch = misses[start:start + self.batch_size]
            try:
                infos = await self.client.transit_times_batch(
                    origin, [dest for _, dest in batch], departure_time
                )
            except Exception as e:
                logger.error(f"Transit batch {start // self.batch_size + 1} failed, skipping: {e}")
                infos = []

            for (school, destination), info in zip(batch, infos):
                if info is None:
                    continue
                # The cache is keyed per pair, so stale runs may still fill it
                self.cache.set(origin, destination, info)
                results[school.study_id] = info

            if run.cancelled:
                break

            self._results = dict(results)
            self.progress = TransitProgress(done=min(start + self.batch_size, total), total=total)
            if on_progress is not None:
                on_progress(self.progress)

            if start + self.batch_size < total:
                await self._sleep(self.batch_delay_seconds)

        if not run.cancelled:
            self.state = AggregatorState.DONE
        return dict(results)
