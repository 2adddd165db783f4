"""Tests for the bulk geocoding pipeline: cache, retry, failure accounting, checkpoints."""

import asyncio
import json
from unittest.mock import MagicMock

from jukenmap.schemas.geo import Coordinate
from jukenmap.services.bulk_geocoder import BulkGeocodingPipeline, ResolutionSource
from jukenmap.services.geocode_cache import GeocodeCache
from tests.conftest import FakeGeocoder, make_school, no_sleep

FULL = "東京都文京区本駒込１－２－３"
SHORT = "東京都文京区本駒込"
COORD = Coordinate(lat=35.7301, lng=139.7525)
OTHER = Coordinate(lat=35.6581, lng=139.7017)


def _pipeline(geocoder, cache=None, **kwargs) -> BulkGeocodingPipeline:
    kwargs.setdefault("delay_seconds", 0)
    kwargs.setdefault("retry_delay_seconds", 0)
    kwargs.setdefault("checkpoint_interval", 50)
    kwargs.setdefault("sleep", no_sleep)
    return BulkGeocodingPipeline(geocoder, cache if cache is not None else GeocodeCache(), **kwargs)


class TestResolveOne:
    def test_cache_hit_makes_no_network_call(self):
        cache = GeocodeCache()
        cache.set("X", COORD)
        geocoder = FakeGeocoder()

        outcome = asyncio.run(_pipeline(geocoder, cache).resolve_one(make_school("X", address=FULL)))

        assert outcome.source == ResolutionSource.CACHE
        assert outcome.school.coordinate == COORD
        assert geocoder.calls == []

    def test_primary_success_writes_cache(self):
        cache = GeocodeCache()
        geocoder = FakeGeocoder({FULL: COORD})

        outcome = asyncio.run(_pipeline(geocoder, cache).resolve_one(make_school("X", address=FULL)))

        assert outcome.source == ResolutionSource.PRIMARY
        assert outcome.school.latitude == COORD.lat
        assert cache.get("X") == COORD
        assert geocoder.calls == [FULL]

    def test_retry_with_shortened_address(self):
        cache = GeocodeCache()
        geocoder = FakeGeocoder({SHORT: OTHER})

        outcome = asyncio.run(_pipeline(geocoder, cache).resolve_one(make_school("X", address=FULL)))

        assert outcome.source == ResolutionSource.RETRY
        assert outcome.school.coordinate == OTHER
        assert cache.get("X") == OTHER
        assert geocoder.calls == [FULL, SHORT]

    def test_both_attempts_fail(self):
        cache = GeocodeCache()
        geocoder = FakeGeocoder()

        outcome = asyncio.run(_pipeline(geocoder, cache).resolve_one(make_school("X", address=FULL)))

        assert outcome.source == ResolutionSource.FAILED
        assert outcome.school.latitude is None
        assert outcome.school.longitude is None
        assert "X" not in cache

    def test_no_retry_when_address_has_no_numbers(self):
        geocoder = FakeGeocoder()
        outcome = asyncio.run(_pipeline(geocoder).resolve_one(make_school("X", address=SHORT)))
        assert outcome.source == ResolutionSource.FAILED
        assert geocoder.calls == [SHORT]

    def test_existing_coordinate_is_kept_and_cached(self):
        cache = GeocodeCache()
        geocoder = FakeGeocoder()
        school = make_school("X", address=FULL, coordinate=COORD)

        outcome = asyncio.run(_pipeline(geocoder, cache).resolve_one(school))

        assert outcome.source == ResolutionSource.EXISTING
        assert cache.get("X") == COORD
        assert geocoder.calls == []


class TestRun:
    def test_failure_does_not_abort_the_batch(self):
        geocoder = FakeGeocoder({"東京都港区三田2-15-45": COORD})
        schools = [
            make_school("1", address=FULL),
            make_school("2", address="東京都港区三田2-15-45"),
        ]

        result = asyncio.run(_pipeline(geocoder).run(schools))

        assert result.summary.failed == 1
        assert result.summary.success == 1
        assert result.schools[0].coordinate is None
        assert result.schools[1].coordinate == COORD

    def test_output_order_matches_input(self):
        geocoder = FakeGeocoder({f"東京都{i}": COORD for i in range(5)})
        schools = [make_school(str(i), address=f"東京都{i}") for i in range(5)]

        result = asyncio.run(_pipeline(geocoder).run(schools))

        assert [s.study_id for s in result.schools] == ["0", "1", "2", "3", "4"]

    def test_delays(self):
        sleep_calls = []

        async def record_sleep(seconds):
            sleep_calls.append(seconds)

        cache = GeocodeCache()
        cache.set("cached", COORD)
        geocoder = FakeGeocoder({"primary-1": COORD, SHORT: OTHER})
        schools = [
            make_school("cached", address="whatever"),
            make_school("primary", address="primary-1"),
            make_school("retry", address=FULL),
        ]

        pipeline = _pipeline(geocoder, cache, delay_seconds=0.2, retry_delay_seconds=0.3, sleep=record_sleep)
        asyncio.run(pipeline.run(schools))

        # No delay for the cache hit, per-record delay for each network record,
        # plus the retry delay after the retry attempt
        assert sleep_calls == [0.2, 0.3, 0.2]

    def test_checkpoint_every_n_records(self, tmp_path):
        path = tmp_path / "geocode_cache.json"
        cache = GeocodeCache(path)
        cache.flush = MagicMock(wraps=cache.flush)
        geocoder = FakeGeocoder({f"addr{i}": COORD for i in range(7)})
        schools = [make_school(str(i), address=f"addr{i}") for i in range(7)]

        asyncio.run(_pipeline(geocoder, cache, checkpoint_interval=3).run(schools))

        # After records 3 and 6, then once at completion
        assert cache.flush.call_count == 3
        with open(path, encoding="utf-8") as f:
            assert len(json.load(f)) == 7

    def test_resumes_from_durable_cache(self, tmp_path):
        path = tmp_path / "geocode_cache.json"
        path.write_text(json.dumps({"1": {"lat": 35.7301, "lng": 139.7525}}), encoding="utf-8")
        geocoder = FakeGeocoder({"addr2": OTHER})
        schools = [make_school("1", address="addr1"), make_school("2", address="addr2")]

        result = asyncio.run(_pipeline(geocoder, GeocodeCache(path)).run(schools))

        assert geocoder.calls == ["addr2"]
        assert result.summary.from_cache == 1
        with open(path, encoding="utf-8") as f:
            assert set(json.load(f)) == {"1", "2"}

    def test_already_loaded_cache_is_not_read_again(self, tmp_path):
        path = tmp_path / "geocode_cache.json"
        path.write_text(json.dumps({"1": {"lat": 35.7301, "lng": 139.7525}}), encoding="utf-8")
        cache = GeocodeCache(path)
        cache.load_from_durable_store()
        cache.load_from_durable_store = MagicMock(wraps=cache.load_from_durable_store)

        result = asyncio.run(_pipeline(FakeGeocoder(), cache).run([make_school("1", address="addr1")]))

        cache.load_from_durable_store.assert_not_called()
        assert result.summary.from_cache == 1

    def test_end_to_end_three_schools(self, tmp_path):
        cache = GeocodeCache(tmp_path / "geocode_cache.json")
        cache.set("cached", COORD)
        cache.flush()
        geocoder = FakeGeocoder({"埼玉県さいたま市浦和区高砂": OTHER})
        schools = [
            make_school("cached", address="東京都文京区本駒込１－２－３"),
            make_school("retry", address="埼玉県さいたま市浦和区高砂3-1-1"),
            make_school("lost", address="どこにもない町9-9"),
        ]

        result = asyncio.run(_pipeline(geocoder, cache).run(schools))

        assert len(result.schools) == 3
        assert [o.source for o in result.outcomes] == [
            ResolutionSource.CACHE,
            ResolutionSource.RETRY,
            ResolutionSource.FAILED,
        ]
        assert result.schools[0].coordinate == COORD
        assert result.schools[1].coordinate == OTHER
        assert result.schools[2].latitude is None and result.schools[2].longitude is None
        summary = result.summary
        assert (summary.total, summary.success, summary.failed) == (3, 2, 1)
        assert summary.retry_resolved == 1
        assert cache.get("retry") == OTHER
