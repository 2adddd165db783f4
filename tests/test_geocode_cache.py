"""Tests for the durable geocode cache."""

import json

from jukenmap.schemas.geo import Coordinate
from jukenmap.services.bulk_geocoder import key_by_address
from jukenmap.services.geocode_cache import GeocodeCache
from tests.conftest import make_school

COORD = Coordinate(lat=35.7301, lng=139.7525)


class TestGeocodeCache:
    def test_get_set(self):
        cache = GeocodeCache()
        assert cache.get("1001") is None
        cache.set("1001", COORD)
        assert cache.get("1001") == COORD
        assert "1001" in cache
        assert len(cache) == 1

    def test_flush_and_reload(self, tmp_path):
        path = tmp_path / "geocode_cache.json"
        cache = GeocodeCache(path)
        cache.set("1001", COORD)
        assert cache.flush() is True

        with open(path, encoding="utf-8") as f:
            assert json.load(f) == {"1001": {"lat": 35.7301, "lng": 139.7525}}

        reloaded = GeocodeCache(path)
        assert reloaded.load_from_durable_store() == 1
        assert reloaded.get("1001") == COORD

    def test_flush_skips_when_clean(self, tmp_path):
        cache = GeocodeCache(tmp_path / "cache.json")
        assert cache.flush() is False
        cache.set("1001", COORD)
        assert cache.flush() is True
        assert cache.flush() is False
        # Setting the same value again does not dirty the cache
        cache.set("1001", COORD)
        assert cache.flush() is False

    def test_flush_leaves_no_temp_files(self, tmp_path):
        cache = GeocodeCache(tmp_path / "cache.json")
        cache.set("1001", COORD)
        cache.flush()
        assert [p.name for p in tmp_path.iterdir()] == ["cache.json"]

    def test_in_memory_cache_never_writes(self):
        cache = GeocodeCache()
        cache.set("1001", COORD)
        assert cache.flush() is False

    def test_missing_file_loads_nothing(self, tmp_path):
        assert GeocodeCache(tmp_path / "nope.json").load_from_durable_store() == 0

    def test_invalid_entries_are_dropped(self, tmp_path):
        path = tmp_path / "cache.json"
        path.write_text(json.dumps({
            "ok": {"lat": 35.0, "lng": 139.0},
            "missing": {"lat": 35.0},
            "bad": {"lat": 135.0, "lng": 35.0},
            "null": None,
        }), encoding="utf-8")
        cache = GeocodeCache(path)
        assert cache.load_from_durable_store() == 1
        assert "ok" in cache
        assert "bad" not in cache

    def test_load_keeps_entries_already_in_memory(self, tmp_path):
        path = tmp_path / "cache.json"
        path.write_text(json.dumps({"1001": {"lat": 35.0, "lng": 139.0}}), encoding="utf-8")
        cache = GeocodeCache(path)
        cache.set("1001", COORD)
        cache.load_from_durable_store()
        assert cache.get("1001") == COORD

    def test_seed_from_schools(self):
        cache = GeocodeCache()
        cache.set("1001", COORD)
        schools = [
            make_school("1001", coordinate=Coordinate(lat=35.0, lng=139.0)),
            make_school("1002", coordinate=Coordinate(lat=35.5, lng=139.5)),
            make_school("1003", coordinate=None),
        ]
        assert cache.seed_from_schools(schools) == 1
        assert cache.get("1001") == COORD
        assert cache.get("1002") == Coordinate(lat=35.5, lng=139.5)
        assert "1003" not in cache

    def test_seed_by_address(self):
        cache = GeocodeCache()
        school = make_school("1001", address="東京都港区三田", coordinate=COORD)
        cache.seed_from_schools([school], key_func=key_by_address)
        assert cache.get("東京都港区三田") == COORD

    def test_corrupt_file_starts_empty(self, tmp_path):
        path = tmp_path / "cache.json"
        path.write_text('{"1001": {"lat": 35.0, "lng"', encoding="utf-8")
        cache = GeocodeCache(path)

        assert cache.load_from_durable_store() == 0
        assert len(cache) == 0
        assert cache.loaded

        cache.set("1001", COORD)
        assert cache.flush() is True
        assert json.loads(path.read_text(encoding="utf-8")) == {"1001": {"lat": 35.7301, "lng": 139.7525}}

    def test_loaded_flag(self, tmp_path):
        cache = GeocodeCache(tmp_path / "nope.json")
        assert not cache.loaded
        cache.load_from_durable_store()
        assert cache.loaded
