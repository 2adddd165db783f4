"""Shared fixtures for the JukenMap test suite.

Provides school factories, stub upstream clients and a clean settings cache.
"""

import os
from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

# Settings are read at import time by the app module; set them first
os.environ.setdefault("GOOGLE_MAPS_API_KEY", "fake-key-for-tests")
os.environ.setdefault("SCHOOL_SHEET_CSV_URL", "")

from jukenmap.config import get_settings  # noqa: E402
from jukenmap.schemas.geo import Coordinate  # noqa: E402
from jukenmap.schemas.school import Establishment, School, SchoolType  # noqa: E402
from jukenmap.schemas.transit import TransitInfo  # noqa: E402

TOKYO_STATION = Coordinate(lat=35.681, lng=139.767)
SHINJUKU_STATION = Coordinate(lat=35.690, lng=139.700)

FIXED_DEPARTURE = datetime(2026, 10, 19, 8, 0, tzinfo=ZoneInfo("Asia/Tokyo"))


def make_school(
    study_id: str = "1001",
    name: str = "テスト中学校",
    *,
    address: str = "東京都文京区本駒込１－２－３",
    score: int | None = 55,
    establishment: Establishment = Establishment.PRIVATE,
    school_type: SchoolType = SchoolType.COED,
    area: str = "東京23区",
    coordinate: Coordinate | None = None,
    nearest_station: str | None = None,
) -> School:
    return School(
        id=study_id,
        study_id=study_id,
        school_name=name,
        yotsuya_deviation_value=score,
        establishment=establishment,
        school_type=school_type,
        area=area,
        prefecture="東京都",
        address=address,
        latitude=coordinate.lat if coordinate else None,
        longitude=coordinate.lng if coordinate else None,
        nearest_station=nearest_station,
    )


class FakeGeocoder:
    """Geocoder double answering from a fixed address → coordinate table."""

    def __init__(self, answers: dict[str, Coordinate] | None = None):
        self.answers = answers or {}
        self.calls: list[str] = []

    async def resolve(self, address: str) -> Coordinate | None:
        self.calls.append(address)
        return self.answers.get(address)


class FakeMapsClient:
    """Distance Matrix double.

    Durations are derived from the destination latitude so every pair has a
    distinct, predictable answer. ``fail_batches`` holds call indexes that raise.
    """

    def __init__(self, fail_batches: set[int] | None = None, unreachable: set[Coordinate] | None = None):
        self.fail_batches = fail_batches or set()
        self.unreachable = unreachable or set()
        self.calls: list[list[Coordinate]] = []

    async def transit_times_batch(self, origin, destinations, departure_time):
        index = len(self.calls)
        self.calls.append(list(destinations))
        if index in self.fail_batches:
            raise RuntimeError("Distance Matrix API failed: OVER_QUERY_LIMIT")
        results = []
        for dest in destinations:
            if dest in self.unreachable:
                results.append(None)
            else:
                minutes = int(round((dest.lat - 35) * 100))
                results.append(TransitInfo(duration_minutes=minutes, duration_text=f"{minutes}分"))
        return results


async def no_sleep(seconds: float) -> None:
    return None


@pytest.fixture(autouse=True)
def _fresh_settings():
    """Drop cached settings so env changes made by a test take effect."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def tokyo_schools():
    """Three schools: near, far (15 km north) and one without coordinates."""
    return [
        make_school("A", "北の学園", coordinate=Coordinate(lat=35.816, lng=139.767), score=60),
        make_school("B", "新宿中学校", coordinate=SHINJUKU_STATION, score=45, nearest_station="新宿"),
        make_school("C", "座標なし学院", coordinate=None, score=None),
    ]
