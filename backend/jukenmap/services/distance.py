"""Straight-line distance and commute-time heuristics."""

import math

EARTH_RADIUS_KM = 6371.0

# Urban rail rule of thumb: 1 km of straight-line distance ≈ 3-4 minutes by train
COMMUTE_MINUTES_PER_KM = 3.5


def distance_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in kilometres (haversine)."""
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def round_half_up(value: float) -> int:
    """Round halves up (2.5 → 3), unlike the builtin ``round``."""
    return math.floor(value + 0.5)


def estimate_commute_minutes(distance: float) -> int:
    """Rough commute time from straight-line distance.

    An approximation only; real durations come from the transit lookup.
    """
    return round_half_up(distance * COMMUTE_MINUTES_PER_KM)
