"""In-memory filtering and distance ranking of schools."""

from collections.abc import Iterable

from jukenmap.schemas.filters import Filters
from jukenmap.schemas.geo import Coordinate
from jukenmap.schemas.school import School, SchoolWithDistance
from jukenmap.services.distance import distance_km, estimate_commute_minutes


def annotate_distance(school: School, origin: Coordinate | None) -> SchoolWithDistance:
    """Attach straight-line distance from ``origin`` (null without origin or coordinates)."""
    distance = None
    commute = None
    if origin is not None and school.latitude is not None and school.longitude is not None:
        distance = distance_km(origin.lat, origin.lng, school.latitude, school.longitude)
        commute = estimate_commute_minutes(distance)
    return SchoolWithDistance(
        **school.model_dump(exclude={"distance_km", "estimated_commute_minutes"}),
        distance_km=distance,
        estimated_commute_minutes=commute,
    )


def _matches_keyword(school: School, keyword: str) -> bool:
    kw = keyword.lower()
    return (
        kw in school.school_name.lower()
        or kw in school.address.lower()
        or kw in (school.nearest_station or "").lower()
    )


def matches(school: SchoolWithDistance, filters: Filters) -> bool:
    """Apply every filter clause to one annotated school. Clauses are AND-ed."""
    if filters.establishments and school.establishment not in filters.establishments:
        return False

    if filters.school_types and school.school_type not in filters.school_types:
        return False

    # Schools without a score are never excluded by the score range
    score = school.yotsuya_deviation_value
    if score is not None and not (filters.deviation_min <= score <= filters.deviation_max):
        return False

    if filters.areas and school.area not in filters.areas:
        return False

    if filters.keyword and not _matches_keyword(school, filters.keyword):
        return False

    # Schools without coordinates have no distance and stay visible
    if (
        filters.origin is not None
        and filters.max_distance_km is not None
        and school.distance_km is not None
        and school.distance_km > filters.max_distance_km
    ):
        return False

    return True


def apply(schools: Iterable[School], filters: Filters) -> list[SchoolWithDistance]:
    """Filter schools and order them.

    With an origin the result is sorted by ascending distance, unknown
    distances last; without one the input order is kept.
    """
    annotated = [annotate_distance(s, filters.origin) for s in schools]
    result = [s for s in annotated if matches(s, filters)]

    if filters.origin is not None:
        result.sort(key=lambda s: (s.distance_km is None, s.distance_km or 0.0))

    return result
