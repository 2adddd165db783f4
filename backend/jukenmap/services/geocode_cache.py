"""Durable key → coordinate cache for the bulk geocoding job.

Stored as a JSON object ``{key: {"lat": ..., "lng": ...}}``. Only successful
resolutions are cached; unresolved records are simply retried on the next
run. Entries never expire.
"""

import json
import logging
import os
import tempfile
from collections.abc import Callable, Iterable
from pathlib import Path

from pydantic import ValidationError

from jukenmap.schemas.geo import Coordinate
from jukenmap.schemas.school import School

logger = logging.getLogger(__name__)


class GeocodeCache:
    """Single-writer geocode cache with explicit checkpointing.

    ``path=None`` keeps the cache in memory only and makes ``flush`` a no-op.
    """

    def __init__(self, path: Path | str | None = None):
        self.path = Path(path) if path is not None else None
        self._entries: dict[str, Coordinate] = {}
        self._dirty = False
        self._loaded = False

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def loaded(self) -> bool:
        """True once the durable store has been read (or found missing)."""
        return self._loaded

    def get(self, key: str) -> Coordinate | None:
        return self._entries.get(key)

    def set(self, key: str, coordinate: Coordinate) -> None:
        if self._entries.get(key) == coordinate:
            return
        self._entries[key] = coordinate
        self._dirty = True

    def load_from_durable_store(self) -> int:
        """Read the cache file, if any. Returns the number of entries loaded.

        Entries already held in memory are kept. Entries that are not valid
        coordinates are dropped so they get resolved again.
        """
        self._loaded = True
        if self.path is None or not self.path.exists():
            return 0

        try:
            with open(self.path, encoding="utf-8") as f:
                raw = json.load(f)
        except ValueError as e:
            logger.warning(f"Geocode cache {self.path} is not valid JSON, starting empty: {e}")
            return 0
        if not isinstance(raw, dict):
            logger.warning(f"Geocode cache {self.path} is not a JSON object, ignoring it")
            return 0

        loaded = 0
        for key, value in raw.items():
            if key in self._entries:
                continue
            try:
                self._entries[key] = Coordinate(lat=value["lat"], lng=value["lng"])
                loaded += 1
            except (KeyError, TypeError, ValidationError):
                logger.warning(f"Ignoring invalid cache entry for {key}: {value!r}")
        logger.info(f"Loaded {loaded} cached geocode results from {self.path}")
        return loaded

    def flush(self) -> bool:
        """Write the cache to disk if it changed. Returns True if a write happened."""
        if self.path is None or not self._dirty:
            return False

        payload = {key: {"lat": c.lat, "lng": c.lng} for key, c in self._entries.items()}
        self.path.parent.mkdir(parents=True, exist_ok=True)

        # Write to a sibling temp file then rename, so a crash never leaves a torn cache
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

        self._dirty = False
        logger.debug(f"Flushed {len(payload)} geocode cache entries to {self.path}")
        return True

    def seed_from_schools(
        self,
        schools: Iterable[School],
        key_func: Callable[[School], str] = lambda s: s.study_id,
    ) -> int:
        """Copy known school coordinates into the cache.

        Existing entries win over seeded ones. Returns the number of entries added.
        """
        added = 0
        for school in schools:
            coordinate = school.coordinate
            key = key_func(school)
            if coordinate is None or not key or key in self._entries:
                continue
            self._entries[key] = coordinate
            self._dirty = True
            added += 1
        return added
