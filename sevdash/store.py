"""Local persistence: a tiny key/value store plus the time-boxed dataset cache.

Layout under `cache_dir` (one JSON document per key):
- sevdash.dataset.json     JSON array of CanonicalRecord dicts
- sevdash.dataset_ts.json  epoch milliseconds of the last save
- sevdash.filters.json     the last FilterSpec

Cache problems are never fatal: they are logged and treated as a miss.
"""
from __future__ import annotations
import json
import logging
import time
from pathlib import Path
from typing import Any, Callable, List, Optional, Sequence

from .errors import CacheError, CacheReadError, CacheWriteError
from .models import CanonicalRecord, FilterSpec

log = logging.getLogger('sevdash.cache')

DATASET_KEY = 'sevdash.dataset'
TIMESTAMP_KEY = 'sevdash.dataset_ts'
FILTERS_KEY = 'sevdash.filters'


class LocalStore:
    """Key -> JSON value, one file per key."""

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get(self, key: str) -> Optional[Any]:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            raise CacheReadError(f"Cannot read {path.name}: {e}") from e

    def set(self, key: str, value: Any) -> None:
        path = self._path(key)
        tmp = path.with_suffix('.tmp')
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            with open(tmp, 'w', encoding='utf-8') as f:
                json.dump(value, f, ensure_ascii=False)
            tmp.replace(path)
        except (OSError, TypeError, ValueError) as e:
            raise CacheWriteError(f"Cannot write {path.name}: {e}") from e

    def remove(self, key: str) -> None:
        try:
            self._path(key).unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            raise CacheWriteError(f"Cannot remove {key}: {e}") from e


class CacheStore:
    """Time-boxed dataset cache and filter persistence over a LocalStore."""

    def __init__(self, store: LocalStore, ttl_seconds: float = 30 * 60.0,
                 clock: Callable[[], float] = time.time) -> None:
        self.store = store
        self.ttl_ms = int(ttl_seconds * 1000)
        self._clock = clock

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def load(self) -> Optional[List[CanonicalRecord]]:
        """Return the cached dataset, or None when absent, stale or corrupt."""
        try:
            ts = self.store.get(TIMESTAMP_KEY)
            if ts is None:
                log.info('[CACHE] miss (no timestamp)')
                return None
            age = self._now_ms() - int(ts)
            if age < 0 or age > self.ttl_ms:
                log.info('[CACHE] stale (age=%.0fs)', age / 1000.0)
                return None
            raw = self.store.get(DATASET_KEY)
            if not isinstance(raw, list) or not raw:
                log.info('[CACHE] miss (empty dataset entry)')
                return None
            records = [CanonicalRecord.from_dict(d) for d in raw]
        except CacheError as e:
            log.warning('[CACHE] read failed, treating as miss: %s', e)
            return None
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            log.warning('[CACHE] corrupt entry, treating as miss: %s', CacheReadError(str(e)))
            return None
        log.info('[CACHE] hit %d record(s) age=%.0fs', len(records), age / 1000.0)
        return records

    def save(self, records: Sequence[CanonicalRecord]) -> bool:
        """Best-effort save. Returns False (and logs) on failure."""
        try:
            self.store.set(DATASET_KEY, [r.to_dict() for r in records])
            self.store.set(TIMESTAMP_KEY, self._now_ms())
        except CacheError as e:
            log.warning('[CACHE] save failed: %s', e)
            return False
        log.info('[CACHE] saved %d record(s)', len(records))
        return True

    def clear(self) -> None:
        for key in (DATASET_KEY, TIMESTAMP_KEY):
            try:
                self.store.remove(key)
            except CacheError as e:
                log.warning('[CACHE] clear failed: %s', e)

    def load_filters(self) -> FilterSpec:
        try:
            raw = self.store.get(FILTERS_KEY)
        except CacheError as e:
            log.warning('[CACHE] filters unreadable: %s', e)
            return FilterSpec()
        if not isinstance(raw, dict):
            return FilterSpec()
        try:
            return FilterSpec.from_dict(raw)
        except (TypeError, ValueError) as e:
            log.warning('[CACHE] filters corrupt: %s', e)
            return FilterSpec()

    def save_filters(self, spec: FilterSpec) -> bool:
        try:
            self.store.set(FILTERS_KEY, spec.to_dict())
        except CacheError as e:
            log.warning('[CACHE] filters save failed: %s', e)
            return False
        return True
