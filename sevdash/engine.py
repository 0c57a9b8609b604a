"""
Core engine (sevdash)
=====================

This is the heart of the project. It works like a tiny in-memory analytics
engine sitting between the sheet and the presentation layer:

1) Load dataset -> tuple of CanonicalRecord (immutable, cache first)
2) Build indices -> fast lookup tables, once per dataset generation
3) Apply a FilterSpec -> filtered view, memoized by its signature
4) Aggregate / rank / bucket the view for charts and tables
5) Export the view as CSV or JSON

The dataset is never edited in place. A reload swaps a new tuple in and bumps
`generation`, which is what invalidates the filter memo.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple
import json
import logging

from .config import DashboardConfig
from .csv_parser import to_csv
from .dsa import intersect_sorted, merge_sort
from .fetcher import SheetFetcher
from .indices import Indices, build_indices, phenomena_ids
from .loader import load_file, parse_dataset, resolve_schema
from .models import AggregationResult, CanonicalRecord, FilterSpec
from .store import CacheStore, LocalStore

log = logging.getLogger('sevdash.engine')

UNKNOWN_LABEL = "unknown"

Dataset = Tuple[CanonicalRecord, ...]


# ---------------- Filtering ----------------
class FilterEngine:
    """Applies FilterSpecs to a dataset snapshot with memoization.

    Memo entries are tagged with the dataset generation they were computed
    against; seeing a new generation drops the whole memo and the indices.
    `scans` counts evaluations that were not served from the memo.
    """

    def __init__(self) -> None:
        self._memo: Dict[str, Tuple[int, Dataset]] = {}
        self._generation: Optional[int] = None
        self._idx: Optional[Indices] = None
        self.scans = 0

    def invalidate(self) -> None:
        self._memo.clear()
        self._idx = None
        self._generation = None

    def apply(self, dataset: Sequence[CanonicalRecord], generation: int, spec: FilterSpec) -> Dataset:
        if generation != self._generation:
            self.invalidate()
            self._generation = generation
        key = spec.signature()
        hit = self._memo.get(key)
        if hit is not None and hit[0] == generation:
            return hit[1]

        if self._idx is None:
            self._idx = build_indices(dataset)
        self.scans += 1
        ids = self._idx.geolocated
        if spec.category:
            ids = intersect_sorted(ids, self._idx.by_category.get(spec.category, []))
        if spec.phenomena:
            ids = intersect_sorted(ids, phenomena_ids(self._idx, spec.phenomena))
        view = tuple(dataset[i] for i in ids)
        self._memo[key] = (generation, view)
        log.debug('[FILTER] %s -> %d record(s)', key, len(view))
        return view


# ---------------- Aggregation ----------------
def aggregate(records: Sequence[CanonicalRecord]) -> AggregationResult:
    """Single pass counts by category and phenomenon."""
    by_category: Dict[str, int] = {}
    by_phenomenon: Dict[str, int] = {}
    for r in records:
        c = r.category or UNKNOWN_LABEL
        p = r.phenomenon or UNKNOWN_LABEL
        by_category[c] = by_category.get(c, 0) + 1
        by_phenomenon[p] = by_phenomenon.get(p, 0) + 1
    return AggregationResult(total=len(records), by_category=by_category, by_phenomenon=by_phenomenon)


def top_n(counts: Dict[str, int], n: Optional[int] = None) -> List[Tuple[str, int]]:
    """Entries by descending count; ties keep first-seen order."""
    ranked = merge_sort(list(counts.items()), key=lambda kv: kv[1], reverse=True)
    return ranked if n is None else ranked[:n]


def time_series(records: Sequence[CanonicalRecord], freq: str = "day") -> List[Tuple[str, int]]:
    """Event counts per day (YYYY-MM-DD) or month (YYYY-MM), ascending.

    Records whose date could not be parsed (timestamp 0) are skipped.
    """
    if freq not in ("day", "month"):
        raise ValueError("freq must be 'day' or 'month'")
    width = 10 if freq == "day" else 7
    counts: Dict[str, int] = {}
    for r in records:
        if not r.timestamp:
            continue
        k = r.date[:width]
        counts[k] = counts.get(k, 0) + 1
    return sorted(counts.items())


# ---------------- Table helpers ----------------
def _field_key(field_name: str) -> Callable[[CanonicalRecord], object]:
    f = field_name.lower().strip()
    if f in ("date", "timestamp"):
        return lambda r: r.timestamp
    if f in ("category", "department", "departamento"):
        return lambda r: r.category.lower()
    if f in ("phenomenon", "type", "tipo"):
        return lambda r: r.phenomenon.lower()
    if f in ("lat", "latitude"):
        return lambda r: r.latitude if r.latitude is not None else float("-inf")
    if f in ("lon", "longitude"):
        return lambda r: r.longitude if r.longitude is not None else float("-inf")
    raise ValueError("field must be: date, category, phenomenon, latitude, longitude")


def sort_records(records: Sequence[CanonicalRecord], field_name: str, reverse: bool = False) -> List[CanonicalRecord]:
    return merge_sort(list(records), key=_field_key(field_name), reverse=reverse)


def paginate(records: Sequence[CanonicalRecord], page: int, size: int = 25) -> Tuple[List[CanonicalRecord], int]:
    """Return (rows of `page`, total pages). Pages are 1-based and clamped."""
    if size < 1:
        raise ValueError("page size must be >= 1")
    pages = max(1, -(-len(records) // size))
    page = min(max(1, page), pages)
    start = (page - 1) * size
    return list(records[start:start + size]), pages


def export_csv_text(records: Sequence[CanonicalRecord], headers: Optional[Sequence[str]] = None,
                    date_column: Optional[str] = None) -> str:
    """CSV text of a view: every source column, every field quoted.

    When `date_column` is given that column is written back as YYYYMMDD, so
    the file loads again like the sheet itself.
    """
    if headers is None:
        headers = list(records[0].fields) if records else []

    def cell(r: CanonicalRecord, h: str) -> str:
        if h == date_column:
            return r.date.replace("-", "")
        return r.fields.get(h, "")

    return to_csv(headers, [[cell(r, h) for h in headers] for r in records])


# ---------------- DataManager ----------------
@dataclass
class DataManager:
    """Owns the dataset and everything derived from it.

    The manager stores:
    - dataset: current tuple of records (swapped wholesale on reload)
    - generation: bumped on every swap
    - filters: current FilterSpec (persisted through the cache store)
    """
    config: DashboardConfig = field(default_factory=DashboardConfig)
    fetcher: Optional[SheetFetcher] = None
    cache: Optional[CacheStore] = None
    dataset: Dataset = field(default=(), init=False)
    headers: List[str] = field(default_factory=list, init=False)
    generation: int = field(default=0, init=False)
    source: str = field(default="", init=False)
    filters: FilterSpec = field(default_factory=FilterSpec, init=False)
    engine: FilterEngine = field(default_factory=FilterEngine, init=False)

    def __post_init__(self) -> None:
        if self.fetcher is None:
            self.fetcher = SheetFetcher(self.config)
        if self.cache is None:
            self.cache = CacheStore(LocalStore(self.config.cache_dir), ttl_seconds=self.config.cache_ttl)
        self.filters = self.cache.load_filters()

    # ---------------- Loading ----------------
    def load(self, force_refresh: bool = False) -> Dataset:
        """Cache first (unless forced), otherwise fetch + parse + cache.

        Raises the last FetchError when every attempt failed, or a ParseError
        when the sheet has no usable rows.
        """
        if not force_refresh:
            cached = self.cache.load()
            if cached:
                self.replace_dataset(cached, source="cache")
                return self.dataset
        text = self.fetcher.load_text()
        headers, records = parse_dataset(text, self.config.schema)
        self.replace_dataset(records, headers=headers, source="network")
        self.cache.save(self.dataset)
        return self.dataset

    def load_file(self, path: str) -> Dataset:
        headers, records = load_file(path, self.config.schema)
        self.replace_dataset(records, headers=headers, source=path)
        return self.dataset

    def replace_dataset(self, records: Sequence[CanonicalRecord],
                        headers: Optional[Sequence[str]] = None, source: str = "") -> None:
        new = tuple(records)
        self.headers = list(headers) if headers is not None else (list(new[0].fields) if new else [])
        self.dataset = new
        self.generation += 1
        self.source = source
        self.engine.invalidate()
        log.info('[DATA] generation %d: %d record(s) from %s', self.generation, len(new), source or "memory")

    # ---------------- Views ----------------
    def set_filters(self, spec: FilterSpec) -> None:
        self.filters = spec
        self.cache.save_filters(spec)

    def filtered(self, spec: Optional[FilterSpec] = None) -> Dataset:
        return self.engine.apply(self.dataset, self.generation, spec if spec is not None else self.filters)

    def aggregate(self, spec: Optional[FilterSpec] = None) -> AggregationResult:
        return aggregate(self.filtered(spec))

    def categories(self) -> List[str]:
        return sorted({r.category for r in self.dataset})

    def phenomena(self) -> List[str]:
        return sorted({r.phenomenon for r in self.dataset})

    # ---------------- Export ----------------
    def export_csv(self, path: str, spec: Optional[FilterSpec] = None) -> int:
        rows = self.filtered(spec)
        with open(path, "w", newline="", encoding="utf-8") as f:
            f.write(export_csv_text(rows, self.headers, date_column=self._date_column()))
        return len(rows)

    def _date_column(self) -> Optional[str]:
        return resolve_schema(self.headers, self.config.schema).get('date')

    def export_json(self, path: str, spec: Optional[FilterSpec] = None) -> int:
        rows = self.filtered(spec)
        with open(path, "w", encoding="utf-8") as f:
            json.dump([r.to_dict() for r in rows], f, ensure_ascii=False, indent=2)
        return len(rows)
