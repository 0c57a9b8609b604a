"""
Indices (precomputed lookup tables)
===================================

The filter engine builds these once per dataset generation: maps from a
value to the sorted list of record positions holding it.

Example:
- `by_category["Central"]` gives the positions of all events in Central.
- `geolocated` lists every position whose record has both coordinates.

Sorted lists let the engine combine filters with two-pointer intersection.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Iterable, List, Sequence
from .dsa import union_sorted
from .models import CanonicalRecord

@dataclass
class Indices:
    """Container of precomputed indices for fast filtering."""
    by_category: Dict[str, List[int]]
    by_phenomenon: Dict[str, List[int]]
    geolocated: List[int]

def build_indices(records: Sequence[CanonicalRecord]) -> Indices:
    """Build indices from a dataset snapshot.

    Positions are appended in dataset order, so every list is already sorted.
    """
    by_category: Dict[str, List[int]] = {}
    by_phenomenon: Dict[str, List[int]] = {}
    geolocated: List[int] = []

    for i, r in enumerate(records):
        by_category.setdefault(r.category, []).append(i)
        by_phenomenon.setdefault(r.phenomenon, []).append(i)
        if r.has_coordinates():
            geolocated.append(i)

    return Indices(by_category=by_category, by_phenomenon=by_phenomenon, geolocated=geolocated)

def phenomena_ids(idx: Indices, phenomena: Iterable[str]) -> List[int]:
    """Sorted positions whose phenomenon is any of `phenomena`."""
    out: List[int] = []
    for p in sorted(phenomena):
        out = union_sorted(out, idx.by_phenomenon.get(p, []))
    return out
