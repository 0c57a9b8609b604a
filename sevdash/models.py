"""
Data model
==========

Each valid sheet row becomes a `CanonicalRecord`. Records are immutable
(`frozen=True`) so that:
- a loaded dataset can be shared with presentation code while a reload runs, and
- filters return subsets of the same objects instead of edited copies.

`FieldSchema` maps stable semantic names to the header text used in the sheet,
so downstream code never spells out raw header strings.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, Optional, Tuple
import json

SEMANTIC_FIELDS = ('date', 'category', 'phenomenon', 'latitude', 'longitude', 'source_url', 'description',
                   'coordinates')


@dataclass(frozen=True)
class FieldSchema:
    """Candidate source headers for every semantic field, tried in order."""
    date: Tuple[str, ...] = ('Fecha', 'Fecha_evento', 'Date')
    category: Tuple[str, ...] = ('Departamento_corr', 'Departamento', 'Department')
    phenomenon: Tuple[str, ...] = ('Tipo', 'Tipo_fenomeno', 'Fenomeno', 'Phenomenon')
    latitude: Tuple[str, ...] = ('Latitud', 'Lat', 'Latitude')
    longitude: Tuple[str, ...] = ('Longitud', 'Lon', 'Lng', 'Longitude')
    source_url: Tuple[str, ...] = ('Fuente', 'URL', 'Link', 'Source')
    description: Tuple[str, ...] = ('Descripcion', 'Descripción', 'Observaciones', 'Description')
    # single "lat, lon" column used by some copies instead of Latitud/Longitud
    coordinates: Tuple[str, ...] = ('Coordenadas', 'Coord', 'Coords', 'Coordinates')

    def candidates(self, name: str) -> Tuple[str, ...]:
        return getattr(self, name)


@dataclass(frozen=True)
class CanonicalRecord:
    """One normalized event row.

    `fields` keeps every source column (trimmed, date column rewritten) in
    header order; the typed attributes are the semantic view of the same row.
    Latitude and longitude are either both set or both None.
    """
    fields: Dict[str, str]
    date: str
    timestamp: int
    category: str
    phenomenon: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    source_url: str = ""
    description: str = ""

    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fields": dict(self.fields),
            "date": self.date,
            "timestamp": self.timestamp,
            "category": self.category,
            "phenomenon": self.phenomenon,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "source_url": self.source_url,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CanonicalRecord":
        lat, lon = d.get("latitude"), d.get("longitude")
        if lat is None or lon is None:
            lat = lon = None
        return cls(
            fields={str(k): str(v) for k, v in d["fields"].items()},
            date=str(d["date"]),
            timestamp=int(d["timestamp"]),
            category=str(d["category"]),
            phenomenon=str(d["phenomenon"]),
            latitude=float(lat) if lat is not None else None,
            longitude=float(lon) if lon is not None else None,
            source_url=str(d.get("source_url", "")),
            description=str(d.get("description", "")),
        )


@dataclass(frozen=True)
class FilterSpec:
    """User filter selection.

    An empty category or an empty phenomenon set means "no restriction".
    """
    category: str = ""
    phenomena: FrozenSet[str] = field(default_factory=frozenset)

    @classmethod
    def of(cls, category: str = "", phenomena: Iterable[str] = ()) -> "FilterSpec":
        return cls(category=(category or "").strip(),
                   phenomena=frozenset(p.strip() for p in phenomena if p and p.strip()))

    def signature(self) -> str:
        """Canonical memo key: equal specs always give the same string."""
        return json.dumps({"category": self.category, "phenomena": sorted(self.phenomena)},
                          ensure_ascii=False, separators=(",", ":"))

    def is_empty(self) -> bool:
        return not self.category and not self.phenomena

    def to_dict(self) -> Dict[str, Any]:
        return {"category": self.category, "phenomena": sorted(self.phenomena)}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "FilterSpec":
        return cls.of(str(d.get("category") or ""), [str(p) for p in d.get("phenomena") or []])


@dataclass(frozen=True)
class AggregationResult:
    """Grouped counts over a filtered view (insertion ordered)."""
    total: int
    by_category: Dict[str, int]
    by_phenomenon: Dict[str, int]
