"""
Dataset loader (raw rows -> CanonicalRecord list)
=================================================

This module validates every tokenized row and converts the survivors into
immutable `CanonicalRecord` objects.

Key ideas:
- Header names are resolved once per load through `FieldSchema`; several
  spellings are accepted because older copies of the sheet name columns
  differently.
- A row exists only if it has a category, a phenomenon type and an 8-digit
  `YYYYMMDD` date. Anything else is dropped with a warning.
- Coordinates are all-or-nothing: both valid, or both None. A combined
  "lat, lon" column is used when the separate pair gives nothing.
- Local exports can be imported too (`.csv` through our tokenizer, `.xlsx`
  through pandas/openpyxl).
"""

from __future__ import annotations
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple
import logging
import math
import re

from .csv_parser import RawRow, parse_csv
from .errors import NoValidRowsError
from .models import SEMANTIC_FIELDS, CanonicalRecord, FieldSchema

log = logging.getLogger('sevdash.parse')

_DATE_RE = re.compile(r"^\d{8}$")

# semantic field -> resolved header (None when the sheet has no such column)
Resolved = Dict[str, Optional[str]]


def _norm(s: str) -> str:
    return re.sub(r"[^a-z0-9]+", "", str(s).lower())


def resolve_schema(headers: Sequence[str], schema: FieldSchema) -> Resolved:
    """Map every semantic field to the header that carries it.

    Exact names are tried first, then a case/punctuation-insensitive match.
    """
    cols = list(headers)
    norm_map = {_norm(c): c for c in cols}
    out: Resolved = {}
    for name in SEMANTIC_FIELDS:
        found = None
        for cand in schema.candidates(name):
            if cand in cols:
                found = cand
                break
        if found is None:
            for cand in schema.candidates(name):
                if _norm(cand) in norm_map:
                    found = norm_map[_norm(cand)]
                    break
        out[name] = found
    missing = [n for n in ('date', 'category', 'phenomenon') if out[n] is None]
    if missing:
        log.warning('[PARSE] required column(s) not found: %s. Available=%s', missing, cols)
    return out


def _get(row: RawRow, resolved: Resolved, name: str) -> str:
    col = resolved.get(name)
    if col is None:
        return ""
    return (row.get(col) or "").strip()


def _to_float(x: str) -> Optional[float]:
    """Parse a coordinate, accepting a comma decimal separator."""
    s = (x or "").strip().replace(",", ".")
    if not s:
        return None
    try:
        v = float(s)
    except ValueError:
        return None
    return v if math.isfinite(v) else None


def _coordinates(lat_raw: str, lon_raw: str) -> Tuple[Optional[float], Optional[float]]:
    lat, lon = _to_float(lat_raw), _to_float(lon_raw)
    if lat is None or lon is None:
        return None, None
    if not (-90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0):
        return None, None
    return lat, lon


def _split_pair(raw: str) -> Tuple[str, str]:
    """Split a combined "lat, lon" cell into its first two parts.

    Semicolons or whitespace separate the pair when present, which leaves
    comma decimals ("-25,3; -57,6") intact. Otherwise commas separate it.
    """
    s = (raw or "").strip()
    parts = [p.strip(",") for p in re.split(r"[;\s]+", s)]
    parts = [p for p in parts if p]
    if len(parts) < 2:
        parts = [p for p in re.split(r"[,;\s]+", s) if p]
    if len(parts) < 2:
        return "", ""
    return parts[0], parts[1]


def _utc_millis(iso: str) -> int:
    try:
        d = datetime.strptime(iso, "%Y-%m-%d").replace(tzinfo=timezone.utc)
    except ValueError:
        return 0
    return int(d.timestamp() * 1000)


def is_valid(row: RawRow, resolved: Resolved) -> bool:
    """A row is kept only with category, phenomenon and a YYYYMMDD date."""
    if not _get(row, resolved, 'category'):
        return False
    if not _get(row, resolved, 'phenomenon'):
        return False
    return bool(_DATE_RE.match(_get(row, resolved, 'date')))


def normalize(row: RawRow, resolved: Resolved) -> CanonicalRecord:
    """Convert a valid raw row into a CanonicalRecord."""
    fields = {k: (v or "").strip() for k, v in row.items()}

    raw_date = _get(row, resolved, 'date')
    iso = f"{raw_date[:4]}-{raw_date[4:6]}-{raw_date[6:8]}"
    fields[resolved['date']] = iso  # type: ignore[index]

    lat, lon = _coordinates(_get(row, resolved, 'latitude'), _get(row, resolved, 'longitude'))
    if lat is None and _get(row, resolved, 'coordinates'):
        lat, lon = _coordinates(*_split_pair(_get(row, resolved, 'coordinates')))

    return CanonicalRecord(
        fields=fields,
        date=iso,
        timestamp=_utc_millis(iso),
        category=_get(row, resolved, 'category'),
        phenomenon=_get(row, resolved, 'phenomenon'),
        latitude=lat,
        longitude=lon,
        source_url=_get(row, resolved, 'source_url'),
        description=_get(row, resolved, 'description'),
    )


def build_records(headers: Sequence[str], rows: Sequence[RawRow], schema: FieldSchema) -> List[CanonicalRecord]:
    """Validate + normalize tokenized rows.

    Raises:
        NoValidRowsError: nothing survived validation.
    """
    resolved = resolve_schema(headers, schema)
    records: List[CanonicalRecord] = []
    for i, row in enumerate(rows, start=1):
        if not is_valid(row, resolved):
            log.warning('[PARSE] row %d dropped: missing category/type or date not YYYYMMDD', i)
            continue
        records.append(normalize(row, resolved))
    if not records:
        raise NoValidRowsError(f"No valid rows out of {len(rows)} data row(s)")
    log.info('[PARSE] %d valid record(s) out of %d row(s)', len(records), len(rows))
    return records


def parse_dataset(text: str, schema: Optional[FieldSchema] = None) -> Tuple[List[str], List[CanonicalRecord]]:
    """CSV text -> (headers, records). Tokenize, validate, normalize."""
    headers, rows = parse_csv(text)
    return headers, build_records(headers, rows, schema or FieldSchema())


def load_file(path: str, schema: Optional[FieldSchema] = None) -> Tuple[List[str], List[CanonicalRecord]]:
    """Load a local export of the sheet (.csv/.txt or .xlsx)."""
    p = Path(path)
    if p.suffix.lower() in ('.xlsx', '.xlsm'):
        headers, rows = _read_xlsx(p)
        return headers, build_records(headers, rows, schema or FieldSchema())
    return parse_dataset(p.read_text(encoding='utf-8-sig'), schema)


def _read_xlsx(path: Path) -> Tuple[List[str], List[RawRow]]:
    import pandas as pd

    df = pd.read_excel(path, engine="openpyxl", dtype=str)
    df.rename(columns={c: str(c).strip() for c in df.columns}, inplace=True)
    df = df.dropna(how="all")
    headers = list(df.columns)
    rows: List[RawRow] = []
    for _, r in df.iterrows():
        rows.append({h: ("" if pd.isna(r[h]) else str(r[h]).strip()) for h in headers})
    log.info('[PARSE] %d row(s) read from %s', len(rows), path.name)
    return headers, rows
