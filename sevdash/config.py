"""
Configuration
=============

One explicit `DashboardConfig` object is handed to the fetcher, the cache
store and the DataManager. Defaults point at the public severe-weather sheet;
environment variables can override them for a deployment or a test run.
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import List, Tuple
import os

from .models import FieldSchema

SHEET_ID = '1RR-9_QpWa1X8HBFh4pjYndn64DnyGRpBYF0k6VMio9s'
DEFAULT_CACHE_DIR = Path.home() / '.cache' / 'sevdash'

# Candidate endpoints, tried in this order on every round.
EXPORT_URL = 'https://docs.google.com/spreadsheets/d/{sheet_id}/export?format=csv&gid={gid}'
PUBLISHED_URL = 'https://docs.google.com/spreadsheets/d/{sheet_id}/pub?output=csv&gid={gid}'
GVIZ_URL = 'https://docs.google.com/spreadsheets/d/{sheet_id}/gviz/tq?tqx=out:json&gid={gid}'


@dataclass(frozen=True)
class DashboardConfig:
    """Knobs for fetching, retrying and caching the sheet.

    Attributes:
        sheet_id: Google Sheet document id.
        gid: worksheet id inside the document.
        timeout: seconds allowed for one fetch attempt.
        max_retries: number of full rounds over the candidate URLs.
        retry_delay: seconds to wait between rounds.
        cache_ttl: seconds a cached dataset stays fresh.
        cache_dir: directory of the local key/value store.
        use_gviz: also try the gviz JSON endpoint as a last candidate.
        schema: semantic field -> candidate header names.
    """
    sheet_id: str = SHEET_ID
    gid: str = '0'
    timeout: float = 15.0
    max_retries: int = 3
    retry_delay: float = 2.0
    cache_ttl: float = 30 * 60.0
    cache_dir: Path = DEFAULT_CACHE_DIR
    use_gviz: bool = False
    schema: FieldSchema = field(default_factory=FieldSchema)

    def candidate_urls(self) -> List[str]:
        templates: Tuple[str, ...] = (EXPORT_URL, PUBLISHED_URL)
        if self.use_gviz:
            templates += (GVIZ_URL,)
        return [t.format(sheet_id=self.sheet_id, gid=self.gid) for t in templates]

    @classmethod
    def from_env(cls, **overrides) -> "DashboardConfig":
        """Build a config from SEVDASH_* environment variables.

        Keyword overrides win over the environment; `None` values are ignored
        so CLI flags can be passed straight through.
        """
        cfg = cls()
        env = os.environ
        if env.get('SEVDASH_SHEET_ID'):
            cfg = replace(cfg, sheet_id=env['SEVDASH_SHEET_ID'])
        if env.get('SEVDASH_GID'):
            cfg = replace(cfg, gid=env['SEVDASH_GID'])
        if env.get('SEVDASH_CACHE_DIR'):
            cfg = replace(cfg, cache_dir=Path(env['SEVDASH_CACHE_DIR']))
        if env.get('SEVDASH_CACHE_TTL'):
            cfg = replace(cfg, cache_ttl=float(env['SEVDASH_CACHE_TTL']))
        clean = {k: v for k, v in overrides.items() if v is not None}
        if 'cache_dir' in clean:
            clean['cache_dir'] = Path(clean['cache_dir'])
        return replace(cfg, **clean) if clean else cfg
