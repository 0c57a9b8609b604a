"""
sevdash package
===============

Core of the severe-weather event dashboard: it fetches the published Google
Sheet, parses it into immutable records and serves filtered views and counts
to whatever draws the map, charts and table.

- The CLI entry point is in `sevdash/cli.py`.
- The core engine (filters, aggregation, DataManager) is in `sevdash/engine.py`.
- CSV tokenizing is in `sevdash/csv_parser.py`, row normalization in `sevdash/loader.py`.
- Network fetching is in `sevdash/fetcher.py`, the local cache in `sevdash/store.py`.
"""

__version__ = '0.3.0'
