"""
sevdash Command Line Interface (CLI)
====================================

An interactive terminal over the dashboard core, run like:

    sevdash                      (fetch the configured sheet, cache first)
    sevdash --file export.csv    (work on a local export instead)

It demonstrates:
- Argument parsing (argparse) and logging setup
- A REPL loop (Read-Eval-Print Loop) for commands
- Mapping user commands to DataManager operations (filters, counts, export)

The CLI never writes to the sheet. Filters are remembered between sessions in
the local cache directory.
"""

from __future__ import annotations
import argparse, logging, shlex
from .config import DashboardConfig
from .engine import DataManager, paginate, sort_records, time_series, top_n
from .errors import FetchError, ParseError
from .models import FilterSpec

HELP = """
Commands:
  help
  stats
  reload                            (bypass the cache and fetch again)

  values category|type [prefix]
  filter category "<Department>"
  filter type <T1> [<T2> ...]
  filter clear

  top category|type [n]
  series day|month
  sort <field> [asc|desc]           (fields: date, category, type, lat, lon)
  page <n> [size]
  show [n]

  export csv|json "<path>"
  report "<path.docx>"
  quit
"""


def main(argv=None):
    """Entry point for the sevdash CLI.

    1) Configure logging + config
    2) Load dataset (file, or cache/network)
    3) Start an interactive REPL
    """
    ap = argparse.ArgumentParser(prog="sevdash")
    ap.add_argument("--file", help="Local .csv or .xlsx export of the sheet")
    ap.add_argument("--sheet-id", help="Google Sheet id")
    ap.add_argument("--gid", help="Worksheet gid")
    ap.add_argument("--cache-dir", help="Directory for the local cache")
    ap.add_argument("--refresh", action="store_true", help="Ignore the cached dataset")
    ap.add_argument("--log-level", default="WARNING", help="DEBUG, INFO, WARNING, ERROR")
    args = ap.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
        format='%(asctime)s - %(levelname)s - %(name)s - %(message)s',
    )

    config = DashboardConfig.from_env(sheet_id=args.sheet_id, gid=args.gid, cache_dir=args.cache_dir)
    manager = DataManager(config=config)

    print("Loading dataset...")
    try:
        if args.file:
            manager.load_file(args.file)
        else:
            manager.load(force_refresh=args.refresh)
    except (FetchError, ParseError) as e:
        print(f"Could not load data: {e}. Type 'reload' to try again.")

    print(f"Loaded {len(manager.dataset)} events. Type 'help' for commands.")
    if not manager.filters.is_empty():
        print(f"Restored filters: {_describe(manager.filters)}")
    while True:
        try:
            line = input("sevdash> ")
        except EOFError:
            break
        line = line.strip()
        if not line:
            continue
        if line.lower() in ("quit", "exit"):
            break
        try:
            handle(manager, line)
        except (FetchError, ParseError) as e:
            print(f"Load failed: {e}. Try 'reload' again later.")
        except (ValueError, IndexError, OSError) as e:
            print(f"Error: {e}")


def handle(manager: DataManager, line: str) -> None:
    """Handle one CLI command line."""
    parts = shlex.split(line)
    cmd = parts[0].lower()

    if cmd == "help":
        print(HELP)
        return

    if cmd == "reload":
        manager.load(force_refresh=True)
        print(f"Reloaded {len(manager.dataset)} events (generation {manager.generation}).")
        return

    if cmd == "stats":
        view = manager.filtered()
        geo = sum(1 for r in manager.dataset if r.has_coordinates())
        print(f"Dataset: {len(manager.dataset)} events ({geo} geolocated) from {manager.source or '-'}")
        print(f"Filters: {_describe(manager.filters)} | In view: {len(view)}")
        return

    if cmd == "values":
        field = parts[1].lower()
        prefix = parts[2].lower() if len(parts) >= 3 else ""
        if field in ("category", "department"):
            vals = manager.categories()
        elif field in ("type", "phenomenon"):
            vals = manager.phenomena()
        else:
            raise ValueError("values field must be: category | type")
        vals = [v for v in vals if v.lower().startswith(prefix)]
        for v in vals[:50]:
            print(v)
        if len(vals) > 50:
            print(f"... ({len(vals)} total, showing 50)")
        return

    if cmd == "filter":
        kind = parts[1].lower()
        cur = manager.filters
        if kind in ("category", "department"):
            spec = FilterSpec.of(parts[2] if len(parts) >= 3 else "", cur.phenomena)
        elif kind in ("type", "phenomenon"):
            spec = FilterSpec.of(cur.category, parts[2:])
        elif kind == "clear":
            spec = FilterSpec()
        else:
            raise ValueError("filter kind must be: category, type, clear")
        manager.set_filters(spec)
        print(f"Filters: {_describe(spec)}. Size={len(manager.filtered())}")
        return

    if cmd == "top":
        kind = parts[1].lower()
        n = int(parts[2]) if len(parts) >= 3 else 10
        agg = manager.aggregate()
        counts = agg.by_category if kind in ("category", "department") else agg.by_phenomenon
        for k, v in top_n(counts, n):
            print(f"{v:6d}  {k}")
        print(f"Total: {agg.total}")
        return

    if cmd == "series":
        freq = parts[1].lower() if len(parts) >= 2 else "month"
        for k, v in time_series(manager.filtered(), freq=freq):
            print(f"{k}  {v}")
        return

    if cmd == "sort":
        order = parts[2].lower() if len(parts) >= 3 else "asc"
        out = sort_records(manager.filtered(), parts[1], reverse=(order == "desc"))
        print(f"Sorted {len(out)} events by {parts[1]} ({order}). Showing 10:")
        _print_rows(out[:10])
        return

    if cmd == "page":
        n = int(parts[1]) if len(parts) >= 2 else 1
        size = int(parts[2]) if len(parts) >= 3 else 25
        rows, pages = paginate(manager.filtered(), n, size)
        _print_rows(rows)
        print(f"Page {min(max(1, n), pages)}/{pages}")
        return

    if cmd == "show":
        n = int(parts[1]) if len(parts) >= 2 else 10
        _print_rows(list(manager.filtered())[:n])
        return

    if cmd == "export":
        if len(parts) < 3:
            print('Usage: export csv "out.csv"  OR  export json "out.json"')
            return
        fmt, out_path = parts[1].lower(), parts[2]
        if not manager.filtered():
            print("Nothing to export: current view is empty.")
            return
        if fmt == "csv":
            n = manager.export_csv(out_path)
        elif fmt == "json":
            n = manager.export_json(out_path)
        else:
            print("Unknown export format. Use: csv or json")
            return
        print(f"Exported {n} events to {out_path}")
        return

    if cmd == "report":
        from .report import generate_docx_report, ReportConfig
        if len(parts) < 2:
            print('Usage: report "out.docx"')
            return
        cfg = ReportConfig(source=manager.source or None)
        generate_docx_report(manager.filtered(), parts[1], config=cfg, spec=manager.filters)
        print(f"Report written to {parts[1]}")
        return

    print("Unknown command. Type 'help'.")


def _describe(spec: FilterSpec) -> str:
    from .report import describe_filters
    return describe_filters(spec)


def _print_rows(rows):
    for r in rows:
        where = f"{r.latitude:.3f},{r.longitude:.3f}" if r.has_coordinates() else "-"
        print(f"{r.date} | {r.category} | {r.phenomenon} | {where} | {r.description[:60]}")


if __name__ == "__main__":
    main()
