"""
CSV tokenizer (text -> header + raw rows)
=========================================

The sheet arrives as CSV text. This module turns it into an ordered list of
header names and one `Dict[str, str]` per data line.

Key ideas:
- Lines are split on CR/LF *before* fields are tokenized, so a newline inside a
  quoted field is NOT supported (the sheet never contains one).
- Each line goes through a small quote-aware state machine.
- A line with the wrong number of fields is dropped with a warning; it never
  aborts the whole parse.

It also unwraps gviz responses (Google Visualization JSON wrapped in a JS
callback) into plain CSV, and serializes rows back to CSV for export.
"""

from __future__ import annotations
from typing import Any, Dict, List, Sequence, Tuple
import csv
import io
import json
import logging
import re

from .errors import EmptyInputError, ParseError

log = logging.getLogger('sevdash.parse')

RawRow = Dict[str, str]

_LINE_RE = re.compile(r"\r\n|\r|\n")
_GVIZ_RE = re.compile(r"setResponse\(\s*(\{.*\})\s*\)\s*;?\s*$", re.DOTALL)
_GVIZ_DATE_RE = re.compile(r"^Date\((\d{4}),\s*(\d{1,2}),\s*(\d{1,2})")
_LINE_BREAK_RE = re.compile(r"[\r\n]+")


def split_lines(text: str) -> List[str]:
    """Split on CR/LF boundaries and discard blank lines."""
    return [line for line in _LINE_RE.split(text) if line.strip()]


def tokenize_line(line: str) -> List[str]:
    """Split one CSV line into trimmed field values.

    State machine:
    - `""` inside a quoted field emits one literal quote
    - `"` toggles the in-quotes state
    - `,` outside quotes ends the current field
    - anything else is appended to the current field
    """
    fields: List[str] = []
    cur: List[str] = []
    in_quotes = False
    i = 0
    n = len(line)
    while i < n:
        ch = line[i]
        if ch == '"':
            if in_quotes and i + 1 < n and line[i + 1] == '"':
                cur.append('"'); i += 2
                continue
            in_quotes = not in_quotes
        elif ch == ',' and not in_quotes:
            fields.append(_clean_field(''.join(cur)))
            cur = []
        else:
            cur.append(ch)
        i += 1
    fields.append(_clean_field(''.join(cur)))
    return fields


def _clean_field(raw: str) -> str:
    s = raw.strip()
    if len(s) >= 2 and s[0] == '"' and s[-1] == '"':
        s = s[1:-1]
    return s


def parse_csv(text: str) -> Tuple[List[str], List[RawRow]]:
    """Parse CSV text into (headers, rows).

    Raises:
        EmptyInputError: fewer than two non-blank lines.
    """
    lines = split_lines(text or "")
    if len(lines) < 2:
        raise EmptyInputError(f"Need a header and at least one data line, got {len(lines)} line(s)")

    headers = tokenize_line(lines[0])
    rows: List[RawRow] = []
    dropped = 0
    for lineno, line in enumerate(lines[1:], start=2):
        values = tokenize_line(line)
        if len(values) != len(headers):
            dropped += 1
            log.warning('[PARSE] line %d dropped: expected %d fields, got %d', lineno, len(headers), len(values))
            continue
        rows.append(dict(zip(headers, values)))
    log.info('[PARSE] %d row(s) tokenized, %d dropped', len(rows), dropped)
    return headers, rows


# ---------------- gviz responses ----------------
def is_gviz_response(text: str) -> bool:
    head = (text or "").lstrip()[:200]
    return head.startswith("/*O_o*/") or "google.visualization.Query.setResponse" in head


def gviz_to_csv(text: str) -> str:
    """Unwrap a gviz JSON response and re-serialize its table as CSV."""
    m = _GVIZ_RE.search(text or "")
    if not m:
        raise ParseError("Unrecognized gviz response")
    try:
        data = json.loads(m.group(1))
    except json.JSONDecodeError as e:
        raise ParseError(f"Invalid gviz JSON: {e}") from e

    if data.get("status") == "error":
        reasons = "; ".join(str(err.get("detailed_message") or err.get("message") or err)
                            for err in data.get("errors", []))
        raise ParseError(f"gviz error response: {reasons or 'unknown'}")

    table = data.get("table") or {}
    cols = table.get("cols") or []
    headers = [_LINE_BREAK_RE.sub(" ", str(c.get("label") or c.get("id") or f"col{i}")).strip()
               for i, c in enumerate(cols)]
    rows: List[List[str]] = []
    for r in table.get("rows") or []:
        cells = r.get("c") or []
        values = [_gviz_cell(cells[i] if i < len(cells) else None) for i in range(len(headers))]
        rows.append(values)
    return to_csv(headers, rows)


def _gviz_cell(cell: Any) -> str:
    if not cell:
        return ""
    v = cell.get("v")
    if v is None:
        v = cell.get("f")
    if v is None:
        return ""
    if isinstance(v, bool):
        return str(v).lower()
    if isinstance(v, float) and v.is_integer():
        return str(int(v))
    s = str(v)
    dm = _GVIZ_DATE_RE.match(s)
    if dm:
        # gviz months are zero-based
        y, mo, d = int(dm.group(1)), int(dm.group(2)) + 1, int(dm.group(3))
        return f"{y:04d}{mo:02d}{d:02d}"
    # the line splitter is not quote-aware
    return _LINE_BREAK_RE.sub(" ", s)


# ---------------- Export ----------------
def to_csv(headers: Sequence[str], rows: Sequence[Sequence[Any]]) -> str:
    """Serialize rows as CSV with every field quoted and quotes doubled."""
    buf = io.StringIO()
    w = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    w.writerow(list(headers))
    for row in rows:
        w.writerow(["" if v is None else str(v) for v in row])
    return buf.getvalue()
