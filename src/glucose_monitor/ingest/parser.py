from __future__ import annotations

import math

from glucose_monitor.errors import InvalidReading
from glucose_monitor.utils.types import Reading

def _unquote(field: str) -> str:
    field = field.strip()
    if len(field) >= 2 and field[0] == '"' and field[-1] == '"':
        return field[1:-1]
    return field.strip('"')

def parse_entry_line(line: str) -> Reading:
    """
    Parse one Nightscout entries.tsv record.

    Field order:
      - date          "2024-02-01T02:13:11.000Z"  (kept verbatim)
      - epoch ms      1706753591000
      - sgv           112
      - direction     "Flat"      (optional)
      - device        "xDrip-..."  (optional)
    Fields may be wrapped in double quotes.
    """
    fields = [_unquote(f) for f in line.split("\t")]
    if len(fields) < 3:
        raise InvalidReading(f"expected at least 3 tab-separated fields: {line[:200]!r}")

    date, ms, raw_value = fields[0], fields[1], fields[2]
    trend = fields[3] if len(fields) > 3 else ""
    source = fields[4] if len(fields) > 4 else ""

    try:
        ts_ms = int(float(ms))
    except (ValueError, OverflowError) as e:
        raise InvalidReading(f"bad epoch-ms field {ms!r} in {line[:200]!r}") from e

    try:
        value = float(raw_value)
    except ValueError as e:
        raise InvalidReading(f"non-numeric value {raw_value!r} in {line[:200]!r}") from e
    if not math.isfinite(value):
        raise InvalidReading(f"non-finite value {raw_value!r} in {line[:200]!r}")

    return Reading(timestamp=date, timestamp_ms=ts_ms, value=value, trend=trend, source=source)

def parse_entries(text: str) -> list[Reading]:
    """Parse a whole entries.tsv body (most recent first). Blank lines are ignored."""
    lines = [ln for ln in text.strip().splitlines() if ln.strip()]
    if not lines:
        raise InvalidReading("empty entries payload")
    return [parse_entry_line(ln) for ln in lines]
