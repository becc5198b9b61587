# ratecalc/tools/parse_rows.py
"""
Turn one tab's raw grid into pricing records.

Sheets are sparse: a country (or zone, or shipping line) is written once and
applies to every row below it until a new value appears. That carry-over is
an explicit fold over rows with an immutable RowCursor as the accumulator.
"""
from __future__ import annotations
import logging
import re
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Sequence

from ratecalc.models import Cell, ParsedTab, PricingRecord, Row, ServiceEntry
from ratecalc.tools.tab_names import classify, normalize_key
from ratecalc.tools.weights import leading_float, parse_weight_band

log = logging.getLogger(__name__)

US_COUNTRY = "United States"
DEFAULT_LINE = "default"

# header substrings per column role; a role matches if ANY group matches,
# and a group matches if ALL of its substrings are present
COLUMN_RULES: Dict[str, List[tuple]] = {
    "country": [("countr",), ("destination",)],
    "zone": [("zone",)],
    "shipping_line": [("shipping line",), ("shipping channel",), ("service",), ("method",)],
    "transit": [("transit",), ("delivery",)],
    "weight_lb": [("weight", "lb")],
    "weight_kg": [("weight", "kg")],
    "freight_lb": [("freight", "lb")],
    "freight_kg": [("freight", "kg")],
    "injection": [("injection",), ("fulfillment",), ("order",)],
}

# cell values that just repeat a header word
HEADER_ECHOES = {
    "country": {"countries"},
    "zone": {"zone"},
    "shipping_line": {"shipping line", "shipping channel"},
}

@dataclass(frozen=True)
class RowCursor:
    country: str = ""
    zone: Optional[str] = None
    shipping_line: str = DEFAULT_LINE

def is_us_tab(tab_name: str) -> bool:
    lower = (tab_name or "").lower()
    return "united states" in lower or ("us" in lower and "international" not in lower)

def cell_text(cell: Cell) -> str:
    """Render a cell the way the sheet shows it (7.0 -> '7')."""
    if cell is None:
        return ""
    if isinstance(cell, float) and cell.is_integer():
        return str(int(cell))
    return str(cell).strip()

def find_column_indices(headers: Sequence[Cell]) -> Dict[str, int]:
    indices: Dict[str, int] = {}
    lowered = [cell_text(h).lower() for h in headers]
    for role, groups in COLUMN_RULES.items():
        indices[role] = -1
        for i, text in enumerate(lowered):
            if text and any(all(s in text for s in group) for group in groups):
                indices[role] = i
                break
    return indices

def _cell(row: Row, idx: int) -> str:
    if idx < 0 or idx >= len(row):
        return ""
    return cell_text(row[idx])

def _parse_amount(row: Row, idx: int) -> Optional[float]:
    """'$12.50/kg' -> 12.5; blanks and junk -> None."""
    if idx < 0 or idx >= len(row) or row[idx] is None:
        return None
    cleaned = re.sub(r"[^0-9.]", "", str(row[idx]))
    return leading_float(cleaned)

def _labelled(row: Row, idx: int, role: str) -> Optional[str]:
    value = _cell(row, idx)
    if not value or value.lower() in HEADER_ECHOES.get(role, set()):
        return None
    return value

def _advance(cursor: RowCursor, row: Row, cols: Dict[str, int]) -> RowCursor:
    country = _labelled(row, cols["country"], "country")
    line = _labelled(row, cols["shipping_line"], "shipping_line")
    zone = _labelled(row, cols["zone"], "zone")

    if country:
        # a new country section starts zone-less
        cursor = replace(cursor, country=country, zone=None)
    if line:
        cursor = replace(cursor, shipping_line=normalize_key(line))
    if zone:
        cursor = replace(cursor, zone=zone)
    return cursor

def parse_record(row: Row, cols: Dict[str, int]) -> Optional[PricingRecord]:
    """Build a record if the row has a usable band in either unit."""
    band_lb = parse_weight_band(row[cols["weight_lb"]]) if 0 <= cols["weight_lb"] < len(row) else None
    band_kg = parse_weight_band(row[cols["weight_kg"]]) if 0 <= cols["weight_kg"] < len(row) else None
    if band_lb is None and band_kg is None:
        return None

    return PricingRecord(
        weight_band_lb=band_lb,
        weight_band_kg=band_kg,
        freight_per_lb=_parse_amount(row, cols["freight_lb"]),
        freight_per_kg=_parse_amount(row, cols["freight_kg"]),
        injection_fee=_parse_amount(row, cols["injection"]) or 0.0,
        transit_time=_cell(row, cols["transit"]) or None,
    )

def _store(parsed: ParsedTab, country: str, zone: Optional[str], key: str, record: PricingRecord) -> None:
    if zone:
        lines = parsed.zones.setdefault(country, {}).setdefault(zone, {})
    else:
        lines = parsed.shipping_lines.setdefault(country, {})
    if key not in lines:
        lines[key] = ServiceEntry(bands=[], transit_time=record.transit_time)
    lines[key].bands.append(record)

def parse_rows(rows: Sequence[Row], tab_name: str = "") -> ParsedTab:
    """
    Parse a tab's rows (row 0 = header) into countries, zoned lines and
    direct lines.

    US tabs list several shipping lines in one grid, so their line comes from
    the row; other tabs default to the line named by the tab itself.
    """
    parsed = ParsedTab()
    if not rows or len(rows) < 2:
        return parsed

    us_tab = is_us_tab(tab_name)
    default_key = (None if us_tab else classify(tab_name).shipping_line_key) or DEFAULT_LINE
    cols = find_column_indices(rows[0] or [])

    cursor = RowCursor(shipping_line=default_key)
    if us_tab:
        cursor = replace(cursor, country=US_COUNTRY)
        parsed.countries.add(US_COUNTRY)

    for row in rows[1:]:
        if not row:
            continue
        cursor = _advance(cursor, row, cols)
        if not cursor.country:
            continue
        parsed.countries.add(cursor.country)

        record = parse_record(row, cols)
        if record is None:
            continue

        key = cursor.shipping_line
        if key == DEFAULT_LINE:
            key = default_key
        _store(parsed, cursor.country, cursor.zone, key, record)

    lines = {c: sorted(m) for c, m in parsed.shipping_lines.items()}
    log.info(f"Parsed tab '{tab_name}': {len(parsed.countries)} countries, lines={lines}, zoned={sorted(parsed.zones)}")
    return parsed
