# ratecalc/tools/merge_tabs.py
"""
Combine per-tab parse results into one country -> (zone ->) line -> bands map.

Shipping lines are described by pairs of tabs; the second tab of each pair
carries the delivery-time metadata, so its transit time wins.
"""
from __future__ import annotations
import logging
import re
from dataclasses import asdict, dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple
from typing_extensions import TypedDict

from ratecalc.models import LineMap, ServiceEntry, TabResult, ZoneMap
from ratecalc.tools.tab_names import display_name_for_key

log = logging.getLogger(__name__)

PREFERRED_COUNTRIES = ["united states", "canada", "united kingdom", "australia", "germany"]

# spreadsheet date serials that leak into transit cells
_DATE_SERIAL = re.compile(r"^\d{5,}$")

class ShippingLineListing(TypedDict):
    key: str
    name: str
    max_weight_kg: Optional[float]
    max_weight_lb: Optional[float]
    delivery_time: Optional[str]

class CountryListing(TypedDict):
    has_zones: bool
    zone_names: List[str]
    available_shipping_lines: List[ShippingLineListing]
    zones: Optional[Dict[str, Dict[str, dict]]]
    shipping_lines: Optional[Dict[str, dict]]

class CountriesListing(TypedDict):
    countries: List[str]
    countries_data: Dict[str, CountryListing]

@dataclass
class ShippingLineSummary:
    key: str
    name: str
    max_weight_kg: Optional[float]
    max_weight_lb: Optional[float]
    delivery_time: Optional[str]

@dataclass
class MergedRates:
    countries: List[str] = field(default_factory=list)
    zones: ZoneMap = field(default_factory=dict)
    shipping_lines: LineMap = field(default_factory=dict)
    lines_by_country: Dict[str, List[ShippingLineSummary]] = field(default_factory=dict)

    def listing(self) -> CountriesListing:
        data: Dict[str, CountryListing] = {}
        for country in self.countries:
            zones = self.zones.get(country) or {}
            lines = self.shipping_lines.get(country)
            data[country] = {
                "has_zones": bool(zones),
                "zone_names": sorted(zones),
                "available_shipping_lines": [asdict(s) for s in self.lines_by_country.get(country, [])],
                "zones": {z: {k: asdict(e) for k, e in m.items()} for z, m in zones.items()} or None,
                "shipping_lines": {k: asdict(e) for k, e in lines.items()} if lines else None,
            }
        return {"countries": list(self.countries), "countries_data": data}

def clean_transit_time(value: Optional[str]) -> Optional[str]:
    """Drop values that are really date serials (45123, or anything numeric > 1000)."""
    if not value:
        return None
    text = str(value).strip()
    if _DATE_SERIAL.match(text):
        return None
    try:
        if float(text) > 1000:
            return None
    except ValueError:
        pass
    return text or None

def format_delivery_time(transit: Optional[str]) -> Optional[str]:
    transit = clean_transit_time(transit)
    if not transit:
        return None
    if "day" in transit.lower():
        return transit
    if re.fullmatch(r"\d+", transit):
        return f"{transit} days"
    # ranges like "5-7" pass through
    return transit

def _country_rank(country: str) -> Optional[int]:
    lower = country.lower()
    if "united states" in lower or lower in ("usa", "us"):
        lower = "united states"
    elif "united kingdom" in lower or lower == "uk":
        lower = "united kingdom"
    return PREFERRED_COUNTRIES.index(lower) if lower in PREFERRED_COUNTRIES else None

def sort_countries(countries: Iterable[str]) -> List[str]:
    def key(country: str) -> Tuple[int, int, str, str]:
        rank = _country_rank(country)
        if rank is not None:
            return (0, rank, "", country)
        return (1, 0, country.casefold(), country)
    return sorted(countries, key=key)

def _merge_lines(target: Dict[str, ServiceEntry], source: Dict[str, ServiceEntry], second_tab: bool) -> None:
    for key, entry in source.items():
        merged = target.setdefault(key, ServiceEntry(bands=[], transit_time=None))
        merged.bands.extend(entry.bands)
        if second_tab and entry.transit_time:
            merged.transit_time = entry.transit_time

def _entries_for(rates: MergedRates, country: str, key: str) -> List[ServiceEntry]:
    entries = []
    direct = (rates.shipping_lines.get(country) or {}).get(key)
    if direct:
        entries.append(direct)
    for zone_lines in (rates.zones.get(country) or {}).values():
        if key in zone_lines:
            entries.append(zone_lines[key])
    return entries

def summarize_line(rates: MergedRates, country: str, key: str, data_tabs: Sequence[str]) -> ShippingLineSummary:
    max_kg = max_lb = 0.0
    transit: Optional[str] = None
    for entry in _entries_for(rates, country, key):
        for band in entry.bands:
            if band.weight_band_kg and band.weight_band_kg.high > max_kg:
                max_kg = band.weight_band_kg.high
            if band.weight_band_lb and band.weight_band_lb.high > max_lb:
                max_lb = band.weight_band_lb.high
            if not transit and band.transit_time:
                transit = band.transit_time
        if not transit and entry.transit_time:
            transit = entry.transit_time

    return ShippingLineSummary(
        key=key,
        name=display_name_for_key(key, list(data_tabs), country),
        max_weight_kg=round(max_kg, 2) if max_kg > 0 else None,
        max_weight_lb=round(max_lb, 2) if max_lb > 0 else None,
        delivery_time=format_delivery_time(transit),
    )

def line_keys(rates: MergedRates, country: str) -> List[str]:
    """Every line key for a country, direct lines first, without duplicates."""
    keys: List[str] = list((rates.shipping_lines.get(country) or {}).keys())
    for zone_lines in (rates.zones.get(country) or {}).values():
        keys.extend(k for k in zone_lines if k not in keys)
    return keys

def merge_tabs(tab_results: Sequence[Optional[TabResult]], data_tabs: Optional[Sequence[str]] = None) -> MergedRates:
    """
    Merge tab results in fetch order. Failed tabs appear as None and still
    occupy their index, so the first/second pairing stays aligned with the
    sheet order.
    """
    if data_tabs is None:
        data_tabs = [r.tab_name for r in tab_results if r is not None]

    rates = MergedRates()
    all_countries: List[str] = []

    for i, result in enumerate(tab_results):
        if result is None:
            continue
        parsed = result.parsed
        second_tab = i % 2 == 1
        log.info(
            f"Merging tab '{result.tab_name}' ({'second' if second_tab else 'first'}): "
            f"{len(parsed.countries)} countries, {len(parsed.shipping_lines)} with direct lines, "
            f"{len(parsed.zones)} with zones"
        )
        all_countries.extend(c for c in sorted(parsed.countries) if c not in all_countries)

        for country, zones in parsed.zones.items():
            country_zones = rates.zones.setdefault(country, {})
            for zone, lines in zones.items():
                _merge_lines(country_zones.setdefault(zone, {}), lines, second_tab)

        for country, lines in parsed.shipping_lines.items():
            _merge_lines(rates.shipping_lines.setdefault(country, {}), lines, second_tab)

    priced = [c for c in all_countries if line_keys(rates, c)]
    log.info(f"Total countries: {len(all_countries)}, with shipping lines: {len(priced)}")

    rates.countries = sort_countries(priced)
    for country in rates.countries:
        summaries = [summarize_line(rates, country, k, data_tabs) for k in line_keys(rates, country)]
        rates.lines_by_country[country] = sorted(summaries, key=lambda s: s.name)
    return rates
