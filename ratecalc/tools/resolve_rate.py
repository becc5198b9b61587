# ratecalc/tools/resolve_rate.py
from __future__ import annotations
import logging
import math
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from ratecalc.errors import InvalidWeight, MissingField, NoBandMatch, RateNotFound, WeightExceedsLimit
from ratecalc.models import PricingRecord, ServiceEntry
from ratecalc.tools.merge_tabs import MergedRates, clean_transit_time
from ratecalc.tools.tab_names import normalize_key, title_case
from ratecalc.tools.weights import convert_weight, normalize_unit

log = logging.getLogger(__name__)

FULFILLMENT_FEE = 1.50  # pick & pack, per order
MAX_WEIGHT = 9999.99
MIN_WEIGHT_LB = 0.25
LB_PER_KG = 2.20462
NO_DELIVERY_ESTIMATE = "--"

@dataclass
class CalculationResult:
    shipping_cost: float
    fulfillment_fee: float
    total_cost: float
    delivery_days: str
    service_name: str
    matched_shipping_line: str
    matched_zone: Optional[str]
    weight_used: float
    weight_unit: str
    freight_per_unit: Optional[float]
    base_rate: float
    per_kg_rate: Optional[float]
    per_lb_rate: Optional[float]

def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())

def validate_weight(weight: Any, weight_unit: Optional[str]) -> Tuple[float, str]:
    """
    Check a raw weight + unit from the caller.
    Returns (weight rounded to 2 dp, canonical unit).
    """
    unit = normalize_unit(weight_unit or "kg")
    if unit is None:
        raise InvalidWeight(f"Weight unit must be 'kg' or 'lb', got '{weight_unit}'")

    # JSON true/false are not weights
    if isinstance(weight, bool):
        raise InvalidWeight("Weight must be a positive number")
    try:
        value = float(weight)
    except (TypeError, ValueError):
        raise InvalidWeight("Weight must be a positive number")
    if not math.isfinite(value) or value <= 0:
        raise InvalidWeight("Weight must be a positive number")

    # the minimum is defined in pounds
    in_lb = value if unit == "lb" else value * LB_PER_KG
    if in_lb < MIN_WEIGHT_LB:
        minimum = MIN_WEIGHT_LB if unit == "lb" else round(MIN_WEIGHT_LB / LB_PER_KG, 2)
        raise InvalidWeight(
            f"Weight must be at least {minimum} {unit}. Minimum weight is 0.25 lbs (0.11 kg)."
        )
    if value > MAX_WEIGHT:
        raise InvalidWeight(f"Weight cannot exceed {MAX_WEIGHT}")

    return round(value, 2), unit

def validate_request(
    country: Optional[str], shipping_line: Optional[str], weight: Any, weight_unit: Optional[str]
) -> Tuple[float, str]:
    """Input checks that need no rate data. Returns validate_weight's result."""
    if _blank(weight) or _blank(country) or _blank(shipping_line):
        raise MissingField("Missing required fields: weight, country, and shippingLine are required")
    return validate_weight(weight, weight_unit)

def match_shipping_line(keys: List[str], wanted: str) -> Optional[str]:
    """
    exact -> substring (either way) -> 'default' -> 'standard' -> first key.

    NOTE: the last three steps always return a key, so a line the sheet does
    not list still prices against some other line. Check the matched key.
    """
    if not keys:
        return None
    for key in keys:
        if key == wanted:
            return key
    for key in keys:
        if key in wanted or wanted in key:
            return key
    if "default" in keys:
        return "default"
    if "standard" in keys:
        return "standard"
    return keys[0]

def find_service(
    rates: MergedRates, country: str, wanted: str, zone: Optional[str]
) -> Tuple[Optional[ServiceEntry], Optional[str], Optional[str]]:
    """Returns (entry, matched key, matched zone)."""
    zones = rates.zones.get(country) or {}
    direct = rates.shipping_lines.get(country) or {}

    # 1) the requested zone
    if zone and zone in zones:
        key = match_shipping_line(list(zones[zone]), wanted)
        if key:
            log.info(f"Found shipping line '{key}' in {country} zone '{zone}'")
            return zones[zone][key], key, zone
        log.warning(f"Zone '{zone}' for {country} has no shipping lines")

    # 2) lines without zones
    key = match_shipping_line(list(direct), wanted)
    if key:
        log.info(f"Found shipping line '{key}' in {country} (direct, requested '{wanted}')")
        return direct[key], key, None

    # 3) any zone at all
    if zone:
        log.warning(f"Zone '{zone}' not matched for {country}; searching all zones")
        for zone_name, lines in zones.items():
            key = match_shipping_line(list(lines), wanted)
            if key:
                log.info(f"Found shipping line '{key}' in {country} zone '{zone_name}' (fallback)")
                return lines[key], key, zone_name

    return None, None, None

def _available_lines(rates: MergedRates, country: str) -> List[str]:
    zoned: List[str] = []
    for lines in (rates.zones.get(country) or {}).values():
        zoned.extend(k for k in lines if k not in zoned)
    zoned.extend(k for k in (rates.shipping_lines.get(country) or {}) if k not in zoned)
    return [title_case(k) for k in zoned]

def pick_band(bands: List[PricingRecord], weight: float, unit: str) -> Optional[PricingRecord]:
    """First band whose [low, high) holds the weight, else the last band."""
    for record in bands:
        band = record.band(unit)
        if band and band.contains(weight):
            return record
    return bands[-1] if bands else None

def max_band_weight(bands: List[PricingRecord], unit: str) -> float:
    highs = [r.band(unit).high for r in bands if r.band(unit)]
    return max(highs, default=0.0)

def calculate(
    rates: MergedRates,
    country: Optional[str],
    shipping_line: Optional[str],
    zone: Optional[str],
    weight: Any,
    weight_unit: Optional[str] = "kg",
    fulfillment_fee: float = FULFILLMENT_FEE,
) -> CalculationResult:
    """
    Price one parcel against the merged rate tables.

    Raises a RateCalculatorError subclass for bad input or missing data;
    malformed cells never fail a calculation, they fall back to 0 / "--".
    """
    weight_value, unit = validate_request(country, shipping_line, weight, weight_unit)
    zone = zone or None

    weights = {u: convert_weight(weight_value, unit, u) for u in ("kg", "lb")}
    search_weight = weights[unit]
    wanted = normalize_key(shipping_line)
    log.info(f"Calculation request: {country}{f' (zone: {zone})' if zone else ''}, shipping line '{shipping_line}' -> '{wanted}'")

    entry, key, matched_zone = find_service(rates, country, wanted, zone)
    if entry is None or not entry.bands:
        available = _available_lines(rates, country)
        zone_part = f" (zone: {zone})" if zone else ""
        log.error(f"No service data for {country}{zone_part} / '{wanted}'. Available: {available}")
        raise RateNotFound(
            f'Shipping line "{shipping_line}" not found for {country}{zone_part}. '
            f"Available: {', '.join(available) if available else 'none'}",
            available=available,
        )

    max_weight = max_band_weight(entry.bands, unit)
    if max_weight > 0 and search_weight > max_weight:
        limit = round(max_weight, 2)
        raise WeightExceedsLimit(
            f"Weight exceeds maximum allowed weight of {limit:g} {unit}. "
            f"Maximum weight for this shipping line is {limit:g} {unit}.",
            limit=limit,
            unit=unit,
        )

    record = pick_band(entry.bands, search_weight, unit)
    if record is None:
        raise NoBandMatch("No matching weight band found")

    freight = record.freight(unit)
    shipping_cost = (freight or 0.0) * search_weight + (record.injection_fee or 0.0)
    total_cost = shipping_cost + fulfillment_fee

    delivery = clean_transit_time(record.transit_time or entry.transit_time) or NO_DELIVERY_ESTIMATE

    return CalculationResult(
        shipping_cost=round(shipping_cost, 2),
        fulfillment_fee=round(fulfillment_fee, 2),
        total_cost=round(total_cost, 2),
        delivery_days=delivery,
        service_name=shipping_line,
        matched_shipping_line=key,
        matched_zone=matched_zone,
        weight_used=round(search_weight, 2),
        weight_unit=unit,
        freight_per_unit=round(freight, 2) if freight else None,
        base_rate=0.0,
        per_kg_rate=(freight or 0.0) if unit == "kg" else None,
        per_lb_rate=(freight or 0.0) if unit == "lb" else None,
    )
