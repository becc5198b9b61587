"""
Pricing data structures shared by the parser, merger and resolver.

Everything is rebuilt from scratch on each refresh, so these are plain
dataclasses with no update logic of their own.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Union

Cell = Union[str, int, float, None]
Row = List[Cell]

@dataclass(frozen=True)
class WeightBand:
    low: float
    high: float

    def contains(self, weight: float) -> bool:
        # half-open: [low, high)
        return self.low <= weight < self.high

@dataclass
class PricingRecord:
    weight_band_lb: Optional[WeightBand]
    weight_band_kg: Optional[WeightBand]
    freight_per_lb: Optional[float]
    freight_per_kg: Optional[float]
    injection_fee: float = 0.0
    transit_time: Optional[str] = None

    def band(self, unit: str) -> Optional[WeightBand]:
        return self.weight_band_lb if unit == "lb" else self.weight_band_kg

    def freight(self, unit: str) -> Optional[float]:
        return self.freight_per_lb if unit == "lb" else self.freight_per_kg

@dataclass
class ServiceEntry:
    bands: List[PricingRecord] = field(default_factory=list)
    # fallback when a band has no transit time of its own
    transit_time: Optional[str] = None

# country -> shipping line key -> entry
LineMap = Dict[str, Dict[str, ServiceEntry]]
# country -> zone -> shipping line key -> entry
ZoneMap = Dict[str, Dict[str, Dict[str, ServiceEntry]]]

@dataclass
class ParsedTab:
    countries: Set[str] = field(default_factory=set)
    zones: ZoneMap = field(default_factory=dict)
    shipping_lines: LineMap = field(default_factory=dict)

@dataclass
class TabResult:
    tab_name: str
    parsed: ParsedTab
