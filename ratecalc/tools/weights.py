# ratecalc/tools/weights.py
from __future__ import annotations
import re
from typing import Optional, Union

from ratecalc.models import WeightBand

KG_PER_LB = 0.453592

# accepted spellings -> canonical unit
UNIT_ALIASES = {"kg": "kg", "kgs": "kg", "lb": "lb", "lbs": "lb"}

# leading number, the way a spreadsheet formula would read "2.5kg" or " 3 "
_LEADING_NUM = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+))")

def normalize_unit(unit: Optional[str]) -> Optional[str]:
    return UNIT_ALIASES.get((unit or "").strip().lower())

def convert_weight(weight: float, from_unit: str, to_unit: str) -> float:
    """
    Convert between kg and lb. Unknown units pass the value through unchanged.
    """
    if from_unit == to_unit:
        return weight
    if from_unit == "lb" and to_unit == "kg":
        return weight * KG_PER_LB
    if from_unit == "kg" and to_unit == "lb":
        return weight / KG_PER_LB
    return weight

def leading_float(text: str) -> Optional[float]:
    m = _LEADING_NUM.match(text or "")
    if not m:
        return None
    return float(m.group(1))

def parse_weight_band(value: Union[str, int, float, None]) -> Optional[WeightBand]:
    """
    Parse a "<min>-<max>" cell such as "0-0.66" or "0.66 - 2.2".
    Anything else (blank, a bare number, text) gives None.
    """
    if value is None or value == "" or value == 0:
        return None
    parts = str(value).split("-")
    if len(parts) != 2:
        return None
    low, high = leading_float(parts[0]), leading_float(parts[1])
    if low is None or high is None:
        return None
    return WeightBand(low=low, high=high)
