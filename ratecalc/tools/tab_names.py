# ratecalc/tools/tab_names.py
"""
Shipping-line detection from free-text sheet tab names.

There is no schema for tab names: "United States Standard", "Priority Intl",
"International Standard Battery Pricing" and so on. Everything here is
best-effort string manipulation. Two different tabs can legitimately reduce
to the same key (e.g. "US Priority" and "Priority International"); those are
grouped together rather than disambiguated.
"""
from __future__ import annotations
import re
from dataclasses import dataclass
from typing import Dict, List, Optional

EXCLUDED_SUBSTRINGS = ("rate calculator", "other services")
EXCLUDED_NAMES = {"tab", "description"}

# applied in order, each at most once
LOCATION_PATTERNS = [
    re.compile(r"^united\s+states\s+", re.IGNORECASE),
    re.compile(r"^us\s+", re.IGNORECASE),
    re.compile(r"^international\s+", re.IGNORECASE),
    re.compile(r"^intl\s+", re.IGNORECASE),
    re.compile(r"\s+united\s+states$", re.IGNORECASE),
    re.compile(r"\s+us$", re.IGNORECASE),
    re.compile(r"\s+international$", re.IGNORECASE),
    re.compile(r"\s+intl$", re.IGNORECASE),
]
PRICING_SUFFIX = re.compile(r"\s+pricing$", re.IGNORECASE)

@dataclass(frozen=True)
class TabClassification:
    tab_name: str
    shipping_line_key: Optional[str]
    display_name: Optional[str]
    is_excluded: bool

def _is_excluded_name(name: str) -> bool:
    lower = (name or "").strip().lower()
    if lower in EXCLUDED_NAMES:
        return True
    return any(s in lower for s in EXCLUDED_SUBSTRINGS)

def is_data_tab(tab_name: str) -> bool:
    return not _is_excluded_name(tab_name)

def normalize_key(name: str) -> str:
    """'Standard Battery' -> 'standard-battery'. Idempotent."""
    return re.sub(r"\s+", "-", (name or "").strip().lower())

def capitalize_words(name: str) -> str:
    words = []
    for word in name.split():
        # keep acronyms like USPS / TIKTOK
        if word == word.upper() and len(word) > 1:
            words.append(word)
        else:
            words.append(word[:1].upper() + word[1:].lower())
    return " ".join(words)

def strip_location_tokens(tab_name: str) -> str:
    name = (tab_name or "").strip()
    for pattern in LOCATION_PATTERNS:
        name = pattern.sub("", name).strip()
    return PRICING_SUFFIX.sub("", name).strip()

def classify(tab_name: str) -> TabClassification:
    """
    Derive a shipping-line identifier from a raw tab label.

    Returns the normalized key and display name (both None when nothing
    usable remains) and whether the tab carries no pricing rows at all.
    """
    if _is_excluded_name(tab_name):
        return TabClassification(tab_name, None, None, True)

    name = strip_location_tokens(tab_name)
    if not name or len(name) < 2 or _is_excluded_name(name):
        return TabClassification(tab_name, None, None, False)

    return TabClassification(
        tab_name=tab_name,
        shipping_line_key=normalize_key(name),
        display_name=capitalize_words(name),
        is_excluded=False,
    )

def group_tabs_by_shipping_line(sheet_names: List[str]) -> Dict[str, List[str]]:
    """Display name -> sorted tab names. Each line usually spans two tabs."""
    grouped: Dict[str, List[str]] = {}
    for tab in sheet_names:
        line = classify(tab).display_name
        if line:
            grouped.setdefault(line, []).append(tab)
    return {line: sorted(tabs) for line, tabs in grouped.items()}

def extract_shipping_channels(sheet_names: List[str]) -> List[str]:
    seen = set()
    channels: List[str] = []
    for tab in sheet_names:
        line = classify(tab).display_name
        if line and line.lower() not in seen:
            seen.add(line.lower())
            channels.append(line)
    return channels

def _standard_tabs(sheet_names: List[str]) -> List[str]:
    def other_tier(lower: str) -> bool:
        return any(k in lower for k in ("battery", "guaranteed", "priority"))

    us_tabs, intl_tabs = [], []
    for tab in sheet_names:
        lower = tab.lower()
        if other_tier(lower):
            continue
        if ("united states" in lower or ("us" in lower and "standard" in lower)) and "international" not in lower:
            us_tabs.append(tab)
        elif "international standard" in lower or "intl standard" in lower or (
            "standard" in lower and "international" in lower
        ):
            intl_tabs.append(tab)
    return us_tabs + intl_tabs

def tabs_for_shipping_channel(channel: str, sheet_names: List[str]) -> List[str]:
    """
    Tabs that describe one shipping channel: exact group match, then a
    substring match either way, then raw tab names containing the channel.
    A plain "standard" channel collects both the US and the International
    standard tabs.
    """
    wanted = (channel or "").strip().lower()
    tabs: List[str] = []

    for line, line_tabs in group_tabs_by_shipping_line(sheet_names).items():
        if line.lower() == wanted:
            tabs = line_tabs
            break
    if not tabs:
        for line, line_tabs in group_tabs_by_shipping_line(sheet_names).items():
            lower = line.lower()
            if wanted in lower or lower in wanted:
                tabs = line_tabs
                break
    if not tabs:
        tabs = sorted(t for t in sheet_names if wanted in t.lower() or t.lower() in wanted)

    if "standard" in wanted and "battery" not in wanted and "guaranteed" not in wanted:
        standard = _standard_tabs(sheet_names)
        if standard:
            tabs = sorted(standard)

    return tabs

def title_case(text: str) -> str:
    """'standard-battery' or 'standard battery' -> 'Standard Battery'."""
    return " ".join(w[:1].upper() + w[1:].lower() for w in re.split(r"[-\s]+", text.strip()) if w)

def display_name_for_key(key: str, data_tabs: List[str], country: str) -> str:
    """
    Listing name for a shipping-line key. 'default' lines have no name of
    their own, so borrow one from a tab that mentions the country.
    """
    if key != "default":
        return title_case(key)

    for tab in data_tabs:
        if country.lower() in tab.lower():
            name = re.sub(re.escape(country), "", tab, flags=re.IGNORECASE).strip()
            name = re.sub(r"^(united states|us|international|intl)\s+", "", name, flags=re.IGNORECASE).strip()
            if name:
                return title_case(name)
    return "Standard"
