"""
Aggregation service: sheet names -> concurrent tab fetch -> parse -> merge -> cache.

One RateAggregator is built per process (see ratecalc.main) and owns its
cache. A cache miss rebuilds the whole aggregate from every data tab; a tab
that fails to load is logged and contributes nothing.
"""
from __future__ import annotations
import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence

from ratecalc.errors import RateNotFound, ServiceNotConfigured
from ratecalc.models import Row, TabResult
from ratecalc.service.cache import TTLCache
from ratecalc.sheets import SheetsProvider
from ratecalc.tools.merge_tabs import CountriesListing, MergedRates, merge_tabs
from ratecalc.tools.parse_rows import parse_rows
from ratecalc.tools.resolve_rate import FULFILLMENT_FEE, CalculationResult, calculate, validate_request
from ratecalc.tools.tab_names import (
    extract_shipping_channels,
    group_tabs_by_shipping_line,
    is_data_tab,
    tabs_for_shipping_channel,
)

log = logging.getLogger(__name__)

RATES_CACHE_KEY = "all-countries"

class RateAggregator:
    def __init__(
        self,
        provider: SheetsProvider,
        cache: Optional[TTLCache] = None,
        ttl_seconds: int = 1800,
        sheet_names_ttl_seconds: int = 3600,
        fulfillment_fee: float = FULFILLMENT_FEE,
    ):
        self.provider = provider
        self.cache = cache if cache is not None else TTLCache(default_ttl=ttl_seconds)
        self.ttl_seconds = ttl_seconds
        self.sheet_names_ttl_seconds = sheet_names_ttl_seconds
        self.fulfillment_fee = fulfillment_fee
        # single-flight rebuilds: concurrent misses wait for the first one
        self._rebuild_lock = asyncio.Lock()

    # -------- sheet access --------
    def _require_source(self):
        if not self.provider.is_configured:
            raise ServiceNotConfigured("Google Sheets API not configured")

    async def sheet_names(self) -> List[str]:
        key = f"sheet-names-{self.provider.source_id}"
        cached = self.cache.get(key)
        if cached is not None:
            return cached
        try:
            names = await self.provider.list_tab_names()
        except Exception as e:
            log.error(f"Error fetching sheet names: {e}")
            raise ServiceNotConfigured(f"Spreadsheet source unreachable: {e}") from e
        self.cache.set(key, names, self.sheet_names_ttl_seconds)
        return names

    async def data_tabs(self) -> List[str]:
        return [name for name in await self.sheet_names() if is_data_tab(name)]

    async def _fetch_rows(self, tab_name: str) -> List[Row]:
        key = f"sheet-data-{self.provider.source_id}-{tab_name}"
        cached = self.cache.get(key)
        if cached is not None:
            return cached
        rows = await self.provider.fetch_tab_rows(tab_name)
        self.cache.set(key, rows, self.ttl_seconds)
        return rows

    async def _load_tab(self, tab_name: str) -> Optional[TabResult]:
        try:
            rows = await self._fetch_rows(tab_name)
            return TabResult(tab_name=tab_name, parsed=parse_rows(rows, tab_name))
        except Exception as e:
            log.error(f"Error fetching from {tab_name}: {e}")
            return None

    async def _load_tabs(self, tabs: Sequence[str]) -> List[Optional[TabResult]]:
        # fan out; results keep the sheet order for first/second pairing
        return list(await asyncio.gather(*(self._load_tab(t) for t in tabs)))

    # -------- aggregate --------
    async def get_rates(self) -> MergedRates:
        cached = self.cache.get(RATES_CACHE_KEY)
        if cached is not None:
            return cached
        self._require_source()

        async with self._rebuild_lock:
            cached = self.cache.get(RATES_CACHE_KEY)
            if cached is not None:
                return cached

            tabs = await self.data_tabs()
            log.info(f"Processing {len(tabs)} data tabs: {', '.join(tabs)}")
            results = await self._load_tabs(tabs)
            failed = [t for t, r in zip(tabs, results) if r is None]
            if failed:
                log.warning(f"{len(failed)} tab(s) contributed nothing: {', '.join(failed)}")

            rates = merge_tabs(results, data_tabs=tabs)
            self.cache.set(RATES_CACHE_KEY, rates, self.ttl_seconds)
            return rates

    async def list_countries(self) -> CountriesListing:
        return (await self.get_rates()).listing()

    async def list_shipping_channels(self) -> Dict[str, Any]:
        """Channel names in sheet order, plus the tabs behind each one."""
        self._require_source()
        tabs = await self.data_tabs()
        return {
            "shipping_channels": extract_shipping_channels(tabs),
            "tabs": group_tabs_by_shipping_line(tabs),
        }

    async def list_channel_countries(self, channel: str) -> CountriesListing:
        """Listing built only from the tabs of one shipping channel."""
        self._require_source()
        tabs = tabs_for_shipping_channel(channel, await self.sheet_names())
        log.info(f"{channel} channel tabs: {', '.join(tabs) or 'none'}")
        if not tabs:
            raise RateNotFound(f"No tabs found for shipping channel: {channel}")

        # keyed by the resolved tabs so spellings of one channel share an entry
        key = f"countries-{self.provider.source_id}-{'|'.join(tabs)}"
        cached = self.cache.get(key)
        if cached is not None:
            return cached
        listing = merge_tabs(await self._load_tabs(tabs), data_tabs=tabs).listing()
        self.cache.set(key, listing, self.ttl_seconds)
        return listing

    async def calculate(
        self,
        country: Optional[str],
        shipping_line: Optional[str],
        zone: Optional[str],
        weight: Any,
        weight_unit: Optional[str] = "kg",
    ) -> CalculationResult:
        # bad input fails before the sheets are touched
        validate_request(country, shipping_line, weight, weight_unit)
        rates = await self.get_rates()
        return calculate(rates, country, shipping_line, zone, weight, weight_unit, fulfillment_fee=self.fulfillment_fee)

    # -------- cache admin --------
    def clear_cache(self):
        self.cache.clear()

    def cache_stats(self) -> Dict[str, int]:
        return self.cache.stats()
