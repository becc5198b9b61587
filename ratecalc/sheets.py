"""
Spreadsheet sources: anything that can list tab names and return a tab as a
grid of cells.

GoogleSheetsProvider talks to the Sheets v4 REST API; StaticSheetsProvider
serves an in-memory (or JSON-file) workbook for tests and offline runs.
"""
from __future__ import annotations
import json
import logging
from pathlib import Path
from typing import Dict, List, Optional
from urllib.parse import quote

import httpx
from typing_extensions import Protocol

from ratecalc.models import Row
from ratecalc.settings import Settings

log = logging.getLogger(__name__)

class SheetsProvider(Protocol):
    source_id: str

    @property
    def is_configured(self) -> bool: ...

    async def list_tab_names(self) -> List[str]: ...

    async def fetch_tab_rows(self, tab_name: str) -> List[Row]: ...

class GoogleSheetsProvider:
    def __init__(
        self,
        spreadsheet_id: Optional[str],
        api_key: Optional[str] = None,
        access_token: Optional[str] = None,
        base_url: str = "https://sheets.googleapis.com/v4",
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.spreadsheet_id = spreadsheet_id
        self.source_id = spreadsheet_id or "unconfigured"
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._headers = {"Authorization": f"Bearer {access_token}"} if access_token else {}
        self._has_credentials = bool(api_key or access_token)
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @property
    def is_configured(self) -> bool:
        return bool(self.spreadsheet_id) and self._has_credentials

    def _params(self, **extra) -> Dict[str, str]:
        params = dict(extra)
        if self._api_key:
            params["key"] = self._api_key
        return params

    async def list_tab_names(self) -> List[str]:
        url = f"{self._base_url}/spreadsheets/{self.spreadsheet_id}"
        # only the titles, not the whole workbook
        resp = await self._client.get(url, params=self._params(fields="sheets.properties.title"), headers=self._headers)
        resp.raise_for_status()
        sheets = resp.json().get("sheets") or []
        return [s["properties"]["title"] for s in sheets]

    async def fetch_tab_rows(self, tab_name: str) -> List[Row]:
        # a bare tab name means "the whole tab"
        rng = tab_name if "!" in tab_name else f"{tab_name}!A:Z"
        url = f"{self._base_url}/spreadsheets/{self.spreadsheet_id}/values/{quote(rng, safe='')}"
        resp = await self._client.get(
            url,
            params=self._params(valueRenderOption="UNFORMATTED_VALUE", dateTimeRenderOption="SERIAL_NUMBER"),
            headers=self._headers,
        )
        resp.raise_for_status()
        return resp.json().get("values") or []

    async def aclose(self):
        await self._client.aclose()

class StaticSheetsProvider:
    """Tabs held in memory, in insertion order."""

    def __init__(self, tabs: Dict[str, List[Row]], source_id: str = "static"):
        self.tabs = dict(tabs)
        self.source_id = source_id

    @classmethod
    def from_json(cls, path: str) -> "StaticSheetsProvider":
        """
        Load {"<tab name>": [[cell, ...], ...], ...} from a JSON file.
        """
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return cls(data, source_id=Path(path).stem)

    @property
    def is_configured(self) -> bool:
        return True

    async def list_tab_names(self) -> List[str]:
        return list(self.tabs)

    async def fetch_tab_rows(self, tab_name: str) -> List[Row]:
        if tab_name not in self.tabs:
            raise KeyError(f"Unknown tab: {tab_name}")
        return self.tabs[tab_name]

    async def aclose(self):
        pass

def build_provider(settings: Settings) -> SheetsProvider:
    if settings.sheets_fixture_path:
        log.info(f"Using static sheet fixture: {settings.sheets_fixture_path}")
        return StaticSheetsProvider.from_json(settings.sheets_fixture_path)

    provider = GoogleSheetsProvider(
        spreadsheet_id=settings.google_sheet_id,
        api_key=settings.google_api_key,
        access_token=settings.google_access_token,
        base_url=settings.sheets_api_base,
        timeout=settings.sheets_timeout_s,
    )
    if not provider.is_configured:
        log.warning("Google Sheets not configured (GOOGLE_SHEET_ID + GOOGLE_API_KEY or GOOGLE_ACCESS_TOKEN); API will return errors")
    return provider
