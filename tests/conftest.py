# tests/conftest.py
import os, sys, json
from dotenv import load_dotenv

# project root on path
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

# load env once
load_dotenv()

import pytest

from ratecalc.service.aggregate import RateAggregator
from ratecalc.service.cache import TTLCache
from ratecalc.sheets import StaticSheetsProvider

WORKBOOK_PATH = os.path.join(os.path.dirname(__file__), "fixtures", "workbook.json")

@pytest.fixture
def workbook():
    with open(WORKBOOK_PATH, "r", encoding="utf-8") as f:
        return json.load(f)

@pytest.fixture
def provider():
    return StaticSheetsProvider.from_json(WORKBOOK_PATH)

@pytest.fixture
def aggregator(provider):
    return RateAggregator(provider, cache=TTLCache(default_ttl=1800))
