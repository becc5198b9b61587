import pytest

from ratecalc.models import TabResult
from ratecalc.tools.merge_tabs import clean_transit_time, format_delivery_time, merge_tabs, sort_countries
from ratecalc.tools.parse_rows import parse_rows
from ratecalc.tools.resolve_rate import calculate

HEADER = ["Country", "Zone", "Weight (lb)", "Weight (kg)", "Freight ($/lb)", "Freight ($/kg)", "Injection Fee", "Transit Time"]

def _tab(name, rows):
    return TabResult(tab_name=name, parsed=parse_rows([HEADER] + rows, name))

def _uk(transit):
    return [["United Kingdom", "", "0-4.41", "0-2", 23, 50, 6, transit], ["", "", "4.41-11.02", "2-5", 21, 46, 6, transit]]

def test_second_tab_transit_wins():
    rates = merge_tabs([_tab("International Express", _uk("3")), _tab("International Express Pricing", _uk("4-6"))])
    entry = rates.shipping_lines["United Kingdom"]["express"]
    assert entry.transit_time == "4-6"
    assert len(entry.bands) == 4

def test_only_second_tab_sets_line_transit():
    rates = merge_tabs([_tab("International Express", _uk("3")), _tab("International Express Pricing", _uk(""))])
    assert rates.shipping_lines["United Kingdom"]["express"].transit_time is None
    # band-level transit from the first tab still reaches callers
    assert calculate(rates, "United Kingdom", "Express", None, 1.0, "kg").delivery_days == "3"
    uk = rates.listing()["countries_data"]["United Kingdom"]
    assert uk["available_shipping_lines"][0]["delivery_time"] == "3 days"

def test_failed_tab_keeps_its_slot():
    # the failed first tab still counts, so the survivor is a "second" tab
    rates = merge_tabs([None, _tab("International Express Pricing", _uk("4-6"))])
    assert rates.shipping_lines["United Kingdom"]["express"].transit_time == "4-6"
    assert rates.countries == ["United Kingdom"]

def test_merge_is_idempotent():
    results = [
        _tab("International Express", _uk("3") + [["Australia", "Zone 1", "0-4.41", "0-2", 8, 18, 4, ""]]),
        _tab("International Express Pricing", _uk("4-6")),
    ]
    assert merge_tabs(results).listing() == merge_tabs(results).listing()

def test_countries_without_lines_are_dropped():
    rates = merge_tabs([_tab("International Express", _uk("3") + [["Mexico", "", "", "", "", "", "", ""]])])
    assert rates.countries == ["United Kingdom"]

def test_sort_countries():
    assert sort_countries(["Germany", "brazil", "USA", "Albania", "Canada", "UK"]) == [
        "USA", "Canada", "UK", "Germany", "Albania", "brazil",
    ]

@pytest.mark.parametrize("raw,expected", [
    ("45123", None), ("1500", None), ("", None), (None, None), ("5-7", "5-7"), ("7", "7"),
])
def test_clean_transit_time(raw, expected):
    assert clean_transit_time(raw) == expected

@pytest.mark.parametrize("raw,expected", [
    ("7", "7 days"), ("3 days", "3 days"), ("5-7", "5-7"), ("45123", None),
])
def test_format_delivery_time(raw, expected):
    assert format_delivery_time(raw) == expected

def test_listing_shape():
    results = [
        _tab("International Express", _uk("45123") + [
            ["Australia", "Zone 1", "0-4.41", "0-2", 8, 18, 4, ""],
            ["", "Zone 2", "0-4.41", "0-2", 9, 20, 4, ""],
        ]),
        _tab("International Express Pricing", [["Australia", "Zone 2", "0-4.41", "0-2", 9, 20, 4, "6"]]),
    ]
    listing = merge_tabs(results).listing()
    assert listing["countries"] == ["United Kingdom", "Australia"]

    uk = listing["countries_data"]["United Kingdom"]
    assert uk["has_zones"] is False and uk["zones"] is None
    assert uk["available_shipping_lines"] == [{
        "key": "express", "name": "Express", "max_weight_kg": 5.0, "max_weight_lb": 11.02, "delivery_time": None,
    }]

    au = listing["countries_data"]["Australia"]
    assert au["has_zones"] is True
    assert au["zone_names"] == ["Zone 1", "Zone 2"]
    assert au["shipping_lines"] is None
    assert au["available_shipping_lines"][0]["delivery_time"] == "6 days"
