import pytest

from ratecalc.models import WeightBand
from ratecalc.tools.parse_rows import cell_text, find_column_indices, is_us_tab, parse_record, parse_rows

INTL_HEADER = ["Country", "Zone", "Weight (lb)", "Weight (kg)", "Freight ($/lb)", "Freight ($/kg)", "Injection Fee", "Transit Time"]
US_HEADER = ["Shipping Line", "Weight (lb)", "Weight (kg)", "Freight ($/lb)", "Freight ($/kg)", "Order Fee", "Transit Time"]

def test_header_only_is_empty():
    parsed = parse_rows([INTL_HEADER], "International Express")
    assert not parsed.countries and not parsed.zones and not parsed.shipping_lines
    assert not parse_rows([], "International Express").countries

def test_find_column_indices():
    cols = find_column_indices(INTL_HEADER)
    assert cols["country"] == 0
    assert cols["zone"] == 1
    assert cols["weight_lb"] == 2 and cols["weight_kg"] == 3
    assert cols["freight_lb"] == 4 and cols["freight_kg"] == 5
    assert cols["injection"] == 6 and cols["transit"] == 7
    assert cols["shipping_line"] == -1

def test_parse_record_amounts():
    cols = find_column_indices(INTL_HEADER)
    rec = parse_record(["UK", "", "0-4.41", "0-2", "$23.00/lb", "$50/kg", "", "4-6"], cols)
    assert rec.weight_band_kg == WeightBand(0, 2)
    assert rec.freight_per_lb == 23.0 and rec.freight_per_kg == 50.0
    assert rec.injection_fee == 0.0
    assert rec.transit_time == "4-6"
    assert parse_record(["UK", "", "", "n/a"], cols) is None

def test_cell_text():
    assert cell_text(7.0) == "7"
    assert cell_text(2.5) == "2.5"
    assert cell_text(None) == ""

def test_us_tab_uses_row_shipping_lines():
    rows = [
        US_HEADER,
        ["Standard", "0-11.02", "0-5", 6.8, 15, 5, "3-5"],
        ["", "11.02-22.05", "5-10", 5.5, 12, 5, ""],
        ["Priority", "0-4.41", "0-2", 12, 26, 6, "2"],
    ]
    parsed = parse_rows(rows, "United States Standard")
    assert parsed.countries == {"United States"}
    lines = parsed.shipping_lines["United States"]
    assert set(lines) == {"standard", "priority"}
    assert len(lines["standard"].bands) == 2
    # entry transit is seeded from the first record
    assert lines["standard"].transit_time == "3-5"
    assert lines["priority"].bands[0].freight_per_kg == 26.0

def test_line_defaults_to_tab_name():
    rows = [INTL_HEADER, ["United Kingdom", "", "0-4.41", "0-2", 23, 50, 6, ""]]
    parsed = parse_rows(rows, "International Standard Battery")
    assert list(parsed.shipping_lines["United Kingdom"]) == ["standard-battery"]

def test_country_and_zone_carry_over():
    rows = [
        INTL_HEADER,
        ["Australia", "Zone 1", "0-4.41", "0-2", 8, 18, 4, ""],
        ["", "", "4.41-11.02", "2-5", 7, 16, 4, ""],
        ["", "Zone 2", "0-4.41", "0-2", 9, 20, 4, ""],
        # a new country starts without a zone
        ["New Zealand", "", "0-4.41", "0-2", 10, 22, 4, ""],
    ]
    parsed = parse_rows(rows)
    assert parsed.countries == {"Australia", "New Zealand"}
    zones = parsed.zones["Australia"]
    assert sorted(zones) == ["Zone 1", "Zone 2"]
    assert len(zones["Zone 1"]["default"].bands) == 2
    assert "New Zealand" not in parsed.zones
    assert list(parsed.shipping_lines["New Zealand"]) == ["default"]

def test_header_echo_and_rows_before_country():
    rows = [
        INTL_HEADER,
        ["", "", "0-4.41", "0-2", 1, 2, 0, ""],
        ["Countries", "Zone", "Weight (lb)", "Weight (kg)", "", "", "", ""],
        ["Canada", "", "0-4.41", "0-2", 10, 22, 5, "7"],
        ["Mexico", "", "", "", "", "", "", ""],
    ]
    parsed = parse_rows(rows, "International Express")
    # a country with no priced rows is still seen, the merger drops it later
    assert parsed.countries == {"Canada", "Mexico"}
    assert list(parsed.shipping_lines) == ["Canada"]
    assert parsed.shipping_lines["Canada"]["express"].bands[0].freight_per_kg == 22.0

def test_row_service_overrides_tab_line():
    header = ["Country", "Service", "Weight (lb)", "Weight (kg)", "Freight ($/lb)", "Freight ($/kg)", "Injection Fee", "Transit Time"]
    rows = [
        header,
        ["United Kingdom", "", "0-4.41", "0-2", 23, 50, 6, ""],
        ["", "Express Plus", "4.41-11.02", "2-5", 21, 46, 6, ""],
        # the row line carries over into the next country
        ["Canada", "", "0-4.41", "0-2", 10, 22, 5, ""],
    ]
    parsed = parse_rows(rows, "International Express")
    assert list(parsed.shipping_lines["United Kingdom"]) == ["express", "express-plus"]
    assert list(parsed.shipping_lines["Canada"]) == ["express-plus"]

@pytest.mark.parametrize("tab_name,expected", [
    ("United States Standard", True),
    ("US Priority", True),
    # any "us" without "international" counts, Australia included
    ("Australia Express", True),
    ("International Standard", False),
    ("Priority International", False),
    ("Canada Express", False),
])
def test_is_us_tab(tab_name, expected):
    assert is_us_tab(tab_name) is expected

def test_us_like_tab_is_seeded_with_united_states():
    rows = [
        INTL_HEADER,
        ["", "", "0-4.41", "0-2", 7, 15, 3, ""],
        ["Australia", "Zone 1", "0-4.41", "0-2", 8, 18, 4, ""],
    ]
    parsed = parse_rows(rows, "Australia Express")
    assert parsed.countries == {"United States", "Australia"}
    assert list(parsed.shipping_lines["United States"]) == ["default"]
    assert list(parsed.zones["Australia"]["Zone 1"]) == ["default"]
