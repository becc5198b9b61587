import pytest

from ratecalc.models import WeightBand
from ratecalc.tools.weights import KG_PER_LB, convert_weight, leading_float, normalize_unit, parse_weight_band

def test_convert_lb_to_kg():
    assert convert_weight(1.0, "lb", "kg") == pytest.approx(KG_PER_LB)
    assert convert_weight(10.0, "kg", "kg") == 10.0

@pytest.mark.parametrize("weight", [0.25, 1.0, 2.5, 37.123, 9999.99])
def test_conversion_round_trip(weight):
    back = convert_weight(convert_weight(weight, "kg", "lb"), "lb", "kg")
    assert back == pytest.approx(weight, rel=1e-6)

def test_unknown_unit_passes_through():
    assert convert_weight(3.0, "oz", "kg") == 3.0

@pytest.mark.parametrize("raw,expected", [("kg", "kg"), ("KGS", "kg"), (" lbs ", "lb"), ("lb", "lb"), ("stone", None), (None, None)])
def test_normalize_unit(raw, expected):
    assert normalize_unit(raw) == expected

def test_leading_float():
    assert leading_float("2.5kg") == 2.5
    assert leading_float(" 3 ") == 3.0
    assert leading_float("kg") is None

def test_parse_weight_band():
    assert parse_weight_band("0-0.66") == WeightBand(0.0, 0.66)
    assert parse_weight_band("0.66 - 2.2") == WeightBand(0.66, 2.2)

@pytest.mark.parametrize("raw", [None, "", 0, "5", "a-b", "1-2-3", "Weight"])
def test_parse_weight_band_rejects(raw):
    assert parse_weight_band(raw) is None

def test_band_is_half_open():
    band = WeightBand(0, 5)
    assert band.contains(0)
    assert band.contains(4.99)
    assert not band.contains(5)
