"""Tests for app.core.ratios — zero-guarded divisions."""
import math

from app.core.ratios import cpc, cpm, ctr, percent_change, safe_div


class TestZeroDenominators:

    def test_all_ratios_zero_on_zero_denominator(self):
        for value in (cpc(100.0, 0), cpm(100.0, 0), ctr(5, 0), percent_change(10, 0)):
            assert value == 0
            assert not math.isnan(value)
            assert not math.isinf(value)

    def test_safe_div_none(self):
        assert safe_div(5, None) == 0.0

    def test_percent_change_without_base(self):
        assert percent_change(50, None) == 0.0
        assert percent_change(50, -10) == 0.0


class TestValues:

    def test_cpc(self):
        assert cpc(10.0, 4) == 2.5

    def test_cpm(self):
        assert cpm(5.0, 2000) == 2.5

    def test_ctr(self):
        assert ctr(30, 1000) == 3.0

    def test_percent_change_rounds(self):
        assert percent_change(50, 1000) == 5.0
        assert percent_change(1, 3) == 33.33

    def test_negative_change(self):
        assert percent_change(-100, 1000) == -10.0
