"""Unit tests for voucher line arithmetic."""
from decimal import Decimal

import pytest

from metal_ledger.engine.calculations import (
    compute_bhav_amount,
    compute_line,
    quantize_weight,
    round_money,
    round_weight,
    to_decimal,
)


class TestComputeLine:
    def test_fine_weight_adds_wastage_to_purity(self):
        fig = compute_line(gross_weight=10.0, less_weight=0.0, purity=91.6, wastage=2.0, labour_rate=0)
        assert fig.net_weight == Decimal("10.000")
        assert fig.fine_weight == Decimal("9.360")

    def test_net_weight_subtracts_less_weight(self):
        fig = compute_line(gross_weight=52.3, less_weight=2.3, purity=100, wastage=0, labour_rate=0)
        assert fig.net_weight == Decimal("50.000")
        assert fig.fine_weight == Decimal("50.000")

    def test_fine_weight_rounded_to_three_places(self):
        # 7.777 × 91.6 / 100 = 7.123732
        fig = compute_line(gross_weight=7.777, less_weight=0, purity=91.6, wastage=0, labour_rate=0)
        assert fig.fine_weight == Decimal("7.124")

    def test_rounding_is_half_up(self):
        # 0.005 × 50 / 100 = 0.0025 → 0.003
        fig = compute_line(gross_weight=0.005, less_weight=0, purity=50, wastage=0, labour_rate=0)
        assert fig.fine_weight == Decimal("0.003")

    def test_labour_amount_uses_net_weight(self):
        fig = compute_line(gross_weight=12.5, less_weight=2.5, purity=91.6, wastage=0, labour_rate=350)
        assert fig.labour_amount == Decimal("3500.00")
        assert fig.line_amount == fig.labour_amount

    def test_labour_amount_rounded_to_paise(self):
        # 3.333 × 12.345 = 41.145885
        fig = compute_line(gross_weight=3.333, less_weight=0, purity=100, wastage=0, labour_rate=12.345)
        assert fig.labour_amount == Decimal("41.15")

    def test_zero_purity_gives_zero_fine(self):
        fig = compute_line(gross_weight=5, less_weight=1, purity=0, wastage=0, labour_rate=0)
        assert fig.net_weight == Decimal("4.000")
        assert fig.fine_weight == Decimal("0.000")


class TestBhavAmount:
    def test_weight_times_rate(self):
        assert compute_bhav_amount(50.0, 6000) == Decimal("300000.00")

    def test_fractional(self):
        # 1.234 × 6250.5 = 7713.117
        assert compute_bhav_amount(1.234, 6250.5) == Decimal("7713.12")

    def test_no_weight_no_amount(self):
        assert compute_bhav_amount(0, 6000) == Decimal("0.00")


class TestConversions:
    @pytest.mark.parametrize("value", [91.6, "91.6", Decimal("91.6")])
    def test_to_decimal_keeps_literal_value(self, value):
        assert to_decimal(value) == Decimal("91.6")

    def test_none_is_zero(self):
        assert to_decimal(None) == Decimal("0")

    def test_float_helpers(self):
        assert round_weight(1.23456) == 1.235
        assert round_money(2.345) == 2.35
        assert quantize_weight(2) == Decimal("2.000")
