"""
Weight and money arithmetic for voucher lines.

Values arrive and leave as floats (that is what the tables and JSON carry)
but every derivation runs on ``Decimal`` and is rounded half-up: weights to
3 places (scale resolution, grams), currency to 2 places.

    net    = gross − less
    fine   = net × (purity + wastage) / 100
    labour = net × labour_rate
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Union

Number = Union[int, float, str, Decimal, None]

WEIGHT_QUANTUM = Decimal("0.001")
MONEY_QUANTUM = Decimal("0.01")
HUNDRED = Decimal("100")

# Input ceilings, well inside the default 28-digit Decimal context
# even after weight × rate and summing many lines.
MAX_WEIGHT = 1_000_000_000.0  # grams
MAX_AMOUNT = 1_000_000_000_000.0  # currency, and currency per gram
MAX_PERCENT = 1_000.0  # wastage


def to_decimal(value: Number) -> Decimal:
    """Convert via ``str`` so 91.6 stays 91.6 rather than its binary expansion."""
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def quantize_weight(value: Number) -> Decimal:
    return to_decimal(value).quantize(WEIGHT_QUANTUM, rounding=ROUND_HALF_UP)


def quantize_money(value: Number) -> Decimal:
    return to_decimal(value).quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


def round_weight(value: Number) -> float:
    return float(quantize_weight(value))


def round_money(value: Number) -> float:
    return float(quantize_money(value))


@dataclass(frozen=True)
class LineFigures:
    """Derived figures of one voucher line, already rounded."""

    net_weight: Decimal
    fine_weight: Decimal
    labour_amount: Decimal
    line_amount: Decimal


def compute_line(
    gross_weight: Number,
    less_weight: Number,
    purity: Number,
    wastage: Number,
    labour_rate: Number,
) -> LineFigures:
    """
    Derive net, fine and labour for one line in the order gross → net → fine,
    rate → labour. Inputs are assumed validated (see ``vouchers.validate_line``).
    """
    net = quantize_weight(to_decimal(gross_weight) - to_decimal(less_weight))
    fine = quantize_weight(net * (to_decimal(purity) + to_decimal(wastage)) / HUNDRED)
    labour = quantize_money(net * to_decimal(labour_rate))
    # Line amount is labour-only for now; item valuation would be added here.
    return LineFigures(
        net_weight=net,
        fine_weight=fine,
        labour_amount=labour,
        line_amount=labour,
    )


def compute_bhav_amount(bhav_cutting_weight: Number, metal_rate: Number) -> Decimal:
    """Cash value of a bhav cutting: converted fine weight × rate."""
    weight = quantize_weight(bhav_cutting_weight)
    if weight <= 0:
        return Decimal("0.00")
    return quantize_money(weight * to_decimal(metal_rate))
