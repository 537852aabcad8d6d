"""
Per-voucher-type effect table.

This is the single place where Dr/Cr treatment of a voucher is decided.
Both projections read it; nothing else should branch on voucher type.

    type      metal (lines)  cash (line amount)  cash received  stock
    Sales     Dr             Dr                  -              out
    Purchase  Cr             Cr                  -              in
    Issue     Dr             -                   -              out
    Receipt   Cr             -                   Cr             in

Bhav cutting, on any type, credits metal by the converted weight and debits
cash by its amount. A reversing voucher applies every leg with the opposite
side and the opposite stock direction.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional

from metal_ledger.core.errors import ValidationError
from metal_ledger.engine.calculations import to_decimal
from metal_ledger.models.master import BalanceSide
from metal_ledger.models.transaction import Voucher, VoucherLine, VoucherType

DR = BalanceSide.DR
CR = BalanceSide.CR

STOCK_IN = 1
STOCK_OUT = -1


@dataclass(frozen=True)
class VoucherEffect:
    metal: Optional[BalanceSide]  # side for the summed line fine weight
    cash: Optional[BalanceSide]  # side for the summed line amount
    cash_received: Optional[BalanceSide]
    stock: int  # STOCK_IN / STOCK_OUT for line fine weight


EFFECTS: dict[VoucherType, VoucherEffect] = {
    VoucherType.SALES: VoucherEffect(metal=DR, cash=DR, cash_received=None, stock=STOCK_OUT),
    VoucherType.PURCHASE: VoucherEffect(metal=CR, cash=CR, cash_received=None, stock=STOCK_IN),
    VoucherType.ISSUE: VoucherEffect(metal=DR, cash=None, cash_received=None, stock=STOCK_OUT),
    VoucherType.RECEIPT: VoucherEffect(metal=CR, cash=None, cash_received=CR, stock=STOCK_IN),
}

# Bhav cutting: party converts owed metal into an owed cash amount.
BHAV_METAL_SIDE = CR
BHAV_CASH_SIDE = DR


def effect_for(voucher_type: str | VoucherType) -> VoucherEffect:
    try:
        return EFFECTS[VoucherType(voucher_type)]
    except ValueError:
        raise ValidationError(
            f"Unknown voucher type '{voucher_type}'", field="voucher_type"
        ) from None


@dataclass(frozen=True)
class LedgerLegs:
    """Dr/Cr amounts a single voucher contributes to its party's balances."""

    metal_dr: Decimal
    metal_cr: Decimal
    cash_dr: Decimal
    cash_cr: Decimal

    def flipped(self) -> "LedgerLegs":
        return LedgerLegs(
            metal_dr=self.metal_cr,
            metal_cr=self.metal_dr,
            cash_dr=self.cash_cr,
            cash_cr=self.cash_dr,
        )


def _post(legs: dict, unit: str, side: Optional[BalanceSide], value: Decimal) -> None:
    if side is None or not value:
        return
    key = f"{unit}_{'dr' if side == DR else 'cr'}"
    legs[key] += value


def ledger_legs(voucher: Voucher, lines: Iterable[VoucherLine]) -> LedgerLegs:
    """Sum a voucher's line, cash-received and bhav-cutting legs."""
    effect = effect_for(voucher.voucher_type)
    zero = Decimal("0")
    legs = {"metal_dr": zero, "metal_cr": zero, "cash_dr": zero, "cash_cr": zero}

    fine = sum((to_decimal(l.fine_weight) for l in lines), zero)
    amount = sum((to_decimal(l.line_amount) for l in lines), zero)

    _post(legs, "metal", effect.metal, fine)
    _post(legs, "cash", effect.cash, amount)
    _post(legs, "cash", effect.cash_received, to_decimal(voucher.cash_received))

    if voucher.bhav_cutting_weight and voucher.bhav_cutting_weight > 0:
        _post(legs, "metal", BHAV_METAL_SIDE, to_decimal(voucher.bhav_cutting_weight))
        _post(legs, "cash", BHAV_CASH_SIDE, to_decimal(voucher.bhav_cutting_amount))

    result = LedgerLegs(**legs)
    if voucher.reverses_id is not None:
        return result.flipped()
    return result


def stock_delta(voucher: Voucher, line: VoucherLine) -> Decimal:
    """Signed fine-weight movement of one line against its item's stock."""
    direction = effect_for(voucher.voucher_type).stock
    if voucher.reverses_id is not None:
        direction = -direction
    return to_decimal(line.fine_weight) * direction
