"""
Ledger projection: running metal and cash balances for one party.

A pure fold over (party opening balance + that party's vouchers in
``(voucher_date, voucher_no, sequence)`` order). Nothing here is stored; the
same stored state always folds to the same ledger.

Sign convention: balances are signed accumulators, Dr positive and Cr
negative, and every voucher moves them by ``Dr − Cr``.
"""
from __future__ import annotations

from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from loguru import logger
from sqlmodel import Session, col, select

from metal_ledger.core.errors import ValidationError
from metal_ledger.engine.calculations import round_money, round_weight, to_decimal
from metal_ledger.engine.effects import ledger_legs
from metal_ledger.engine.masters import describe_party, get_party
from metal_ledger.models.master import AccountGroup, BalanceSide, Party
from metal_ledger.models.transaction import Voucher, VoucherLine
from metal_ledger.schemas.responses import BalanceRead, LedgerRow, LedgerView

VoucherWithLines = tuple[Voucher, Sequence[VoucherLine]]


def signed_opening(value: float, side: str) -> Decimal:
    amount = to_decimal(value)
    return amount if side == BalanceSide.DR.value else -amount


def side_of(balance: Decimal) -> str:
    return BalanceSide.CR.value if balance < 0 else BalanceSide.DR.value


def balance_read(metal: Decimal, cash: Decimal) -> BalanceRead:
    return BalanceRead(
        metal=round_weight(metal),
        metal_side=side_of(metal),
        cash=round_money(cash),
        cash_side=side_of(cash),
    )


def projection_order(voucher: Voucher) -> tuple:
    """Total order used by every fold."""
    return (voucher.voucher_date, voucher.voucher_no, voucher.sequence)


def load_vouchers_with_lines(
    session: Session, party_id: Optional[int] = None
) -> list[VoucherWithLines]:
    """
    Read vouchers (optionally for one party) and their lines inside the
    caller's session, already in projection order.
    """
    stmt = select(Voucher)
    if party_id is not None:
        stmt = stmt.where(Voucher.party_id == party_id)
    stmt = stmt.order_by(Voucher.voucher_date, Voucher.voucher_no, Voucher.sequence)
    vouchers = session.exec(stmt).all()
    if not vouchers:
        return []

    line_stmt = select(VoucherLine).order_by(VoucherLine.voucher_id, VoucherLine.order, VoucherLine.id)
    if party_id is not None:
        line_stmt = line_stmt.where(col(VoucherLine.voucher_id).in_([v.id for v in vouchers]))
    lines_by_voucher: dict[int, list[VoucherLine]] = defaultdict(list)
    for line in session.exec(line_stmt).all():
        lines_by_voucher[line.voucher_id].append(line)

    return [(v, lines_by_voucher.get(v.id, [])) for v in vouchers]


def fold_ledger(
    party: Party,
    vouchers: Iterable[VoucherWithLines],
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> tuple[BalanceRead, list[LedgerRow], BalanceRead]:
    """
    Fold a party's vouchers into ledger rows.

    Vouchers dated before ``date_from`` are absorbed into the opening row
    ("b/f"); vouchers after ``date_to`` are left out. Returns
    (opening balance, rows including the opening row, closing balance).
    """
    metal = signed_opening(party.opening_metal_weight, party.opening_metal_type)
    cash = signed_opening(party.opening_cash_value, party.opening_cash_type)

    ordered = sorted(vouchers, key=lambda vl: projection_order(vl[0]))
    in_window: list[VoucherWithLines] = []
    for voucher, lines in ordered:
        if date_to and voucher.voucher_date > date_to:
            continue
        if date_from and voucher.voucher_date < date_from:
            legs = ledger_legs(voucher, lines)
            metal += legs.metal_dr - legs.metal_cr
            cash += legs.cash_dr - legs.cash_cr
            continue
        in_window.append((voucher, lines))

    opening = balance_read(metal, cash)
    rows = [
        LedgerRow(
            voucher_id=None,
            voucher_no=None,
            voucher_date=date_from or party.wef_date,
            voucher_type=None,
            particulars="Opening Balance b/f" if date_from else "Opening Balance",
            metal_dr=0.0,
            metal_cr=0.0,
            metal_balance=opening.metal,
            metal_side=opening.metal_side,
            cash_dr=0.0,
            cash_cr=0.0,
            cash_balance=opening.cash,
            cash_side=opening.cash_side,
        )
    ]

    for voucher, lines in in_window:
        legs = ledger_legs(voucher, lines)
        metal += legs.metal_dr - legs.metal_cr
        cash += legs.cash_dr - legs.cash_cr
        rows.append(
            LedgerRow(
                voucher_id=voucher.id,
                voucher_no=voucher.voucher_no,
                voucher_date=voucher.voucher_date,
                voucher_type=voucher.voucher_type,
                particulars=voucher.narration or voucher.voucher_type,
                is_reversal=voucher.reverses_id is not None,
                metal_dr=round_weight(legs.metal_dr),
                metal_cr=round_weight(legs.metal_cr),
                metal_balance=round_weight(metal),
                metal_side=side_of(metal),
                cash_dr=round_money(legs.cash_dr),
                cash_cr=round_money(legs.cash_cr),
                cash_balance=round_money(cash),
                cash_side=side_of(cash),
            )
        )

    return opening, rows, balance_read(metal, cash)


def get_ledger(
    session: Session,
    party_id: int,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> LedgerView:
    """Ledger of one party. Raises ``NotFoundError`` for an unknown party."""
    if date_from and date_to and date_to < date_from:
        raise ValidationError("date_to is before date_from", field="date_to")

    party = get_party(session, party_id)
    group = session.get(AccountGroup, party.group_id)
    vouchers = load_vouchers_with_lines(session, party_id)
    opening, rows, closing = fold_ledger(party, vouchers, date_from, date_to)

    logger.debug(
        f"Ledger for party {party_id}: {len(rows) - 1} vouchers, closing "
        f"{closing.metal:.3f} {closing.metal_side} / {closing.cash:.2f} {closing.cash_side}"
    )
    return LedgerView(
        party=describe_party(party, group),
        opening_balance=opening,
        transactions=rows,
        closing_balance=closing,
        date_from=date_from,
        date_to=date_to,
    )
