"""
Inventory projection: on-hand fine weight per item.

Each item starts at its opening stock and every voucher line referencing it
moves it by ± fine weight according to the effect table (Sales/Issue out,
Purchase/Receipt in, reversals the other way). Negative stock is reported
with a Low Stock status; it is never rejected here.
"""
from __future__ import annotations

from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from dateutil.relativedelta import relativedelta
from loguru import logger
from sqlmodel import Session, select

from metal_ledger.engine.calculations import round_weight, to_decimal
from metal_ledger.engine.effects import stock_delta
from metal_ledger.engine.masters import get_item
from metal_ledger.models.master import Item
from metal_ledger.projections.ledger import (
    VoucherWithLines,
    load_vouchers_with_lines,
    projection_order,
)
from metal_ledger.schemas.responses import (
    ItemMonthlyData,
    ItemMovementReport,
    ItemRead,
    ItemStockRead,
)

STATUS_OK = "OK"
STATUS_LOW = "Low Stock"
STATUS_OVER = "Over Stock"


def stock_status(item: Item, current: Decimal) -> str:
    if current < 0:
        return STATUS_LOW
    if item.min_stock_level and current <= to_decimal(item.min_stock_level):
        return STATUS_LOW
    if item.max_stock_level is not None and current > to_decimal(item.max_stock_level):
        return STATUS_OVER
    return STATUS_OK


def _movements(vouchers: Iterable[VoucherWithLines]):
    """Yield (voucher, item_id, signed fine-weight delta) in projection order."""
    for voucher, lines in sorted(vouchers, key=lambda vl: projection_order(vl[0])):
        for line in lines:
            yield voucher, line.item_id, stock_delta(voucher, line)


def fold_inventory(
    items: Sequence[Item], vouchers: Iterable[VoucherWithLines]
) -> list[ItemStockRead]:
    zero = Decimal("0")
    inward: dict[int, Decimal] = defaultdict(lambda: zero)
    outward: dict[int, Decimal] = defaultdict(lambda: zero)

    for _, item_id, delta in _movements(vouchers):
        if delta >= 0:
            inward[item_id] += delta
        else:
            outward[item_id] += -delta

    report = []
    for item in sorted(items, key=lambda i: (i.name, i.id)):
        opening = to_decimal(item.opening_stock_weight)
        current = opening + inward[item.id] - outward[item.id]
        report.append(
            ItemStockRead(
                **ItemRead.model_validate(item).model_dump(),
                opening_stock=round_weight(opening),
                inward=round_weight(inward[item.id]),
                outward=round_weight(outward[item.id]),
                current_stock=round_weight(current),
                status=stock_status(item, current),
                is_negative=current < 0,
            )
        )
    return report


def get_inventory(session: Session) -> list[ItemStockRead]:
    """Current stock for every item, read from one session snapshot."""
    items = session.exec(select(Item)).all()
    vouchers = load_vouchers_with_lines(session)
    report = fold_inventory(items, vouchers)
    logger.debug(
        f"Inventory: {len(report)} items over {len(vouchers)} vouchers, "
        f"{sum(1 for r in report if r.status == STATUS_LOW)} low"
    )
    return report


def fold_item_movement(
    item: Item,
    vouchers: Iterable[VoucherWithLines],
    months: int,
    as_of: date,
) -> ItemMovementReport:
    """
    Monthly inward/outward/closing for one item over the last ``months``
    calendar months ending with the month of ``as_of``. Movement before the
    window is carried into the opening figure; movement after ``as_of`` is ignored.
    """
    window_start = (as_of - relativedelta(months=months - 1)).replace(day=1)
    zero = Decimal("0")
    running = to_decimal(item.opening_stock_weight)
    buckets: dict[str, list[Decimal]] = {}

    for voucher, item_id, delta in _movements(vouchers):
        if item_id != item.id or voucher.voucher_date > as_of:
            continue
        if voucher.voucher_date < window_start:
            running += delta
            continue
        bucket = buckets.setdefault(voucher.voucher_date.strftime("%Y-%m"), [zero, zero])
        if delta >= 0:
            bucket[0] += delta
        else:
            bucket[1] += -delta

    opening = running
    monthly_data: list[ItemMonthlyData] = []
    current_month = window_start
    while current_month <= as_of:
        key = current_month.strftime("%Y-%m")
        inward, outward = buckets.get(key, [zero, zero])
        running = running + inward - outward
        monthly_data.append(
            ItemMonthlyData(
                month=key,
                inward=round_weight(inward),
                outward=round_weight(outward),
                closing=round_weight(running),
            )
        )
        current_month += relativedelta(months=1)

    return ItemMovementReport(
        item_id=item.id,
        item_name=item.name,
        opening=round_weight(opening),
        monthly_data=monthly_data,
        closing=round_weight(running),
    )


def get_item_movement(
    session: Session,
    item_id: int,
    months: int = 8,
    as_of: Optional[date] = None,
) -> ItemMovementReport:
    item = get_item(session, item_id)
    vouchers = load_vouchers_with_lines(session)
    return fold_item_movement(item, vouchers, months, as_of or date.today())
