"""SQLModel models for transaction data (vouchers, voucher lines, sequence counters)."""
from enum import Enum
from typing import Optional
from datetime import date, datetime
from sqlalchemy import event
from sqlmodel import SQLModel, Field

from metal_ledger.core.errors import ImmutableVoucherError


class VoucherType(str, Enum):
    SALES = "Sales"
    PURCHASE = "Purchase"
    ISSUE = "Issue"
    RECEIPT = "Receipt"


class Voucher(SQLModel, table=True):
    """
    A posted voucher. Rows are write-once: corrections are new vouchers
    pointing back through ``reverses_id``.
    """

    __tablename__ = "vouchers"

    id: Optional[int] = Field(default=None, primary_key=True)

    # Core identification
    voucher_no: str = Field(index=True, unique=True)
    sequence: int = Field(index=True, unique=True)  # allocation order, tie-breaker
    voucher_type: str = Field(index=True)  # VoucherType value
    voucher_date: date = Field(index=True)

    party_id: int = Field(foreign_key="parties.id", index=True, ondelete="RESTRICT")
    narration: str = Field(default="")

    # Bhav cutting & payment
    metal_rate: float = Field(default=0.0)  # currency per gram fine
    bhav_cutting_weight: float = Field(default=0.0)
    bhav_cutting_amount: float = Field(default=0.0)  # weight × rate, derived
    cash_received: float = Field(default=0.0)

    # Line totals, derived at posting time
    total_fine_weight: float = Field(default=0.0)
    total_amount: float = Field(default=0.0)

    # Set on reversing vouchers; unique so a voucher is reversed at most once
    reverses_id: Optional[int] = Field(
        default=None, foreign_key="vouchers.id", unique=True, ondelete="RESTRICT"
    )

    posted_by: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)


class VoucherLine(SQLModel, table=True):
    """A single metal line within a voucher. All derived fields are stored as posted."""

    __tablename__ = "voucher_lines"

    id: Optional[int] = Field(default=None, primary_key=True)
    voucher_id: int = Field(foreign_key="vouchers.id", index=True, ondelete="RESTRICT")
    item_id: int = Field(foreign_key="items.id", index=True, ondelete="RESTRICT")
    order: int = Field(default=0)  # line order within voucher

    gross_weight: float = Field(default=0.0)
    less_weight: float = Field(default=0.0)  # stones, strings …
    net_weight: float = Field(default=0.0)
    purity: float = Field(default=0.0)  # touch
    wastage: float = Field(default=0.0)
    fine_weight: float = Field(default=0.0)
    labour_rate: float = Field(default=0.0)
    labour_amount: float = Field(default=0.0)
    line_amount: float = Field(default=0.0)


VOUCHER_SEQUENCE = "voucher"


class SequenceCounter(SQLModel, table=True):
    """Named monotonic counter. Incremented inside the caller's transaction."""

    __tablename__ = "sequence_counters"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True, unique=True)
    current_value: int = Field(default=0)


# ── Immutability ──────────────────────────────────────────────────────────────


def _reject_update(mapper, connection, target) -> None:  # noqa: ARG001
    raise ImmutableVoucherError(
        f"{type(target).__name__} {target.id} is posted and cannot be modified; "
        "post a reversing voucher instead",
        ref_id=target.id,
    )


def _reject_delete(mapper, connection, target) -> None:  # noqa: ARG001
    raise ImmutableVoucherError(
        f"{type(target).__name__} {target.id} is posted and cannot be deleted; "
        "post a reversing voucher instead",
        ref_id=target.id,
    )


for _model in (Voucher, VoucherLine):
    event.listen(_model, "before_update", _reject_update)
    event.listen(_model, "before_delete", _reject_delete)
