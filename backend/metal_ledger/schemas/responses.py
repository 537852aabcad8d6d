"""Pydantic response schemas for API endpoints."""
from __future__ import annotations

from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str
    db: str
    version: str = "1.0.0"


class ErrorBody(BaseModel):
    kind: str
    message: str
    field: Optional[str] = None
    ref_id: Optional[int | str] = None


class ErrorResponse(BaseModel):
    error: ErrorBody


# ── Masters ───────────────────────────────────────────────────────────────────


class GroupRead(BaseModel):
    id: int
    name: str
    group_type: str
    description: str
    created_at: datetime

    class Config:
        from_attributes = True


class ItemRead(BaseModel):
    id: int
    name: str
    metal: str
    purity: float
    unit: str
    opening_stock_weight: float
    min_stock_level: float
    max_stock_level: Optional[float]
    default_wastage: float
    labour_charge: float
    remarks: Optional[str]

    class Config:
        from_attributes = True


class PartyRead(BaseModel):
    id: int
    name: str
    unique_name: str
    group_id: int
    group_name: Optional[str] = None
    group_type: Optional[str] = None
    address: Optional[str]
    city: Optional[str]
    phone: Optional[str]
    opening_metal_weight: float
    opening_metal_type: str
    opening_cash_value: float
    opening_cash_type: str
    wef_date: date

    class Config:
        from_attributes = True


# ── Vouchers ──────────────────────────────────────────────────────────────────


class VoucherLineRead(BaseModel):
    id: int
    item_id: int
    item_name: Optional[str] = None
    order: int
    gross_weight: float
    less_weight: float
    net_weight: float
    purity: float
    wastage: float
    fine_weight: float
    labour_rate: float
    labour_amount: float
    line_amount: float

    class Config:
        from_attributes = True


class VoucherRead(BaseModel):
    id: int
    voucher_no: str
    sequence: int
    voucher_type: str
    voucher_date: date
    party_id: int
    party_name: Optional[str] = None
    narration: str
    metal_rate: float
    bhav_cutting_weight: float
    bhav_cutting_amount: float
    cash_received: float
    total_fine_weight: float
    total_amount: float
    reverses_id: Optional[int]
    posted_by: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class VoucherDetail(VoucherRead):
    lines: list[VoucherLineRead] = []
    reversed_by_id: Optional[int] = None


class VoucherListResponse(BaseModel):
    total: int
    page: int
    page_size: int
    items: list[VoucherRead]


# ── Ledger ────────────────────────────────────────────────────────────────────


class BalanceRead(BaseModel):
    """A signed dual balance. Positive = Dr (party owes us), negative = Cr."""

    metal: float
    metal_side: str
    cash: float
    cash_side: str


class LedgerRow(BaseModel):
    voucher_id: Optional[int]  # None for the opening row
    voucher_no: Optional[str]
    voucher_date: date
    voucher_type: Optional[str]
    particulars: str
    is_reversal: bool = False
    metal_dr: float
    metal_cr: float
    metal_balance: float
    metal_side: str
    cash_dr: float
    cash_cr: float
    cash_balance: float
    cash_side: str


class LedgerView(BaseModel):
    party: PartyRead
    opening_balance: BalanceRead
    transactions: list[LedgerRow]
    closing_balance: BalanceRead
    date_from: Optional[date] = None
    date_to: Optional[date] = None


# ── Inventory ─────────────────────────────────────────────────────────────────


class ItemStockRead(ItemRead):
    """Item master enriched with stock derived from the voucher stream (fine grams)."""

    opening_stock: float
    inward: float
    outward: float
    current_stock: float
    status: str  # "OK", "Low Stock", "Over Stock"
    is_negative: bool = False  # oversold / backorder, reported not rejected


class ItemMonthlyData(BaseModel):
    month: str  # "YYYY-MM"
    inward: float  # Purchase/Receipt fine weight
    outward: float  # Sales/Issue fine weight
    closing: float


class ItemMovementReport(BaseModel):
    """Item fine-weight movement with monthly breakdown."""
    item_id: int
    item_name: str
    opening: float  # Balance carried into the first month shown
    monthly_data: list[ItemMonthlyData]
    closing: float
