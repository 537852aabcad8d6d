"""Pydantic request bodies for API endpoints.

Only shape and types are checked here. Domain rules (non-negative weights,
purity range, bhav cutting needs a rate …) live in the engine so they apply
to every caller and come back as typed engine errors.
"""
from __future__ import annotations

from datetime import date
from typing import Optional
from pydantic import BaseModel, field_validator

from metal_ledger.models.master import BalanceSide, GroupType, ItemUnit
from metal_ledger.models.transaction import VoucherType


def _strip_required(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("must not be blank")
    return v


class GroupIn(BaseModel):
    name: str
    group_type: GroupType
    description: str = ""

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        return _strip_required(v)


class ItemIn(BaseModel):
    name: str
    metal: str = "Gold"
    purity: float = 100.0
    unit: ItemUnit = ItemUnit.GRAM
    opening_stock_weight: float = 0.0
    min_stock_level: float = 0.0
    max_stock_level: Optional[float] = None
    default_wastage: float = 0.0
    labour_charge: float = 0.0
    remarks: Optional[str] = None

    @field_validator("name", "metal")
    @classmethod
    def text_not_blank(cls, v: str) -> str:
        return _strip_required(v)


class PartyIn(BaseModel):
    name: str
    unique_name: Optional[str] = None  # defaults to name
    group_id: int
    address: Optional[str] = None
    city: Optional[str] = None
    phone: Optional[str] = None
    opening_metal_weight: float = 0.0
    opening_metal_type: BalanceSide = BalanceSide.DR
    opening_cash_value: float = 0.0
    opening_cash_type: BalanceSide = BalanceSide.DR
    wef_date: Optional[date] = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        return _strip_required(v)

    @field_validator("unique_name")
    @classmethod
    def unique_name_not_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return _strip_required(v)


class VoucherLineIn(BaseModel):
    item_id: int
    gross_weight: float
    less_weight: float = 0.0
    purity: float
    wastage: float = 0.0
    labour_rate: float = 0.0


class VoucherIn(BaseModel):
    """Body for POST /api/accounts/vouchers. Derived fields are never accepted."""

    voucher_no: Optional[str] = None  # server assigns one when absent
    voucher_date: date
    voucher_type: VoucherType
    party_id: int
    narration: str = ""
    lines: list[VoucherLineIn] = []
    metal_rate: float = 0.0
    bhav_cutting_weight: float = 0.0
    cash_received: float = 0.0

    @field_validator("voucher_no")
    @classmethod
    def voucher_no_not_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return _strip_required(v)


class ReversalIn(BaseModel):
    """Body for POST /api/accounts/vouchers/{id}/reverse."""

    voucher_date: Optional[date] = None  # defaults to the original's date
    narration: Optional[str] = None
