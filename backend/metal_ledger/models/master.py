"""SQLModel models for accounting master data (account groups, items, parties)."""
from enum import Enum
from typing import Optional
from datetime import date, datetime
from sqlmodel import SQLModel, Field


class GroupType(str, Enum):
    ASSET = "Asset"
    LIABILITY = "Liability"
    INCOME = "Income"
    EXPENSE = "Expense"


class ItemUnit(str, Enum):
    PIECE = "Piece"
    GRAM = "Gram"
    CARAT = "Carat"


class BalanceSide(str, Enum):
    DR = "Dr"
    CR = "Cr"


class AccountGroup(SQLModel, table=True):
    """Reporting classification for parties (Sundry Debtors, Karigars …)."""

    __tablename__ = "account_groups"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True, unique=True)
    group_type: str = Field(index=True)  # GroupType value
    description: str = Field(default="")
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class Item(SQLModel, table=True):
    """Tradable metal item. Opening stock is held in fine-weight grams."""

    __tablename__ = "items"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True, unique=True)
    metal: str = Field(default="Gold", index=True)  # open set: Gold, Silver, Platinum …
    purity: float = Field(default=100.0)  # touch, percent
    unit: str = Field(default=ItemUnit.GRAM.value)
    opening_stock_weight: float = Field(default=0.0)
    min_stock_level: float = Field(default=0.0)
    max_stock_level: Optional[float] = None
    default_wastage: float = Field(default=0.0)
    labour_charge: float = Field(default=0.0)
    remarks: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class Party(SQLModel, table=True):
    """
    Counterparty (customer, supplier, karigar).

    The opening balance is written once at creation. Running balances are
    never stored here; they are derived by the ledger projection.
    """

    __tablename__ = "parties"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    unique_name: str = Field(index=True, unique=True)
    group_id: int = Field(foreign_key="account_groups.id", index=True, ondelete="RESTRICT")

    address: Optional[str] = None
    city: Optional[str] = None
    phone: Optional[str] = None

    opening_metal_weight: float = Field(default=0.0)
    opening_metal_type: str = Field(default=BalanceSide.DR.value)
    opening_cash_value: float = Field(default=0.0)
    opening_cash_type: str = Field(default=BalanceSide.DR.value)
    wef_date: date = Field(default_factory=date.today)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
