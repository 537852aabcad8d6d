"""
Master data routes: account groups, parties, items (+ inventory view).

Endpoints:
  GET    /api/accounts/groups
  POST   /api/accounts/groups
  GET    /api/accounts/groups/{id}
  DELETE /api/accounts/groups/{id}
  GET    /api/accounts/parties
  POST   /api/accounts/parties
  GET    /api/accounts/parties/{id}
  DELETE /api/accounts/parties/{id}
  GET    /api/accounts/items                  – items with current stock
  POST   /api/accounts/items
  GET    /api/accounts/items/{id}
  DELETE /api/accounts/items/{id}
  GET    /api/accounts/items/{id}/movement    – monthly fine-weight movement

There are no update endpoints: a party's opening balance is fixed at creation.
"""
from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session

from metal_ledger.api.deps import get_caller
from metal_ledger.core.database import get_session
from metal_ledger.engine import masters
from metal_ledger.projections.inventory import get_inventory, get_item_movement
from metal_ledger.schemas.requests import GroupIn, ItemIn, PartyIn
from metal_ledger.schemas.responses import (
    GroupRead,
    ItemMovementReport,
    ItemRead,
    ItemStockRead,
    PartyRead,
)

master_router = APIRouter(prefix="/api/accounts", tags=["masters"])


# ── Groups ────────────────────────────────────────────────────────────────────


@master_router.get("/groups", response_model=list[GroupRead])
def list_groups(session: Session = Depends(get_session)):
    return masters.list_groups(session)


@master_router.post("/groups", response_model=GroupRead, status_code=status.HTTP_201_CREATED)
def create_group(
    body: GroupIn,
    session: Session = Depends(get_session),
    caller: Optional[str] = Depends(get_caller),
):
    return masters.create_group(session, body)


@master_router.get("/groups/{group_id}", response_model=GroupRead)
def get_group(group_id: int, session: Session = Depends(get_session)):
    return masters.get_group(session, group_id)


@master_router.delete("/groups/{group_id}")
def delete_group(
    group_id: int,
    session: Session = Depends(get_session),
    caller: Optional[str] = Depends(get_caller),
):
    masters.delete_group(session, group_id)
    return {"status": "deleted", "id": group_id}


# ── Parties ───────────────────────────────────────────────────────────────────


@master_router.get("/parties", response_model=list[PartyRead])
def list_parties(
    group_id: Optional[int] = Query(default=None),
    session: Session = Depends(get_session),
):
    return masters.list_parties(session, group_id)


@master_router.post("/parties", response_model=PartyRead, status_code=status.HTTP_201_CREATED)
def create_party(
    body: PartyIn,
    session: Session = Depends(get_session),
    caller: Optional[str] = Depends(get_caller),
):
    return masters.create_party(session, body)


@master_router.get("/parties/{party_id}", response_model=PartyRead)
def get_party(party_id: int, session: Session = Depends(get_session)):
    return masters.read_party(session, party_id)


@master_router.delete("/parties/{party_id}")
def delete_party(
    party_id: int,
    session: Session = Depends(get_session),
    caller: Optional[str] = Depends(get_caller),
):
    masters.delete_party(session, party_id)
    return {"status": "deleted", "id": party_id}


# ── Items ─────────────────────────────────────────────────────────────────────


@master_router.get("/items", response_model=list[ItemStockRead])
def list_items_with_stock(session: Session = Depends(get_session)):
    """Every item with opening stock, inward/outward and current fine weight."""
    return get_inventory(session)


@master_router.post("/items", response_model=ItemRead, status_code=status.HTTP_201_CREATED)
def create_item(
    body: ItemIn,
    session: Session = Depends(get_session),
    caller: Optional[str] = Depends(get_caller),
):
    return masters.create_item(session, body)


@master_router.get("/items/{item_id}", response_model=ItemRead)
def get_item(item_id: int, session: Session = Depends(get_session)):
    return masters.get_item(session, item_id)


@master_router.delete("/items/{item_id}")
def delete_item(
    item_id: int,
    session: Session = Depends(get_session),
    caller: Optional[str] = Depends(get_caller),
):
    masters.delete_item(session, item_id)
    return {"status": "deleted", "id": item_id}


@master_router.get("/items/{item_id}/movement", response_model=ItemMovementReport)
def item_movement(
    item_id: int,
    months: int = Query(default=8, ge=1, le=24, description="Number of months to look back"),
    as_of: Optional[date] = Query(default=None, description="Last day covered (default today)"),
    session: Session = Depends(get_session),
):
    return get_item_movement(session, item_id, months, as_of)
