"""
Voucher routes.

Endpoints:
  POST /api/accounts/vouchers                – post a voucher (201)
  GET  /api/accounts/vouchers                – list with filters + pagination
  GET  /api/accounts/vouchers/{id}           – voucher with lines
  POST /api/accounts/vouchers/{id}/reverse   – post the reversing voucher (201)

Posted vouchers have no PUT/PATCH/DELETE: corrections go through /reverse.
"""
from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query, status
from sqlmodel import Session

from metal_ledger.api.deps import get_caller
from metal_ledger.core.database import get_session
from metal_ledger.engine import vouchers
from metal_ledger.models.transaction import VoucherType
from metal_ledger.schemas.requests import ReversalIn, VoucherIn
from metal_ledger.schemas.responses import VoucherDetail, VoucherListResponse

voucher_router = APIRouter(prefix="/api/accounts/vouchers", tags=["vouchers"])


@voucher_router.post("", response_model=VoucherDetail, status_code=status.HTTP_201_CREATED)
def post_voucher(
    body: VoucherIn,
    session: Session = Depends(get_session),
    caller: Optional[str] = Depends(get_caller),
):
    voucher = vouchers.post_voucher(session, body, posted_by=caller)
    return vouchers.voucher_detail(session, voucher)


@voucher_router.get("", response_model=VoucherListResponse)
def list_vouchers(
    voucher_type: Optional[VoucherType] = Query(default=None),
    party_id: Optional[int] = Query(default=None),
    date_from: Optional[date] = Query(default=None),
    date_to: Optional[date] = Query(default=None),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=50, ge=1, le=500),
    session: Session = Depends(get_session),
):
    return vouchers.list_vouchers(
        session,
        voucher_type=voucher_type.value if voucher_type else None,
        party_id=party_id,
        date_from=date_from,
        date_to=date_to,
        page=page,
        page_size=page_size,
    )


@voucher_router.get("/{voucher_id}", response_model=VoucherDetail)
def get_voucher(voucher_id: int, session: Session = Depends(get_session)):
    return vouchers.voucher_detail(session, vouchers.get_voucher(session, voucher_id))


@voucher_router.post(
    "/{voucher_id}/reverse", response_model=VoucherDetail, status_code=status.HTTP_201_CREATED
)
def reverse_voucher(
    voucher_id: int,
    body: Optional[ReversalIn] = Body(default=None),
    session: Session = Depends(get_session),
    caller: Optional[str] = Depends(get_caller),
):
    reversal = vouchers.reverse_voucher(session, voucher_id, body, posted_by=caller)
    return vouchers.voucher_detail(session, reversal)
