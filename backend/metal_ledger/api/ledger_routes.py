"""
Party ledger routes.

Endpoints:
  GET /api/accounts/ledger/{party_id}
  GET /api/accounts/ledger/{party_id}/export?fmt=csv|xlsx
"""
from __future__ import annotations

from datetime import date
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlmodel import Session

from metal_ledger.core.database import get_session
from metal_ledger.projections.export import export_filename, ledger_to_csv, ledger_to_xlsx
from metal_ledger.projections.ledger import get_ledger
from metal_ledger.schemas.responses import LedgerView

ledger_router = APIRouter(prefix="/api/accounts/ledger", tags=["ledger"])

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@ledger_router.get("/{party_id}", response_model=LedgerView)
def party_ledger(
    party_id: int,
    date_from: Optional[date] = Query(default=None),
    date_to: Optional[date] = Query(default=None),
    session: Session = Depends(get_session),
):
    """Running metal and cash balances for one party, opening row first."""
    return get_ledger(session, party_id, date_from, date_to)


@ledger_router.get("/{party_id}/export")
def export_party_ledger(
    party_id: int,
    fmt: Literal["csv", "xlsx"] = Query(default="csv"),
    date_from: Optional[date] = Query(default=None),
    date_to: Optional[date] = Query(default=None),
    session: Session = Depends(get_session),
):
    """Download the ledger as CSV or Excel."""
    view = get_ledger(session, party_id, date_from, date_to)
    if fmt == "xlsx":
        content, media_type = ledger_to_xlsx(view), XLSX_MEDIA_TYPE
    else:
        content, media_type = ledger_to_csv(view), "text/csv"
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f"attachment; filename={export_filename(view, fmt)}"},
    )
