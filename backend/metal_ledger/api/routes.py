"""
Service-level routes.

Endpoints:
  GET  /api/health
  GET  /api/voucher-types
"""
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlmodel import Session, select

from metal_ledger.core.database import get_session
from metal_ledger.engine.effects import EFFECTS
from metal_ledger.models.transaction import Voucher
from metal_ledger.schemas.responses import HealthResponse

router = APIRouter(prefix="/api")


@router.get("/health", response_model=HealthResponse)
def health(session: Session = Depends(get_session)):
    try:
        session.exec(select(Voucher.id).limit(1))
        db_status = "ok"
    except Exception as e:
        db_status = f"error: {e}"
    return HealthResponse(status="ok", db=db_status)


@router.get("/voucher-types")
def voucher_types():
    """Voucher types with their ledger/stock effects (for form dropdowns)."""
    return [
        {
            "voucher_type": vtype.value,
            "metal": effect.metal.value if effect.metal else None,
            "cash": effect.cash.value if effect.cash else None,
            "cash_received": effect.cash_received.value if effect.cash_received else None,
            "stock": "in" if effect.stock > 0 else "out",
        }
        for vtype, effect in EFFECTS.items()
    ]
