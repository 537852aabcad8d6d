"""Shared FastAPI dependencies."""
from typing import Optional

from fastapi import Header, HTTPException, status

from metal_ledger.core.config import settings


def get_caller(x_user: Optional[str] = Header(default=None)) -> Optional[str]:
    """
    Caller identity supplied by the surrounding web layer (which owns login).
    Write endpoints record it; with AUTH_REQUIRED it becomes mandatory.
    """
    caller = x_user.strip() if x_user else None
    if settings.AUTH_REQUIRED and not caller:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="X-User header is required"
        )
    return caller
