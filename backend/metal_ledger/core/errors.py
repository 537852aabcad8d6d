"""
Typed errors raised by the accounting engine.

Every error carries a machine-readable ``kind`` plus the offending ``field``
and/or ``ref_id`` so the web layer never has to parse message strings.
The FastAPI handlers in ``metal_ledger.main`` translate them to HTTP
responses using ``status_code``.

    LedgerError
    ├── ValidationError          400  malformed input, rejected before any write
    ├── ReferenceViolationError       reference to / from another record
    │   ├── MissingReferenceError     404  voucher or master points at an unknown id
    │   └── ReferencedRecordError     409  delete of a master still in use
    ├── ConflictError            409  duplicate unique key
    ├── NotFoundError            404  read of an unknown id
    └── ImmutableVoucherError    409  attempt to change a posted voucher
"""
from __future__ import annotations

from typing import Any, Optional


class LedgerError(Exception):
    """Base class for all engine errors."""

    kind: str = "error"
    status_code: int = 400

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        ref_id: Optional[Any] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.field = field
        self.ref_id = ref_id

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "message": self.message,
            "field": self.field,
            "ref_id": self.ref_id,
        }


class ValidationError(LedgerError):
    kind = "validation"
    status_code = 400


class ReferenceViolationError(LedgerError):
    kind = "reference"
    status_code = 409


class MissingReferenceError(ReferenceViolationError):
    """A voucher or master references an id that does not exist."""

    status_code = 404


class ReferencedRecordError(ReferenceViolationError):
    """A master record cannot be deleted while other records point at it."""

    status_code = 409


class ConflictError(LedgerError):
    kind = "conflict"
    status_code = 409


class NotFoundError(LedgerError):
    kind = "not_found"
    status_code = 404


class ImmutableVoucherError(LedgerError):
    kind = "immutable"
    status_code = 409
