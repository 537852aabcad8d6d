"""
Voucher engine: the only writer of transactional facts.

Posting pipeline (one transaction per voucher):

  1. Validate the input (pure, before touching the store).
  2. Resolve party and item references.
  3. Derive line figures: gross → net → fine, rate → labour.
  4. Allocate the next sequence (and voucher_no when the caller sent none).
  5. Insert header + lines, commit once.

Posted vouchers are never updated or deleted (see ``models.transaction``);
``reverse_voucher`` posts a mirror voucher instead.
"""
from __future__ import annotations

import math
from datetime import date
from typing import Optional

from loguru import logger
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, col, func, select

from metal_ledger.core.config import settings
from metal_ledger.core.errors import (
    ConflictError,
    LedgerError,
    MissingReferenceError,
    NotFoundError,
    ValidationError,
)
from metal_ledger.engine.calculations import (
    MAX_AMOUNT,
    MAX_PERCENT,
    MAX_WEIGHT,
    compute_bhav_amount,
    compute_line,
    quantize_money,
    quantize_weight,
    round_money,
    round_weight,
)
from metal_ledger.engine.effects import effect_for
from metal_ledger.models.master import Item, Party
from metal_ledger.models.transaction import (
    VOUCHER_SEQUENCE,
    SequenceCounter,
    Voucher,
    VoucherLine,
)
from metal_ledger.schemas.requests import ReversalIn, VoucherIn, VoucherLineIn
from metal_ledger.schemas.responses import (
    VoucherDetail,
    VoucherLineRead,
    VoucherListResponse,
    VoucherRead,
)


# ── Validation ───────────────────────────────────────────────────────────────


def check_quantity(value: float, field: str, limit: float) -> None:
    """Reject NaN, infinities, negatives and magnitudes beyond ``limit``."""
    if not math.isfinite(value):
        raise ValidationError(f"{field} must be a finite number", field=field)
    if value < 0:
        raise ValidationError(f"{field} cannot be negative", field=field)
    if value > limit:
        raise ValidationError(f"{field} cannot exceed {limit:,.0f}", field=field)


def validate_line(line: VoucherLineIn, index: int) -> None:
    prefix = f"lines[{index}]"
    check_quantity(line.gross_weight, f"{prefix}.gross_weight", MAX_WEIGHT)
    check_quantity(line.less_weight, f"{prefix}.less_weight", MAX_WEIGHT)
    if line.gross_weight < line.less_weight:
        raise ValidationError(
            f"gross_weight {line.gross_weight:.3f} is below less_weight "
            f"{line.less_weight:.3f} (net weight would be negative)",
            field=f"{prefix}.gross_weight",
        )
    if not (0 <= line.purity <= 100):
        raise ValidationError("purity must be between 0 and 100", field=f"{prefix}.purity")
    check_quantity(line.wastage, f"{prefix}.wastage", MAX_PERCENT)
    check_quantity(line.labour_rate, f"{prefix}.labour_rate", MAX_AMOUNT)


def validate_voucher(data: VoucherIn) -> None:
    """Reject malformed input. Raises ``ValidationError``; never writes."""
    effect = effect_for(data.voucher_type)

    check_quantity(data.metal_rate, "metal_rate", MAX_AMOUNT)
    check_quantity(data.bhav_cutting_weight, "bhav_cutting_weight", MAX_WEIGHT)
    check_quantity(data.cash_received, "cash_received", MAX_AMOUNT)

    for index, line in enumerate(data.lines):
        validate_line(line, index)

    has_bhav = quantize_weight(data.bhav_cutting_weight) > 0
    if has_bhav and data.metal_rate <= 0:
        raise ValidationError(
            "bhav_cutting_weight needs a metal_rate greater than zero", field="metal_rate"
        )

    if data.cash_received > 0 and effect.cash_received is None:
        raise ValidationError(
            f"cash_received is not used by {data.voucher_type.value} vouchers",
            field="cash_received",
        )

    has_cash = quantize_money(data.cash_received) > 0
    if not data.lines and not has_bhav and not has_cash:
        raise ValidationError(
            "Voucher must contain at least one line or a bhav cutting", field="lines"
        )


# ── Sequence allocation ──────────────────────────────────────────────────────


def next_sequence(session: Session, name: str = VOUCHER_SEQUENCE) -> int:
    """
    Increment and return the named counter inside the caller's transaction.

    The UPDATE takes the write lock first, so concurrent posters serialise on
    the counter row instead of reading the same value. The row is seeded by
    ``create_db_and_tables``; the insert below only covers unseeded stores.
    """
    result = session.execute(
        update(SequenceCounter)
        .where(SequenceCounter.name == name)
        .values(current_value=SequenceCounter.current_value + 1)
    )
    if result.rowcount == 0:
        session.add(SequenceCounter(name=name, current_value=1))
        session.flush()
        return 1
    return session.exec(
        select(SequenceCounter.current_value).where(SequenceCounter.name == name)
    ).one()


def format_voucher_no(sequence: int) -> str:
    return f"{settings.VOUCHER_PREFIX}-{sequence:06d}"


def _voucher_no_taken(session: Session, voucher_no: str) -> Optional[int]:
    return session.exec(select(Voucher.id).where(Voucher.voucher_no == voucher_no)).first()


def _allocate(session: Session, voucher_no: Optional[str]) -> tuple[int, str]:
    """Return (sequence, voucher_no). Skips generated numbers a caller already used."""
    sequence = next_sequence(session)
    if voucher_no:
        return sequence, voucher_no
    candidate = format_voucher_no(sequence)
    while _voucher_no_taken(session, candidate) is not None:
        sequence = next_sequence(session)
        candidate = format_voucher_no(sequence)
    return sequence, candidate


def _reversed_by(session: Session, voucher_id: int) -> Optional[int]:
    return session.exec(select(Voucher.id).where(Voucher.reverses_id == voucher_id)).first()


def _store_rejection(
    session: Session,
    exc: IntegrityError,
    voucher_no: Optional[str],
    header: dict,
    item_ids: list[int],
) -> LedgerError:
    """
    Translate a constraint failure raised while writing a voucher. Runs after
    the rollback, so reference checks see the committed state that beat us.
    """
    detail = str(exc.orig)
    party_id = header["party_id"]
    if "FOREIGN KEY" in detail.upper():
        if session.exec(select(Party.id).where(Party.id == party_id)).first() is None:
            return MissingReferenceError("Party not found", field="party_id", ref_id=party_id)
        known = set(session.exec(select(Item.id).where(col(Item.id).in_(item_ids))).all())
        for index, item_id in enumerate(item_ids):
            if item_id not in known:
                return MissingReferenceError(
                    "Item not found", field=f"lines[{index}].item_id", ref_id=item_id
                )
        return MissingReferenceError(
            "Voucher references a record that no longer exists", field="party_id", ref_id=party_id
        )
    reverses_id = header.get("reverses_id")
    if reverses_id is not None and "reverses_id" in detail:
        return ConflictError(
            f"Voucher {reverses_id} is already reversed", field="voucher_id", ref_id=reverses_id
        )
    return ConflictError(
        f"Voucher '{voucher_no}' conflicts with an existing voucher", field="voucher_no"
    )


def _persist(
    session: Session,
    requested_no: Optional[str],
    header: dict,
    lines: list[dict],
) -> Voucher:
    """
    Allocate the sequence, insert header and lines, commit. Any constraint
    failure along the way rolls the whole unit back and surfaces as a typed error.
    """
    voucher_no = requested_no
    try:
        sequence, voucher_no = _allocate(session, requested_no)
        voucher = Voucher(voucher_no=voucher_no, sequence=sequence, **header)
        session.add(voucher)
        session.flush()
        for fields in lines:
            session.add(VoucherLine(voucher_id=voucher.id, **fields))
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        logger.warning(f"Voucher {voucher_no} rejected by store: {exc.orig}")
        raise _store_rejection(
            session, exc, voucher_no, header, [f["item_id"] for f in lines]
        ) from exc
    session.refresh(voucher)
    return voucher


# ── Posting ──────────────────────────────────────────────────────────────────


def post_voucher(session: Session, data: VoucherIn, posted_by: Optional[str] = None) -> Voucher:
    """Validate, derive and persist a voucher with all its lines atomically."""
    validate_voucher(data)

    party = session.get(Party, data.party_id)
    if not party:
        raise MissingReferenceError("Party not found", field="party_id", ref_id=data.party_id)

    item_ids = {line.item_id for line in data.lines}
    known = set(session.exec(select(Item.id).where(col(Item.id).in_(item_ids))).all()) if item_ids else set()
    for index, line in enumerate(data.lines):
        if line.item_id not in known:
            raise MissingReferenceError(
                "Item not found", field=f"lines[{index}].item_id", ref_id=line.item_id
            )

    if data.voucher_no:
        existing = _voucher_no_taken(session, data.voucher_no)
        if existing is not None:
            raise ConflictError(
                f"Voucher No '{data.voucher_no}' already exists",
                field="voucher_no",
                ref_id=existing,
            )

    figures = [
        compute_line(l.gross_weight, l.less_weight, l.purity, l.wastage, l.labour_rate)
        for l in data.lines
    ]
    metal_rate = quantize_money(data.metal_rate)
    bhav_weight = quantize_weight(data.bhav_cutting_weight)
    bhav_amount = compute_bhav_amount(bhav_weight, metal_rate)

    header = dict(
        voucher_type=data.voucher_type.value,
        voucher_date=data.voucher_date,
        party_id=party.id,
        narration=data.narration,
        metal_rate=float(metal_rate),
        bhav_cutting_weight=float(bhav_weight),
        bhav_cutting_amount=float(bhav_amount),
        cash_received=round_money(data.cash_received),
        total_fine_weight=round_weight(sum(f.fine_weight for f in figures)),
        total_amount=round_money(sum(f.line_amount for f in figures)),
        posted_by=posted_by,
    )
    lines = [
        dict(
            item_id=line.item_id,
            order=order,
            gross_weight=round_weight(line.gross_weight),
            less_weight=round_weight(line.less_weight),
            net_weight=float(fig.net_weight),
            purity=line.purity,
            wastage=line.wastage,
            fine_weight=float(fig.fine_weight),
            labour_rate=round_money(line.labour_rate),
            labour_amount=float(fig.labour_amount),
            line_amount=float(fig.line_amount),
        )
        for order, (line, fig) in enumerate(zip(data.lines, figures))
    ]

    voucher = _persist(session, data.voucher_no, header, lines)
    logger.info(
        f"Posted {voucher.voucher_type} {voucher.voucher_no} for party {party.unique_name}: "
        f"{len(figures)} lines, fine {voucher.total_fine_weight:.3f}, "
        f"amount {voucher.total_amount:.2f}, bhav {voucher.bhav_cutting_weight:.3f} "
        f"@ {voucher.metal_rate:.2f}"
    )
    return voucher


def reverse_voucher(
    session: Session,
    voucher_id: int,
    data: Optional[ReversalIn] = None,
    posted_by: Optional[str] = None,
) -> Voucher:
    """
    Post a voucher that cancels ``voucher_id``. Lines and bhav figures are
    copied exactly as posted; the effect table applies them with the opposite
    sign because ``reverses_id`` is set.
    """
    data = data or ReversalIn()
    original = get_voucher(session, voucher_id)
    if original.reverses_id is not None:
        raise ValidationError(
            f"Voucher {original.voucher_no} is itself a reversal", field="voucher_id", ref_id=voucher_id
        )
    already = _reversed_by(session, voucher_id)
    if already is not None:
        raise ConflictError(
            f"Voucher {original.voucher_no} is already reversed", field="voucher_id", ref_id=already
        )

    original_no = original.voucher_no
    header = dict(
        voucher_type=original.voucher_type,
        voucher_date=data.voucher_date or original.voucher_date,
        party_id=original.party_id,
        narration=data.narration or f"Reversal of {original_no}",
        metal_rate=original.metal_rate,
        bhav_cutting_weight=original.bhav_cutting_weight,
        bhav_cutting_amount=original.bhav_cutting_amount,
        cash_received=original.cash_received,
        total_fine_weight=original.total_fine_weight,
        total_amount=original.total_amount,
        reverses_id=original.id,
        posted_by=posted_by,
    )
    lines = [
        dict(
            item_id=line.item_id,
            order=line.order,
            gross_weight=line.gross_weight,
            less_weight=line.less_weight,
            net_weight=line.net_weight,
            purity=line.purity,
            wastage=line.wastage,
            fine_weight=line.fine_weight,
            labour_rate=line.labour_rate,
            labour_amount=line.labour_amount,
            line_amount=line.line_amount,
        )
        for line in get_voucher_lines(session, voucher_id)
    ]

    reversal = _persist(session, None, header, lines)
    logger.info(f"Posted {reversal.voucher_no} reversing {original_no}")
    return reversal


# ── Reads ────────────────────────────────────────────────────────────────────


def get_voucher(session: Session, voucher_id: int) -> Voucher:
    voucher = session.get(Voucher, voucher_id)
    if not voucher:
        raise NotFoundError("Voucher not found", ref_id=voucher_id)
    return voucher


def get_voucher_lines(session: Session, voucher_id: int) -> list[VoucherLine]:
    return list(
        session.exec(
            select(VoucherLine)
            .where(VoucherLine.voucher_id == voucher_id)
            .order_by(VoucherLine.order, VoucherLine.id)
        ).all()
    )


def voucher_detail(session: Session, voucher: Voucher) -> VoucherDetail:
    detail = VoucherDetail.model_validate(voucher)
    party = session.get(Party, voucher.party_id)
    detail.party_name = party.name if party else None

    rows = session.exec(
        select(VoucherLine, Item.name)
        .join(Item, VoucherLine.item_id == Item.id)
        .where(VoucherLine.voucher_id == voucher.id)
        .order_by(VoucherLine.order, VoucherLine.id)
    ).all()
    lines = []
    for line, item_name in rows:
        read = VoucherLineRead.model_validate(line)
        read.item_name = item_name
        lines.append(read)
    detail.lines = lines

    detail.reversed_by_id = _reversed_by(session, voucher.id)
    return detail


def list_vouchers(
    session: Session,
    voucher_type: Optional[str] = None,
    party_id: Optional[int] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    page: int = 1,
    page_size: int = 50,
) -> VoucherListResponse:
    stmt = select(Voucher)
    if voucher_type:
        stmt = stmt.where(func.upper(Voucher.voucher_type) == voucher_type.upper())
    if party_id:
        stmt = stmt.where(Voucher.party_id == party_id)
    if date_from:
        stmt = stmt.where(Voucher.voucher_date >= date_from)
    if date_to:
        stmt = stmt.where(Voucher.voucher_date <= date_to)

    total_stmt = select(func.count()).select_from(stmt.subquery())
    total = session.exec(total_stmt).one()

    stmt = stmt.order_by(col(Voucher.voucher_date).desc(), col(Voucher.sequence).desc())
    stmt = stmt.offset((page - 1) * page_size).limit(page_size)
    vouchers = session.exec(stmt).all()

    party_ids = {v.party_id for v in vouchers}
    names = (
        dict(session.exec(select(Party.id, Party.name).where(col(Party.id).in_(party_ids))).all())
        if party_ids
        else {}
    )
    items = []
    for v in vouchers:
        read = VoucherRead.model_validate(v)
        read.party_name = names.get(v.party_id)
        items.append(read)

    return VoucherListResponse(total=total, page=page, page_size=page_size, items=items)
