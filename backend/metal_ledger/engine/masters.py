"""
Master registries: account groups, items and parties.

Plain keyed stores with uniqueness checks on create and referential checks on
delete. Deletes are pre-checked for a typed error; the RESTRICT foreign keys
underneath catch anything that slips in between the check and the commit.
"""
from __future__ import annotations

import math
from datetime import date
from typing import Optional

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from metal_ledger.core.errors import (
    ConflictError,
    LedgerError,
    MissingReferenceError,
    NotFoundError,
    ReferencedRecordError,
    ValidationError,
)
from metal_ledger.engine.calculations import MAX_AMOUNT, round_money, round_weight
from metal_ledger.models.master import AccountGroup, Item, Party
from metal_ledger.models.transaction import Voucher, VoucherLine
from metal_ledger.schemas.requests import GroupIn, ItemIn, PartyIn
from metal_ledger.schemas.responses import PartyRead


# ── helpers ──────────────────────────────────────────────────────────────────


def _commit(session: Session, on_integrity_error: LedgerError) -> None:
    """Commit, turning a storage-level constraint failure into a typed error."""
    try:
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        logger.warning(f"Constraint rejected write: {exc.orig}")
        raise on_integrity_error from exc


def _require_non_negative(value: Optional[float], field: str) -> None:
    if value is None:
        return
    if not math.isfinite(value):
        raise ValidationError(f"{field} must be a finite number", field=field)
    if value < 0:
        raise ValidationError(f"{field} cannot be negative", field=field)
    if value > MAX_AMOUNT:
        raise ValidationError(f"{field} cannot exceed {MAX_AMOUNT:,.0f}", field=field)


# ── Account groups ───────────────────────────────────────────────────────────


def create_group(session: Session, data: GroupIn) -> AccountGroup:
    existing = session.exec(select(AccountGroup).where(AccountGroup.name == data.name)).first()
    if existing:
        raise ConflictError(
            f"Account group '{data.name}' already exists", field="name", ref_id=existing.id
        )

    group = AccountGroup(
        name=data.name,
        group_type=data.group_type.value,
        description=data.description,
    )
    session.add(group)
    _commit(session, ConflictError(f"Account group '{data.name}' already exists", field="name"))
    session.refresh(group)
    logger.info(f"Created account group '{group.name}' ({group.group_type})")
    return group


def list_groups(session: Session) -> list[AccountGroup]:
    return list(session.exec(select(AccountGroup).order_by(AccountGroup.name)).all())


def get_group(session: Session, group_id: int) -> AccountGroup:
    group = session.get(AccountGroup, group_id)
    if not group:
        raise NotFoundError("Account group not found", ref_id=group_id)
    return group


def delete_group(session: Session, group_id: int) -> None:
    group = get_group(session, group_id)
    in_use = session.exec(select(Party.id).where(Party.group_id == group_id).limit(1)).first()
    if in_use is not None:
        raise ReferencedRecordError(
            f"Account group '{group.name}' is used by party {in_use}",
            field="group_id",
            ref_id=group_id,
        )
    session.delete(group)
    _commit(
        session,
        ReferencedRecordError(
            f"Account group '{group.name}' is still referenced", field="group_id", ref_id=group_id
        ),
    )
    logger.info(f"Deleted account group {group_id}")


# ── Items ────────────────────────────────────────────────────────────────────


def create_item(session: Session, data: ItemIn) -> Item:
    if not (0 <= data.purity <= 100):
        raise ValidationError("purity must be between 0 and 100", field="purity")
    _require_non_negative(data.opening_stock_weight, "opening_stock_weight")
    _require_non_negative(data.min_stock_level, "min_stock_level")
    _require_non_negative(data.max_stock_level, "max_stock_level")
    _require_non_negative(data.default_wastage, "default_wastage")
    _require_non_negative(data.labour_charge, "labour_charge")
    if data.max_stock_level is not None and data.max_stock_level < data.min_stock_level:
        raise ValidationError(
            "max_stock_level cannot be below min_stock_level", field="max_stock_level"
        )

    existing = session.exec(select(Item).where(Item.name == data.name)).first()
    if existing:
        raise ConflictError(f"Item '{data.name}' already exists", field="name", ref_id=existing.id)

    item = Item(
        name=data.name,
        metal=data.metal,
        purity=data.purity,
        unit=data.unit.value,
        opening_stock_weight=round_weight(data.opening_stock_weight),
        min_stock_level=round_weight(data.min_stock_level),
        max_stock_level=(
            round_weight(data.max_stock_level) if data.max_stock_level is not None else None
        ),
        default_wastage=data.default_wastage,
        labour_charge=round_money(data.labour_charge),
        remarks=data.remarks,
    )
    session.add(item)
    _commit(session, ConflictError(f"Item '{data.name}' already exists", field="name"))
    session.refresh(item)
    logger.info(
        f"Created item '{item.name}' ({item.metal} {item.purity}) "
        f"opening stock {item.opening_stock_weight:.3f}"
    )
    return item


def list_items(session: Session) -> list[Item]:
    return list(session.exec(select(Item).order_by(Item.name)).all())


def get_item(session: Session, item_id: int) -> Item:
    item = session.get(Item, item_id)
    if not item:
        raise NotFoundError("Item not found", ref_id=item_id)
    return item


def delete_item(session: Session, item_id: int) -> None:
    item = get_item(session, item_id)
    in_use = session.exec(
        select(VoucherLine.voucher_id).where(VoucherLine.item_id == item_id).limit(1)
    ).first()
    if in_use is not None:
        raise ReferencedRecordError(
            f"Item '{item.name}' is used by voucher {in_use}", field="item_id", ref_id=item_id
        )
    session.delete(item)
    _commit(
        session,
        ReferencedRecordError(f"Item '{item.name}' is still referenced", field="item_id", ref_id=item_id),
    )
    logger.info(f"Deleted item {item_id}")


# ── Parties ──────────────────────────────────────────────────────────────────


def describe_party(party: Party, group: Optional[AccountGroup]) -> PartyRead:
    read = PartyRead.model_validate(party)
    if group is not None:
        read.group_name = group.name
        read.group_type = group.group_type
    return read


def create_party(session: Session, data: PartyIn) -> PartyRead:
    group = session.get(AccountGroup, data.group_id)
    if not group:
        raise MissingReferenceError(
            "Account group not found", field="group_id", ref_id=data.group_id
        )
    _require_non_negative(data.opening_metal_weight, "opening_metal_weight")
    _require_non_negative(data.opening_cash_value, "opening_cash_value")

    unique_name = data.unique_name or data.name
    existing = session.exec(select(Party).where(Party.unique_name == unique_name)).first()
    if existing:
        raise ConflictError(
            f"Party '{unique_name}' already exists", field="unique_name", ref_id=existing.id
        )

    party = Party(
        name=data.name,
        unique_name=unique_name,
        group_id=group.id,
        address=data.address,
        city=data.city,
        phone=data.phone,
        opening_metal_weight=round_weight(data.opening_metal_weight),
        opening_metal_type=data.opening_metal_type.value,
        opening_cash_value=round_money(data.opening_cash_value),
        opening_cash_type=data.opening_cash_type.value,
        wef_date=data.wef_date or date.today(),
    )
    session.add(party)
    _commit(session, ConflictError(f"Party '{unique_name}' already exists", field="unique_name"))
    session.refresh(party)
    logger.info(
        f"Created party '{party.unique_name}' in '{group.name}': opening "
        f"{party.opening_metal_weight:.3f} {party.opening_metal_type} / "
        f"{party.opening_cash_value:.2f} {party.opening_cash_type}"
    )
    return describe_party(party, group)


def list_parties(session: Session, group_id: Optional[int] = None) -> list[PartyRead]:
    stmt = select(Party, AccountGroup).join(AccountGroup, Party.group_id == AccountGroup.id)
    if group_id:
        stmt = stmt.where(Party.group_id == group_id)
    stmt = stmt.order_by(Party.name, Party.id)
    return [describe_party(p, g) for p, g in session.exec(stmt).all()]


def get_party(session: Session, party_id: int) -> Party:
    party = session.get(Party, party_id)
    if not party:
        raise NotFoundError("Party not found", ref_id=party_id)
    return party


def read_party(session: Session, party_id: int) -> PartyRead:
    party = get_party(session, party_id)
    return describe_party(party, session.get(AccountGroup, party.group_id))


def delete_party(session: Session, party_id: int) -> None:
    party = get_party(session, party_id)
    in_use = session.exec(select(Voucher.id).where(Voucher.party_id == party_id).limit(1)).first()
    if in_use is not None:
        raise ReferencedRecordError(
            f"Party '{party.unique_name}' is used by voucher {in_use}",
            field="party_id",
            ref_id=party_id,
        )
    session.delete(party)
    _commit(
        session,
        ReferencedRecordError(
            f"Party '{party.unique_name}' is still referenced", field="party_id", ref_id=party_id
        ),
    )
    logger.info(f"Deleted party {party_id}")
