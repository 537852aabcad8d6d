"""
Shared pytest fixtures.

Environment variables are set before the app is imported so the module-level
engine and log sink point at a throwaway directory. Every test gets its own
in-memory database wired into the app through a dependency override.
"""
import os
import sys
import tempfile
from datetime import date

# Ensure metal_ledger package is importable when running pytest from project root
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

_tmp_dir = tempfile.mkdtemp()
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_tmp_dir, 'test.db')}"
os.environ["LOG_FILE"] = os.path.join(_tmp_dir, "test.log")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import Session, create_engine  # noqa: E402

from metal_ledger.core.database import (  # noqa: E402
    create_db_and_tables,
    enable_sqlite_foreign_keys,
    get_session,
)
from metal_ledger.engine import masters, vouchers  # noqa: E402
from metal_ledger.main import app  # noqa: E402
from metal_ledger.models.master import BalanceSide, GroupType  # noqa: E402
from metal_ledger.models.transaction import VoucherType  # noqa: E402
from metal_ledger.schemas.requests import (  # noqa: E402
    GroupIn,
    ItemIn,
    PartyIn,
    VoucherIn,
    VoucherLineIn,
)


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(eng)
    create_db_and_tables(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as s:
        yield s


@pytest.fixture
def client(engine):
    def _session_override():
        with Session(engine) as s:
            yield s

    app.dependency_overrides[get_session] = _session_override
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ── Builders ──────────────────────────────────────────────────────────────────


@pytest.fixture
def group(session):
    return masters.create_group(
        session, GroupIn(name="Sundry Debtors", group_type=GroupType.ASSET)
    )


@pytest.fixture
def make_party(session, group):
    counter = {"n": 0}

    def _make(
        name: str = None,
        metal: float = 0.0,
        metal_type: BalanceSide = BalanceSide.DR,
        cash: float = 0.0,
        cash_type: BalanceSide = BalanceSide.DR,
    ):
        counter["n"] += 1
        return masters.create_party(
            session,
            PartyIn(
                name=name or f"Party {counter['n']}",
                group_id=group.id,
                opening_metal_weight=metal,
                opening_metal_type=metal_type,
                opening_cash_value=cash,
                opening_cash_type=cash_type,
                wef_date=date(2024, 4, 1),
            ),
        )

    return _make


@pytest.fixture
def make_item(session):
    def _make(name: str = "22K Chain", purity: float = 91.6, opening: float = 0.0, **kwargs):
        return masters.create_item(
            session, ItemIn(name=name, purity=purity, opening_stock_weight=opening, **kwargs)
        )

    return _make


@pytest.fixture
def post(session):
    """Post a voucher with terse arguments: post(party, VoucherType.SALES, date, lines=[...])."""

    def _post(party, voucher_type, voucher_date, lines=(), **kwargs):
        return vouchers.post_voucher(
            session,
            VoucherIn(
                voucher_type=voucher_type,
                voucher_date=voucher_date,
                party_id=party.id,
                lines=[VoucherLineIn(**l) for l in lines],
                **kwargs,
            ),
        )

    return _post


def line(item, gross, less=0.0, purity=None, wastage=0.0, labour_rate=0.0) -> dict:
    return {
        "item_id": item.id,
        "gross_weight": gross,
        "less_weight": less,
        "purity": item.purity if purity is None else purity,
        "wastage": wastage,
        "labour_rate": labour_rate,
    }


SALES = VoucherType.SALES
PURCHASE = VoucherType.PURCHASE
ISSUE = VoucherType.ISSUE
RECEIPT = VoucherType.RECEIPT
