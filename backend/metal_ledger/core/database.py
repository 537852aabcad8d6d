"""SQLModel database engine and session management."""
from typing import Optional

from loguru import logger
from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlmodel import SQLModel, create_engine, Session, select
from metal_ledger.core.config import settings

# Import models so SQLModel.metadata knows about all tables
import metal_ledger.models.master  # noqa: F401
from metal_ledger.models.transaction import VOUCHER_SEQUENCE, SequenceCounter


def enable_sqlite_foreign_keys(target: Engine) -> None:
    """
    SQLite ships with foreign keys off. Turn them on for every new connection
    so a party/item/group delete racing a voucher post fails at the storage layer.
    """
    if target.dialect.name != "sqlite":
        return

    @event.listens_for(target, "connect")
    def _set_pragma(dbapi_connection, connection_record):  # noqa: ARG001
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def _connect_args(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


engine = create_engine(
    settings.DATABASE_URL,
    connect_args=_connect_args(settings.DATABASE_URL),
    echo=False,
)
enable_sqlite_foreign_keys(engine)


def seed_sequences(target: Engine) -> None:
    """Create the voucher counter row up front so first posts only ever UPDATE it."""
    with Session(target) as session:
        stmt = select(SequenceCounter).where(SequenceCounter.name == VOUCHER_SEQUENCE)
        if session.exec(stmt).first() is not None:
            return
        session.add(SequenceCounter(name=VOUCHER_SEQUENCE, current_value=0))
        try:
            session.commit()
        except IntegrityError:
            # another process seeded it first
            session.rollback()
            logger.debug("Voucher sequence already seeded")


def create_db_and_tables(target: Optional[Engine] = None) -> None:
    """Create all tables defined in SQLModel models and seed the counters."""
    target = target or engine
    SQLModel.metadata.create_all(target)
    seed_sequences(target)


def get_session():
    """FastAPI dependency: yields a SQLModel session."""
    with Session(engine) as session:
        yield session
