from __future__ import annotations

import os
import time
from contextlib import contextmanager
from typing import Iterator

from dotenv import load_dotenv
from sqlalchemy import create_engine, text
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

load_dotenv()


class TransactionTimeout(RuntimeError):
    pass


def _get_database_url() -> str:
    database_url = os.getenv("DATABASE_URL") or os.getenv("SQLALCHEMY_DATABASE_URL")
    if not database_url:
        raise RuntimeError(
            "DATABASE_URL or SQLALCHEMY_DATABASE_URL must be set to create the database engine."
        )
    return database_url


def _build_engine(database_url: str):
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(database_url, future=True, connect_args=connect_args)


DATABASE_URL = _get_database_url()
engine = _build_engine(DATABASE_URL)

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


class Base(DeclarativeBase):
    pass


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def row_transaction(db: Session, *, timeout_seconds: float) -> Iterator[Session]:
    """
    Unit of work for a single imported row.

    Commits when the block finishes inside the time budget, rolls back on any
    error or when the budget is exceeded. Anything pending on the session
    before entering is committed first so a rollback never reaches into
    earlier rows.
    """
    if db.new or db.dirty or db.deleted:
        db.commit()

    if db.get_bind().dialect.name == "postgresql":
        db.execute(text(f"SET LOCAL statement_timeout = {int(timeout_seconds * 1000)}"))

    started = time.monotonic()
    try:
        yield db
        elapsed = time.monotonic() - started
        if elapsed > timeout_seconds:
            raise TransactionTimeout(
                f"row transaction exceeded {timeout_seconds:.0f}s (took {elapsed:.1f}s)"
            )
        db.commit()
    except Exception:
        db.rollback()
        raise
