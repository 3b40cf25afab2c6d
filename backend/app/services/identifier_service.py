from __future__ import annotations

import logging
import re
import time
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from backend.app.models import Guest, Payment
from backend.app.stays.config import UNIQUE_DOCUMENT_ATTEMPTS, UNIQUE_RETRY_BACKOFF_SECONDS
from backend.app.stays.fields import (
    TEMP_DOCUMENT_PREFIX,
    generate_temporary_document_number,
    is_temporary_document,
)

logger = logging.getLogger(__name__)

PAYMENT_CODE_PREFIX = "PAG"
PAYMENT_CODE_ATTEMPTS = 1000


def retry_unique(
    generate: Callable[[int], str],
    is_taken: Callable[[str], bool],
    *,
    attempts: int,
    backoff_seconds: float = 0.0,
    fallback: Optional[Callable[[], str]] = None,
) -> str:
    """
    Call generate(attempt) until it yields a value is_taken() rejects no more.
    After `attempts` misses the fallback value is returned unchecked, or
    RuntimeError is raised when there is no fallback.
    """
    for attempt in range(attempts):
        candidate = generate(attempt)
        if not is_taken(candidate):
            return candidate
        if backoff_seconds:
            time.sleep(backoff_seconds)

    if fallback is None:
        raise RuntimeError(f"no unique value found after {attempts} attempts")
    value = fallback()
    logger.warning("Unique value not found after %s attempts; using fallback %s", attempts, value)
    return value


# -------------------------
# Guest documents
# -------------------------

def document_number_taken(db: Session, document_number: str) -> bool:
    return db.execute(
        select(Guest.id).where(Guest.document_number == document_number)
    ).first() is not None


def _timestamp_document() -> str:
    return f"{TEMP_DOCUMENT_PREFIX}{str(int(time.time() * 1000))[-8:]}"


def ensure_unique_document_number(db: Session, document_number: str) -> str:
    """
    Synthetic TEMP_ numbers must not collide with an existing guest; real
    document numbers are returned as-is (they identify the guest).
    """
    if not is_temporary_document(document_number):
        return document_number

    return retry_unique(
        lambda attempt: document_number if attempt == 0 else generate_temporary_document_number(),
        lambda candidate: document_number_taken(db, candidate),
        attempts=UNIQUE_DOCUMENT_ATTEMPTS,
        backoff_seconds=UNIQUE_RETRY_BACKOFF_SECONDS,
        fallback=_timestamp_document,
    )


# -------------------------
# Payment codes
# -------------------------

def _payment_prefix(year: int) -> str:
    return f"{PAYMENT_CODE_PREFIX}-{year}-"


def last_payment_number(db: Session, year: int) -> int:
    prefix = _payment_prefix(year)
    # longest code first so PAG-2023-1000 sorts above PAG-2023-999
    code = db.execute(
        select(Payment.code)
        .where(Payment.code.like(f"{prefix}%"))
        .order_by(func.length(Payment.code).desc(), Payment.code.desc())
        .limit(1)
    ).scalar_one_or_none()
    if not code:
        return 0
    match = re.fullmatch(rf"{re.escape(prefix)}(\d+)", code)
    return int(match.group(1)) if match else 0


def payment_code_taken(db: Session, code: str) -> bool:
    return db.execute(select(Payment.id).where(Payment.code == code)).first() is not None


def generate_payment_code(db: Session, payment_date: datetime) -> str:
    """
    Next sequential "PAG-<year>-<NNN>" code for the year of payment_date.
    """
    prefix = _payment_prefix(payment_date.year)
    start = last_payment_number(db, payment_date.year) + 1
    return retry_unique(
        lambda attempt: f"{prefix}{start + attempt:03d}",
        lambda candidate: payment_code_taken(db, candidate),
        attempts=PAYMENT_CODE_ATTEMPTS,
    )
