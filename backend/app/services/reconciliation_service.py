"""
Locate and remove what a previous import created for a set of registry rows.

Responsibility:
- Resolve each row back to its guest (exact document, document spelling
  variants, then fuzzy name match) and to the imported stays whose check-in
  lies within the match window of the row's inferred check-in.
- Delete only those stays with their payment graph and CREATE audit entries.
  Guest master records are never deleted.
- Offer the same resolution read-only (analysis) and a full cleanup of every
  imported stay.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import delete, or_, select
from sqlalchemy.orm import Session

from backend.app.db import row_transaction
from backend.app.integrations.spreadsheet import read_import_records
from backend.app.models import (
    ORIGIN_IMPORTED,
    RESERVATION_CHECKED_OUT,
    Guest,
    Payment,
    PaymentLineItem,
    Reservation,
    User,
)
from backend.app.services import audit_service, entity_resolution_service, record_service
from backend.app.services.import_service import chunked, require_rows
from backend.app.stays import columns as col
from backend.app.stays.config import (
    DELETE_ROW_TIMEOUT_SECONDS,
    DELETE_SUB_BATCH_SIZE,
    NAME_MATCH_THRESHOLD,
)
from backend.app.stays.dates import RoomRate
from backend.app.stays.errors import InsufficientIdentityError, categorize_error
from backend.app.stays.fields import normalize_document_number, normalize_document_type
from backend.app.stays.matching import document_variants, name_similarity, normalize_name

logger = logging.getLogger(__name__)

FUZZY_CANDIDATE_LIMIT = 200
CLEANUP_ENTITY_ID = "CLEANUP_IMPORT"


def _empty_counts() -> Dict[str, int]:
    return {"guests": 0, "reservations": 0, "payments": 0, "line_items": 0, "audit_logs": 0}


# -------------------------
# Guest resolution
# -------------------------

def _guest_by_document(db: Session, document_number: str) -> Optional[Guest]:
    return db.execute(
        select(Guest).where(Guest.document_number == document_number)
    ).scalars().first()


def _fuzzy_candidates(db: Session, raw_name: str, raw_document: Optional[str]) -> List[Guest]:
    normalized = normalize_name(raw_name)
    conditions = [Guest.name.icontains(raw_name, autoescape=True)]
    if normalized:
        conditions.append(Guest.name.icontains(normalized, autoescape=True))
    if raw_document:
        conditions.append(Guest.document_number.contains(raw_document, autoescape=True))

    return list(
        db.execute(
            select(Guest).where(or_(*conditions)).order_by(Guest.created_at.asc()).limit(FUZZY_CANDIDATE_LIMIT)
        )
        .scalars()
        .all()
    )


def find_guest_for_record(db: Session, record: Dict[str, Any]) -> Tuple[Optional[Guest], Optional[str]]:
    """
    Returns (guest, how) where how is "document", "variant" or "name".
    Raises InsufficientIdentityError when the row has no guest name.
    """
    raw_name = col.cell_text(record, col.GUEST_NAME)
    if raw_name is None:
        raise InsufficientIdentityError("Insufficient data to identify the record: guest name is missing")

    raw_type = col.cell_text(record, col.DOCUMENT_TYPE)
    raw_document = col.cell_text(record, col.DOCUMENT_NUMBER)

    if raw_document is not None:
        document_type = normalize_document_type(raw_type)
        document_number = normalize_document_number(raw_document, document_type)
        guest = _guest_by_document(db, document_number)
        if guest:
            return guest, "document"

        for variant in document_variants(raw_document, document_type if raw_type else None):
            guest = _guest_by_document(db, variant)
            if guest:
                logger.info("Guest matched by document variant %s", variant)
                return guest, "variant"

    best: Optional[Guest] = None
    best_score = 0.0
    for candidate in _fuzzy_candidates(db, raw_name, raw_document):
        score = name_similarity(raw_name, candidate.name)
        if score > NAME_MATCH_THRESHOLD and score > best_score:
            best, best_score = candidate, score

    if best:
        logger.info("Guest matched by name: %s (score %.2f)", best.name, best_score)
        return best, "name"
    return None, None


def match_imported_stays(
    db: Session,
    record: Dict[str, Any],
    rates: Sequence[RoomRate],
) -> Tuple[Optional[Guest], List[Reservation]]:
    guest, _ = find_guest_for_record(db, record)
    if guest is None:
        return None, []
    period = record_service.infer_record_period(record, rates)
    reservations = record_service.find_imported_reservations(
        db,
        guest_id=guest.id,
        check_in=period.check_in,
    )
    return guest, reservations


# -------------------------
# Deletion
# -------------------------

def _delete_reservation_graph(db: Session, reservation_ids: Sequence[str]) -> Dict[str, int]:
    counts = _empty_counts()
    if not reservation_ids:
        return counts

    payment_ids = list(
        db.execute(select(Payment.id).where(Payment.reservation_id.in_(list(reservation_ids)))).scalars().all()
    )
    if payment_ids:
        counts["line_items"] = int(
            db.execute(
                delete(PaymentLineItem).where(PaymentLineItem.payment_id.in_(payment_ids))
            ).rowcount or 0
        )
        counts["payments"] = int(
            db.execute(delete(Payment).where(Payment.id.in_(payment_ids))).rowcount or 0
        )
    counts["reservations"] = int(
        db.execute(delete(Reservation).where(Reservation.id.in_(list(reservation_ids)))).rowcount or 0
    )
    counts["audit_logs"] = audit_service.delete_audit_events(
        db,
        entity_type=audit_service.ENTITY_RESERVATION,
        entity_ids=reservation_ids,
        action=audit_service.ACTION_CREATE,
    )
    return counts


def delete_record(
    db: Session,
    record: Dict[str, Any],
    user: User,
    rates: Sequence[RoomRate],
) -> Dict[str, Any]:
    guest, reservations = match_imported_stays(db, record, rates)
    if not reservations:
        return {"found": False, "guest_id": guest.id if guest else None, "reservation_ids": [], "deleted_counts": _empty_counts()}

    reservation_ids = [reservation.id for reservation in reservations]
    counts = _delete_reservation_graph(db, reservation_ids)
    for reservation_id in reservation_ids:
        audit_service.log_audit_event(
            db,
            entity_id=reservation_id,
            entity_type=audit_service.ENTITY_RESERVATION,
            action=audit_service.ACTION_DELETE,
            performed_by_id=user.id,
        )
    return {"found": True, "guest_id": guest.id, "reservation_ids": reservation_ids, "deleted_counts": counts}


def delete_imported_records(db: Session, rows: Sequence[Dict[str, Any]], user: User) -> Dict[str, Any]:
    require_rows(rows)
    rates = entity_resolution_service.list_room_rates(db)

    started = time.monotonic()
    processed = deleted = not_found = 0
    deleted_counts = _empty_counts()
    errors: List[Dict[str, Any]] = []
    internal_batches: List[Dict[str, Any]] = []

    for sub_index, chunk in enumerate(chunked(rows, DELETE_SUB_BATCH_SIZE), start=1):
        chunk_started = time.monotonic()
        stats = {"index": sub_index, "total_records": len(chunk), "deleted": 0, "not_found": 0, "failed": 0}

        for offset, record in enumerate(chunk):
            record_index = (sub_index - 1) * DELETE_SUB_BATCH_SIZE + offset
            try:
                with row_transaction(db, timeout_seconds=DELETE_ROW_TIMEOUT_SECONDS):
                    outcome = delete_record(db, record, user, rates)
            except Exception as exc:  # noqa: BLE001
                category = categorize_error(exc)
                stats["failed"] += 1
                errors.append({
                    "record_index": record_index,
                    "internal_batch_index": sub_index,
                    "category": category,
                    "error": str(exc),
                    "data": dict(record),
                })
                logger.error(
                    "Delete failed for row %s (sub-batch %s): %s",
                    record_index + 1,
                    sub_index,
                    exc,
                    exc_info=category == "other",
                )
            else:
                if outcome["found"]:
                    deleted += 1
                    stats["deleted"] += 1
                    for key, value in outcome["deleted_counts"].items():
                        deleted_counts[key] += value
                else:
                    not_found += 1
                    stats["not_found"] += 1
            processed += 1

        stats["processing_time_ms"] = int((time.monotonic() - chunk_started) * 1000)
        internal_batches.append(stats)

    logger.info(
        "Delete run: processed=%s deleted=%s not_found=%s failed=%s",
        processed,
        deleted,
        not_found,
        len(errors),
    )

    return {
        "success": True,
        "processed": processed,
        "deleted": deleted,
        "not_found": not_found,
        "errors": errors,
        "deleted_counts": deleted_counts,
        "internal_batches": internal_batches,
        "processing_time_ms": int((time.monotonic() - started) * 1000),
        "message": (
            f"Delete finished: {deleted} removed, {not_found} not found, {len(errors)} failed"
        ),
    }


def delete_spreadsheet(
    db: Session,
    payload: bytes,
    user: User,
    *,
    filename: Optional[str] = None,
) -> Dict[str, Any]:
    rows = read_import_records(payload, filename=filename)
    return delete_imported_records(db, rows, user)


# -------------------------
# Analysis
# -------------------------

def analyze_import(db: Session, rows: Sequence[Dict[str, Any]], user: User) -> Dict[str, Any]:
    """
    Read-only twin of the delete path: split rows into those whose stay is
    present in the store and those that are missing, with the reason.
    """
    require_rows(rows)
    rates = entity_resolution_service.list_room_rates(db)

    imported: List[Dict[str, Any]] = []
    missing: List[Dict[str, Any]] = []

    for index, record in enumerate(rows):
        row_number = index + 2  # header is row 1
        try:
            guest, reservations = match_imported_stays(db, record, rates)
        except InsufficientIdentityError:
            missing.append({**record, "_row_number": row_number, "_reason": "Insufficient data"})
            continue
        except Exception as exc:  # noqa: BLE001
            logger.error("Analysis failed for row %s: %s", row_number, exc)
            missing.append({**record, "_row_number": row_number, "_reason": f"Error: {exc}"})
            continue

        if guest is None:
            missing.append({**record, "_row_number": row_number, "_reason": "Guest not found"})
        elif not reservations:
            missing.append({**record, "_row_number": row_number, "_reason": "Reservation not found"})
        else:
            imported.append({
                **record,
                "_row_number": row_number,
                "_reservation_id": reservations[0].id,
                "_guest_id": guest.id,
            })

    total = len(rows)
    logger.info(
        "Import analysis by %s: %s rows, %s imported, %s missing",
        user.id,
        total,
        len(imported),
        len(missing),
    )
    return {
        "total": total,
        "imported": imported,
        "missing": missing,
        "imported_percentage": round(len(imported) / total * 100, 1),
    }


# -------------------------
# Cleanup
# -------------------------

def cleanup_imported_data(db: Session, user: User) -> Dict[str, Any]:
    """
    Remove every imported stay with its payment graph. Guests are kept.
    """
    reservation_ids = list(
        db.execute(
            select(Reservation.id).where(
                Reservation.origin_tag == ORIGIN_IMPORTED,
                Reservation.status == RESERVATION_CHECKED_OUT,
            )
        )
        .scalars()
        .all()
    )

    try:
        counts = _delete_reservation_graph(db, reservation_ids)
        audit_service.log_audit_event(
            db,
            entity_id=CLEANUP_ENTITY_ID,
            entity_type=audit_service.ENTITY_IMPORT,
            action=audit_service.ACTION_DELETE,
            performed_by_id=user.id,
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("Cleanup removed %s imported reservations", counts["reservations"])
    return {
        "success": True,
        "deleted_counts": counts,
        "message": f"Cleanup finished: {counts['reservations']} imported reservations removed",
    }
