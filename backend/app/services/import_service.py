from __future__ import annotations

import logging
import time
from typing import Any, Dict, Iterator, List, Optional, Sequence

from fastapi import HTTPException
from sqlalchemy.orm import Session

from backend.app.db import row_transaction
from backend.app.integrations.spreadsheet import read_import_records
from backend.app.models import User
from backend.app.services import entity_resolution_service, record_service
from backend.app.stays import columns as col
from backend.app.stays.config import (
    IMPORT_MAX_ROWS,
    IMPORT_ROW_TIMEOUT_SECONDS,
    IMPORT_SUB_BATCH_SIZE,
)
from backend.app.stays.errors import ERROR_LABELS, categorize_error

logger = logging.getLogger(__name__)

ERROR_SAMPLE_LIMIT = 3


def chunked(rows: Sequence[Any], size: int) -> Iterator[Sequence[Any]]:
    for start in range(0, len(rows), size):
        yield rows[start:start + size]


def require_rows(rows: Sequence[Dict[str, Any]], *, limit: int = IMPORT_MAX_ROWS) -> None:
    if not rows:
        raise HTTPException(400, "no records to process")
    if len(rows) > limit:
        raise HTTPException(400, f"at most {limit} records per request (got {len(rows)})")


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


# -------------------------
# Reporting
# -------------------------

def build_error_summary(errors: Sequence[Dict[str, Any]]) -> Dict[str, Any]:
    counts: Dict[str, int] = {}
    samples: Dict[str, List[Dict[str, Any]]] = {}

    for entry in errors:
        category = entry.get("category") or "other"
        counts[category] = counts.get(category, 0) + 1
        bucket = samples.setdefault(category, [])
        if len(bucket) < ERROR_SAMPLE_LIMIT:
            data = entry.get("data")
            bucket.append({
                "record_index": entry.get("record_index"),
                "error": entry.get("error"),
                "sample_data": col.record_preview(data) if isinstance(data, dict) else None,
            })

    total = len(errors)
    return {
        "total_errors": total,
        "error_types": [
            {
                "type": category,
                "label": ERROR_LABELS.get(category, ERROR_LABELS["other"]),
                "count": count,
                "percentage": round(count / total * 100, 1),
                "samples": samples[category],
            }
            for category, count in counts.items()
        ],
    }


def build_normalization_report(
    *,
    total_records: int,
    processed: int,
    unnormalized: Sequence[str],
) -> Dict[str, Any]:
    if processed > 0:
        rate = f"{(processed - len(unnormalized)) / processed * 100:.1f}%"
    else:
        rate = "0%"
    return {
        "total_records": total_records,
        "nationalities_processed": processed,
        "unnormalized_count": len(unnormalized),
        "unnormalized_list": list(unnormalized),
        "normalization_rate": rate,
    }


# -------------------------
# Batch import
# -------------------------

def import_records(
    db: Session,
    rows: Sequence[Dict[str, Any]],
    user: User,
    batch_number: int = 1,
    total_batches: int = 1,
    *,
    rng=None,
) -> Dict[str, Any]:
    """
    Import up to IMPORT_MAX_ROWS registry rows.

    Rows run one at a time in sub-batches of IMPORT_SUB_BATCH_SIZE, each row in
    its own transaction. A failing row is recorded and skipped; it never
    aborts the batch. Re-imported stays are counted as skipped.
    """
    require_rows(rows)
    entity_resolution_service.require_import_catalog(db)
    catalog = record_service.ImportCatalog.load(db)

    started = time.monotonic()
    processed = successful = failed = skipped = 0
    errors: List[Dict[str, Any]] = []
    internal_batches: List[Dict[str, Any]] = []
    unnormalized: List[str] = []

    for sub_index, chunk in enumerate(chunked(rows, IMPORT_SUB_BATCH_SIZE), start=1):
        chunk_started = time.monotonic()
        stats = {"index": sub_index, "total_records": len(chunk), "successful": 0, "failed": 0, "skipped": 0}

        for offset, record in enumerate(chunk):
            record_index = (sub_index - 1) * IMPORT_SUB_BATCH_SIZE + offset

            observation = record_service.observe_nationality(record)
            if observation and not observation.origin.normalized and observation.raw not in unnormalized:
                unnormalized.append(observation.raw)

            try:
                with row_transaction(db, timeout_seconds=IMPORT_ROW_TIMEOUT_SECONDS):
                    record_service.import_record(db, record, user=user, catalog=catalog, rng=rng)
                successful += 1
                stats["successful"] += 1
            except Exception as exc:  # noqa: BLE001
                category = categorize_error(exc)
                if category == "duplicate":
                    skipped += 1
                    stats["skipped"] += 1
                    logger.info("Skipping row %s: %s", record_index + 1, exc)
                else:
                    failed += 1
                    stats["failed"] += 1
                    logger.error(
                        "Import failed for row %s (sub-batch %s): %s",
                        record_index + 1,
                        sub_index,
                        exc,
                        exc_info=category == "other",
                    )
                errors.append({
                    "record_index": record_index,
                    "internal_batch_index": sub_index,
                    "category": category,
                    "error": str(exc),
                    "data": dict(record),
                })
            processed += 1

        stats["processing_time_ms"] = _elapsed_ms(chunk_started)
        internal_batches.append(stats)

    logger.info(
        "Import batch %s/%s: processed=%s successful=%s failed=%s skipped=%s",
        batch_number,
        total_batches,
        processed,
        successful,
        failed,
        skipped,
    )

    return {
        "success": True,
        "processed": processed,
        "successful": successful,
        "failed": failed,
        "skipped": skipped,
        "errors": errors,
        "internal_batches": internal_batches,
        "unnormalized_nationalities": unnormalized,
        "summary": build_error_summary(errors),
        "normalization_report": build_normalization_report(
            total_records=len(rows),
            processed=processed,
            unnormalized=unnormalized,
        ),
        "batch_number": batch_number,
        "total_batches": total_batches,
        "processing_time_ms": _elapsed_ms(started),
    }


def import_spreadsheet(
    db: Session,
    payload: bytes,
    user: User,
    *,
    filename: Optional[str] = None,
    rng=None,
) -> Dict[str, Any]:
    """
    Import a whole registry workbook in IMPORT_MAX_ROWS outer batches. An
    empty catalog rejects the whole upload; an outer batch rejected on its own
    is recorded and the next one still runs.
    """
    rows = read_import_records(payload, filename=filename)
    entity_resolution_service.require_import_catalog(db)
    batches = list(chunked(rows, IMPORT_MAX_ROWS))

    merged: Dict[str, Any] = {
        "total_records": len(rows),
        "total_batches": len(batches),
        "processed": 0,
        "successful": 0,
        "failed": 0,
        "skipped": 0,
        "errors": [],
        "batches": [],
        "unnormalized_nationalities": [],
    }

    for batch_number, batch in enumerate(batches, start=1):
        offset = (batch_number - 1) * IMPORT_MAX_ROWS
        try:
            result = import_records(
                db,
                batch,
                user,
                batch_number=batch_number,
                total_batches=len(batches),
                rng=rng,
            )
        except HTTPException as exc:
            logger.error("Import batch %s rejected: %s", batch_number, exc.detail)
            merged["failed"] += len(batch)
            merged["processed"] += len(batch)
            merged["errors"].append({
                "record_index": offset,
                "internal_batch_index": None,
                "category": "other",
                "error": str(exc.detail),
                "data": None,
                "batch_number": batch_number,
                "records": len(batch),
            })
            merged["batches"].append({
                "batch_number": batch_number,
                "processed": len(batch),
                "successful": 0,
                "failed": len(batch),
                "skipped": 0,
                "error": str(exc.detail),
            })
            continue

        for key in ("processed", "successful", "failed", "skipped"):
            merged[key] += result[key]
        for entry in result["errors"]:
            merged["errors"].append({**entry, "record_index": entry["record_index"] + offset})
        for raw in result["unnormalized_nationalities"]:
            if raw not in merged["unnormalized_nationalities"]:
                merged["unnormalized_nationalities"].append(raw)
        merged["batches"].append({
            "batch_number": batch_number,
            "processed": result["processed"],
            "successful": result["successful"],
            "failed": result["failed"],
            "skipped": result["skipped"],
            "processing_time_ms": result["processing_time_ms"],
        })

    merged["success"] = True
    merged["message"] = (
        f"Import finished: {merged['successful']} imported, "
        f"{merged['failed']} failed, {merged['skipped']} skipped"
    )
    merged["summary"] = build_error_summary(merged["errors"])
    merged["normalization_report"] = build_normalization_report(
        total_records=len(rows),
        processed=merged["processed"],
        unnormalized=merged["unnormalized_nationalities"],
    )
    return merged
