"""
Row-level failures raised while importing or reconciling a registry row.

Each class carries a ``category`` used by the batch orchestrators to build
the error taxonomy. Anything else that escapes a row is reported as "other".
"""

from __future__ import annotations

from typing import Dict


class ImportRowError(ValueError):
    category = "other"


class InsufficientIdentityError(ImportRowError):
    category = "insufficient_identity"


class RoomNotFoundError(ImportRowError):
    category = "room_not_found"


class StaffNotFoundError(ImportRowError):
    category = "staff_not_found"


class DateParseError(ImportRowError):
    category = "date_parse"


class PriceParseError(ImportRowError):
    category = "price_parse"


class DuplicateRecordError(ImportRowError):
    """
    The guest already has an imported stay whose check-in lies within
    RESERVATION_MATCH_WINDOW_HOURS of the row's. A known document on a
    different date is a returning guest, not a duplicate.
    """
    category = "duplicate"


ERROR_LABELS: Dict[str, str] = {
    "insufficient_identity": "Incomplete guest identity",
    "room_not_found": "Room not found",
    "staff_not_found": "Staff not found",
    "date_parse": "Invalid date",
    "price_parse": "Invalid price",
    "duplicate": "Duplicate record",
    "other": "Other errors",
}


def categorize_error(exc: BaseException) -> str:
    category = getattr(exc, "category", None)
    return category if category in ERROR_LABELS else "other"
