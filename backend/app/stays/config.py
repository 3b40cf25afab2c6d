from __future__ import annotations

import os
from datetime import datetime


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return float(raw)


# Batch shape
IMPORT_MAX_ROWS = _int_env("IMPORT_MAX_ROWS", 1000)
IMPORT_SUB_BATCH_SIZE = _int_env("IMPORT_SUB_BATCH_SIZE", 25)
DELETE_SUB_BATCH_SIZE = _int_env("DELETE_SUB_BATCH_SIZE", 10)

# Per-row transaction budgets
IMPORT_ROW_TIMEOUT_SECONDS = _float_env("IMPORT_ROW_TIMEOUT_SECONDS", 300.0)
DELETE_ROW_TIMEOUT_SECONDS = _float_env("DELETE_ROW_TIMEOUT_SECONDS", 180.0)

# Date heuristics for corrupted registry rows (tunable, not business rules)
MAX_STAY_SPAN_DAYS = _int_env("MAX_STAY_SPAN_DAYS", 365)
MAX_ESTIMATED_NIGHTS = _int_env("MAX_ESTIMATED_NIGHTS", 30)
SENTINEL_CHECK_IN = datetime(2022, 1, 1, 12, 0, 0)

# Payment distribution
MAX_PRODUCT_UNITS = _int_env("MAX_PRODUCT_UNITS", 5)
BREAKFAST_KEYWORDS = ("desayuno", "breakfast")

# Identity
NAME_MATCH_THRESHOLD = _float_env("NAME_MATCH_THRESHOLD", 0.7)
UNIQUE_DOCUMENT_ATTEMPTS = _int_env("UNIQUE_DOCUMENT_ATTEMPTS", 10)
UNIQUE_RETRY_BACKOFF_SECONDS = _float_env("UNIQUE_RETRY_BACKOFF_SECONDS", 0.0)
RESERVATION_MATCH_WINDOW_HOURS = _int_env("RESERVATION_MATCH_WINDOW_HOURS", 24)
