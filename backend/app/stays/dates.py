"""
Stay period inference for historical registry rows.

Registry rows carry any subset of: a day count, a check-in date/time, a
check-out date/time and a recorded total. ``infer_stay_period`` always returns
a period with check_out > check_in, falling back in this order:

    day count + dates  ->  dates only  ->  price-based night estimate
    ->  sentinel check-in (2022-01-01 12:00)

Derived instants are pinned to noon.
"""

from __future__ import annotations

import logging
import math
import random
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Any, Optional, Sequence

from backend.app.stays.config import MAX_ESTIMATED_NIGHTS, MAX_STAY_SPAN_DAYS, SENTINEL_CHECK_IN
from backend.app.stays.errors import DateParseError
from backend.app.stays.fields import clean_text
from backend.app.stays.gazetteer import fold_key

logger = logging.getLogger(__name__)

_DMY = re.compile(r"^(\d{1,2})[/\-.](\d{1,2})[/\-.](\d{2}|\d{4})(?:[ T]+(.+))?$")
_TIME = re.compile(
    r"^(\d{1,2})[:.h](\d{2})(?::(\d{2}))?(?:\.\d+)?\s*([ap])?\.?\s*(?:m\.?)?$",
    re.IGNORECASE,
)
_LEADING_INT = re.compile(r"^\s*(\d+)")


@dataclass(frozen=True)
class RoomRate:
    name: str
    price: float


@dataclass(frozen=True)
class StayPeriod:
    check_in: datetime
    check_out: datetime

    @property
    def nights(self) -> int:
        return calculate_nights(self.check_in, self.check_out)


def at_noon(value: datetime) -> datetime:
    return value.replace(hour=12, minute=0, second=0, microsecond=0)


# -------------------------
# Raw value parsing
# -------------------------

def parse_raw_time(raw: Any) -> Optional[time]:
    if isinstance(raw, datetime):
        return raw.time().replace(microsecond=0)
    if isinstance(raw, time):
        return raw.replace(microsecond=0, tzinfo=None)

    text = clean_text(raw)
    if text is None:
        return None

    match = _TIME.match(text)
    if not match:
        raise DateParseError(f"Invalid time: {text}")

    hour, minute = int(match.group(1)), int(match.group(2))
    second = int(match.group(3) or 0)
    meridiem = (match.group(4) or "").lower()
    if meridiem == "p" and hour < 12:
        hour += 12
    elif meridiem == "a" and hour == 12:
        hour = 0

    try:
        return time(hour, minute, second)
    except ValueError as exc:
        raise DateParseError(f"Invalid time: {text}") from exc


def _parse_date_text(text: str) -> datetime:
    match = _DMY.match(text)
    if match:
        day, month, year = (int(match.group(i)) for i in (1, 2, 3))
        if year < 100:
            year += 2000
        parsed = datetime(year, month, day)
        if match.group(4):
            clock = parse_raw_time(match.group(4))
            if clock is not None:
                parsed = datetime.combine(parsed.date(), clock)
        return parsed

    iso = text[:-1] if text.endswith("Z") else text
    parsed = datetime.fromisoformat(iso)
    return parsed.replace(tzinfo=None)


def parse_raw_date(raw_date: Any, raw_time: Any = None) -> datetime:
    """
    Combine a raw registry date (dd/mm/yyyy, ISO text, date or datetime) with
    an optional raw time. Raises DateParseError when the date is missing or
    unreadable.
    """
    if isinstance(raw_date, datetime):
        parsed = raw_date.replace(tzinfo=None, microsecond=0)
    elif isinstance(raw_date, date):
        parsed = datetime.combine(raw_date, time())
    else:
        text = clean_text(raw_date)
        if text is None:
            raise DateParseError("Date is required")
        try:
            parsed = _parse_date_text(text)
        except ValueError as exc:
            raise DateParseError(f"Invalid date: {text}") from exc

    clock = parse_raw_time(raw_time)
    if clock is not None:
        parsed = datetime.combine(parsed.date(), clock)
    return parsed


def _try_parse(raw_date: Any, raw_time: Any, label: str) -> Optional[datetime]:
    if clean_text(raw_date) is None and not isinstance(raw_date, date):
        return None
    try:
        return parse_raw_date(raw_date, raw_time)
    except DateParseError as exc:
        logger.warning("Ignoring unparsable %s date: %s", label, exc)
        return None


def parse_day_count(raw: Any) -> Optional[int]:
    if isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        days = int(raw)
    else:
        text = clean_text(raw)
        if text is None:
            return None
        match = _LEADING_INT.match(text)
        if not match:
            return None
        days = int(match.group(1))
    return days if days > 0 else None


def parse_amount(raw: Any) -> Optional[float]:
    """
    Parse a registry currency cell: "S/ 1.250,50", "25,84", "120", 99.5.
    Returns None when no number can be read.
    """
    if isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        return float(raw) if math.isfinite(raw) else None

    text = clean_text(raw)
    if text is None:
        return None

    text = re.sub(r"(?i)s/\.?|pen|soles", "", text)
    text = re.sub(r"\s+", "", text)
    text = re.sub(r"[^\d.,\-]", "", text)
    if not re.search(r"\d", text):
        return None

    if "," in text and "." in text:
        # whichever separator comes last is the decimal one
        if text.rfind(",") > text.rfind("."):
            text = text.replace(".", "").replace(",", ".")
        else:
            text = text.replace(",", "")
    elif text.count(",") > 1:
        text = text.replace(",", "")
    elif "," in text:
        text = text.replace(",", ".")
    elif text.count(".") > 1:
        text = text.replace(".", "")

    try:
        return float(text)
    except ValueError:
        return None


# -------------------------
# Inference
# -------------------------

def calculate_nights(check_in: datetime, check_out: datetime) -> int:
    seconds = (check_out - check_in).total_seconds()
    return max(1, math.ceil(seconds / 86400))


def estimate_nights(
    recorded_total: Optional[float],
    room_type_label: Optional[str],
    rates: Sequence[RoomRate],
) -> int:
    """
    floor(total / nightly price of the nearest room type), clamped to
    [1, MAX_ESTIMATED_NIGHTS]. The nearest type is the one whose name contains
    the raw label, else the one priced closest to the total.
    """
    if recorded_total is None or recorded_total <= 0:
        return 1

    candidates = list(rates)
    label = clean_text(room_type_label)
    if label:
        folded = fold_key(label)
        named = [rate for rate in candidates if folded in fold_key(rate.name)]
        if named:
            candidates = named

    candidates = [rate for rate in candidates if rate.price and rate.price > 0]
    if not candidates:
        return 1

    nearest = min(candidates, key=lambda rate: abs(rate.price - recorded_total))
    nights = math.floor(recorded_total / nearest.price)
    return max(1, min(nights, MAX_ESTIMATED_NIGHTS))


def infer_stay_period(
    *,
    day_count: Any = None,
    check_in_date: Any = None,
    check_in_time: Any = None,
    check_out_date: Any = None,
    check_out_time: Any = None,
    recorded_total: Optional[float] = None,
    room_type_label: Optional[str] = None,
    rates: Sequence[RoomRate] = (),
) -> StayPeriod:
    days = parse_day_count(day_count)
    check_in = _try_parse(check_in_date, check_in_time, "check-in")
    check_out = _try_parse(check_out_date, check_out_time, "check-out")

    if days is not None:
        if check_in and check_out:
            span = abs((check_out - check_in).total_seconds()) / 86400
            if span > MAX_STAY_SPAN_DAYS:
                logger.warning(
                    "Stay span of %.0f days is implausible; using day count %s",
                    span,
                    days,
                )
                check_out = at_noon(check_in + timedelta(days=days))
        elif check_in:
            check_out = at_noon(check_in + timedelta(days=days))
        elif check_out:
            check_in = at_noon(check_out - timedelta(days=days))
        else:
            check_in = SENTINEL_CHECK_IN
            check_out = at_noon(check_in + timedelta(days=days))
    else:
        if check_in and check_out:
            pass
        elif check_in:
            nights = estimate_nights(recorded_total, room_type_label, rates)
            check_out = at_noon(check_in + timedelta(days=nights))
        elif check_out:
            nights = estimate_nights(recorded_total, room_type_label, rates)
            check_in = at_noon(check_out - timedelta(days=nights))
        else:
            check_in = SENTINEL_CHECK_IN
            check_out = at_noon(check_in + timedelta(days=1))

    if check_out <= check_in:
        check_out = at_noon(check_in + timedelta(days=1))

    return StayPeriod(check_in=check_in, check_out=check_out)


def random_instant_between(
    start: datetime,
    end: datetime,
    rng: Optional[random.Random] = None,
) -> datetime:
    if end <= start:
        return start
    rng = rng or random
    offset = rng.uniform(0, (end - start).total_seconds())
    return min(end, max(start, (start + timedelta(seconds=offset)).replace(microsecond=0)))
