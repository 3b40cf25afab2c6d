"""
Payment distribution for imported stays.

A registry row only records what the guest paid in total. The stay is
rebuilt as:

    ROOM (nightly price x nights)
    + breakfasts (at most one per night)
    + commercial products, cheapest first (at most MAX_PRODUCT_UNITS each)
    + whatever is left, added to the last charge as "+ ajuste"
    + a zero-cost DOCUMENT_FEE line when the row names a receipt type

Amounts are computed in integer cents so the line subtotals always add up
to the payment amount.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence, Tuple

from backend.app.stays.config import MAX_PRODUCT_UNITS
from backend.app.stays.dates import parse_amount
from backend.app.stays.errors import PriceParseError

logger = logging.getLogger(__name__)

KIND_ROOM = "ROOM"
KIND_SERVICE = "SERVICE"
KIND_PRODUCT = "PRODUCT"
KIND_DOCUMENT_FEE = "DOCUMENT_FEE"

ADJUSTMENT_SUFFIX = " + ajuste"


@dataclass(frozen=True)
class CatalogItem:
    ref_id: Optional[str]
    name: str
    price: float


@dataclass
class LineItemDraft:
    kind: str
    description: str
    unit_price: float
    quantity: int
    subtotal: float
    ref_id: Optional[str] = None
    document_type: Optional[str] = None


@dataclass
class Distribution:
    amount: float
    room_total: float
    lines: List[LineItemDraft] = field(default_factory=list)

    @property
    def allocated(self) -> float:
        return round(sum(line.subtotal for line in self.lines), 2)


def _cents(value: float) -> int:
    return int(round(value * 100))


def _money(cents: int) -> float:
    return round(cents / 100, 2)


def resolve_recorded_total(raw_price: Any, nightly_price: float, nights: int) -> Tuple[float, bool]:
    """
    Returns (amount, used_fallback). Unreadable or non-positive totals fall
    back to nightly price x nights.
    """
    amount = parse_amount(raw_price)
    if amount is not None and amount > 0:
        return round(amount, 2), False

    fallback = round(nightly_price * nights, 2)
    if fallback <= 0:
        raise PriceParseError(
            f"No usable total in {raw_price!r} and no nightly price to fall back on"
        )
    logger.warning(
        "Invalid recorded total %r; using room price %.2f x %s night(s)",
        raw_price,
        nightly_price,
        nights,
    )
    return fallback, True


def distribute_payment(
    *,
    recorded_total: float,
    nightly_price: float,
    nights: int,
    room_label: str,
    breakfast: Optional[CatalogItem] = None,
    products: Sequence[CatalogItem] = (),
    receipt_type: Optional[str] = None,
) -> Distribution:
    nights = max(1, int(nights))
    total_cents = _cents(recorded_total)
    nightly_cents = _cents(nightly_price)
    room_cents = nightly_cents * nights

    lines: List[LineItemDraft] = []
    cents_by_line: List[int] = []

    def emit(line: LineItemDraft, cents: int) -> None:
        lines.append(line)
        cents_by_line.append(cents)

    room_description = f"Habitación {room_label} - {nights} noche(s)"
    charged_room = room_cents
    if total_cents < room_cents:
        charged_room = total_cents
        room_description += f" (descuento {_money(room_cents - total_cents):.2f})"
    emit(
        LineItemDraft(
            kind=KIND_ROOM,
            description=room_description,
            unit_price=_money(nightly_cents),
            quantity=nights,
            subtotal=_money(charged_room),
        ),
        charged_room,
    )

    remaining = total_cents - charged_room

    if remaining > 0 and breakfast is not None and _cents(breakfast.price) > 0:
        price = _cents(breakfast.price)
        count = min(remaining // price, nights)
        if count > 0:
            emit(
                LineItemDraft(
                    kind=KIND_SERVICE,
                    description=f"{breakfast.name} - {count} día(s)",
                    unit_price=_money(price),
                    quantity=count,
                    subtotal=_money(price * count),
                    ref_id=breakfast.ref_id,
                ),
                price * count,
            )
            remaining -= price * count

    for product in sorted(products, key=lambda item: item.price):
        if remaining <= 0:
            break
        cost = _cents(product.price)
        if cost <= 0:
            continue
        quantity = min(remaining // cost, MAX_PRODUCT_UNITS)
        if quantity <= 0:
            continue
        emit(
            LineItemDraft(
                kind=KIND_PRODUCT,
                description=f"{product.name} - {quantity} unidad(es)",
                unit_price=_money(cost),
                quantity=quantity,
                subtotal=_money(cost * quantity),
                ref_id=product.ref_id,
            ),
            cost * quantity,
        )
        remaining -= cost * quantity

    if remaining > 0:
        last = lines[-1]
        cents_by_line[-1] += remaining
        last.subtotal = _money(cents_by_line[-1])
        last.description += ADJUSTMENT_SUFFIX

    if receipt_type:
        lines.append(
            LineItemDraft(
                kind=KIND_DOCUMENT_FEE,
                description=f"Documento: {receipt_type}",
                unit_price=0.0,
                quantity=1,
                subtotal=0.0,
                document_type=receipt_type,
            )
        )

    return Distribution(
        amount=_money(total_cents),
        room_total=_money(room_cents),
        lines=lines,
    )
