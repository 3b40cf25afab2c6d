from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.app.models import (
    ORIGIN_IMPORTED,
    RESERVATION_CHECKED_OUT,
    Guest,
    Payment,
    PaymentLineItem,
    Reservation,
    User,
)
from backend.app.services import audit_service, entity_resolution_service, identifier_service
from backend.app.stays import columns as col
from backend.app.stays.allocation import (
    CatalogItem,
    Distribution,
    distribute_payment,
    resolve_recorded_total,
)
from backend.app.stays.config import RESERVATION_MATCH_WINDOW_HOURS
from backend.app.stays.dates import RoomRate, StayPeriod, infer_stay_period, parse_amount, random_instant_between
from backend.app.stays.errors import DuplicateRecordError, InsufficientIdentityError
from backend.app.stays.fields import (
    OriginResult,
    build_companions,
    classify_origin,
    is_temporary_document,
    normalize_blacklist,
    normalize_document_number,
    normalize_document_type,
    normalize_marital_status,
    normalize_payment_method,
    normalize_phone,
    normalize_receipt_type,
    validate_ruc,
)

logger = logging.getLogger(__name__)


@dataclass
class ImportCatalog:
    """
    Reference data that stays fixed for the duration of a batch.
    """
    rates: List[RoomRate] = field(default_factory=list)
    breakfast: Optional[CatalogItem] = None
    products: List[CatalogItem] = field(default_factory=list)

    @classmethod
    def load(cls, db: Session) -> "ImportCatalog":
        return cls(
            rates=entity_resolution_service.list_room_rates(db),
            breakfast=entity_resolution_service.find_breakfast_service(db),
            products=entity_resolution_service.list_commercial_products(db),
        )


@dataclass
class RecordOutcome:
    guest_id: str
    reservation_id: str
    payment_id: str
    payment_code: str
    amount: float
    line_item_count: int
    guest_created: bool
    period: StayPeriod


@dataclass(frozen=True)
class NationalityObservation:
    raw: str
    origin: OriginResult


def infer_record_period(record: Dict[str, Any], rates: Sequence[RoomRate]) -> StayPeriod:
    return infer_stay_period(
        day_count=col.cell(record, col.NIGHTS),
        check_in_date=col.cell(record, col.CHECK_IN_DATE),
        check_in_time=col.cell(record, col.CHECK_IN_TIME),
        check_out_date=col.cell(record, col.CHECK_OUT_DATE),
        check_out_time=col.cell(record, col.CHECK_OUT_TIME),
        recorded_total=parse_amount(col.cell(record, col.PRICE)),
        room_type_label=col.cell_text(record, col.ROOM_TYPE),
        rates=rates,
    )


def observe_nationality(record: Dict[str, Any]) -> Optional[NationalityObservation]:
    raw = col.cell_text(record, col.NATIONALITY)
    if raw is None:
        return None
    origin = classify_origin(raw, col.cell_text(record, col.DOCUMENT_TYPE))
    if not origin.normalized:
        logger.warning("Unnormalized nationality: %r", raw)
    return NationalityObservation(raw=raw, origin=origin)


# -------------------------
# Guest
# -------------------------

def _find_or_create_guest(
    db: Session,
    record: Dict[str, Any],
    *,
    check_in: datetime,
) -> Tuple[Guest, bool]:
    name = col.cell_text(record, col.GUEST_NAME)
    raw_type = col.cell_text(record, col.DOCUMENT_TYPE)
    document_type = normalize_document_type(raw_type)
    document_number = normalize_document_number(col.cell(record, col.DOCUMENT_NUMBER), document_type)

    if is_temporary_document(document_number):
        document_type = "DNI"
        document_number = identifier_service.ensure_unique_document_number(db, document_number)

    if not name or not document_number:
        raise InsufficientIdentityError(
            f"Insufficient guest identity: name={name!r}, document={document_number!r}"
        )

    guest = db.execute(
        select(Guest).where(Guest.document_number == document_number)
    ).scalars().first()
    if guest:
        return guest, False

    origin = classify_origin(col.cell_text(record, col.NATIONALITY), raw_type)
    guest = Guest(
        name=name,
        document_type=document_type,
        document_number=document_number,
        address=col.cell_text(record, col.ADDRESS),
        phone=normalize_phone(col.cell(record, col.PHONE)),
        occupation=col.cell_text(record, col.OCCUPATION),
        email=col.cell_text(record, col.EMAIL),
        marital_status=normalize_marital_status(col.cell(record, col.MARITAL_STATUS)),
        company_name=col.cell_text(record, col.COMPANY_NAME),
        ruc=validate_ruc(col.cell(record, col.RUC)),
        company_address=col.cell_text(record, col.COMPANY_ADDRESS),
        country=origin.country,
        department=origin.department,
        is_blacklisted=normalize_blacklist(col.cell(record, col.BLACKLIST)),
        must_complete_data=True,
        is_active=True,
        created_at=check_in,
    )
    db.add(guest)
    db.flush()
    return guest, True


def find_imported_reservations(
    db: Session,
    *,
    guest_id: str,
    check_in: datetime,
) -> List[Reservation]:
    """
    Imported, checked-out stays of the guest whose check-in falls within the
    match window around check_in.
    """
    window = timedelta(hours=RESERVATION_MATCH_WINDOW_HOURS)
    return list(
        db.execute(
            select(Reservation)
            .where(
                Reservation.guest_id == guest_id,
                Reservation.origin_tag == ORIGIN_IMPORTED,
                Reservation.status == RESERVATION_CHECKED_OUT,
                Reservation.check_in >= check_in - window,
                Reservation.check_in <= check_in + window,
            )
            .order_by(Reservation.check_in.asc())
        )
        .scalars()
        .all()
    )


# -------------------------
# Payment
# -------------------------

def _persist_payment(
    db: Session,
    *,
    reservation: Reservation,
    distribution: Distribution,
    method: str,
    period: StayPeriod,
    rng,
) -> Payment:
    payment = Payment(
        code=identifier_service.generate_payment_code(db, period.check_in),
        reservation_id=reservation.id,
        amount=distribution.amount,
        amount_paid=distribution.amount,
        status="PAID",
        date=random_instant_between(period.check_in, period.check_out, rng),
        created_at=random_instant_between(period.check_in, period.check_out, rng),
    )
    db.add(payment)
    db.flush()

    for draft in distribution.lines:
        paid_at = random_instant_between(period.check_in, period.check_out, rng)
        db.add(
            PaymentLineItem(
                payment_id=payment.id,
                kind=draft.kind,
                description=draft.description,
                method=method,
                status="PAID",
                unit_price=draft.unit_price,
                quantity=draft.quantity,
                subtotal=draft.subtotal,
                ref_id=draft.ref_id,
                document_type=draft.document_type,
                paid_at=paid_at,
                created_at=paid_at,
            )
        )
    db.flush()
    return payment


def import_record(
    db: Session,
    record: Dict[str, Any],
    *,
    user: User,
    catalog: ImportCatalog,
    rng=None,
) -> RecordOutcome:
    """
    Create guest (if new), reservation, payment and line items for one row.

    Runs inside the caller's row transaction; any exception leaves nothing
    behind once the caller rolls back.
    """
    rng = rng or random

    if col.is_corrupt_record(record):
        logger.warning("Row looks like a repeated header block; processing anyway")

    period = infer_record_period(record, catalog.rates)
    guest, guest_created = _find_or_create_guest(db, record, check_in=period.check_in)

    if not guest_created:
        existing = find_imported_reservations(db, guest_id=guest.id, check_in=period.check_in)
        if existing:
            raise DuplicateRecordError(
                f"Stay already imported for document {guest.document_number} "
                f"within {RESERVATION_MATCH_WINDOW_HOURS}h of {period.check_in:%d/%m/%Y %H:%M}"
            )

    nights = period.nights
    recorded_total = parse_amount(col.cell(record, col.PRICE))
    room = entity_resolution_service.resolve_room(
        db,
        room_number=col.cell(record, col.ROOM_NUMBER),
        room_type_label=col.cell_text(record, col.ROOM_TYPE),
        recorded_total=recorded_total,
        nights=nights,
        rng=rng,
    )
    staff = entity_resolution_service.resolve_staff(db, col.cell(record, col.RECEPTIONIST), rng=rng)

    reservation = Reservation(
        guest_id=guest.id,
        room_id=room.id,
        user_id=staff.id,
        reservation_date=period.check_in,
        check_in=period.check_in,
        check_out=period.check_out,
        status=RESERVATION_CHECKED_OUT,
        origin_tag=ORIGIN_IMPORTED,
        origin=col.cell_text(record, col.ORIGIN),
        reason=col.cell_text(record, col.TRAVEL_REASON),
        companions=build_companions(
            col.cell(record, col.COMPANION),
            col.cell(record, col.COMPANION_DOCUMENT),
        ),
        observations=col.cell_text(record, col.OBSERVATIONS),
        is_active=False,
        created_at=period.check_in,
    )
    db.add(reservation)
    db.flush()

    nightly_price = float(room.room_type.price)
    amount, _ = resolve_recorded_total(col.cell(record, col.PRICE), nightly_price, nights)
    distribution = distribute_payment(
        recorded_total=amount,
        nightly_price=nightly_price,
        nights=nights,
        room_label=str(room.number),
        breakfast=catalog.breakfast,
        products=catalog.products,
        receipt_type=normalize_receipt_type(col.cell(record, col.RECEIPT, col.RECEIPT_ALT)),
    )
    payment = _persist_payment(
        db,
        reservation=reservation,
        distribution=distribution,
        method=normalize_payment_method(col.cell(record, col.PAYMENT_METHOD)),
        period=period,
        rng=rng,
    )

    audit_service.log_audit_event(
        db,
        entity_id=reservation.id,
        entity_type=audit_service.ENTITY_RESERVATION,
        action=audit_service.ACTION_CREATE,
        performed_by_id=user.id,
    )

    return RecordOutcome(
        guest_id=guest.id,
        reservation_id=reservation.id,
        payment_id=payment.id,
        payment_code=payment.code,
        amount=distribution.amount,
        line_item_count=len(distribution.lines),
        guest_created=guest_created,
        period=period,
    )
