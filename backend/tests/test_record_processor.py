from datetime import datetime
import os
from pathlib import Path
import sys

import pytest
from sqlalchemy import select

sys.path.append(str(Path(__file__).resolve().parents[2]))
os.environ.setdefault("DATABASE_URL", "sqlite:///./test_record_processor.db")

from backend.app.models import (
    ORIGIN_IMPORTED,
    RESERVATION_CHECKED_OUT,
    Guest,
    Payment,
    PaymentLineItem,
    Reservation,
    User,
)
from backend.app.services import audit_service, record_service
from backend.app.stays import columns as col
from backend.app.stays.errors import DuplicateRecordError, InsufficientIdentityError


def _record(**overrides):
    record = {
        col.GUEST_NAME: "Maria Lopez Garcia",
        col.DOCUMENT_NUMBER: "1234567",
        col.DOCUMENT_TYPE: "DNI",
        col.CHECK_IN_DATE: "01/06/2023",
        col.CHECK_IN_TIME: "14:00",
        col.NIGHTS: "2",
        col.PRICE: "150",
        col.ROOM_NUMBER: "101",
        col.ROOM_TYPE: "Simple",
        col.RECEPTIONIST: "Carlos",
        col.PAYMENT_METHOD: "Yape",
        col.RECEIPT: "Boleta",
        col.NATIONALITY: "Arequipa",
        col.PHONE: "987654321",
        col.COMPANION: "Ana Torres",
        col.COMPANION_DOCUMENT: "44556677",
    }
    record.update(overrides)
    return record


def _import(db, record, user, rng):
    catalog = record_service.ImportCatalog.load(db)
    outcome = record_service.import_record(db, record, user=user, catalog=catalog, rng=rng)
    db.commit()
    return outcome


def test_import_record_creates_full_stay(seeded_session, admin_user, rng):
    outcome = _import(seeded_session, _record(), admin_user, rng)

    assert outcome.guest_created is True
    guest = seeded_session.get(Guest, outcome.guest_id)
    assert guest.document_number == "01234567"
    assert guest.document_type == "DNI"
    assert guest.created_at == datetime(2023, 6, 1, 14, 0)
    assert guest.country == "Perú"
    assert guest.department == "Arequipa"
    assert guest.phone == "+51987654321"
    assert guest.must_complete_data is True

    reservation = seeded_session.get(Reservation, outcome.reservation_id)
    assert reservation.status == RESERVATION_CHECKED_OUT
    assert reservation.is_active is False
    assert reservation.origin_tag == ORIGIN_IMPORTED
    assert reservation.check_in == datetime(2023, 6, 1, 14, 0)
    assert reservation.check_out == datetime(2023, 6, 3, 12, 0)
    assert reservation.created_at == reservation.check_in
    assert reservation.room.number == 101
    assert reservation.companions == [
        {"name": "Ana Torres", "document_id": "44556677", "document_type": "DNI"}
    ]

    payment = seeded_session.get(Payment, outcome.payment_id)
    assert payment.code == "PAG-2023-001"
    assert payment.amount == 150.0
    assert reservation.check_in <= payment.date <= reservation.check_out

    lines = seeded_session.execute(
        select(PaymentLineItem).where(PaymentLineItem.payment_id == payment.id)
    ).scalars().all()
    assert sorted(line.kind for line in lines) == ["DOCUMENT_FEE", "ROOM", "SERVICE"]
    assert round(sum(line.subtotal for line in lines), 2) == 150.0
    assert {line.method for line in lines} == {"YAPE"}
    for line in lines:
        assert reservation.check_in <= line.paid_at <= reservation.check_out
        assert line.created_at == line.paid_at


def test_import_record_writes_one_audit_entry(seeded_session, admin_user, rng):
    outcome = _import(seeded_session, _record(), admin_user, rng)
    events = audit_service.list_entity_events(
        seeded_session,
        entity_type=audit_service.ENTITY_RESERVATION,
        entity_id=outcome.reservation_id,
    )
    assert [(event.action, event.performed_by_id) for event in events] == [
        (audit_service.ACTION_CREATE, admin_user.id)
    ]


def test_receptionist_is_matched_by_name(seeded_session, admin_user, rng):
    outcome = _import(seeded_session, _record(), admin_user, rng)
    reservation = seeded_session.get(Reservation, outcome.reservation_id)
    carlos = seeded_session.execute(
        select(User).where(User.email == "carlos@hotel.local")
    ).scalars().one()
    assert reservation.user_id == carlos.id


def test_same_stay_twice_is_a_duplicate(seeded_session, admin_user, rng):
    _import(seeded_session, _record(), admin_user, rng)
    with pytest.raises(DuplicateRecordError, match=r"document 01234567 within 24h of 01/06/2023"):
        _import(seeded_session, _record(**{col.CHECK_IN_TIME: "20:00"}), admin_user, rng)


def test_returning_guest_gets_a_new_stay(seeded_session, admin_user, rng):
    first = _import(seeded_session, _record(), admin_user, rng)
    second = _import(seeded_session, _record(**{col.CHECK_IN_DATE: "10/06/2023"}), admin_user, rng)

    assert second.guest_created is False
    assert second.guest_id == first.guest_id
    assert second.payment_code == "PAG-2023-002"


def test_missing_name_is_insufficient_identity(seeded_session, admin_user, rng):
    with pytest.raises(InsufficientIdentityError):
        _import(seeded_session, _record(**{col.GUEST_NAME: "-"}), admin_user, rng)


def test_blank_document_gets_temporary_number(seeded_session, admin_user, rng):
    outcome = _import(
        seeded_session,
        _record(**{col.DOCUMENT_NUMBER: "", col.DOCUMENT_TYPE: "Pasaporte"}),
        admin_user,
        rng,
    )
    guest = seeded_session.get(Guest, outcome.guest_id)
    assert guest.document_number.startswith("TEMP_")
    assert guest.document_type == "DNI"


def test_unreadable_price_falls_back_to_room_rate(seeded_session, admin_user, rng):
    outcome = _import(seeded_session, _record(**{col.PRICE: "sin dato"}), admin_user, rng)
    assert outcome.amount == 120.0


def test_period_is_inferred_from_row(seeded_session):
    catalog = record_service.ImportCatalog.load(seeded_session)
    period = record_service.infer_record_period(
        {col.CHECK_IN_DATE: "01/06/2023", col.PRICE: "180", col.ROOM_TYPE: "Doble"},
        catalog.rates,
    )
    assert period.check_out == datetime(2023, 6, 3, 12, 0)


def test_nationality_observation_flags_unknown_values():
    observation = record_service.observe_nationality({col.NATIONALITY: "Narnia"})
    assert observation.origin.normalized is False
    assert record_service.observe_nationality({col.NATIONALITY: "-"}) is None


# -------------------------
# Column access
# -------------------------

def test_cell_matches_header_spelling_variants():
    record = {"N° Documento": "12345678", "OCUPACION": "Ingeniero"}
    assert col.cell(record, col.DOCUMENT_NUMBER) == "12345678"
    assert col.cell_text(record, col.OCCUPATION) == "Ingeniero"
    assert col.cell(record, col.RECEIPT, col.RECEIPT_ALT) is None


def test_cell_prefers_first_non_blank_label():
    record = {col.RECEIPT: "", col.RECEIPT_ALT: "Factura"}
    assert col.cell(record, col.RECEIPT, col.RECEIPT_ALT) == "Factura"


def test_repeated_header_rows_are_detected():
    record = {"A": "COMPROBANTE", "B": "PRECIO", "C": "Nº", "D": "Juan"}
    assert col.is_corrupt_record(record) is True
    assert col.is_corrupt_record(_record()) is False
