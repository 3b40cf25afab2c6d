from datetime import datetime
import os
from pathlib import Path
import sys

import pytest
from fastapi import HTTPException
from sqlalchemy import select, update

sys.path.append(str(Path(__file__).resolve().parents[2]))
os.environ.setdefault("DATABASE_URL", "sqlite:///./test_entity_resolution.db")

from backend.app.models import (
    ROLE_RECEPTIONIST,
    Guest,
    Payment,
    Reservation,
    Room,
    Service,
    User,
)
from backend.app.services import entity_resolution_service, identifier_service
from backend.app.stays.errors import RoomNotFoundError, StaffNotFoundError


def _add_payment(db, code):
    guest = Guest(name="Pago Previo", document_number=f"DOC-{code}")
    db.add(guest)
    db.flush()
    room = db.execute(select(Room)).scalars().first()
    user = db.execute(select(User)).scalars().first()
    reservation = Reservation(
        guest_id=guest.id,
        room_id=room.id,
        user_id=user.id,
        reservation_date=datetime(2023, 1, 1),
        check_in=datetime(2023, 1, 1),
        check_out=datetime(2023, 1, 2),
    )
    db.add(reservation)
    db.flush()
    db.add(Payment(code=code, reservation_id=reservation.id, amount=1, amount_paid=1, date=datetime(2023, 1, 1)))
    db.commit()


# -------------------------
# Rooms
# -------------------------

def test_room_by_exact_number(seeded_session, rng):
    room = entity_resolution_service.resolve_room(
        seeded_session,
        room_number="Hab. 202",
        room_type_label=None,
        recorded_total=None,
        nights=1,
        rng=rng,
    )
    assert room.number == 202


def test_room_by_type_label_when_number_unknown(seeded_session, rng):
    room = entity_resolution_service.resolve_room(
        seeded_session,
        room_number="999",
        room_type_label="doble",
        recorded_total=None,
        nights=1,
        rng=rng,
    )
    assert room.room_type.name == "Doble"
    assert room.number == 201


def test_room_by_nearest_price_when_type_unknown(seeded_session, rng):
    room = entity_resolution_service.resolve_room(
        seeded_session,
        room_number=None,
        room_type_label="Presidencial",
        recorded_total=360.0,
        nights=2,
        rng=rng,
    )
    assert room.room_type.name == "Suite"


def test_room_falls_back_to_random_active_room(seeded_session, rng):
    room = entity_resolution_service.resolve_room(
        seeded_session,
        room_number=None,
        room_type_label=None,
        recorded_total=None,
        nights=1,
        rng=rng,
    )
    assert room.is_active is True


def test_room_not_found_without_active_rooms(seeded_session, rng):
    seeded_session.execute(update(Room).values(is_active=False))
    seeded_session.commit()
    with pytest.raises(RoomNotFoundError):
        entity_resolution_service.resolve_room(
            seeded_session,
            room_number="101",
            room_type_label="Simple",
            recorded_total=60.0,
            nights=1,
            rng=rng,
        )


# -------------------------
# Staff
# -------------------------

def test_staff_by_partial_name(seeded_session, rng):
    user = entity_resolution_service.resolve_staff(seeded_session, "rosa", rng=rng)
    assert user.name == "Rosa Quispe"


def test_unknown_staff_gets_a_receptionist(seeded_session, rng):
    user = entity_resolution_service.resolve_staff(seeded_session, "Desconocido", rng=rng)
    assert user.role == ROLE_RECEPTIONIST


def test_staff_not_found_without_receptionists(seeded_session, rng):
    seeded_session.execute(update(User).values(role="ADMIN"))
    seeded_session.commit()
    with pytest.raises(StaffNotFoundError):
        entity_resolution_service.resolve_staff(seeded_session, "rosa", rng=rng)


def test_batch_requires_rooms_and_receptionists(seeded_session):
    entity_resolution_service.require_import_catalog(seeded_session)

    seeded_session.execute(update(User).values(role="ADMIN"))
    seeded_session.commit()
    with pytest.raises(HTTPException) as exc:
        entity_resolution_service.require_import_catalog(seeded_session)
    assert exc.value.status_code == 400

    seeded_session.execute(update(Room).values(is_active=False))
    seeded_session.commit()
    with pytest.raises(HTTPException) as exc:
        entity_resolution_service.require_import_catalog(seeded_session)
    assert "rooms" in exc.value.detail


# -------------------------
# Extras
# -------------------------

def test_breakfast_and_commercial_products(seeded_session):
    breakfast = entity_resolution_service.find_breakfast_service(seeded_session)
    assert breakfast.name == "Desayuno"
    assert breakfast.price == 15.0

    products = entity_resolution_service.list_commercial_products(seeded_session)
    assert [item.name for item in products] == ["Agua mineral", "Gaseosa", "Snack"]


def test_inactive_breakfast_is_ignored(seeded_session):
    seeded_session.execute(update(Service).where(Service.name == "Desayuno").values(is_active=False))
    seeded_session.commit()
    assert entity_resolution_service.find_breakfast_service(seeded_session) is None


def test_room_rates_list_active_types(seeded_session):
    rates = entity_resolution_service.list_room_rates(seeded_session)
    assert {rate.name: rate.price for rate in rates} == {
        "Doble": 90.0,
        "Matrimonial": 100.0,
        "Simple": 60.0,
        "Suite": 180.0,
    }


# -------------------------
# Identifiers
# -------------------------

def test_retry_unique_returns_first_free_value():
    taken = {"A0", "A1"}
    value = identifier_service.retry_unique(
        lambda attempt: f"A{attempt}",
        lambda candidate: candidate in taken,
        attempts=5,
    )
    assert value == "A2"


def test_retry_unique_uses_fallback_after_attempts():
    calls = []

    def generate(attempt):
        calls.append(attempt)
        return "X"

    value = identifier_service.retry_unique(
        generate,
        lambda candidate: True,
        attempts=3,
        fallback=lambda: "FALLBACK",
    )
    assert value == "FALLBACK"
    assert calls == [0, 1, 2]


def test_retry_unique_without_fallback_raises():
    with pytest.raises(RuntimeError):
        identifier_service.retry_unique(lambda attempt: "X", lambda candidate: True, attempts=2)


def test_temporary_document_collision_is_regenerated(seeded_session):
    seeded_session.add(Guest(name="Ya Existe", document_number="TEMP_11111111"))
    seeded_session.commit()

    value = identifier_service.ensure_unique_document_number(seeded_session, "TEMP_11111111")
    assert value.startswith("TEMP_")
    assert value != "TEMP_11111111"


def test_real_document_is_returned_unchanged(seeded_session):
    assert identifier_service.ensure_unique_document_number(seeded_session, "12345678") == "12345678"


def test_payment_codes_are_sequential_per_year(seeded_session):
    assert identifier_service.generate_payment_code(seeded_session, datetime(2023, 5, 1)) == "PAG-2023-001"

    _add_payment(seeded_session, "PAG-2023-999")
    assert identifier_service.generate_payment_code(seeded_session, datetime(2023, 5, 1)) == "PAG-2023-1000"

    _add_payment(seeded_session, "PAG-2023-1000")
    assert identifier_service.last_payment_number(seeded_session, 2023) == 1000
    assert identifier_service.generate_payment_code(seeded_session, datetime(2024, 2, 1)) == "PAG-2024-001"
