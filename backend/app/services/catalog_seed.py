from __future__ import annotations

from typing import Dict, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.app.models import (
    PRODUCT_COMMERCIAL,
    ROLE_ADMIN,
    ROLE_RECEPTIONIST,
    Product,
    Room,
    RoomType,
    Service,
    User,
)

# name -> (nightly price, room numbers)
DEFAULT_ROOM_TYPES: Dict[str, Tuple[float, Tuple[int, ...]]] = {
    "Simple": (60.0, (101, 102, 103)),
    "Doble": (90.0, (201, 202)),
    "Matrimonial": (100.0, (203, 204)),
    "Suite": (180.0, (301,)),
}

DEFAULT_SERVICES: Tuple[Tuple[str, float], ...] = (
    ("Desayuno", 15.0),
    ("Lavandería", 20.0),
)

DEFAULT_PRODUCTS: Tuple[Tuple[str, float, str], ...] = (
    ("Agua mineral", 2.5, PRODUCT_COMMERCIAL),
    ("Gaseosa", 4.0, PRODUCT_COMMERCIAL),
    ("Snack", 6.0, PRODUCT_COMMERCIAL),
    ("Papel higiénico", 1.5, "INTERNAL_USE"),
)

DEFAULT_STAFF: Tuple[Tuple[str, str, str], ...] = (
    ("Administrador", "admin@hotel.local", ROLE_ADMIN),
    ("Rosa Quispe", "rosa@hotel.local", ROLE_RECEPTIONIST),
    ("Carlos Mamani", "carlos@hotel.local", ROLE_RECEPTIONIST),
)


def seed_catalog(db: Session) -> Dict[str, int]:
    """
    Idempotent: rows are matched by name (room number / email for rooms and
    staff) and only missing ones are inserted.
    """
    created = {"room_types": 0, "rooms": 0, "services": 0, "products": 0, "users": 0}

    for type_name, (price, numbers) in DEFAULT_ROOM_TYPES.items():
        room_type = db.execute(select(RoomType).where(RoomType.name == type_name)).scalars().first()
        if not room_type:
            room_type = RoomType(name=type_name, price=price, is_active=True)
            db.add(room_type)
            db.flush()
            created["room_types"] += 1
        for number in numbers:
            exists = db.execute(select(Room.id).where(Room.number == number)).first()
            if not exists:
                db.add(Room(number=number, room_type_id=room_type.id, is_active=True))
                created["rooms"] += 1

    for name, price in DEFAULT_SERVICES:
        if not db.execute(select(Service.id).where(Service.name == name)).first():
            db.add(Service(name=name, price=price, is_active=True))
            created["services"] += 1

    for name, cost, product_type in DEFAULT_PRODUCTS:
        if not db.execute(select(Product.id).where(Product.name == name)).first():
            db.add(Product(name=name, unit_cost=cost, type=product_type, is_active=True))
            created["products"] += 1

    for name, email, role in DEFAULT_STAFF:
        if not db.execute(select(User.id).where(User.email == email)).first():
            db.add(User(name=name, email=email, role=role, is_active=True))
            created["users"] += 1

    db.commit()
    return created
