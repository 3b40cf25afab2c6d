from __future__ import annotations

import logging
import random
import re
from typing import List, Optional

from fastapi import HTTPException
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from backend.app.models import (
    PRODUCT_COMMERCIAL,
    ROLE_RECEPTIONIST,
    Product,
    Room,
    RoomType,
    Service,
    User,
)
from backend.app.stays.allocation import CatalogItem
from backend.app.stays.config import BREAKFAST_KEYWORDS
from backend.app.stays.dates import RoomRate
from backend.app.stays.errors import RoomNotFoundError, StaffNotFoundError
from backend.app.stays.fields import clean_text

logger = logging.getLogger(__name__)


def require_import_catalog(db: Session) -> None:
    """
    Rows cannot be placed without at least one active room and one
    receptionist; reject the whole batch up front instead of failing every row.
    """
    has_room = db.execute(
        select(Room.id).where(Room.is_active.is_(True)).limit(1)
    ).first()
    if not has_room:
        raise HTTPException(400, "no active rooms available for import")

    has_staff = db.execute(
        select(User.id).where(User.role == ROLE_RECEPTIONIST).limit(1)
    ).first()
    if not has_staff:
        raise HTTPException(400, "no receptionists available for import")


def list_room_rates(db: Session) -> List[RoomRate]:
    rows = db.execute(
        select(RoomType).where(RoomType.is_active.is_(True)).order_by(RoomType.name.asc())
    ).scalars().all()
    return [RoomRate(name=row.name, price=float(row.price)) for row in rows]


# -------------------------
# Rooms
# -------------------------

def _parse_room_number(raw) -> Optional[int]:
    text = clean_text(raw)
    if text is None:
        return None
    match = re.search(r"\d+", text)
    return int(match.group(0)) if match else None


def _active_rooms():
    return select(Room).where(Room.is_active.is_(True))


def _first_room_of_type(db: Session, room_type_id: str) -> Optional[Room]:
    return db.execute(
        _active_rooms()
        .where(Room.room_type_id == room_type_id)
        .order_by(Room.number.asc())
        .limit(1)
    ).scalars().first()


def _random_active_room(db: Session, rng) -> Optional[Room]:
    rooms = db.execute(_active_rooms().order_by(Room.number.asc())).scalars().all()
    return rng.choice(rooms) if rooms else None


def resolve_room(
    db: Session,
    *,
    room_number,
    room_type_label,
    recorded_total: Optional[float],
    nights: int,
    rng=None,
) -> Room:
    """
    Exact number -> first room of the type named by the row -> first room of
    the type priced closest to the nightly rate the row implies -> any active
    room.
    """
    rng = rng or random

    number = _parse_room_number(room_number)
    if number is not None:
        room = db.execute(
            _active_rooms().where(Room.number == number).limit(1)
        ).scalars().first()
        if room:
            return room

    label = clean_text(room_type_label)
    matched_type = None
    if label:
        matched_type = db.execute(
            select(RoomType)
            .where(RoomType.is_active.is_(True), RoomType.name.icontains(label, autoescape=True))
            .order_by(RoomType.name.asc())
            .limit(1)
        ).scalars().first()
        if matched_type:
            room = _first_room_of_type(db, matched_type.id)
            if room:
                return room

    if matched_type is None and recorded_total and recorded_total > 0:
        nightly = recorded_total / max(1, nights)
        types = db.execute(
            select(RoomType).where(RoomType.is_active.is_(True))
        ).scalars().all()
        for room_type in sorted(types, key=lambda t: abs(float(t.price) - nightly)):
            room = _first_room_of_type(db, room_type.id)
            if room:
                return room

    room = _random_active_room(db, rng)
    if room:
        logger.warning(
            "No room matched number=%r type=%r; assigned random room %s",
            room_number,
            room_type_label,
            room.number,
        )
        return room

    raise RoomNotFoundError(
        f"Room not found (number={room_number!r}, type={room_type_label!r})"
    )


# -------------------------
# Staff
# -------------------------

def resolve_staff(db: Session, raw_name, rng=None) -> User:
    rng = rng or random

    name = clean_text(raw_name)
    if name:
        user = db.execute(
            select(User)
            .where(
                User.role == ROLE_RECEPTIONIST,
                User.is_active.is_(True),
                User.name.icontains(name, autoescape=True),
            )
            .order_by(User.name.asc())
            .limit(1)
        ).scalars().first()
        if user:
            return user

    receptionists = db.execute(
        select(User).where(User.role == ROLE_RECEPTIONIST).order_by(User.name.asc())
    ).scalars().all()
    if receptionists:
        user = rng.choice(receptionists)
        if name:
            logger.warning("Receptionist %r not found; assigned %s", name, user.name)
        return user

    raise StaffNotFoundError(f"Staff not found: {name or '<blank>'}")


# -------------------------
# Extras used by payment distribution
# -------------------------

def find_breakfast_service(db: Session) -> Optional[CatalogItem]:
    service = db.execute(
        select(Service)
        .where(
            Service.is_active.is_(True),
            or_(*[Service.name.icontains(keyword) for keyword in BREAKFAST_KEYWORDS]),
        )
        .order_by(Service.name.asc())
        .limit(1)
    ).scalars().first()
    if not service:
        return None
    return CatalogItem(ref_id=service.id, name=service.name, price=float(service.price))


def list_commercial_products(db: Session) -> List[CatalogItem]:
    rows = db.execute(
        select(Product)
        .where(Product.is_active.is_(True), Product.type == PRODUCT_COMMERCIAL)
        .order_by(Product.unit_cost.asc(), Product.name.asc())
    ).scalars().all()
    return [CatalogItem(ref_id=row.id, name=row.name, price=float(row.unit_cost)) for row in rows]
