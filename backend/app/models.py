from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.app.db import Base


# -------------------------
# Helpers
# -------------------------

def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def uuid_str() -> str:
    return str(uuid.uuid4())


# Reservation.origin_tag values
ORIGIN_IMPORTED = "imported"
ORIGIN_LANDING = "landing"
ORIGIN_MANUAL = "manual"

RESERVATION_CHECKED_OUT = "CHECKED_OUT"

ROLE_ADMIN = "ADMIN"
ROLE_RECEPTIONIST = "RECEPTIONIST"

PRODUCT_COMMERCIAL = "COMMERCIAL"


# -------------------------
# Staff
# -------------------------

class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=uuid_str)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(320), unique=True, nullable=True)
    role: Mapped[str] = mapped_column(String(30), nullable=False, default=ROLE_RECEPTIONIST)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)


# -------------------------
# Inventory (rooms, services, products)
# -------------------------

class RoomType(Base):
    __tablename__ = "room_types"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=uuid_str)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    price: Mapped[float] = mapped_column(Float, nullable=False)  # nightly
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    rooms = relationship("Room", back_populates="room_type")


class Room(Base):
    __tablename__ = "rooms"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=uuid_str)
    number: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    room_type_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("room_types.id"),
        nullable=False,
        index=True,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    room_type = relationship("RoomType", back_populates="rooms", lazy="joined")


class Service(Base):
    __tablename__ = "services"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=uuid_str)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    price: Mapped[float] = mapped_column(Float, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class Product(Base):
    __tablename__ = "products"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=uuid_str)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    unit_cost: Mapped[float] = mapped_column(Float, nullable=False)
    type: Mapped[str] = mapped_column(String(30), nullable=False, default=PRODUCT_COMMERCIAL)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


# -------------------------
# Guests and stays
# -------------------------

class Guest(Base):
    """
    Guest master record, keyed by normalized document number.
    The import engine creates guests but never deletes them.
    """
    __tablename__ = "guests"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=uuid_str)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    document_type: Mapped[str] = mapped_column(String(30), nullable=False, default="DNI")
    document_number: Mapped[str] = mapped_column(String(60), nullable=False, unique=True)

    address: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    phone: Mapped[str] = mapped_column(String(40), nullable=False, default="-")
    occupation: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(320), nullable=True)
    marital_status: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    company_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    ruc: Mapped[Optional[str]] = mapped_column(String(11), nullable=True)
    company_address: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    country: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    department: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)

    is_blacklisted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    must_complete_data: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    reservations = relationship("Reservation", back_populates="guest")


class Reservation(Base):
    __tablename__ = "reservations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=uuid_str)
    guest_id: Mapped[str] = mapped_column(String(36), ForeignKey("guests.id"), nullable=False)
    room_id: Mapped[str] = mapped_column(String(36), ForeignKey("rooms.id"), nullable=False)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)

    reservation_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    check_in: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    check_out: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    status: Mapped[str] = mapped_column(String(30), nullable=False, default=RESERVATION_CHECKED_OUT)
    # who created the row: imported | landing | manual
    origin_tag: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ORIGIN_MANUAL,
        server_default=text("'manual'"),
    )

    origin: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    reason: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    companions: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    observations: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    guest = relationship("Guest", back_populates="reservations")
    room = relationship("Room")
    payment = relationship("Payment", back_populates="reservation", uselist=False)

    __table_args__ = (
        Index("ix_reservations_guest_check_in", "guest_id", "check_in"),
    )


class Payment(Base):
    __tablename__ = "payments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=uuid_str)
    code: Mapped[str] = mapped_column(String(40), nullable=False, unique=True)
    reservation_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("reservations.id"),
        nullable=False,
        index=True,
    )
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    amount_paid: Mapped[float] = mapped_column(Float, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="PAID")
    date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    reservation = relationship("Reservation", back_populates="payment")
    line_items = relationship("PaymentLineItem", back_populates="payment")


class PaymentLineItem(Base):
    """
    kind: ROOM | SERVICE | PRODUCT | DOCUMENT_FEE
    ref_id points at rooms/services/products depending on kind.
    """
    __tablename__ = "payment_line_items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=uuid_str)
    payment_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("payments.id"),
        nullable=False,
        index=True,
    )
    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    description: Mapped[str] = mapped_column(String(255), nullable=False)
    method: Mapped[str] = mapped_column(String(30), nullable=False, default="CASH")
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="PAID")
    unit_price: Mapped[float] = mapped_column(Float, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    subtotal: Mapped[float] = mapped_column(Float, nullable=False)
    ref_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    document_type: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    paid_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    payment = relationship("Payment", back_populates="line_items")


# -------------------------
# Audit
# -------------------------

class AuditLog(Base):
    __tablename__ = "audit_logs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=uuid_str)
    entity_id: Mapped[str] = mapped_column(String(60), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(40), nullable=False)
    action: Mapped[str] = mapped_column(String(20), nullable=False)
    performed_by_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        Index("ix_audit_logs_entity", "entity_type", "entity_id"),
    )
