from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from backend.app.db import get_db
from backend.app.models import ORIGIN_IMPORTED, Guest, Reservation

router = APIRouter()


# ----------------------------
# Health
# ----------------------------

@router.get("/health")
def health():
    return {"status": "ok", "time": datetime.now(timezone.utc).isoformat()}


@router.get("/health/imports")
def import_health(db: Session = Depends(get_db)):
    imported = db.execute(
        select(func.count(Reservation.id)).where(Reservation.origin_tag == ORIGIN_IMPORTED)
    ).scalar_one()
    guests = db.execute(select(func.count(Guest.id))).scalar_one()
    return {"imported_reservations": int(imported), "guests": int(guests)}
