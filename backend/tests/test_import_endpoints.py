import asyncio
import io
import os
from pathlib import Path
import sys
import time

import httpx
from openpyxl import Workbook
from sqlalchemy import update

sys.path.append(str(Path(__file__).resolve().parents[2]))
os.environ.setdefault("DATABASE_URL", "sqlite:///./test_import_endpoints.db")

from backend.app.models import Room
from backend.app.services import import_service
from backend.app.stays import columns as col


ADMIN = {"X-User-Email": "admin@hotel.local"}
RECEPTIONIST = {"X-User-Email": "rosa@hotel.local"}


def _row(name, document, check_in="01/06/2023"):
    return {
        col.GUEST_NAME: name,
        col.DOCUMENT_NUMBER: document,
        col.DOCUMENT_TYPE: "DNI",
        col.CHECK_IN_DATE: check_in,
        col.NIGHTS: "2",
        col.PRICE: "150",
        col.ROOM_NUMBER: "101",
        col.RECEPTIONIST: "Rosa",
        col.NATIONALITY: "Peruana",
    }


def _xlsx(rows):
    workbook = Workbook()
    sheet = workbook.active
    headers = list(rows[0].keys())
    sheet.append(headers)
    for row in rows:
        sheet.append([row[header] for header in headers])
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def test_health(api_client):
    resp = api_client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_import_requires_identity_header(api_client, seeded_session):
    resp = api_client.post("/import/records", json={"data": [_row("Juan Perez", "12345678")]})
    assert resp.status_code == 401


def test_import_records_endpoint(api_client, seeded_session):
    resp = api_client.post(
        "/import/records",
        json={"data": [_row("Juan Perez", "12345678"), _row("Juan Perez", "12345678")], "batch_number": 1},
        headers=RECEPTIONIST,
    )
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["successful"] == 1
    assert body["skipped"] == 1
    assert body["errors"][0]["category"] == "duplicate"
    assert body["summary"]["error_types"][0]["type"] == "duplicate"
    assert body["normalization_report"]["normalization_rate"] == "100.0%"

    health = api_client.get("/health/imports").json()
    assert health == {"imported_reservations": 1, "guests": 1}


def test_import_records_over_cap_is_rejected(api_client, seeded_session):
    rows = [_row("Juan Perez", "12345678")] * 1001
    resp = api_client.post("/import/records", json={"data": rows}, headers=RECEPTIONIST)
    assert resp.status_code == 400


def test_import_excel_endpoint(api_client, seeded_session):
    payload = _xlsx([_row("Juan Perez", "12345678"), _row("Lucia Flores", "11223344")])
    resp = api_client.post(
        "/import/excel",
        files={"file": ("registro.xlsx", payload, "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet")},
        headers=RECEPTIONIST,
    )
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["total_records"] == 2
    assert body["total_batches"] == 1
    assert body["successful"] == 2
    assert body["batches"][0]["batch_number"] == 1
    assert body["message"].startswith("Import finished")


def test_import_excel_without_active_rooms_is_rejected(api_client, seeded_session):
    seeded_session.execute(update(Room).values(is_active=False))
    seeded_session.commit()

    resp = api_client.post(
        "/import/excel",
        files={"file": ("registro.xlsx", _xlsx([_row("Juan Perez", "12345678")]), "application/octet-stream")},
        headers=RECEPTIONIST,
    )
    assert resp.status_code == 400
    assert resp.json()["detail"] == "no active rooms available for import"


def test_excel_import_does_not_block_other_requests(api_client, seeded_session, monkeypatch):
    from backend.app.main import app

    def _slow_import(db, payload, user, *, filename=None, rng=None):
        time.sleep(1.0)
        return {
            "success": True,
            "message": "Import finished: 0 imported, 0 failed, 0 skipped",
            "total_records": 0,
            "total_batches": 0,
            "processed": 0,
            "successful": 0,
            "failed": 0,
            "skipped": 0,
            "errors": [],
            "batches": [],
            "unnormalized_nationalities": [],
            "summary": import_service.build_error_summary([]),
            "normalization_report": import_service.build_normalization_report(
                total_records=0, processed=0, unnormalized=[]
            ),
        }

    monkeypatch.setattr(import_service, "import_spreadsheet", _slow_import)
    payload = _xlsx([_row("Juan Perez", "12345678")])

    async def _run():
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            upload = asyncio.create_task(
                client.post(
                    "/import/excel",
                    files={"file": ("registro.xlsx", payload, "application/octet-stream")},
                    headers=RECEPTIONIST,
                )
            )
            await asyncio.sleep(0.2)
            started = time.monotonic()
            health = await client.get("/health")
            waited = time.monotonic() - started
            return health, waited, await upload

    health, waited, upload = asyncio.run(_run())

    assert health.status_code == 200
    assert waited < 0.5
    assert upload.status_code == 200, upload.text


def test_import_excel_rejects_other_formats(api_client, seeded_session):
    resp = api_client.post(
        "/import/excel",
        files={"file": ("registro.csv", b"a,b\n1,2\n", "text/csv")},
        headers=RECEPTIONIST,
    )
    assert resp.status_code == 400


def test_delete_requires_admin(api_client, seeded_session):
    resp = api_client.post("/import/delete", json={"data": [_row("Juan Perez", "12345678")]}, headers=RECEPTIONIST)
    assert resp.status_code == 403


def test_delete_and_analysis_endpoints(api_client, seeded_session):
    rows = [_row("Juan Perez", "12345678"), _row("Lucia Flores", "11223344")]
    api_client.post("/import/records", json={"data": rows}, headers=RECEPTIONIST)

    analysis = api_client.post("/import/analysis", json={"data": rows + [_row("Pedro Gomez", "99887766")]}, headers=ADMIN)
    assert analysis.status_code == 200, analysis.text
    body = analysis.json()
    assert body["total"] == 3
    assert len(body["imported"]) == 2
    assert body["missing"][0]["_reason"] == "Guest not found"

    resp = api_client.post("/import/delete", json={"data": rows[:1]}, headers=ADMIN)
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["deleted"] == 1
    assert body["deleted_counts"]["reservations"] == 1


def test_delete_excel_endpoint(api_client, seeded_session):
    rows = [_row("Juan Perez", "12345678")]
    api_client.post("/import/records", json={"data": rows}, headers=RECEPTIONIST)

    resp = api_client.post(
        "/import/delete/excel",
        files={"file": ("registro.xlsx", _xlsx(rows), "application/octet-stream")},
        headers=ADMIN,
    )
    assert resp.status_code == 200, resp.text
    assert resp.json()["deleted"] == 1


def test_cleanup_endpoint(api_client, seeded_session):
    api_client.post("/import/records", json={"data": [_row("Juan Perez", "12345678")]}, headers=RECEPTIONIST)

    assert api_client.delete("/import/cleanup", headers=RECEPTIONIST).status_code == 403

    resp = api_client.delete("/import/cleanup", headers=ADMIN)
    assert resp.status_code == 200, resp.text
    assert resp.json()["deleted_counts"]["reservations"] == 1
    assert api_client.get("/health/imports").json() == {"imported_reservations": 0, "guests": 1}


def test_unknown_email_is_provisioned_as_receptionist(api_client, seeded_session):
    resp = api_client.post(
        "/import/analysis",
        json={"data": [_row("Juan Perez", "12345678")]},
        headers={"X-User-Email": "nuevo@hotel.local"},
    )
    assert resp.status_code == 403
