from __future__ import annotations

from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.orm import Session

from backend.app.api.deps import get_current_user, require_admin
from backend.app.db import get_db
from backend.app.domain.contracts import (
    AnalysisResultContract,
    CleanupResultContract,
    DeletionResultContract,
    ImportRecordsIn,
    ImportResultContract,
    RecordsIn,
    SpreadsheetImportResultContract,
)
from backend.app.models import User
from backend.app.services import import_service, reconciliation_service


router = APIRouter(prefix="/import", tags=["import"])


@router.post("/records", response_model=ImportResultContract)
def import_records(
    req: ImportRecordsIn,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return import_service.import_records(
        db,
        req.data,
        user,
        batch_number=req.batch_number,
        total_batches=req.total_batches,
    )


@router.post("/excel", response_model=SpreadsheetImportResultContract)
def import_excel(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    payload = file.file.read()
    return import_service.import_spreadsheet(db, payload, user, filename=file.filename)


@router.post("/delete", response_model=DeletionResultContract)
def delete_records(
    req: RecordsIn,
    db: Session = Depends(get_db),
    user: User = Depends(require_admin),
):
    return reconciliation_service.delete_imported_records(db, req.data, user)


@router.post("/delete/excel", response_model=DeletionResultContract)
def delete_excel(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    user: User = Depends(require_admin),
):
    payload = file.file.read()
    return reconciliation_service.delete_spreadsheet(db, payload, user, filename=file.filename)


@router.post("/analysis", response_model=AnalysisResultContract)
def analyze_records(
    req: RecordsIn,
    db: Session = Depends(get_db),
    user: User = Depends(require_admin),
):
    return reconciliation_service.analyze_import(db, req.data, user)


@router.delete("/cleanup", response_model=CleanupResultContract)
def cleanup_imported(
    db: Session = Depends(get_db),
    user: User = Depends(require_admin),
):
    return reconciliation_service.cleanup_imported_data(db, user)
