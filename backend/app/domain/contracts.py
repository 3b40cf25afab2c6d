from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


# -------------------------
# Requests
# -------------------------

class ImportRecordsIn(BaseModel):
    data: List[Dict[str, Any]]
    batch_number: int = Field(default=1, ge=1)
    total_batches: int = Field(default=1, ge=1)


class RecordsIn(BaseModel):
    data: List[Dict[str, Any]]


# -------------------------
# Results
# -------------------------

class RowErrorContract(BaseModel):
    record_index: Optional[int] = None
    internal_batch_index: Optional[int] = None
    category: str
    error: str
    data: Optional[Dict[str, Any]] = None


class ErrorSampleContract(BaseModel):
    record_index: Optional[int] = None
    error: Optional[str] = None
    sample_data: Optional[Dict[str, Optional[str]]] = None


class ErrorTypeContract(BaseModel):
    type: str
    label: str
    count: int
    percentage: float
    samples: List[ErrorSampleContract]


class ErrorSummaryContract(BaseModel):
    total_errors: int
    error_types: List[ErrorTypeContract]


class NormalizationReportContract(BaseModel):
    total_records: int
    nationalities_processed: int
    unnormalized_count: int
    unnormalized_list: List[str]
    normalization_rate: str


class ImportResultContract(BaseModel):
    success: bool
    processed: int
    successful: int
    failed: int
    skipped: int
    errors: List[RowErrorContract]
    internal_batches: List[Dict[str, Any]]
    unnormalized_nationalities: List[str]
    summary: ErrorSummaryContract
    normalization_report: NormalizationReportContract
    batch_number: int
    total_batches: int
    processing_time_ms: int


class SpreadsheetImportResultContract(BaseModel):
    success: bool
    message: str
    total_records: int
    total_batches: int
    processed: int
    successful: int
    failed: int
    skipped: int
    errors: List[RowErrorContract]
    batches: List[Dict[str, Any]]
    unnormalized_nationalities: List[str]
    summary: ErrorSummaryContract
    normalization_report: NormalizationReportContract


class DeletedCountsContract(BaseModel):
    guests: int = 0
    reservations: int = 0
    payments: int = 0
    line_items: int = 0
    audit_logs: int = 0


class DeletionResultContract(BaseModel):
    success: bool
    processed: int
    deleted: int
    not_found: int
    errors: List[RowErrorContract]
    deleted_counts: DeletedCountsContract
    internal_batches: List[Dict[str, Any]]
    processing_time_ms: int
    message: str


class AnalysisResultContract(BaseModel):
    total: int
    imported: List[Dict[str, Any]]
    missing: List[Dict[str, Any]]
    imported_percentage: float


class CleanupResultContract(BaseModel):
    success: bool
    deleted_counts: DeletedCountsContract
    message: str
