"""Request/response contracts for the stay import API."""

from backend.app.domain.contracts import (  # noqa: F401
    AnalysisResultContract,
    DeletionResultContract,
    ImportRecordsIn,
    ImportResultContract,
    RecordsIn,
    SpreadsheetImportResultContract,
)
