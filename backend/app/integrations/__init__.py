from __future__ import annotations

from backend.app.integrations.spreadsheet import SPREADSHEET_SUFFIXES, read_import_records


__all__ = [
    "SPREADSHEET_SUFFIXES",
    "read_import_records",
]
