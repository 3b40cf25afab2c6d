"""
Column labels of the historical hotel registry spreadsheet.

Rows arrive as plain dicts keyed by these headers. Reading a cell always goes
through ``cell`` / ``cell_text`` so header spelling variants (extra spaces,
"N°" vs "Nº", missing accents) resolve to the same value.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, Tuple

from backend.app.stays.fields import clean_text
from backend.app.stays.gazetteer import fold_key

ImportRecord = Mapping[str, Any]

GUEST_NAME = "APELLIDOS Y NOMBRES"
DOCUMENT_NUMBER = "Nº DOCUMENTO"
DOCUMENT_TYPE = "TIPO DOCUMENTO"
CHECK_IN_DATE = "FECHA"
CHECK_IN_TIME = "HORA"
CHECK_OUT_DATE = "FECHA DE SALIDA"
CHECK_OUT_TIME = "HORA DE SALIDA"
NIGHTS = "DIAS DE ALOJAMIENTO"
PRICE = "PRECIO"
ROOM_NUMBER = "HABITACION"
ROOM_TYPE = "TIPO HABITACION"
RECEPTIONIST = "RECEPCIONISTA CHECK IN"
PAYMENT_METHOD = "FORMA DE PAGO"
RECEIPT = "COMPROBANTE"
RECEIPT_ALT = "TIPO DE DOCUMENTO"
NATIONALITY = "NACIONALIDAD"
PHONE = "TELEFONO"
MARITAL_STATUS = "ESTADO CIVIL"
BLACKLIST = "LISTA NEGRA"
ADDRESS = "DOMICILIO"
OCCUPATION = "OCUPACIÓN"
EMAIL = "EMAIL"
COMPANY_NAME = "EMPRESA"
RUC = "RUC"
COMPANY_ADDRESS = "DIRECCION"
ORIGIN = "PROCEDENCIA"
TRAVEL_REASON = "MOTIVO DE VIAJE"
COMPANION = "ACOMPAÑANTE"
COMPANION_DOCUMENT = "DOCUMENTO ACOMPAÑANTE"
OBSERVATIONS = "OBSERVACIONES"

# Header labels that show up as cell values when a sheet is pasted twice or
# the header row is duplicated mid-file.
HEADER_LABELS: Tuple[str, ...] = (
    RECEIPT,
    "Nº",
    "TIPO DE CLIENTE",
    ROOM_TYPE,
    NIGHTS,
    PRICE,
    PAYMENT_METHOD,
    "PAGO",
    OBSERVATIONS,
)
CORRUPT_HEADER_THRESHOLD = 3


def _header_key(label: str) -> str:
    return fold_key(label.replace("°", "º").replace("º", "o"))


_FOLDED_HEADERS = frozenset(_header_key(label) for label in HEADER_LABELS)


def _index(record: ImportRecord) -> Dict[str, Any]:
    return {_header_key(str(key)): value for key, value in record.items()}


def cell(record: ImportRecord, *labels: str) -> Any:
    """
    Raw value of the first present, non-blank column among ``labels``.
    """
    for label in labels:
        if label in record and clean_text(record[label]) is not None:
            return record[label]

    folded = _index(record)
    for label in labels:
        value = folded.get(_header_key(label))
        if clean_text(value) is not None:
            return value
    return None


def cell_text(record: ImportRecord, *labels: str) -> Optional[str]:
    return clean_text(cell(record, *labels))


def is_corrupt_record(record: ImportRecord) -> bool:
    hits = 0
    for value in _index(record).values():
        if isinstance(value, str) and _header_key(value) in _FOLDED_HEADERS:
            hits += 1
    return hits >= CORRUPT_HEADER_THRESHOLD


def record_preview(record: ImportRecord) -> Dict[str, Optional[str]]:
    return {
        "name": cell_text(record, GUEST_NAME),
        "document": cell_text(record, DOCUMENT_NUMBER),
        "room": cell_text(record, ROOM_NUMBER),
    }
