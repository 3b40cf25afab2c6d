"""
Field normalization for historical registry rows.

Responsibility:
- Map raw spreadsheet text into the canonical values stored on guests,
  reservations and payment line items.
- Every function here is PURE (the synthetic document generator aside, which
  only draws random digits) and idempotent: f(f(x)) == f(x).

Blank input covers empty strings and the usual registry placeholders
("-", "n/a", "s/n", ...).
"""

from __future__ import annotations

import random
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Literal, Mapping, Optional

from backend.app.stays.gazetteer import (
    ABBREVIATIONS,
    COUNTRY_NAMES,
    NATIONALITY_ALIASES,
    PERU,
    PERU_LOCATIONS,
    TRIVIAL_TOKENS,
    fold_key,
)

DocumentType = Literal["DNI", "PASSPORT", "FOREIGNER_CARD"]
MaritalStatus = Literal["SINGLE", "MARRIED", "DIVORCED", "WIDOWED"]
PaymentMethod = Literal[
    "CASH", "CREDIT_CARD", "DEBIT_CARD", "TRANSFER", "YAPE", "PLIN",
    "PAYPAL", "IZI_PAY", "PENDING_PAYMENT",
]
ReceiptType = Literal["INVOICE", "RECEIPT"]

DEFAULT_DOCUMENT_TYPE: DocumentType = "DNI"
TEMP_DOCUMENT_PREFIX = "TEMP_"
NO_PHONE = "-"
DOMESTIC_DIAL_CODE = "51"

PLACEHOLDERS = frozenset({
    "", "-", "--", "---", ".", "0", "n/a", "na", "n/d", "nd", "s/n", "sn",
    "none", "null", "nan", "sin dato", "sin datos", "no tiene", "ninguno",
})


def clean_text(value: Any) -> Optional[str]:
    """
    Strip a raw cell to text; placeholders and None become None.
    """
    if value is None:
        return None
    text = re.sub(r"\s+", " ", str(value)).strip()
    if fold_key(text) in PLACEHOLDERS or text.strip(" -.") == "":
        return None
    return text


# -------------------------
# Alias tables
# -------------------------

def _table(mapping: Dict[str, Optional[str]]) -> Mapping[str, Optional[str]]:
    folded = {fold_key(key): value for key, value in mapping.items()}
    # canonical values map to themselves
    for value in list(folded.values()):
        if value:
            folded.setdefault(fold_key(value), value)
            folded.setdefault(fold_key(value.replace("_", " ")), value)
    return folded


DOCUMENT_TYPE_ALIASES = _table({
    "dni": "DNI",
    "d.n.i": "DNI",
    "cedula": "DNI",
    "cedula de identidad": "DNI",
    "documento nacional": "DNI",
    "documento nacional de identidad": "DNI",
    "libreta electoral": "DNI",
    "pasaporte": "PASSPORT",
    "passport": "PASSPORT",
    "pasaporte extranjero": "PASSPORT",
    "pas": "PASSPORT",
    "carnet de extranjeria": "FOREIGNER_CARD",
    "carnet extranjeria": "FOREIGNER_CARD",
    "carne de extranjeria": "FOREIGNER_CARD",
    "foreigner card": "FOREIGNER_CARD",
    "carnet": "FOREIGNER_CARD",
    "ce": "FOREIGNER_CARD",
    "c.e": "FOREIGNER_CARD",
})

MARITAL_STATUS_ALIASES = _table({
    "soltero": "SINGLE",
    "soltera": "SINGLE",
    "s": "SINGLE",
    "single": "SINGLE",
    "casado": "MARRIED",
    "casada": "MARRIED",
    "c": "MARRIED",
    "married": "MARRIED",
    "divorciado": "DIVORCED",
    "divorciada": "DIVORCED",
    "d": "DIVORCED",
    "divorced": "DIVORCED",
    "viudo": "WIDOWED",
    "viuda": "WIDOWED",
    "v": "WIDOWED",
    "widowed": "WIDOWED",
})

PAYMENT_METHOD_ALIASES = _table({
    "efectivo": "CASH",
    "cash": "CASH",
    "contado": "CASH",
    "tarjeta": "CREDIT_CARD",
    "tarjeta de credito": "CREDIT_CARD",
    "credit card": "CREDIT_CARD",
    "visa": "CREDIT_CARD",
    "mastercard": "CREDIT_CARD",
    "tarjeta de debito": "DEBIT_CARD",
    "debit card": "DEBIT_CARD",
    "transferencia": "TRANSFER",
    "transferencia bancaria": "TRANSFER",
    "deposito": "TRANSFER",
    "transfer": "TRANSFER",
    "yape": "YAPE",
    "plin": "PLIN",
    "paypal": "PAYPAL",
    "izi pay": "IZI_PAY",
    "izipay": "IZI_PAY",
    "pago pendiente": "PENDING_PAYMENT",
    "pendiente": "PENDING_PAYMENT",
})

RECEIPT_TYPE_ALIASES = _table({
    "sin registro": None,
    "factura": "INVOICE",
    "invoice": "INVOICE",
    "boleta": "RECEIPT",
    "boleta de venta": "RECEIPT",
    "recibo": "RECEIPT",
    "comprobante": "RECEIPT",
    "receipt": "RECEIPT",
})

BLACKLIST_TRUE = frozenset({"si", "s", "true", "1", "yes", "x", "lista negra", "blacklist"})


# -------------------------
# Identity documents
# -------------------------

def normalize_document_type(raw: Any) -> DocumentType:
    text = clean_text(raw)
    if text is None:
        return DEFAULT_DOCUMENT_TYPE
    return DOCUMENT_TYPE_ALIASES.get(fold_key(text)) or DEFAULT_DOCUMENT_TYPE


def generate_temporary_document_number() -> str:
    return f"{TEMP_DOCUMENT_PREFIX}{random.randint(10_000_000, 99_999_999)}"


def is_temporary_document(document_number: Optional[str]) -> bool:
    return bool(document_number) and document_number.startswith(TEMP_DOCUMENT_PREFIX)


def normalize_document_number(raw: Any, document_type: Optional[str] = None) -> str:
    """
    DNI: digits only, 6-7 digit values left-padded to 8.
    Other documents: trimmed and upper-cased.
    Blank input yields a synthetic TEMP_ number; the caller must check it is
    unused before persisting it.
    """
    text = clean_text(raw)
    if text is None:
        return generate_temporary_document_number()
    if is_temporary_document(text):
        return text

    doc_type = normalize_document_type(document_type)
    if doc_type == "DNI":
        digits = re.sub(r"\D", "", text)
        if 6 <= len(digits) < 8:
            return digits.zfill(8)
        if digits:
            return digits

    return re.sub(r"\s+", "", text).upper()


def validate_ruc(raw: Any) -> Optional[str]:
    text = clean_text(raw)
    if text is None:
        return None
    digits = re.sub(r"\D", "", text)
    return digits if len(digits) == 11 else None


# -------------------------
# Contact / profile fields
# -------------------------

def normalize_phone(raw: Any) -> str:
    text = clean_text(raw)
    if text is None:
        return NO_PHONE

    digits = re.sub(r"\D", "", text)
    if len(digits) == 9:
        return f"+{DOMESTIC_DIAL_CODE}{digits}"
    if len(digits) > 9:
        return f"+{digits}"
    return text


def normalize_marital_status(raw: Any) -> Optional[MaritalStatus]:
    text = clean_text(raw)
    if text is None:
        return None
    return MARITAL_STATUS_ALIASES.get(fold_key(text))


def normalize_blacklist(raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    text = clean_text(raw)
    if text is None:
        return False
    return fold_key(text) in BLACKLIST_TRUE


def normalize_payment_method(raw: Any) -> PaymentMethod:
    text = clean_text(raw)
    if text is None:
        return "CASH"
    return PAYMENT_METHOD_ALIASES.get(fold_key(text)) or "CASH"


def normalize_receipt_type(raw: Any) -> Optional[ReceiptType]:
    text = clean_text(raw)
    if text is None:
        return None
    return RECEIPT_TYPE_ALIASES.get(fold_key(text))


def build_companions(name: Any, document: Any) -> Optional[List[Dict[str, Optional[str]]]]:
    companion = clean_text(name)
    if companion is None:
        return None
    document_id = clean_text(document)
    return [
        {
            "name": companion,
            "document_id": document_id,
            "document_type": DEFAULT_DOCUMENT_TYPE if document_id else None,
        }
    ]


# -------------------------
# Nationality / origin
# -------------------------

@dataclass(frozen=True)
class NationalityResult:
    country: Optional[str]
    normalized: bool


def _hyphen_parts(key: str) -> List[str]:
    parts = [part.strip() for part in re.split(r"[-–—/]", key)]
    parts = [part for part in parts if part]
    return parts if len(parts) > 1 else []


def _last_meaningful_token(key: str) -> Optional[str]:
    tokens = [
        token.strip(".,;:()")
        for token in re.split(r"[\s\-–—/]+", key)
    ]
    tokens = [token for token in tokens if len(token) > 2 and token not in TRIVIAL_TOKENS]
    return tokens[-1] if tokens else None


def _decompose_lookup(key: str, table: Mapping[str, str]) -> Optional[str]:
    """
    Whole value first, then each hyphen/dash separated part, then the last
    meaningful word.
    """
    if key in table:
        return table[key]
    for part in _hyphen_parts(key):
        if part in table:
            return table[part]
    token = _last_meaningful_token(key)
    if token and token in table:
        return table[token]
    return None


def _capitalize(text: str) -> str:
    return text[:1].upper() + text[1:].lower()


def resolve_nationality(raw: Any, document_type: Optional[str] = None) -> NationalityResult:
    """
    Resolve a free-text nationality / origin into a country name.

    Lookup order: nationality aliases (whole, dash parts, last word), then the
    secondary country-name dictionary, then abbreviations. An unmatched value
    is returned capitalized with normalized=False so it can be reported.
    """
    text = clean_text(raw)
    if text is None:
        if document_type and normalize_document_type(document_type) == "DNI":
            return NationalityResult(PERU, True)
        return NationalityResult(None, True)

    key = fold_key(text)

    country = _decompose_lookup(key, NATIONALITY_ALIASES)
    if country:
        return NationalityResult(country, True)

    country = COUNTRY_NAMES.get(key)
    if country:
        return NationalityResult(country, True)

    country = ABBREVIATIONS.get(key) or ABBREVIATIONS.get(key.replace(".", "").strip())
    if country:
        return NationalityResult(country, True)

    return NationalityResult(_capitalize(text), False)


def normalize_nationality(raw: Any, document_type: Optional[str] = None) -> Optional[str]:
    return resolve_nationality(raw, document_type).country


def detect_peruvian_department(raw: Any) -> Optional[str]:
    """
    Return the Peruvian department named (directly or through a province or
    city) by a free-text origin, else None.
    """
    text = clean_text(raw)
    if text is None:
        return None
    return _decompose_lookup(fold_key(text), PERU_LOCATIONS)


@dataclass(frozen=True)
class OriginResult:
    country: Optional[str]
    department: Optional[str]
    normalized: bool


def classify_origin(raw: Any, document_type: Optional[str] = None) -> OriginResult:
    """
    Split a registry "nationality" cell into country + department.

    Foreign countries win over department detection so values such as
    "Bolivia - Santa Cruz" are not read as a Peruvian province.
    """
    nationality = resolve_nationality(raw, document_type)
    if nationality.normalized and nationality.country not in (None, PERU):
        return OriginResult(nationality.country, None, True)

    department = detect_peruvian_department(raw)
    if department:
        return OriginResult(PERU, department, True)

    return OriginResult(nationality.country, None, nationality.normalized)
