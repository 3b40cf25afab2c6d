from __future__ import annotations

import re
import unicodedata
from typing import Any, List, Optional

from backend.app.stays.fields import clean_text


def normalize_name(name: Any) -> str:
    """
    Lowercase, accent-free, letters and single spaces only.
    """
    text = clean_text(name)
    if text is None:
        return ""
    text = unicodedata.normalize("NFKD", text.lower())
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    text = re.sub(r"[^a-z\s]", "", text)
    return re.sub(r"\s+", " ", text).strip()


def levenshtein_distance(a: str, b: str) -> int:
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, ch_a in enumerate(a, start=1):
        current = [i]
        for j, ch_b in enumerate(b, start=1):
            cost = 0 if ch_a == ch_b else 1
            current.append(min(
                previous[j] + 1,         # deletion
                current[j - 1] + 1,      # insertion
                previous[j - 1] + cost,  # substitution
            ))
        previous = current
    return previous[-1]


def name_similarity(first: Any, second: Any) -> float:
    """
    (maxLen - levenshtein) / maxLen over normalized names, in [0, 1].
    """
    a = normalize_name(first)
    b = normalize_name(second)
    if a == b:
        return 1.0 if a else 0.0
    longest = max(len(a), len(b))
    return (longest - levenshtein_distance(a, b)) / longest


def document_variants(raw_document: Any, document_type: Optional[str] = None) -> List[str]:
    """
    Alternative spellings under which a document may have been stored:
    zero-padded to 8 (DNI or untyped), zero-stripped, and grouped as ddd.ddd.ddd.
    """
    document = clean_text(raw_document)
    if document is None:
        return []
    document = document.replace(" ", "")

    variants: List[str] = []

    def add(value: str) -> None:
        if value and value != document and value not in variants:
            variants.append(value)

    doc_type = (clean_text(document_type) or "").upper()
    if doc_type in ("", "DNI"):
        add(document.rjust(8, "0"))

    add(document.lstrip("0"))
    add(re.sub(r"(\d{3})(\d{3})(\d{3})", r"\1.\2.\3", document, count=1))
    return variants
