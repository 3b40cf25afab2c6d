import os
from pathlib import Path
import sys

import pytest

sys.path.append(str(Path(__file__).resolve().parents[2]))
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

from backend.app.stays.config import NAME_MATCH_THRESHOLD
from backend.app.stays.matching import (
    document_variants,
    levenshtein_distance,
    name_similarity,
    normalize_name,
)


def test_normalize_name_folds_accents_and_punctuation():
    assert normalize_name("  José   Ñuñez ") == "jose nunez"
    assert normalize_name("O'Brien, Ana 2") == "obrien ana"
    assert normalize_name(None) == ""


@pytest.mark.parametrize(
    "a, b, expected",
    [
        ("kitten", "sitting", 3),
        ("", "abc", 3),
        ("abc", "", 3),
        ("flaw", "lawn", 2),
        ("same", "same", 0),
    ],
)
def test_levenshtein_distance(a, b, expected):
    assert levenshtein_distance(a, b) == expected
    assert levenshtein_distance(b, a) == expected


def test_identical_names_score_one():
    assert name_similarity("Maria Lopez Garcia", "Maria Lopez Garcia") == 1.0
    assert name_similarity("MARÍA LÓPEZ", "maria lopez") == 1.0


def test_empty_names_never_match():
    assert name_similarity("", "") == 0.0
    assert name_similarity(None, "Ana") == 0.0


def test_similarity_is_symmetric_and_bounded():
    pairs = [
        ("Juan Perez", "Pedro Gomez"),
        ("Rosa Quispe", "Rosa Quispe Mamani"),
        ("Luis", "Lucia"),
    ]
    for a, b in pairs:
        score = name_similarity(a, b)
        assert 0.0 <= score <= 1.0
        assert score == name_similarity(b, a)


def test_unrelated_names_fall_below_threshold():
    assert name_similarity("Juan Perez", "Pedro Gomez") <= NAME_MATCH_THRESHOLD
    assert name_similarity("Carlos Mamani", "Lucia Flores") <= NAME_MATCH_THRESHOLD


def test_single_typo_clears_threshold():
    assert name_similarity("Rosa Quispe Mamani", "Rosa Quispe Mamany") > NAME_MATCH_THRESHOLD


def test_document_variants_for_short_dni():
    assert document_variants("1234567") == ["01234567"]
    assert document_variants("01234567", "DNI") == ["1234567"]


def test_document_variants_groups_nine_digits():
    assert document_variants("123456789") == ["123.456.789"]


def test_document_variants_for_passport_skip_padding():
    assert document_variants("0AB123", "PASSPORT") == ["AB123"]
    assert document_variants("AB123", "PASSPORT") == []


def test_document_variants_blank():
    assert document_variants("") == []
    assert document_variants("-") == []
