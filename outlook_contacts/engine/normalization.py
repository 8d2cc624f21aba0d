from __future__ import annotations

import math
import re
import unicodedata
from typing import Any

"""Text normalization helpers.

Pure string functions used to compare spreadsheet values, directory entries
and generated usernames regardless of accents, case and punctuation.
"""

__all__ = [
    "canonical_email",
    "digits_only",
    "identity_key",
    "strip_accents",
    "to_clean_string",
    "tokenize",
]

_COMBINING_MARKS = re.compile("[\u0300-\u036f]")
_NON_TOKEN = re.compile(r"[^a-z0-9]")
_NON_KEY = re.compile(r"[^A-Z0-9]")
_NON_EMAIL = re.compile(r"[^a-z0-9.]")
_NON_DIGIT = re.compile(r"[^0-9]")


def to_clean_string(value: Any) -> str:
    """Render a cell value as trimmed text; None and NaN become ""."""
    if value is None:
        return ""
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        # spreadsheet numbers such as DNIs arrive as 12345678.0
        if value.is_integer():
            return str(int(value))
    return str(value).strip()


def strip_accents(value: str) -> str:
    """Decompose (NFD) and drop combining diacritical marks."""
    return _COMBINING_MARKS.sub("", unicodedata.normalize("NFD", value))


def tokenize(value: str) -> list[str]:
    """Lowercase ASCII word tokens: 'José  María' -> ['jose', 'maria']."""
    cleaned = _NON_TOKEN.sub(" ", strip_accents(value).lower())
    return cleaned.split()


def identity_key(value: str) -> str:
    """Uppercase alphanumeric key for exact comparison: 'Ingresó' -> 'INGRESO'."""
    return _NON_KEY.sub("", strip_accents(value).upper())


def canonical_email(value: Any) -> str:
    """Canonical form of an email or bare local part.

    The local part and domain are cleaned independently after splitting once
    on '@'. Without a domain only the cleaned local part is returned.
    """
    cleaned = strip_accents(to_clean_string(value)).lower()
    if not cleaned:
        return ""
    local_raw, _, domain_raw = cleaned.partition("@")
    local = _NON_EMAIL.sub("", local_raw)
    domain = _NON_EMAIL.sub("", domain_raw)
    if not domain:
        return local
    return f"{local}@{domain}"


def digits_only(value: str) -> str:
    return _NON_DIGIT.sub("", value)
