from __future__ import annotations

from collections.abc import Iterable

from ..models.config_models import DEFAULT_EMAIL_DOMAIN
from ..models.field_rule import (
    DIGIT_ONLY_HEADERS,
    HEADER_APELLIDO,
    HEADER_NOMBRE,
    HEADER_USERNAME,
    OUTPUT_HEADERS,
    Generated,
    GeneratedKind,
    Mapping,
    OutputRecord,
)
from ..models.row_data import RowData
from .identity import display_name, primary_username
from .mapping import resolve
from .normalization import canonical_email, digits_only, to_clean_string

"""Row projection onto the Outlook output layout.

project() turns one spreadsheet row into one OutputRecord holding every
output header. Teléfono móvil and Fax are always reduced to digits: Fax
carries the DNI in this import.
"""

__all__ = [
    "apply_override",
    "generated_email",
    "name_parts",
    "project",
    "project_all",
]


def name_parts(row: RowData, mapping: Mapping) -> tuple[str, str]:
    """Resolved (nombre, apellido) for a row."""
    return resolve(mapping.get(HEADER_NOMBRE), row), resolve(mapping.get(HEADER_APELLIDO), row)


def generated_email(row: RowData, mapping: Mapping, domain: str = DEFAULT_EMAIL_DOMAIN) -> str:
    nombre, apellido = name_parts(row, mapping)
    return primary_username(nombre, apellido, domain)


def project(row: RowData, mapping: Mapping, domain: str = DEFAULT_EMAIL_DOMAIN) -> OutputRecord:
    nombre, apellido = name_parts(row, mapping)
    username = primary_username(nombre, apellido, domain)
    shown = display_name(apellido, nombre)

    record: OutputRecord = {}
    for header in OUTPUT_HEADERS:
        rule = mapping.get(header)
        match rule:
            case Generated(kind=GeneratedKind.USERNAME):
                value = username
            case Generated(kind=GeneratedKind.DISPLAY_NAME):
                value = shown
            case _:
                value = resolve(rule, row)
        if header in DIGIT_ONLY_HEADERS:
            value = digits_only(value)
        record[header] = value
    return record


def project_all(
    rows: Iterable[RowData], mapping: Mapping, domain: str = DEFAULT_EMAIL_DOMAIN
) -> list[OutputRecord]:
    return [project(row, mapping, domain) for row in rows]


def apply_override(record: OutputRecord, override: str | None) -> OutputRecord:
    """Return a copy of record whose username is the canonical override, if any."""
    cleaned = to_clean_string(override)
    if not cleaned:
        return record
    updated = dict(record)
    updated[HEADER_USERNAME] = canonical_email(cleaned)
    return updated
