from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from ..models.field_rule import (
    GENERATED_BY_HEADER,
    HEADER_APELLIDO,
    HEADER_FAX,
    HEADER_MOBILE,
    HEADER_NOMBRE,
    HEADER_STUDENT_CODE,
    OUTPUT_HEADERS,
    FieldRule,
    Fixed,
    FromColumn,
    Generated,
    GeneratedKind,
    Mapping,
)
from ..models.row_data import RowData
from .normalization import identity_key, to_clean_string

"""Mapping resolution and mapping lifecycle.

- resolve(): evaluate one FieldRule against one row
- build_default_mapping(): infer rules from the sheet's header names
- merge_mapping() / sanitize_mapping(): combine the inferred defaults with a
  persisted mapping and repair rules that no longer fit the current columns
- mapping_to_dict() / mapping_from_dict(): persisted {"type", "value"} form
- parse_mapping_edit(): "HEADER=type:value" edits from the command line
"""

__all__ = [
    "CONDITION_CANDIDATES",
    "MappingError",
    "build_default_mapping",
    "describe_rule",
    "detect_condition_column",
    "find_column",
    "mapping_from_dict",
    "mapping_to_dict",
    "match_output_header",
    "merge_mapping",
    "parse_mapping_edit",
    "parse_rule_spec",
    "resolve",
    "rule_from_dict",
    "rule_to_dict",
    "sanitize_mapping",
]

logger = logging.getLogger(__name__)

RULE_COLUMN = "column"
RULE_FIXED = "fixed"
RULE_GENERATED = "generated"

# Output header -> header name fragments searched in the student sheet
COLUMN_CANDIDATES: dict[str, list[str]] = {
    HEADER_NOMBRE: ["NOMBRES", "NOMBRES COMPLETOS", "NOMBRE"],
    HEADER_APELLIDO: ["APELLIDOS", "APELLIDOS COMPLETOS", "APELLIDO"],
    HEADER_MOBILE: ["NUMERO DE CELULAR", "CELULAR", "TELEFONO MOVIL"],
    HEADER_FAX: ["DNI", "DOCUMENTO"],
    HEADER_STUDENT_CODE: ["CODIGO DE ESTUDIANTE", "CODIGO ESTUDIANTE", "CODIGO"],
    "Dirección de correo electrónico alternativa": ["CORREO PERSONAL", "EMAIL PERSONAL", "MAIL"],
}

FIXED_DEFAULTS: dict[str, str] = {
    "Puesto": "Estudiante",
    "País o región": "Peru",
}

CONDITION_CANDIDATES = ["CONDICION", "CONDICIÓN"]


class MappingError(Exception):
    """Raised when a mapping edit typed by the user cannot be understood."""


def resolve(rule: FieldRule | None, row: RowData) -> str:
    """Resolve a rule against a row. Never raises; missing data gives "".

    Generated rules also give "" here: generation needs the name fields and
    is handled by the row projector.
    """
    match rule:
        case Fixed(value=value):
            return to_clean_string(value)
        case FromColumn(column=column):
            return to_clean_string(row.get(column))
        case _:
            return ""


def find_column(columns: Iterable[str], candidates: Iterable[str]) -> str:
    """Return the first column whose key contains any candidate key, else ""."""
    keys = [identity_key(c) for c in candidates]
    keys = [k for k in keys if k]
    for column in columns:
        column_key = identity_key(column)
        if any(k in column_key for k in keys):
            return column
    return ""


def detect_condition_column(columns: Iterable[str]) -> str:
    return find_column(columns, CONDITION_CANDIDATES)


def build_default_mapping(columns: Iterable[str]) -> Mapping:
    """Infer a complete mapping from the header names of a sheet."""
    columns = list(columns)
    mapping: Mapping = {}
    for header in OUTPUT_HEADERS:
        if header in GENERATED_BY_HEADER:
            mapping[header] = Generated(GENERATED_BY_HEADER[header])
        elif header in COLUMN_CANDIDATES:
            mapping[header] = FromColumn(find_column(columns, COLUMN_CANDIDATES[header]))
        else:
            mapping[header] = Fixed(FIXED_DEFAULTS.get(header, ""))
    return mapping


def merge_mapping(defaults: Mapping, stored: Mapping | None) -> Mapping:
    """Overlay stored rules on the defaults, header by header."""
    merged = dict(defaults)
    if not stored:
        return merged
    for header in OUTPUT_HEADERS:
        if header in stored:
            merged[header] = stored[header]
    return merged


def sanitize_mapping(mapping: Mapping, columns: Iterable[str], defaults: Mapping) -> Mapping:
    """Return a total mapping that only references existing columns.

    - column rules pointing at a vanished column fall back to the default rule
      for that header
    - generated rules are only kept on headers that can generate that kind
    - missing headers take the default rule
    """
    available = set(columns)
    sanitized: Mapping = {}
    for header in OUTPUT_HEADERS:
        rule = mapping.get(header)
        default = defaults.get(header, Fixed(""))
        match rule:
            case FromColumn(column=column) if not column or column in available:
                sanitized[header] = rule
            case FromColumn(column=column):
                logger.debug(f"mapping: column '{column}' for '{header}' not found, using default")
                sanitized[header] = default
            case Generated(kind=kind) if GENERATED_BY_HEADER.get(header) == kind:
                sanitized[header] = rule
            case Fixed():
                sanitized[header] = rule
            case _:
                sanitized[header] = default
    return sanitized


def rule_to_dict(rule: FieldRule) -> dict[str, str]:
    match rule:
        case FromColumn(column=column):
            return {"type": RULE_COLUMN, "value": column}
        case Generated(kind=kind):
            return {"type": RULE_GENERATED, "value": kind.value}
        case Fixed(value=value):
            return {"type": RULE_FIXED, "value": value}
    raise TypeError(f"not a mapping rule: {rule!r}")


def rule_from_dict(data: Any) -> FieldRule | None:
    """Decode one persisted rule; None when it is malformed."""
    if not isinstance(data, dict):
        return None
    kind, value = data.get("type"), data.get("value")
    if not isinstance(value, str):
        return None
    if kind == RULE_COLUMN:
        return FromColumn(value)
    if kind == RULE_FIXED:
        return Fixed(value)
    if kind == RULE_GENERATED:
        try:
            return Generated(GeneratedKind(value))
        except ValueError:
            return None
    return None


def mapping_to_dict(mapping: Mapping) -> dict[str, dict[str, str]]:
    return {header: rule_to_dict(mapping[header]) for header in OUTPUT_HEADERS if header in mapping}


def mapping_from_dict(data: Any) -> Mapping:
    """Decode a persisted mapping, skipping unknown headers and malformed rules."""
    if not isinstance(data, dict):
        return {}
    mapping: Mapping = {}
    for header in OUTPUT_HEADERS:
        rule = rule_from_dict(data.get(header))
        if rule is not None:
            mapping[header] = rule
    return mapping


def match_output_header(name: str) -> str:
    """Find the output header for a loosely typed name ('Telefono movil')."""
    key = identity_key(name)
    for header in OUTPUT_HEADERS:
        if identity_key(header) == key:
            return header
    raise MappingError(f"unknown output header: {name!r}")


def parse_rule_spec(spec: str) -> FieldRule:
    """Parse 'column:DNI', 'fixed:Estudiante' or 'generated:username'."""
    kind, sep, value = spec.partition(":")
    kind = kind.strip().lower()
    if not sep:
        raise MappingError(f"rule must look like TYPE:VALUE, got {spec!r}")
    rule = rule_from_dict({"type": kind, "value": value.strip()})
    if rule is None:
        raise MappingError(f"invalid rule {spec!r} (types: column, fixed, generated)")
    return rule


def parse_mapping_edit(text: str) -> tuple[str, FieldRule]:
    """Parse a command line edit 'HEADER=TYPE:VALUE'."""
    name, sep, spec = text.partition("=")
    if not sep:
        raise MappingError(f"mapping edit must look like HEADER=TYPE:VALUE, got {text!r}")
    header = match_output_header(name)
    rule = parse_rule_spec(spec)
    if isinstance(rule, Generated) and GENERATED_BY_HEADER.get(header) != rule.kind:
        raise MappingError(f"'{header}' cannot use generated value '{rule.kind.value}'")
    return header, rule


def describe_rule(rule: FieldRule | None) -> str:
    """Short human readable form used by --inspect-data."""
    match rule:
        case FromColumn(column=column):
            return f"column:{column}" if column else "column:<none>"
        case Generated(kind=kind):
            return f"generated:{kind.value}"
        case Fixed(value=value):
            return f"fixed:{value}"
    return "<unset>"
