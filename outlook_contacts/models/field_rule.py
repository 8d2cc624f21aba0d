from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

"""Mapping rule model for the Outlook contact export.

Each Outlook output header is filled by exactly one FieldRule:

- Fixed: a literal value typed by the user (e.g. Puesto = "Estudiante")
- FromColumn: the value of a spreadsheet column
- Generated: a value computed from the name fields (institutional username
  or display name)

Rules are dispatched by type, never by comparing header strings.
"""

__all__ = [
    "DIGIT_ONLY_HEADERS",
    "Fixed",
    "FieldRule",
    "FromColumn",
    "GENERATED_BY_HEADER",
    "Generated",
    "GeneratedKind",
    "HEADER_APELLIDO",
    "HEADER_DISPLAY_NAME",
    "HEADER_FAX",
    "HEADER_MOBILE",
    "HEADER_NOMBRE",
    "HEADER_STUDENT_CODE",
    "HEADER_USERNAME",
    "Mapping",
    "OUTPUT_HEADERS",
    "OutputRecord",
]

HEADER_USERNAME = "Nombre de usuario"
HEADER_NOMBRE = "Nombre"
HEADER_APELLIDO = "Apellido"
HEADER_DISPLAY_NAME = "Nombre para mostrar"
HEADER_MOBILE = "Teléfono móvil"
HEADER_FAX = "Fax"  # carries the national identity number (DNI)
HEADER_STUDENT_CODE = "Código postal"  # carries the student code

# Outlook (Spanish locale) contact import layout. Order is significant.
OUTPUT_HEADERS: tuple[str, ...] = (
    HEADER_USERNAME,
    HEADER_NOMBRE,
    HEADER_APELLIDO,
    HEADER_DISPLAY_NAME,
    "Puesto",
    "Departamento",
    "Número del trabajo",
    "Teléfono de la oficina",
    HEADER_MOBILE,
    HEADER_FAX,
    "Dirección de correo electrónico alternativa",
    "Dirección",
    "Ciudad",
    "Estado o provincia",
    HEADER_STUDENT_CODE,
    "País o región",
)

DIGIT_ONLY_HEADERS: frozenset[str] = frozenset({HEADER_MOBILE, HEADER_FAX})


class GeneratedKind(str, Enum):
    """Values a Generated rule can produce. The string value is the persisted form."""
    USERNAME = "username"
    DISPLAY_NAME = "displayName"


# Only these headers may hold a Generated rule.
GENERATED_BY_HEADER: dict[str, GeneratedKind] = {
    HEADER_USERNAME: GeneratedKind.USERNAME,
    HEADER_DISPLAY_NAME: GeneratedKind.DISPLAY_NAME,
}


@dataclass(frozen=True)
class Fixed:
    value: str = ""


@dataclass(frozen=True)
class FromColumn:
    column: str = ""  # empty = intentionally unmapped


@dataclass(frozen=True)
class Generated:
    kind: GeneratedKind


FieldRule = Fixed | FromColumn | Generated

# Output header -> rule. Total over OUTPUT_HEADERS once sanitized.
Mapping = dict[str, FieldRule]

# Output header -> cell text for one exported contact.
OutputRecord = dict[str, str]
