from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

"""Report models produced by the eligibility engine.

These are views for the user: they explain why rows are missing from the
export and which generated emails need attention. None of them gate the
export by themselves.
"""

__all__ = [
    "ConflictStatus",
    "DniMatch",
    "EmailConflict",
    "ValidationIssue",
]


@dataclass(frozen=True)
class ValidationIssue:
    """A row that passed the condition check but lacks required fields."""
    row_number: int
    missing: tuple[str, ...]  # labels, e.g. ("DNI", "Celular")


@dataclass(frozen=True)
class DniMatch:
    """A row whose DNI already exists in the directory (never exported)."""
    row_number: int
    dni: str
    nombre: str
    apellido: str


class ConflictStatus(Enum):
    NO_EMAIL = "Sin correo"
    IN_USE = "En uso"
    DUPLICATE = "Duplicado en la lista (no se exporta)"
    AVAILABLE = "Disponible"


@dataclass(frozen=True)
class EmailConflict:
    """A candidate row whose generated email collides with the directory."""
    row_number: int
    nombre: str
    apellido: str
    generated_email: str  # canonical
    current_value: str  # override if present, else generated_email
    status: ConflictStatus
    overridden: bool = False
