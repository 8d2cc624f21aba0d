from __future__ import annotations

from dataclasses import dataclass, fields

"""Policy dataclasses shared by the engine and the preference store.

These are separate from the YAML loader in outlook_contacts/config/loader.py
and only model what the export engine consumes by value.
"""

__all__ = [
    "DEFAULT_EMAIL_DOMAIN",
    "REQUIRED_LABELS",
    "RequiredPolicy",
]

DEFAULT_EMAIL_DOMAIN = "autonomadeica.edu.pe"

# Policy flag -> label shown in validation reports
REQUIRED_LABELS: dict[str, str] = {
    "dni": "DNI",
    "celular": "Celular",
    "codigo": "Código estudiante",
}


@dataclass(frozen=True)
class RequiredPolicy:
    """Which projected fields must be non-empty for a row to be exported.

    Each flag is independent; turning one off never changes the outcome of
    another gate.
    """
    dni: bool = True  # Fax (identity number)
    celular: bool = True  # Teléfono móvil
    codigo: bool = True  # Código postal (student code)

    def to_dict(self) -> dict[str, bool]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: object) -> RequiredPolicy:
        """Build a policy from persisted data, keeping defaults for bad or missing flags."""
        if not isinstance(data, dict):
            return cls()
        known = {f.name for f in fields(cls)}
        flags = {k: v for k, v in data.items() if k in known and isinstance(v, bool)}
        return cls(**flags)
