from __future__ import annotations

import re

from ..models.config_models import DEFAULT_EMAIL_DOMAIN
from .normalization import tokenize

"""Institutional username and display name generation.

primary_username():   first given name + "." + first surname
alternate_username(): second given name + "." + first surname, offered only
                      when the primary address is already taken

Both return "" when a required name token is missing.
"""

__all__ = [
    "alternate_username",
    "display_name",
    "primary_username",
]

_INVALID_LOCAL = re.compile(r"[^a-z0-9.]")


def _token(value: str, index: int) -> str:
    tokens = tokenize(value)
    return tokens[index] if len(tokens) > index else ""


def _compose(given: str, surname: str, domain: str) -> str:
    if not given or not surname:
        return ""
    local = _INVALID_LOCAL.sub("", f"{given}.{surname}")
    return f"{local}@{domain}"


def primary_username(names: str, surnames: str, domain: str = DEFAULT_EMAIL_DOMAIN) -> str:
    """'Ana María', 'López Díaz' -> 'ana.lopez@<domain>'."""
    return _compose(_token(names, 0), _token(surnames, 0), domain)


def alternate_username(names: str, surnames: str, domain: str = DEFAULT_EMAIL_DOMAIN) -> str:
    """'Ana María', 'López Díaz' -> 'maria.lopez@<domain>'; "" without a second given name."""
    return _compose(_token(names, 1), _token(surnames, 0), domain)


def display_name(apellido: str, nombre: str) -> str:
    """Surname first, empty parts omitted."""
    return " ".join(part for part in (apellido.strip(), nombre.strip()) if part)
