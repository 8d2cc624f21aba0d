from __future__ import annotations

from collections.abc import Iterable

from ..models.config_models import DEFAULT_EMAIL_DOMAIN
from ..models.field_rule import HEADER_APELLIDO, HEADER_NOMBRE
from ..models.report import ConflictStatus, EmailConflict
from ..models.row_data import RowData
from ..models.session import SessionState
from .eligibility import base_candidates, duplicate_row_numbers, effective_email
from .identity import alternate_username
from .normalization import canonical_email, to_clean_string
from .projector import generated_email, project

"""Email conflict resolution workflow.

Candidate rows whose generated address is already taken in the directory are
surfaced as conflicts. The user resolves them by typing a replacement
(set_override) or by accepting the "second given name" suggestion for every
unresolved conflict at once (apply_alternate_suggestions). Overrides are a
sparse row number -> email dict; these functions always return a new dict.
"""

__all__ = [
    "apply_alternate_suggestions",
    "conflict_status",
    "email_conflicts",
    "set_override",
]


def conflict_status(email: str, directory_emails: frozenset[str], duplicate: bool) -> ConflictStatus:
    if not email:
        return ConflictStatus.NO_EMAIL
    if email in directory_emails:
        return ConflictStatus.IN_USE
    if duplicate:
        return ConflictStatus.DUPLICATE
    return ConflictStatus.AVAILABLE


def email_conflicts(state: SessionState, candidates: Iterable[RowData] | None = None) -> list[EmailConflict]:
    """Conflicts among rows passing gates 1-3.

    A row is listed while either its generated or its effective email is in
    the directory, so a row stays visible (with its status) after the user
    types a replacement.
    """
    emails = state.directory.emails
    if not emails:
        return []
    candidates = base_candidates(state) if candidates is None else list(candidates)
    duplicates = duplicate_row_numbers(state, candidates)

    conflicts: list[EmailConflict] = []
    for row in candidates:
        generated = canonical_email(generated_email(row, state.mapping, state.email_domain))
        effective = effective_email(state, row)
        if generated not in emails and effective not in emails:
            continue
        override = to_clean_string(state.overrides.get(row.row_number))
        record = project(row, state.mapping, state.email_domain)
        conflicts.append(
            EmailConflict(
                row_number=row.row_number,
                nombre=record[HEADER_NOMBRE],
                apellido=record[HEADER_APELLIDO],
                generated_email=generated,
                current_value=override or generated,
                status=conflict_status(effective, emails, row.row_number in duplicates),
                overridden=bool(override),
            )
        )
    return conflicts


def set_override(overrides: dict[int, str], row_number: int, value: str, generated: str) -> dict[int, str]:
    """Commit a typed replacement email for a row.

    A blank value, or one that canonicalizes to the generated email, removes
    the override instead so the row returns to its default address.
    """
    updated = dict(overrides)
    cleaned = to_clean_string(value)
    if not cleaned or canonical_email(cleaned) == canonical_email(generated):
        updated.pop(row_number, None)
    else:
        updated[row_number] = cleaned
    return updated


def apply_alternate_suggestions(
    overrides: dict[int, str],
    conflicts: Iterable[EmailConflict],
    domain: str = DEFAULT_EMAIL_DOMAIN,
) -> dict[int, str]:
    """Override every un-overridden conflict with its second-given-name address.

    Rows that already have an override, have no second given name, or whose
    alternate equals the colliding generated address are left untouched.
    """
    updated = dict(overrides)
    for conflict in conflicts:
        if to_clean_string(updated.get(conflict.row_number)):
            continue
        alternate = alternate_username(conflict.nombre, conflict.apellido, domain)
        if not alternate or canonical_email(alternate) == conflict.generated_email:
            continue
        updated[conflict.row_number] = alternate
    return updated
