from __future__ import annotations

from collections import Counter
from collections.abc import Iterable

from ..models.config_models import REQUIRED_LABELS, RequiredPolicy
from ..models.directory import DirectorySnapshot
from ..models.field_rule import (
    HEADER_APELLIDO,
    HEADER_FAX,
    HEADER_MOBILE,
    HEADER_NOMBRE,
    HEADER_STUDENT_CODE,
    OutputRecord,
)
from ..models.report import DniMatch, ValidationIssue
from ..models.row_data import RowData
from ..models.session import SessionState
from .normalization import canonical_email, digits_only, identity_key, to_clean_string
from .projector import generated_email, project

"""Export eligibility gates.

A row is exported only if it passes, in this order:

1. condition   - the enrollment condition column (if any) reads "INGRESO"
2. directory   - its DNI is not already in the directory snapshot
3. required    - every required field enabled in the policy is non-empty
4. email       - its effective email is not already in the directory
5. duplicates  - no earlier surviving row uses the same effective email

Rows with an empty effective email skip gates 4 and 5. Every function here is
a pure function of the SessionState; nothing is cached between calls.
"""

__all__ = [
    "base_candidates",
    "duplicate_row_numbers",
    "effective_email",
    "eligible_rows",
    "existing_dni_matches",
    "filter_by_email",
    "missing_fields",
    "passes_condition",
    "passes_required",
    "planned_email_counts",
    "row_dni",
    "validate_rows",
]

ENROLLED_KEY = identity_key("INGRESO")

# Policy flag -> projected header that must be non-empty
REQUIRED_HEADERS: dict[str, str] = {
    "dni": HEADER_FAX,
    "celular": HEADER_MOBILE,
    "codigo": HEADER_STUDENT_CODE,
}


def passes_condition(row: RowData, condition_column: str) -> bool:
    if not condition_column:
        return True
    return identity_key(to_clean_string(row.get(condition_column))) == ENROLLED_KEY


def row_dni(record: OutputRecord) -> str:
    return digits_only(record.get(HEADER_FAX, ""))


def _dni_exists(record: OutputRecord, directory: DirectorySnapshot) -> bool:
    dni = row_dni(record)
    return bool(dni) and dni in directory.dnis


def missing_fields(record: OutputRecord, required: RequiredPolicy) -> list[str]:
    """Labels of the required fields that are empty in the projected record."""
    policy = required.to_dict()
    return [
        REQUIRED_LABELS[flag]
        for flag, header in REQUIRED_HEADERS.items()
        if policy[flag] and not to_clean_string(record.get(header))
    ]


def passes_required(record: OutputRecord, required: RequiredPolicy) -> bool:
    return not missing_fields(record, required)


def base_candidates(state: SessionState) -> list[RowData]:
    """Rows passing gates 1-3, in row order."""
    candidates: list[RowData] = []
    for row in state.rows:
        if not passes_condition(row, state.condition_column):
            continue
        record = project(row, state.mapping, state.email_domain)
        if _dni_exists(record, state.directory):
            continue
        if not passes_required(record, state.required):
            continue
        candidates.append(row)
    return candidates


def effective_email(state: SessionState, row: RowData) -> str:
    """Canonical override if one is set, else the canonical generated email."""
    override = to_clean_string(state.overrides.get(row.row_number))
    return canonical_email(override or generated_email(row, state.mapping, state.email_domain))


def planned_email_counts(state: SessionState, candidates: Iterable[RowData]) -> Counter[str]:
    counts: Counter[str] = Counter()
    for row in candidates:
        email = effective_email(state, row)
        if email:
            counts[email] += 1
    return counts


def duplicate_row_numbers(state: SessionState, candidates: Iterable[RowData]) -> frozenset[int]:
    """Rows dropped by the duplicate gate: every occurrence after the first.

    Rows already rejected because their email is in the directory neither
    count as first occurrence nor appear in the result.
    """
    seen: set[str] = set()
    dropped: set[int] = set()
    for row in candidates:
        email = effective_email(state, row)
        if not email or email in state.directory.emails:
            continue
        if email in seen:
            dropped.add(row.row_number)
        else:
            seen.add(email)
    return frozenset(dropped)


def filter_by_email(state: SessionState, candidates: Iterable[RowData]) -> list[RowData]:
    """Apply gates 4 and 5 to rows that already passed gates 1-3."""
    candidates = list(candidates)
    duplicates = duplicate_row_numbers(state, candidates)
    kept: list[RowData] = []
    for row in candidates:
        email = effective_email(state, row)
        if email and email in state.directory.emails:
            continue
        if row.row_number in duplicates:
            continue
        kept.append(row)
    return kept


def eligible_rows(state: SessionState) -> list[RowData]:
    return filter_by_email(state, base_candidates(state))


def validate_rows(state: SessionState) -> list[ValidationIssue]:
    """Rows that pass the condition but miss required fields.

    Rows already provisioned (DNI in the directory) are not reported; neither
    are email collisions or duplicates, which are not data errors.
    """
    issues: list[ValidationIssue] = []
    for row in state.rows:
        if not passes_condition(row, state.condition_column):
            continue
        record = project(row, state.mapping, state.email_domain)
        if _dni_exists(record, state.directory):
            continue
        missing = missing_fields(record, state.required)
        if missing:
            issues.append(ValidationIssue(row_number=row.row_number, missing=tuple(missing)))
    return issues


def existing_dni_matches(state: SessionState) -> list[DniMatch]:
    """Rows passing the condition whose DNI is already provisioned."""
    if not state.directory.dnis:
        return []
    matches: list[DniMatch] = []
    for row in state.rows:
        if not passes_condition(row, state.condition_column):
            continue
        record = project(row, state.mapping, state.email_domain)
        if not _dni_exists(record, state.directory):
            continue
        matches.append(
            DniMatch(
                row_number=row.row_number,
                dni=row_dni(record),
                nombre=record[HEADER_NOMBRE],
                apellido=record[HEADER_APELLIDO],
            )
        )
    return matches
