from __future__ import annotations

from ..models.session import Evaluation, SessionState
from .conflicts import email_conflicts
from .eligibility import (
    base_candidates,
    duplicate_row_numbers,
    existing_dni_matches,
    filter_by_email,
    planned_email_counts,
    validate_rows,
)
from .projector import apply_override, project

"""Full recomputation of every derived view of a session."""

__all__ = [
    "evaluate",
]


def evaluate(state: SessionState) -> Evaluation:
    """Derive eligibility, reports and export records from state.

    Same state in, same Evaluation out: there is no incremental update and
    no memoization to keep consistent.
    """
    candidates = base_candidates(state)
    eligible = filter_by_email(state, candidates)
    records = [
        apply_override(project(row, state.mapping, state.email_domain), state.overrides.get(row.row_number))
        for row in eligible
    ]
    return Evaluation(
        candidates=candidates,
        eligible=eligible,
        records=records,
        validation_issues=validate_rows(state),
        dni_matches=existing_dni_matches(state),
        conflicts=email_conflicts(state, candidates),
        email_counts=planned_email_counts(state, candidates),
        duplicate_rows=duplicate_row_numbers(state, candidates),
    )
