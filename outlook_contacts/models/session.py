from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field

from .config_models import DEFAULT_EMAIL_DOMAIN, RequiredPolicy
from .directory import DirectorySnapshot
from .field_rule import Mapping, OutputRecord
from .report import DniMatch, EmailConflict, ValidationIssue
from .row_data import RowData

"""Session state and evaluation result models.

SessionState is the full input tuple of one working session. Every derived
view (eligible rows, conflicts, reports) is recomputed from it by the engine;
the engine never mutates it and returns new overrides instead.
"""

__all__ = [
    "Evaluation",
    "SessionState",
]


@dataclass(frozen=True)
class SessionState:
    rows: tuple[RowData, ...]
    mapping: Mapping
    required: RequiredPolicy = field(default_factory=RequiredPolicy)
    directory: DirectorySnapshot = field(default_factory=DirectorySnapshot.empty)
    overrides: dict[int, str] = field(default_factory=dict)  # row number -> email
    condition_column: str = ""  # empty = no enrollment gate
    email_domain: str = DEFAULT_EMAIL_DOMAIN


@dataclass(frozen=True)
class Evaluation:
    """Every view derived from a SessionState in one pass."""
    candidates: list[RowData]  # passed condition, directory DNI and required gates
    eligible: list[RowData]  # also passed both email gates, in row order
    records: list[OutputRecord]  # eligible rows projected, overrides applied
    validation_issues: list[ValidationIssue]
    dni_matches: list[DniMatch]
    conflicts: list[EmailConflict]
    email_counts: Counter[str]
    duplicate_rows: frozenset[int]  # rows dropped as later duplicates
