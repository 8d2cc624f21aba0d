"""Domain models for the Outlook contact export.

This package contains the dataclasses shared by the reader, the export
engine and the command line front end.
"""

from .config_models import DEFAULT_EMAIL_DOMAIN, RequiredPolicy
from .directory import DirectorySnapshot
from .field_rule import (
    OUTPUT_HEADERS,
    FieldRule,
    Fixed,
    FromColumn,
    Generated,
    GeneratedKind,
    Mapping,
    OutputRecord,
)
from .report import ConflictStatus, DniMatch, EmailConflict, ValidationIssue
from .row_data import RowData
from .session import Evaluation, SessionState

__all__ = [
    # Mapping models
    "OUTPUT_HEADERS",
    "FieldRule",
    "Fixed",
    "FromColumn",
    "Generated",
    "GeneratedKind",
    "Mapping",
    "OutputRecord",
    # Input models
    "DirectorySnapshot",
    "RowData",
    # Policy
    "DEFAULT_EMAIL_DOMAIN",
    "RequiredPolicy",
    # Engine state and reports
    "ConflictStatus",
    "DniMatch",
    "EmailConflict",
    "Evaluation",
    "SessionState",
    "ValidationIssue",
]
