from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

"""Run result models for the Outlook contact export.

ExportResult aggregates everything the SUMMARY line and the CLI exit code
need; FileStat describes one written CSV part.
"""

__all__ = [
    "ExportResult",
    "FileStat",
]


@dataclass(frozen=True)
class FileStat:
    file_name: str
    rows: int  # data rows, header excluded


@dataclass(frozen=True)
class ExportResult:
    """Aggregated results of one export run."""
    total_rows: int  # data rows read from the sheet
    eligible_rows: int  # rows exported
    invalid_rows: int  # rows with missing required fields
    dni_matches: int  # rows whose DNI already exists in the directory
    conflicts: int  # rows whose email collides with the directory
    duplicates: int  # later duplicates dropped inside the batch
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    files: list[FileStat] = field(default_factory=list)
    directory_failed: bool = False  # directory supplied but not fully applied
    dry_run: bool = False
