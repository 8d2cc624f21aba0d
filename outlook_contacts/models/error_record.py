from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for error logging.

ErrorRecord is the structured entry written to the JSON Lines error log for
every problem found during a run: unreadable inputs, directory schema
problems, rows with missing required fields, DNIs already provisioned and
unresolved email conflicts. row=-1 marks file-level errors.
"""

__all__ = [
    "ErrorRecord",
]


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        file: Input file name (student workbook or directory export)
        sheet: Sheet name, or "<FILE_LEVEL>" when not sheet specific
        row: Spreadsheet row number. Use -1 for file-level errors
        error_type: Error classification in UPPER_SNAKE_CASE format
        message: Human readable description
    """
    timestamp: str  # ISO8601 UTC
    file: str
    sheet: str
    row: int
    error_type: str  # UPPER_SNAKE
    message: str

    @staticmethod
    def create(file: str, sheet: str, row: int, error_type: str, message: str) -> ErrorRecord:
        """Create a new ErrorRecord stamped with the current UTC time."""
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            file=file,
            sheet=sheet,
            row=row,
            error_type=error_type,
            message=message,
        )

    def to_json_line(self) -> str:
        """Serialize to one JSON line with exactly the dataclass keys."""
        return json.dumps(asdict(self), ensure_ascii=False)
