from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

from ..models.error_record import ErrorRecord

"""Error log buffering.

- JSON Lines, one ErrorRecord per line, no extra keys
- One file per run: <logs_dir>/errors-YYYYMMDD-HHMMSS.log (UTC), created on
  the first flush that has records
- Records are buffered in memory and written once at the end of the run
"""

__all__ = [
    "ErrorLogBuffer",
    "ErrorRecord",
]

LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"


class ErrorLogBuffer:
    """In-memory buffer for error records. flush() appends JSON Lines.

    Not thread safe; a run is strictly sequential.
    """
    def __init__(self, logs_dir: Path | None = None) -> None:
        self._logs_dir = logs_dir if logs_dir is not None else LOGS_DIR
        self._records: list[ErrorRecord] = []
        self._file_path: Path | None = None

    @property
    def file_path(self) -> Path:
        if self._file_path is None:
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._file_path = self._logs_dir / f"errors-{stamp}.log"
        return self._file_path

    def append(self, record: ErrorRecord) -> None:
        self._records.append(record)

    def __len__(self) -> int:  # pragma: no cover (trivial)
        return len(self._records)

    def flush(self) -> Path | None:
        """Write buffered records; returns the log path, or None when nothing was written."""
        if not self._records:
            return None
        fp = self.file_path
        fp.parent.mkdir(parents=True, exist_ok=True)
        with fp.open("a", encoding="utf-8") as f:
            for r in self._records:
                f.write(r.to_json_line() + "\n")
        self._records.clear()
        return fp
