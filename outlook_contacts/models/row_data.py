from __future__ import annotations

from dataclasses import dataclass
from typing import Any

"""RowData model for the student spreadsheet.

RowData represents one data row of the selected sheet after header
processing. The row_number is the spreadsheet row number as the user sees
it: the header is row 1, so the first data row is 2.
"""

__all__ = [
    "RowData",
]


@dataclass(frozen=True)
class RowData:
    """One parsed spreadsheet row. Read-only to the export engine."""
    row_number: int  # spreadsheet row (header = 1, first data row = 2)
    values: dict[str, Any]  # column name -> cleaned cell text

    def get(self, column: str) -> Any:
        """Return the cell for column, or None when the column is absent."""
        if not column:
            return None
        return self.values.get(column)
