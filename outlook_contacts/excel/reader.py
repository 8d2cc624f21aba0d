from __future__ import annotations

import zipfile
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

import pandas as pd

from ..engine.normalization import to_clean_string
from ..models.row_data import RowData

"""Student spreadsheet reader.

- Row 1 is the header, rows 2.. are data (row numbers match what the user
  sees in Excel)
- Blank headers become "Columna N"; repeated headers get a " (k)" suffix
- Data rows whose cells are all empty are dropped
- Cells are kept as text; pandas NA parsing is disabled so values such as
  "NA" survive

.xlsx files are read through pandas + openpyxl; .csv files are accepted too
and behave like a workbook with a single sheet named after the file.
"""

__all__ = [
    "SheetData",
    "SheetHeaderError",
    "SheetReadError",
    "ensure_unique",
    "list_sheets",
    "normalize_sheet",
    "read_sheet",
    "read_workbook",
]

CSV_SUFFIXES = {".csv", ".txt"}


class SheetReadError(Exception):
    """Raised when the workbook cannot be read or the requested sheet is absent."""


class SheetHeaderError(SheetReadError):
    """Raised when a sheet has no header row."""


@dataclass
class SheetData:
    sheet_name: str
    columns: list[str]
    rows: list[RowData] = field(default_factory=list)


def read_workbook(path: Path, target_sheets: Iterable[str] | None = None) -> dict[str, pd.DataFrame]:
    """Read every sheet (or only target_sheets) as raw header-less DataFrames.

    Parameters
    ----------
    path: .xlsx or .csv file
    target_sheets: restrict to these sheet names (None = all sheets)
    """
    if not path.exists():
        raise SheetReadError(f"input file not found: {path}")
    wanted = set(target_sheets) if target_sheets is not None else None
    try:
        if path.suffix.lower() in CSV_SUFFIXES:
            df = pd.read_csv(
                path, header=None, dtype=object, keep_default_na=False,
                skip_blank_lines=False, encoding="utf-8-sig",
            )
            return {path.stem: df} if wanted is None or path.stem in wanted else {}
        dfs: dict[str, pd.DataFrame] = {}
        with pd.ExcelFile(path) as xls:
            for name in xls.sheet_names:
                if wanted is not None and str(name) not in wanted:
                    continue
                dfs[str(name)] = xls.parse(name, header=None, dtype=object, keep_default_na=False)
        return dfs
    except pd.errors.EmptyDataError:
        return {path.stem: pd.DataFrame()}
    except (OSError, ValueError, zipfile.BadZipFile, pd.errors.ParserError) as e:
        raise SheetReadError(f"could not read {path.name}: {e}") from e


def list_sheets(path: Path) -> list[str]:
    if path.suffix.lower() in CSV_SUFFIXES:
        return [path.stem]
    try:
        with pd.ExcelFile(path) as xls:
            return [str(name) for name in xls.sheet_names]
    except (OSError, ValueError, zipfile.BadZipFile) as e:
        raise SheetReadError(f"could not read {path.name}: {e}") from e


def ensure_unique(columns: Iterable[str]) -> list[str]:
    """Disambiguate repeated headers: ['A', 'A', ''] -> ['A', 'A (2)', 'Columna'].

    A generated name never reuses a header that is already taken, so
    ['A', 'A', 'A (2)'] -> ['A', 'A (2)', 'A (2) (2)'].
    """
    seen: dict[str, int] = {}
    taken: set[str] = set()
    unique: list[str] = []
    for column in columns:
        base = column or "Columna"
        count = seen.get(base, 0) + 1
        name = base if count == 1 else f"{base} ({count})"
        while name in taken:
            count += 1
            name = f"{base} ({count})"
        seen[base] = count
        taken.add(name)
        unique.append(name)
    return unique


def normalize_sheet(df: pd.DataFrame, sheet_name: str) -> SheetData:
    """Turn a raw DataFrame into header + RowData list.

    Steps:
    1. Validate at least one row (the header) exists
    2. Build unique column names from the first row
    3. Remaining rows become RowData numbered from 2; all-empty rows dropped
    """
    if df.shape[0] < 1:
        raise SheetHeaderError(f"sheet '{sheet_name}' has no header row")
    header = df.iloc[0].tolist()
    columns = ensure_unique(
        to_clean_string(cell) or f"Columna {index + 1}" for index, cell in enumerate(header)
    )

    rows: list[RowData] = []
    for offset, raw in enumerate(df.iloc[1:].itertuples(index=False, name=None)):
        values = {col: to_clean_string(val) for col, val in zip(columns, raw, strict=False)}
        if not any(values.values()):
            continue
        rows.append(RowData(row_number=offset + 2, values=values))
    return SheetData(sheet_name=sheet_name, columns=columns, rows=rows)


def read_sheet(path: Path, sheet_name: str | None = None) -> SheetData:
    """Read and normalize one sheet; the first sheet when sheet_name is None."""
    target = None if sheet_name is None else [sheet_name]
    dfs = read_workbook(path, target_sheets=target)
    if not dfs:
        if sheet_name is not None:
            raise SheetReadError(f"sheet '{sheet_name}' not found in {path.name}")
        raise SheetReadError(f"{path.name} contains no sheets")
    name, df = next(iter(dfs.items()))
    return normalize_sheet(df, name)
