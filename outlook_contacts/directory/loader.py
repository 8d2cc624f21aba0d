from __future__ import annotations

import logging
from pathlib import Path

import pandas as pd

from ..engine.mapping import find_column
from ..engine.normalization import canonical_email, digits_only, to_clean_string
from ..models.directory import DirectorySnapshot

"""Directory snapshot loader (Outlook / Entra user export).

The export is a delimited file with a header; the delimiter (comma,
semicolon, tab or pipe) is taken from the header line. Two columns matter:

- Fax: the DNI of each provisioned person
- User principal name: the institutional email already in use

Each column is applied independently: a file without the UPN column still
rejects known DNIs, and vice versa. Missing columns are reported through
DirectorySchemaError by check_directory_schema(); an unreadable file raises
DirectoryReadError.
"""

__all__ = [
    "DirectoryReadError",
    "DirectorySchemaError",
    "check_directory_schema",
    "detect_delimiter",
    "load_directory",
]

logger = logging.getLogger(__name__)

FAX_LABEL = "Fax"
UPN_LABEL = "User principal name"
FAX_CANDIDATES = ["Fax", "FAX"]
UPN_CANDIDATES = ["User principal name", "UserPrincipalName", "User principalname"]
# comma first: it wins a tie, including a header with no delimiter at all
DELIMITERS = (",", ";", "\t", "|")


class DirectoryReadError(Exception):
    """Raised when the directory export cannot be read or parsed."""


class DirectorySchemaError(Exception):
    """Raised when the directory export lacks the Fax or User principal name column."""

    def __init__(self, file_name: str, missing_columns: tuple[str, ...]) -> None:
        self.file_name = file_name
        self.missing_columns = missing_columns
        super().__init__(
            f"{file_name}: column(s) not found: {', '.join(missing_columns)}"
        )


def detect_delimiter(path: Path) -> str:
    """Return the delimiter that occurs most often in the header line.

    Exports from Excel with a Spanish locale use ';', and some tools write
    tab separated files.
    """
    with path.open(encoding="utf-8-sig") as f:
        header = next((line for line in f if line.strip()), "")
    return max(DELIMITERS, key=header.count)


def load_directory(path: Path) -> DirectorySnapshot:
    try:
        sep = detect_delimiter(path)
        frame = pd.read_csv(
            path,
            sep=sep,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            encoding="utf-8-sig",
        )
    except (OSError, UnicodeDecodeError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise DirectoryReadError(f"could not read directory export {path.name}: {e}") from e

    fields = [str(c) for c in frame.columns]
    fax_field = find_column(fields, FAX_CANDIDATES)
    upn_field = find_column(fields, UPN_CANDIDATES)
    if fax_field and fax_field == upn_field:
        # one merged header matched both names; the file was not split into columns
        fax_field = upn_field = ""
    missing: list[str] = []
    if not fax_field:
        missing.append(FAX_LABEL)
    if not upn_field:
        missing.append(UPN_LABEL)

    dnis: set[str] = set()
    emails: set[str] = set()
    for record in frame.to_dict("records"):
        if fax_field:
            dni = digits_only(to_clean_string(record.get(fax_field)))
            if dni:
                dnis.add(dni)
        if upn_field:
            email = canonical_email(record.get(upn_field))
            if email:
                emails.add(email)

    logger.debug(
        f"directory {path.name}: rows={len(frame)} dnis={len(dnis)} emails={len(emails)} "
        f"fax_column={fax_field!r} upn_column={upn_field!r}"
    )
    return DirectorySnapshot(
        file_name=path.name,
        row_count=len(frame),
        dnis=frozenset(dnis),
        emails=frozenset(emails),
        missing_columns=tuple(missing),
    )


def check_directory_schema(snapshot: DirectorySnapshot) -> None:
    """Raise DirectorySchemaError when a required column was not found."""
    if snapshot.missing_columns:
        raise DirectorySchemaError(snapshot.file_name, snapshot.missing_columns)
