from __future__ import annotations

from dataclasses import dataclass

"""Directory snapshot model.

A DirectorySnapshot holds the identity numbers (DNI, exported in the Fax
column) and user principal names already provisioned in Outlook. It is
loaded once per session from a user export and never modified afterwards.
"""

__all__ = [
    "DirectorySnapshot",
]


@dataclass(frozen=True)
class DirectorySnapshot:
    """Canonicalized DNIs and emails already present in the directory.

    An empty snapshot rejects nothing. Columns that could not be found are
    listed in missing_columns; the other column is still applied.
    """
    file_name: str = ""
    row_count: int = 0
    dnis: frozenset[str] = frozenset()
    emails: frozenset[str] = frozenset()
    missing_columns: tuple[str, ...] = ()
    error: str | None = None  # unreadable file

    @classmethod
    def empty(cls, file_name: str = "", error: str | None = None) -> DirectorySnapshot:
        return cls(file_name=file_name, error=error)

    @property
    def loaded(self) -> bool:
        """True when a directory file was supplied, even if it turned out unusable."""
        return bool(self.file_name)

    @property
    def is_complete(self) -> bool:
        return self.error is None and not self.missing_columns
