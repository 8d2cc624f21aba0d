from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

import pandas as pd

from ..models.field_rule import OUTPUT_HEADERS, OutputRecord

"""Outlook CSV serialization and chunking.

Outlook's contact import rejects large files, so exports are split into parts
of at most CHUNK_SIZE contacts. Every part is a standalone CSV: UTF-8 with a
byte order mark, comma separated, CRLF line endings and its own header row.
"""

__all__ = [
    "CHUNK_SIZE",
    "DEFAULT_BASENAME",
    "ExportChunk",
    "build_chunks",
    "chunk_file_name",
    "serialize_records",
    "write_chunks",
]

CHUNK_SIZE = 249
DEFAULT_BASENAME = "contactos_outlook"
BOM = "\ufeff"
LINE_TERMINATOR = "\r\n"


@dataclass(frozen=True)
class ExportChunk:
    file_name: str
    text: str  # BOM + CSV body
    row_count: int


def serialize_records(records: Sequence[OutputRecord]) -> str:
    """Serialize records in OUTPUT_HEADERS order; absent values become ""."""
    data = [[record.get(header, "") for header in OUTPUT_HEADERS] for record in records]
    frame = pd.DataFrame(data, columns=list(OUTPUT_HEADERS), dtype=str)
    body = frame.to_csv(index=False, sep=",", lineterminator=LINE_TERMINATOR)
    return BOM + body


def chunk_file_name(basename: str, part: int, total_parts: int) -> str:
    if total_parts == 1:
        return f"{basename}.csv"
    return f"{basename}_parte_{part}.csv"


def build_chunks(
    records: Sequence[OutputRecord],
    chunk_size: int = CHUNK_SIZE,
    basename: str = DEFAULT_BASENAME,
) -> list[ExportChunk]:
    """Split records into consecutive parts of at most chunk_size.

    No records means no files.
    """
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    parts = [records[i:i + chunk_size] for i in range(0, len(records), chunk_size)]
    return [
        ExportChunk(
            file_name=chunk_file_name(basename, index, len(parts)),
            text=serialize_records(part),
            row_count=len(part),
        )
        for index, part in enumerate(parts, start=1)
    ]


def write_chunks(chunks: Sequence[ExportChunk], output_dir: Path) -> list[Path]:
    output_dir.mkdir(parents=True, exist_ok=True)
    paths: list[Path] = []
    for chunk in chunks:
        path = output_dir / chunk.file_name
        # bytes: keep CRLF untouched on every platform
        path.write_bytes(chunk.text.encode("utf-8"))
        paths.append(path)
    return paths
