from __future__ import annotations

import sys
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

"""Export progress with tqdm (TTY only).

One tick per CSV part; the postfix carries the number of contact rows
written so far. Redirected output (CI, pipes) gets no bar at all so the
log stays free of ANSI control sequences.
"""

__all__ = [
    "ExportProgress",
    "is_tty_enabled",
]


def is_tty_enabled() -> bool:
    return sys.stdout.isatty()


class ExportProgress:
    """Counts written parts and rows; draws a bar when attached to a terminal."""

    def __init__(self, total_parts: int, *, label: str = "Writing contacts") -> None:
        self.total_parts = total_parts
        self.label = label
        self.parts_written = 0
        self.rows_written = 0

        self.bar: TqdmType[Any] | None = None
        if total_parts > 0 and is_tty_enabled():
            self.bar = tqdm(
                total=total_parts,
                desc=label,
                unit="part",
                leave=True,
                position=0,
                ncols=80,
                ascii=True,
            )

    def part_written(self, file_name: str, rows: int) -> None:
        self.parts_written += 1
        self.rows_written += rows
        if self.bar is None:
            return
        self.bar.set_description(f"{self.label} ({file_name})")
        self.bar.set_postfix(rows=self.rows_written)
        self.bar.update(1)

    def close(self) -> None:
        if self.bar is not None:
            self.bar.set_description(self.label)
            self.bar.close()
            self.bar = None

    def __enter__(self) -> ExportProgress:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
