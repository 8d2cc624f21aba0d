from __future__ import annotations

from ..models.processing_result import ExportResult

"""SUMMARY line rendering.

Format:
SUMMARY rows={rows} eligible={eligible} invalid={invalid} dni_matches={dni}
conflicts={conflicts} duplicates={duplicates} files={files} elapsed_sec={elapsed}
"""


def _format_seconds(value: float) -> str:
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        # avoid scientific notation for very small numbers
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.3f}".rstrip("0").rstrip(".")


def render_summary_line(result: ExportResult) -> str:
    """Render the SUMMARY line for an ExportResult.

    Examples:
        >>> from datetime import datetime, timezone
        >>> start = datetime(2024, 3, 1, 10, 0, 0, tzinfo=timezone.utc)
        >>> end = datetime(2024, 3, 1, 10, 0, 2, tzinfo=timezone.utc)
        >>> result = ExportResult(
        ...     total_rows=10, eligible_rows=7, invalid_rows=2, dni_matches=1,
        ...     conflicts=0, duplicates=0, start_time=start, end_time=end,
        ...     elapsed_seconds=2.0,
        ... )
        >>> render_summary_line(result)
        'SUMMARY rows=10 eligible=7 invalid=2 dni_matches=1 conflicts=0 duplicates=0 files=0 elapsed_sec=2'
    """
    return (
        f"SUMMARY rows={result.total_rows} "
        f"eligible={result.eligible_rows} "
        f"invalid={result.invalid_rows} "
        f"dni_matches={result.dni_matches} "
        f"conflicts={result.conflicts} "
        f"duplicates={result.duplicates} "
        f"files={len(result.files)} "
        f"elapsed_sec={_format_seconds(result.elapsed_seconds)}"
    )
