from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from pathlib import Path

from ..config.loader import ExportConfig
from ..config.preferences import load_overrides, load_preferences, save_overrides, save_preferences
from ..directory.loader import DirectoryReadError, DirectorySchemaError, check_directory_schema, load_directory
from ..engine.conflicts import apply_alternate_suggestions, email_conflicts, set_override
from ..engine.evaluation import evaluate
from ..engine.mapping import (
    MappingError,
    build_default_mapping,
    detect_condition_column,
    merge_mapping,
    parse_mapping_edit,
    sanitize_mapping,
)
from ..engine.projector import generated_email
from ..excel.reader import SheetData, SheetReadError, read_sheet
from ..export.writer import ExportChunk, build_chunks, write_chunks
from ..logging.error_log import ErrorLogBuffer, ErrorRecord
from ..models.config_models import REQUIRED_LABELS, RequiredPolicy
from ..models.directory import DirectorySnapshot
from ..models.field_rule import HEADER_DISPLAY_NAME, HEADER_FAX, HEADER_USERNAME, FromColumn, Mapping
from ..models.processing_result import ExportResult, FileStat
from ..models.report import ConflictStatus
from ..models.session import Evaluation, SessionState
from .progress import ExportProgress

"""Service orchestration for the Outlook contact export.

One call to run_export() is one working session:

1. Read the student sheet (fatal on failure)
2. Load the directory snapshot (non-fatal; the run is marked partial)
3. Resolve the mapping from inferred defaults, stored preferences and
   command line edits; apply required-field toggles
4. Resolve email overrides (overrides file, --set-email, --use-alternate)
5. Evaluate the session and report validation issues, existing DNIs and
   email conflicts (logged and buffered as error records)
6. Persist preferences, build the CSV parts and write them (unless dry run)
7. Flush the error log once
"""

__all__ = [
    "PREVIEW_ROWS",
    "ProcessingError",
    "RunOptions",
    "apply_email_edits",
    "apply_required_toggles",
    "parse_email_edit",
    "resolve_mapping",
    "run_export",
]

logger = logging.getLogger(__name__)

PREVIEW_ROWS = 20
FILE_LEVEL = "<FILE_LEVEL>"


class ProcessingError(Exception):
    """Fatal error that stops the export run."""
    pass


@dataclass(frozen=True)
class RunOptions:
    """Per-run choices taken from the command line."""
    mapping_edits: tuple[str, ...] = ()  # "HEADER=TYPE:VALUE"
    require: tuple[str, ...] = ()  # policy flags turned on
    optional: tuple[str, ...] = ()  # policy flags turned off
    email_edits: tuple[str, ...] = ()  # "ROW=EMAIL"
    use_alternate: bool = False
    save_overrides: bool = False
    reset_mapping: bool = False
    dry_run: bool = False


def resolve_mapping(
    columns: list[str],
    stored: Mapping | None,
    edits: Iterable[str] = (),
) -> Mapping:
    """Defaults inferred from columns, overlaid with stored rules, then edits.

    Raises:
        MappingError: If an edit cannot be parsed or names a missing column.
    """
    defaults = build_default_mapping(columns)
    mapping = sanitize_mapping(merge_mapping(defaults, stored), columns, defaults)
    for edit in edits:
        header, rule = parse_mapping_edit(edit)
        if isinstance(rule, FromColumn) and rule.column and rule.column not in columns:
            raise MappingError(f"column '{rule.column}' not found in sheet (edit {edit!r})")
        mapping[header] = rule
        logger.debug(f"mapping: {header} <- {edit.partition('=')[2]}")
    return sanitize_mapping(mapping, columns, defaults)


def apply_required_toggles(
    policy: RequiredPolicy,
    require: Iterable[str] = (),
    optional: Iterable[str] = (),
) -> RequiredPolicy:
    flags = policy.to_dict()
    for name in require:
        flags[name] = True
    for name in optional:
        flags[name] = False
    unknown = set(flags) - set(REQUIRED_LABELS)
    if unknown:
        raise ProcessingError(f"unknown required field(s): {', '.join(sorted(unknown))}")
    return replace(policy, **flags)


def parse_email_edit(text: str) -> tuple[int, str]:
    """Parse 'ROW=EMAIL'. An empty EMAIL clears the override for ROW."""
    row_text, sep, email = text.partition("=")
    if not sep:
        raise ProcessingError(f"email edit must look like ROW=EMAIL, got {text!r}")
    try:
        row_number = int(row_text.strip())
    except ValueError as e:
        raise ProcessingError(f"email edit: invalid row number {row_text!r}") from e
    return row_number, email.strip()


def apply_email_edits(state: SessionState, edits: Iterable[str]) -> dict[int, str]:
    rows = {row.row_number: row for row in state.rows}
    overrides = dict(state.overrides)
    for edit in edits:
        row_number, email = parse_email_edit(edit)
        row = rows.get(row_number)
        if row is None:
            logger.warning(f"email edit: row {row_number} not found, ignored")
            continue
        generated = generated_email(row, state.mapping, state.email_domain)
        overrides = set_override(overrides, row_number, email, generated)
    return overrides


def _read_input(config: ExportConfig, error_log: ErrorLogBuffer) -> SheetData:
    if not config.input_file:
        raise ProcessingError("no input file configured (use --input or input_file)")
    path = Path(config.input_file)
    try:
        sheet = read_sheet(path, config.sheet)
    except SheetReadError as e:
        error_log.append(
            ErrorRecord.create(
                file=path.name,
                sheet=config.sheet or FILE_LEVEL,
                row=-1,
                error_type="SHEET_READ_ERROR",
                message=str(e),
            )
        )
        raise ProcessingError(str(e)) from e
    logger.info(f"sheet '{sheet.sheet_name}' of {path.name}: rows={len(sheet.rows)} columns={len(sheet.columns)}")
    return sheet


def _read_directory(config: ExportConfig, error_log: ErrorLogBuffer) -> DirectorySnapshot:
    """Load the directory snapshot; failures leave it empty or partial."""
    if not config.directory_file:
        logger.info("no directory export given; DNI and email checks against Outlook are skipped")
        return DirectorySnapshot.empty()
    path = Path(config.directory_file)
    try:
        snapshot = load_directory(path)
    except DirectoryReadError as e:
        logger.error(f"directory: {e}")
        error_log.append(
            ErrorRecord.create(
                file=path.name, sheet=FILE_LEVEL, row=-1, error_type="DIRECTORY_READ_ERROR", message=str(e)
            )
        )
        return DirectorySnapshot.empty(file_name=path.name, error=str(e))
    try:
        check_directory_schema(snapshot)
    except DirectorySchemaError as e:
        logger.warning(f"directory: {e}")
        error_log.append(
            ErrorRecord.create(
                file=path.name, sheet=FILE_LEVEL, row=-1, error_type="DIRECTORY_SCHEMA_ERROR", message=str(e)
            )
        )
    logger.info(
        f"directory {snapshot.file_name}: rows={snapshot.row_count} "
        f"dnis={len(snapshot.dnis)} emails={len(snapshot.emails)}"
    )
    return snapshot


def _report(evaluation: Evaluation, file_name: str, sheet_name: str, error_log: ErrorLogBuffer) -> None:
    """Log the user facing reports and buffer them as error records."""
    for issue in evaluation.validation_issues:
        message = f"missing required: {', '.join(issue.missing)}"
        logger.warning(f"row {issue.row_number}: {message}")
        error_log.append(
            ErrorRecord.create(
                file=file_name, sheet=sheet_name, row=issue.row_number,
                error_type="MISSING_REQUIRED", message=message,
            )
        )
    for match in evaluation.dni_matches:
        message = f"DNI {match.dni} already in directory ({match.apellido}, {match.nombre})"
        logger.info(f"row {match.row_number}: {message}")
        error_log.append(
            ErrorRecord.create(
                file=file_name, sheet=sheet_name, row=match.row_number,
                error_type="DNI_EXISTS", message=message,
            )
        )
    for conflict in evaluation.conflicts:
        line = (
            f"row {conflict.row_number}: {conflict.generated_email} -> {conflict.current_value} "
            f"[{conflict.status.value}]"
        )
        if conflict.status is not ConflictStatus.IN_USE:
            logger.info(line)
            continue
        logger.warning(line)
        error_log.append(
            ErrorRecord.create(
                file=file_name, sheet=sheet_name, row=conflict.row_number,
                error_type="EMAIL_IN_USE", message=f"email in use: {conflict.current_value}",
            )
        )


def _preview(chunks: list[ExportChunk], evaluation: Evaluation) -> None:
    for chunk in chunks:
        logger.info(f"dry-run: would write {chunk.file_name} ({chunk.row_count} rows)")
    for record in evaluation.records[:PREVIEW_ROWS]:
        logger.info(
            f"preview: {record[HEADER_USERNAME]} | {record[HEADER_DISPLAY_NAME]} | DNI {record[HEADER_FAX]}"
        )
    hidden = len(evaluation.records) - PREVIEW_ROWS
    if hidden > 0:
        logger.info(f"preview: ... {hidden} more")


def _write(chunks: list[ExportChunk], output_dir: Path, error_log: ErrorLogBuffer) -> None:
    with ExportProgress(len(chunks)) as progress:
        for chunk in chunks:
            try:
                write_chunks([chunk], output_dir)
            except OSError as e:
                error_log.append(
                    ErrorRecord.create(
                        file=chunk.file_name, sheet=FILE_LEVEL, row=-1,
                        error_type="EXPORT_WRITE_ERROR", message=str(e),
                    )
                )
                raise ProcessingError(f"could not write {chunk.file_name}: {e}") from e
            progress.part_written(chunk.file_name, chunk.row_count)
            logger.info(f"wrote {output_dir / chunk.file_name} rows={chunk.row_count}")


def run_export(config: ExportConfig, options: RunOptions | None = None) -> ExportResult:
    """Run one export session.

    Args:
        config: Export configuration (paths, domain, chunk size)
        options: Command line choices; defaults to a plain export

    Returns:
        ExportResult with the counters for the SUMMARY line

    Raises:
        ProcessingError: For fatal errors (input unreadable, bad edits,
            output not writable). The error log is flushed regardless.
    """
    options = options or RunOptions()
    start_time = datetime.now(UTC)
    error_log = ErrorLogBuffer(Path(config.error_log_directory))
    try:
        result = _run(config, options, error_log, start_time)
    finally:
        try:
            log_path = error_log.flush()
        except OSError as e:
            logger.warning(f"error log: could not write: {e}")
        else:
            if log_path is not None:
                logger.info(f"error log: {log_path}")
    return result


def _run(config: ExportConfig, options: RunOptions, error_log: ErrorLogBuffer, start_time: datetime) -> ExportResult:
    sheet = _read_input(config, error_log)
    file_name = Path(config.input_file or "").name
    directory = _read_directory(config, error_log)

    preferences_path = Path(config.preferences_file)
    preferences = load_preferences(preferences_path)
    stored = None if options.reset_mapping else preferences.mapping
    try:
        mapping = resolve_mapping(sheet.columns, stored, options.mapping_edits)
    except MappingError as e:
        raise ProcessingError(f"mapping: {e}") from e
    required = apply_required_toggles(preferences.required, options.require, options.optional)

    condition_column = detect_condition_column(sheet.columns)
    if not condition_column:
        logger.warning("no CONDICION column found; every row is treated as enrolled")

    overrides: dict[int, str] = {}
    if config.overrides_file:
        overrides = load_overrides(Path(config.overrides_file))

    state = SessionState(
        rows=tuple(sheet.rows),
        mapping=mapping,
        required=required,
        directory=directory,
        overrides=overrides,
        condition_column=condition_column,
        email_domain=config.email_domain,
    )
    if options.email_edits:
        state = replace(state, overrides=apply_email_edits(state, options.email_edits))
    if options.use_alternate:
        suggested = apply_alternate_suggestions(state.overrides, email_conflicts(state), config.email_domain)
        logger.info(f"alternate suggestions applied: {len(suggested) - len(state.overrides)}")
        state = replace(state, overrides=suggested)

    evaluation = evaluate(state)
    _report(evaluation, file_name, sheet.sheet_name, error_log)

    save_preferences(preferences_path, state.mapping, state.required)
    if options.save_overrides:
        if config.overrides_file:
            save_overrides(Path(config.overrides_file), state.overrides)
        else:
            logger.warning("--save-overrides given without an overrides file; nothing saved")

    chunks = build_chunks(evaluation.records, config.chunk_size, config.output_basename)
    if not chunks:
        logger.info("no eligible rows; no files written")
    elif options.dry_run:
        _preview(chunks, evaluation)
    else:
        _write(chunks, Path(config.output_directory), error_log)

    end_time = datetime.now(UTC)
    return ExportResult(
        total_rows=len(sheet.rows),
        eligible_rows=len(evaluation.records),
        invalid_rows=len(evaluation.validation_issues),
        dni_matches=len(evaluation.dni_matches),
        conflicts=sum(1 for c in evaluation.conflicts if c.status is ConflictStatus.IN_USE),
        duplicates=len(evaluation.duplicate_rows),
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=(end_time - start_time).total_seconds(),
        files=[FileStat(file_name=c.file_name, rows=c.row_count) for c in chunks],
        directory_failed=directory.loaded and not directory.is_complete,
        dry_run=options.dry_run,
    )
