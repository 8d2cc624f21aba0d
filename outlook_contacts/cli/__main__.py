from __future__ import annotations

import argparse
import os
import sys
from dataclasses import replace
from pathlib import Path

from dotenv import load_dotenv

from outlook_contacts.config.loader import DEFAULT_CONFIG_PATH, ConfigError, ExportConfig, load_config
from outlook_contacts.config.preferences import load_preferences
from outlook_contacts.engine.mapping import describe_rule
from outlook_contacts.excel.reader import SheetReadError, list_sheets, read_sheet
from outlook_contacts.logging.init import log_summary, set_debug, setup_logging
from outlook_contacts.models.config_models import REQUIRED_LABELS
from outlook_contacts.models.field_rule import OUTPUT_HEADERS
from outlook_contacts.services.orchestrator import ProcessingError, RunOptions, resolve_mapping, run_export
from outlook_contacts.services.summary import render_summary_line

"""CLI entrypoint.

Flow:
- Load .env, then the YAML config (OUTLOOK_CONTACTS_CONFIG or
  config/export.yml; built-in defaults when the default file is absent)
- Apply command line overrides to the config
- --inspect-data: print sheets, columns, mapping and sample rows, then exit
- Otherwise run the export and print the SUMMARY line

Exit codes: 0 success, 1 fatal (config, input, output), 2 partial (the
directory export was given but could not be fully applied).
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1

CONFIG_ENV_VAR = "OUTLOOK_CONTACTS_CONFIG"
INSPECT_SAMPLE_ROWS = 3


def _load_env_file(path: Path) -> None:
    """Load .env with python-dotenv; variables already set in the process win."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=False)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    fields = sorted(REQUIRED_LABELS)
    p = argparse.ArgumentParser(
        prog="outlook-contacts",
        description="Student spreadsheet -> Outlook contact CSV exporter",
    )
    p.add_argument("--config", type=Path, help="YAML config file (default: config/export.yml)")
    p.add_argument("--input", help="Student workbook (.xlsx or .csv)")
    p.add_argument("--sheet", help="Sheet name (default: first sheet)")
    p.add_argument("--directory", help="Outlook user export (CSV) with Fax and User principal name")
    p.add_argument("--output-dir", help="Directory for the generated CSV files")
    p.add_argument(
        "--map", action="append", default=[], metavar="HEADER=TYPE:VALUE",
        help="Mapping edit, e.g. 'Fax=column:DNI' or 'Puesto=fixed:Estudiante' (repeatable)",
    )
    p.add_argument("--require", action="append", default=[], choices=fields, help="Make a field required")
    p.add_argument("--optional", action="append", default=[], choices=fields, help="Make a field optional")
    p.add_argument("--overrides", help="YAML file with row number -> email overrides")
    p.add_argument(
        "--set-email", action="append", default=[], metavar="ROW=EMAIL",
        help="Replace the email of a row; empty EMAIL restores the generated one (repeatable)",
    )
    p.add_argument("--use-alternate", action="store_true", help="Resolve conflicts with the second given name")
    p.add_argument("--save-overrides", action="store_true", help="Write the resulting overrides back to --overrides")
    p.add_argument(
        "--reset-mapping", action="store_true",
        help="Ignore the stored mapping and use the defaults; stored required/optional fields still apply",
    )
    p.add_argument("--inspect-data", action="store_true", help="Print sheets, columns, mapping & first rows then exit")
    p.add_argument("--dry-run", action="store_true", help="Report and preview without writing files")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    return p.parse_args(argv)


def _resolve_config(args: argparse.Namespace) -> ExportConfig:
    env_path = os.getenv(CONFIG_ENV_VAR)
    if args.config is not None:
        cfg = load_config(args.config)
    elif env_path:
        cfg = load_config(Path(env_path))
    elif DEFAULT_CONFIG_PATH.exists():
        cfg = load_config(DEFAULT_CONFIG_PATH)
    else:
        cfg = ExportConfig()

    cli_values = {
        "input_file": args.input,
        "sheet": args.sheet,
        "directory_file": args.directory,
        "output_directory": args.output_dir,
        "overrides_file": args.overrides,
    }
    return replace(cfg, **{k: v for k, v in cli_values.items() if v is not None})


def _inspect_data(cfg: ExportConfig) -> int:
    if not cfg.input_file:
        print("inspect: no input file configured")
        return EXIT_FATAL
    path = Path(cfg.input_file)
    try:
        sheets = list_sheets(path)
        sheet = read_sheet(path, cfg.sheet)
    except SheetReadError as e:
        print(f"inspect: {e}")
        return EXIT_FATAL
    print(f"FILE: {path.name}")
    print(f"  SHEETS: {sheets}")
    print(f"  SHEET: {sheet.sheet_name} rows={len(sheet.rows)} cols={sheet.columns}")
    mapping = resolve_mapping(sheet.columns, load_preferences(Path(cfg.preferences_file)).mapping)
    print("  MAPPING:")
    for header in OUTPUT_HEADERS:
        print(f"    {header} <- {describe_rule(mapping.get(header))}")
    for row in sheet.rows[:INSPECT_SAMPLE_ROWS]:
        print(f"  ROW {row.row_number}: {row.values}")
    return EXIT_SUCCESS_ALL


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # only read sys.argv when called without arguments; cli_main([]) in tests must stay empty
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"))

    if args.debug:
        set_debug(logger)
        logger.debug("debug mode enabled")

    try:
        cfg = _resolve_config(args)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    if args.inspect_data:
        return _inspect_data(cfg)

    options = RunOptions(
        mapping_edits=tuple(args.map),
        require=tuple(args.require),
        optional=tuple(args.optional),
        email_edits=tuple(args.set_email),
        use_alternate=args.use_alternate,
        save_overrides=args.save_overrides,
        reset_mapping=args.reset_mapping,
        dry_run=args.dry_run,
    )
    try:
        result = run_export(cfg, options)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL
    except ProcessingError as e:
        logger.error(f"processing: {e}")
        return EXIT_FATAL

    summary_line = render_summary_line(result)
    # log_summary adds the "SUMMARY " label itself
    log_summary(summary_line[len("SUMMARY "):])

    if result.directory_failed:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
