from __future__ import annotations

import json
from pathlib import Path

import pytest

from outlook_contacts.config.loader import ConfigError, ExportConfig
from outlook_contacts.config.preferences import load_overrides, load_preferences
from outlook_contacts.engine.mapping import MappingError, build_default_mapping
from outlook_contacts.models.config_models import RequiredPolicy
from outlook_contacts.models.field_rule import HEADER_FAX, Fixed, FromColumn
from outlook_contacts.models.row_data import RowData
from outlook_contacts.models.session import SessionState
from outlook_contacts.services.orchestrator import (
    ProcessingError,
    RunOptions,
    apply_email_edits,
    apply_required_toggles,
    parse_email_edit,
    resolve_mapping,
    run_export,
)

DOMAIN = "autonomadeica.edu.pe"


def _config(workdir: Path, **overrides) -> ExportConfig:
    values = dict(
        input_file=str(workdir / "data" / "alumnos.xlsx"),
        directory_file=str(workdir / "data" / "usuarios.csv"),
        output_directory=str(workdir / "out"),
        preferences_file=str(workdir / "state" / "preferences.json"),
        error_log_directory=str(workdir / "logs"),
    )
    values.update(overrides)
    return ExportConfig(**values)


def _error_types(workdir: Path) -> list[str]:
    logs = list((workdir / "logs").glob("errors-*.log"))
    if not logs:
        return []
    return [json.loads(line)["error_type"] for line in logs[0].read_text(encoding="utf-8").splitlines()]


def test_resolve_mapping_layers_defaults_stored_and_edits():
    columns = ["NOMBRES", "APELLIDOS", "DNI", "DOC"]
    stored = {HEADER_FAX: FromColumn("DOC"), "Ciudad": Fixed("Ica")}
    mapping = resolve_mapping(columns, stored, ["puesto=fixed:Alumno"])
    assert mapping[HEADER_FAX] == FromColumn("DOC")
    assert mapping["Ciudad"] == Fixed("Ica")
    assert mapping["Puesto"] == Fixed("Alumno")
    assert resolve_mapping(columns, None) == build_default_mapping(columns)


def test_resolve_mapping_rejects_edit_pointing_at_missing_column():
    with pytest.raises(MappingError, match="NOPE"):
        resolve_mapping(["DNI"], None, ["Fax=column:NOPE"])
    assert resolve_mapping(["DNI"], None, ["Fax=column:"])[HEADER_FAX] == FromColumn("")


def test_apply_required_toggles():
    policy = apply_required_toggles(RequiredPolicy(celular=False), require=["celular"], optional=["dni"])
    assert policy == RequiredPolicy(dni=False, celular=True, codigo=True)
    with pytest.raises(ProcessingError):
        apply_required_toggles(RequiredPolicy(), require=["email"])


def test_parse_email_edit():
    assert parse_email_edit("5=maria.lopez@x.pe") == (5, "maria.lopez@x.pe")
    assert parse_email_edit(" 5 = ") == (5, "")
    with pytest.raises(ProcessingError):
        parse_email_edit("maria.lopez@x.pe")
    with pytest.raises(ProcessingError):
        parse_email_edit("five=x@y.pe")


def test_apply_email_edits_ignores_unknown_rows():
    row = RowData(row_number=2, values={"NOMBRES": "Ana", "APELLIDOS": "López"})
    state = SessionState(rows=(row,), mapping=build_default_mapping(["NOMBRES", "APELLIDOS"]))
    assert apply_email_edits(state, ["2=ana.l@x.pe", "9=x@y.pe"]) == {2: "ana.l@x.pe"}
    assert apply_email_edits(state, [f"2=ana.lopez@{DOMAIN}"]) == {}


def test_run_export_reports_and_logs(temp_workdir: Path, student_workbook: Path, directory_csv: Path):
    result = run_export(_config(temp_workdir))
    assert result.total_rows == 4
    assert result.eligible_rows == 0
    assert result.invalid_rows == 1
    assert result.dni_matches == 1
    assert result.conflicts == 1
    assert result.files == []
    assert result.directory_failed is False
    assert not (temp_workdir / "out").exists()
    assert sorted(_error_types(temp_workdir)) == ["DNI_EXISTS", "EMAIL_IN_USE", "MISSING_REQUIRED"]


def test_run_export_alternate_and_optional_fields(temp_workdir: Path, student_workbook: Path, directory_csv: Path):
    options = RunOptions(use_alternate=True, optional=("celular",))
    result = run_export(_config(temp_workdir), options)
    assert result.eligible_rows == 2
    assert result.conflicts == 0
    assert [f.file_name for f in result.files] == ["contactos_outlook.csv"]
    text = (temp_workdir / "out" / "contactos_outlook.csv").read_bytes().decode("utf-8-sig")
    assert f"maria.lopez@{DOMAIN}" in text
    assert f"luis.torres@{DOMAIN}" in text
    # choices persist for the next run
    prefs = load_preferences(temp_workdir / "state" / "preferences.json")
    assert prefs.required == RequiredPolicy(celular=False)


def test_run_export_reset_mapping_keeps_required_policy(temp_workdir: Path, student_workbook: Path, directory_csv: Path):
    prefs_path = temp_workdir / "state" / "preferences.json"
    run_export(_config(temp_workdir), RunOptions(mapping_edits=("Puesto=fixed:Docente",), optional=("celular",)))
    assert load_preferences(prefs_path).mapping["Puesto"] == Fixed("Docente")

    run_export(_config(temp_workdir), RunOptions(reset_mapping=True))
    prefs = load_preferences(prefs_path)
    assert prefs.mapping["Puesto"] != Fixed("Docente")
    assert prefs.required == RequiredPolicy(celular=False)


def test_run_export_dry_run_writes_nothing(temp_workdir: Path, student_workbook: Path, directory_csv: Path):
    options = RunOptions(use_alternate=True, dry_run=True)
    result = run_export(_config(temp_workdir), options)
    assert result.dry_run is True
    assert result.eligible_rows == 1
    assert [f.rows for f in result.files] == [1]
    assert not (temp_workdir / "out").exists()


def test_run_export_set_email_and_save_overrides(temp_workdir: Path, student_workbook: Path, directory_csv: Path):
    overrides_file = temp_workdir / "config" / "overrides.yml"
    options = RunOptions(email_edits=("2=ana.lopez.diaz@autonomadeica.edu.pe",), save_overrides=True)
    result = run_export(_config(temp_workdir, overrides_file=str(overrides_file)), options)
    assert result.eligible_rows == 1
    assert load_overrides(overrides_file) == {2: f"ana.lopez.diaz@{DOMAIN}"}

    # overrides are read back on the next run
    again = run_export(_config(temp_workdir, overrides_file=str(overrides_file)))
    assert again.eligible_rows == 1


def test_run_export_missing_directory_is_partial(temp_workdir: Path, student_workbook: Path):
    result = run_export(_config(temp_workdir))
    assert result.directory_failed is True
    assert result.dni_matches == 0
    assert "DIRECTORY_READ_ERROR" in _error_types(temp_workdir)


def test_run_export_without_directory(temp_workdir: Path, student_workbook: Path):
    result = run_export(_config(temp_workdir, directory_file=None))
    assert result.directory_failed is False
    assert result.eligible_rows == 2  # rows 2 and 3; row 4 misses Celular


def test_run_export_missing_input_is_fatal(temp_workdir: Path):
    with pytest.raises(ProcessingError):
        run_export(_config(temp_workdir))
    assert _error_types(temp_workdir) == ["SHEET_READ_ERROR"]
    with pytest.raises(ProcessingError):
        run_export(ExportConfig())


def test_run_export_bad_mapping_edit_is_fatal(temp_workdir: Path, student_workbook: Path, directory_csv: Path):
    with pytest.raises(ProcessingError, match="mapping"):
        run_export(_config(temp_workdir), RunOptions(mapping_edits=("Segundo=fixed:x",)))


def test_run_export_malformed_overrides_raise_config_error(temp_workdir: Path, student_workbook: Path):
    bad = temp_workdir / "config" / "overrides.yml"
    bad.write_text("- not a mapping\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        run_export(_config(temp_workdir, overrides_file=str(bad), directory_file=None))
