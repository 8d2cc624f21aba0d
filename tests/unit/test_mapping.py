from __future__ import annotations

import pytest

from outlook_contacts.engine.mapping import (
    MappingError,
    build_default_mapping,
    describe_rule,
    detect_condition_column,
    find_column,
    mapping_from_dict,
    mapping_to_dict,
    match_output_header,
    merge_mapping,
    parse_mapping_edit,
    parse_rule_spec,
    resolve,
    sanitize_mapping,
)
from outlook_contacts.models.field_rule import (
    HEADER_APELLIDO,
    HEADER_DISPLAY_NAME,
    HEADER_FAX,
    HEADER_MOBILE,
    HEADER_NOMBRE,
    HEADER_STUDENT_CODE,
    HEADER_USERNAME,
    OUTPUT_HEADERS,
    Fixed,
    FromColumn,
    Generated,
    GeneratedKind,
)
from outlook_contacts.models.row_data import RowData

COLUMNS = ["CODIGO ESTUDIANTE", "APELLIDOS", "NOMBRES", "DNI", "CELULAR", "CONDICIÓN"]


def _row(**values):
    return RowData(row_number=2, values=values)


def test_resolve_each_rule_kind():
    row = _row(DNI="12345678", NOMBRES="Ana")
    assert resolve(Fixed("Estudiante"), row) == "Estudiante"
    assert resolve(FromColumn("DNI"), row) == "12345678"
    assert resolve(FromColumn("MISSING"), row) == ""
    assert resolve(FromColumn(""), row) == ""
    assert resolve(Generated(GeneratedKind.USERNAME), row) == ""
    assert resolve(None, row) == ""


def test_find_column_matches_accent_and_case_insensitively():
    assert find_column(["nro", "Teléfono Móvil"], ["TELEFONO MOVIL"]) == "Teléfono Móvil"
    assert find_column(COLUMNS, ["XYZ"]) == ""


def test_detect_condition_column():
    assert detect_condition_column(COLUMNS) == "CONDICIÓN"
    assert detect_condition_column(["DNI"]) == ""


def test_build_default_mapping_is_total():
    mapping = build_default_mapping(COLUMNS)
    assert set(mapping) == set(OUTPUT_HEADERS)
    assert mapping[HEADER_USERNAME] == Generated(GeneratedKind.USERNAME)
    assert mapping[HEADER_DISPLAY_NAME] == Generated(GeneratedKind.DISPLAY_NAME)
    assert mapping[HEADER_NOMBRE] == FromColumn("NOMBRES")
    assert mapping[HEADER_APELLIDO] == FromColumn("APELLIDOS")
    assert mapping[HEADER_FAX] == FromColumn("DNI")
    assert mapping[HEADER_MOBILE] == FromColumn("CELULAR")
    assert mapping[HEADER_STUDENT_CODE] == FromColumn("CODIGO ESTUDIANTE")
    assert mapping["Puesto"] == Fixed("Estudiante")
    assert mapping["País o región"] == Fixed("Peru")
    assert mapping["Ciudad"] == Fixed("")


def test_merge_mapping_overlays_stored_rules():
    defaults = build_default_mapping(COLUMNS)
    merged = merge_mapping(defaults, {"Puesto": Fixed("Alumno")})
    assert merged["Puesto"] == Fixed("Alumno")
    assert merged[HEADER_FAX] == FromColumn("DNI")
    assert merge_mapping(defaults, None) == defaults


def test_sanitize_mapping_repairs_stale_rules():
    defaults = build_default_mapping(COLUMNS)
    stale = dict(defaults)
    stale[HEADER_FAX] = FromColumn("OLD DNI COLUMN")
    stale[HEADER_MOBILE] = FromColumn("")
    stale["Puesto"] = Generated(GeneratedKind.USERNAME)
    del stale["Ciudad"]

    sanitized = sanitize_mapping(stale, COLUMNS, defaults)

    assert sanitized[HEADER_FAX] == FromColumn("DNI")
    assert sanitized[HEADER_MOBILE] == FromColumn("")  # unmapped on purpose
    assert sanitized["Puesto"] == Fixed("Estudiante")
    assert sanitized["Ciudad"] == Fixed("")
    assert set(sanitized) == set(OUTPUT_HEADERS)


def test_mapping_dict_form_survives_json_shapes():
    mapping = build_default_mapping(COLUMNS)
    data = mapping_to_dict(mapping)
    assert data[HEADER_USERNAME] == {"type": "generated", "value": "username"}
    assert data[HEADER_FAX] == {"type": "column", "value": "DNI"}
    assert mapping_from_dict(data) == mapping


def test_mapping_from_dict_skips_malformed_entries():
    data = {
        HEADER_FAX: {"type": "column", "value": "DNI"},
        HEADER_USERNAME: {"type": "generated", "value": "nope"},
        "Puesto": {"type": "whatever", "value": "x"},
        "Ciudad": "Ica",
        "Unknown header": {"type": "fixed", "value": "x"},
    }
    assert mapping_from_dict(data) == {HEADER_FAX: FromColumn("DNI")}
    assert mapping_from_dict(["not", "a", "dict"]) == {}


def test_match_output_header_is_loose():
    assert match_output_header("telefono movil") == HEADER_MOBILE
    with pytest.raises(MappingError):
        match_output_header("Segundo nombre")


def test_parse_rule_spec():
    assert parse_rule_spec("column:DNI") == FromColumn("DNI")
    assert parse_rule_spec("FIXED: Estudiante ") == Fixed("Estudiante")
    assert parse_rule_spec("generated:displayName") == Generated(GeneratedKind.DISPLAY_NAME)
    with pytest.raises(MappingError):
        parse_rule_spec("DNI")
    with pytest.raises(MappingError):
        parse_rule_spec("formula:x")


def test_parse_mapping_edit():
    assert parse_mapping_edit("Fax=column:DNI") == (HEADER_FAX, FromColumn("DNI"))
    assert parse_mapping_edit("ciudad=fixed:Ica") == ("Ciudad", Fixed("Ica"))
    with pytest.raises(MappingError):
        parse_mapping_edit("Fax column:DNI")
    with pytest.raises(MappingError):
        parse_mapping_edit("Fax=generated:username")


def test_describe_rule():
    assert describe_rule(FromColumn("DNI")) == "column:DNI"
    assert describe_rule(FromColumn("")) == "column:<none>"
    assert describe_rule(Fixed("Peru")) == "fixed:Peru"
    assert describe_rule(Generated(GeneratedKind.USERNAME)) == "generated:username"
    assert describe_rule(None) == "<unset>"
