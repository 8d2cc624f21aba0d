from __future__ import annotations

import csv
import io
import re
from pathlib import Path

from outlook_contacts.cli.__main__ import main as cli_main
from outlook_contacts.logging.init import reset_logging
from outlook_contacts.models.field_rule import OUTPUT_HEADERS

"""End-to-end run: 600 enrolled students, a directory export, three CSV parts."""

DOMAIN = "autonomadeica.edu.pe"
GIVEN = ["Ana", "Luis", "Rosa", "Pedro", "María", "José", "Carmen", "Jorge", "Lucía", "Raúl"]
SURNAMES = ["López", "Torres", "Quispe", "Ramos", "Huamán", "Díaz", "Flores", "Rojas", "Vega", "Cruz"]


def _students(n: int) -> list[list[object]]:
    rows: list[list[object]] = [["CODIGO ESTUDIANTE", "APELLIDOS", "NOMBRES", "DNI", "CELULAR", "CONDICION"]]
    for i in range(n):
        # unique given/surname pairs via a numeric suffix on the surname
        rows.append(
            [
                f"E{i:04d}",
                f"{SURNAMES[i % 10]}{i} Pérez",
                f"{GIVEN[i % 10]} Segundo",
                str(40000000 + i),
                f"9{i:08d}",
                "INGRESO" if i % 50 else "RETIRADO",
            ]
        )
    return rows


def _read_parts(out_dir: Path) -> list[list[list[str]]]:
    parts = []
    for path in sorted(out_dir.glob("contactos_outlook_parte_*.csv"), key=lambda p: int(p.stem.rsplit("_", 1)[1])):
        raw = path.read_bytes()
        assert raw.startswith(b"\xef\xbb\xbf")
        text = raw.decode("utf-8-sig")
        assert "\r\n" in text
        parts.append(list(csv.reader(io.StringIO(text, newline=""))))
    return parts


def test_full_run_multi_part_export(temp_workdir: Path, write_config, make_workbook, make_directory_csv, capsys):
    reset_logging()
    make_workbook(temp_workdir / "data" / "alumnos.xlsx", {"Ingresantes": _students(600)})
    # row for student 1 already provisioned by DNI; student 2's address already taken
    make_directory_csv(
        temp_workdir / "data" / "usuarios.csv",
        [("40000001", "otro@autonomadeica.edu.pe"), ("", f"rosa.quispe2@{DOMAIN}")],
    )

    code = cli_main([])
    out = capsys.readouterr().out
    assert code == 0

    # 12 retired (i % 50 == 0), 1 provisioned, 1 conflict
    expected = 600 - 12 - 1 - 1
    m = re.search(r"^SUMMARY rows=(\d+) eligible=(\d+) invalid=(\d+) dni_matches=(\d+) conflicts=(\d+) "
                  r"duplicates=(\d+) files=(\d+) elapsed_sec=(\d+(\.\d+)?)$", out, re.MULTILINE)
    assert m is not None, out
    assert [int(g) for g in m.groups()[:7]] == [600, expected, 0, 1, 1, 0, 3]

    parts = _read_parts(temp_workdir / "out")
    assert [len(p) - 1 for p in parts] == [249, 249, expected - 498]
    for part in parts:
        assert part[0] == list(OUTPUT_HEADERS)
    usernames = [row[0] for part in parts for row in part[1:]]
    assert len(usernames) == len(set(usernames))
    assert f"rosa.quispe2@{DOMAIN}" not in usernames
    # rows 0-2 are retired, provisioned and in conflict
    assert usernames[0] == f"pedro.ramos3@{DOMAIN}"


def test_rerun_reuses_stored_mapping(temp_workdir: Path, write_config, make_workbook, capsys):
    reset_logging()
    make_workbook(
        temp_workdir / "data" / "alumnos.xlsx",
        {"Hoja1": [["NOMBRES", "APELLIDOS", "DOCUMENTO", "CEL", "COD", "CONDICION"], ["Ana", "López", "1", "9", "C", "INGRESO"]]},
    )
    (temp_workdir / "config" / "export.yml").write_text(
        "input_file: ./data/alumnos.xlsx\npreferences_file: ./state/p.json\n", encoding="utf-8"
    )

    assert cli_main(["--map", "Teléfono móvil=column:CEL", "--map", "Código postal=column:COD"]) == 0
    first = capsys.readouterr().out
    assert "eligible=1" in first

    reset_logging()
    assert cli_main([]) == 0
    assert "eligible=1" in capsys.readouterr().out

    reset_logging()
    assert cli_main(["--reset-mapping"]) == 0
    assert "eligible=0 invalid=1" in capsys.readouterr().out


def test_semicolon_directory_export_is_fully_applied(temp_workdir: Path, write_config, student_workbook, capsys):
    reset_logging()
    (temp_workdir / "data" / "usuarios.csv").write_text(
        "Display name;Fax;User principal name\n"
        "X;23456789;juan.quispe@autonomadeica.edu.pe\n"
        "X;99999999;ANA.LOPEZ@autonomadeica.edu.pe\n",
        encoding="utf-8-sig",
    )
    code = cli_main([])
    out = capsys.readouterr().out
    assert code == 0
    assert "dni_matches=1" in out
    assert "conflicts=1" in out
    assert "eligible=0" in out
    assert "column(s) not found" not in out
