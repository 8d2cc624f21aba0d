# Shared pytest fixtures
from __future__ import annotations
import tempfile
from pathlib import Path
import pandas as pd
import pytest

STUDENT_HEADER = ["CODIGO ESTUDIANTE", "APELLIDOS", "NOMBRES", "DNI", "CELULAR", "CONDICION", "CORREO PERSONAL"]

STUDENT_ROWS = [
    ["A001", "López Díaz", "Ana María", "12345678", "987 654 321", "INGRESO", "ana@gmail.com"],
    ["A002", "Quispe Rojas", "Juan Carlos", "23456789", "912345678", "Ingresó", ""],
    ["A003", "Torres", "Luis", "34567890", "", "INGRESO", ""],
    ["A004", "Ramos", "Pedro", "45678901", "955555555", "RETIRADO", ""],
]


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        monkeypatch.delenv("OUTLOOK_CONTACTS_CONFIG", raising=False)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """input_file: ./data/alumnos.xlsx
directory_file: ./data/usuarios.csv
output_directory: ./out
preferences_file: ./state/preferences.json
error_log_directory: ./logs
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "export.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


def _make_workbook(path: Path, sheets: dict[str, list[list[object]]]) -> Path:
    """Write a real .xlsx; the first row of every sheet is its header."""
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        for sheet_name, rows in sheets.items():
            pd.DataFrame(rows).to_excel(writer, sheet_name=sheet_name, header=False, index=False)
    return path


def _make_directory_csv(path: Path, rows: list[tuple[str, str]], header: tuple[str, ...] = ("Display name", "Fax", "User principal name")) -> Path:
    """Write an Outlook user export; rows are (fax, upn) pairs."""
    lines = [",".join(header)]
    for fax, upn in rows:
        values = {"Display name": "X", "Fax": fax, "User principal name": upn}
        lines.append(",".join(values.get(h, "") for h in header))
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


@pytest.fixture()
def student_workbook(temp_workdir: Path) -> Path:
    return _make_workbook(temp_workdir / "data" / "alumnos.xlsx", {"Alumnos": [STUDENT_HEADER, *STUDENT_ROWS]})


@pytest.fixture()
def directory_csv(temp_workdir: Path) -> Path:
    # Juan Carlos' DNI is provisioned; ana.lopez is taken by someone else
    return _make_directory_csv(
        temp_workdir / "data" / "usuarios.csv",
        [("23456789", "juan.quispe@autonomadeica.edu.pe"), ("99999999", "ANA.LOPEZ@autonomadeica.edu.pe")],
    )


@pytest.fixture()
def make_workbook():
    return _make_workbook


@pytest.fixture()
def make_directory_csv():
    return _make_directory_csv
