from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..export.writer import CHUNK_SIZE, DEFAULT_BASENAME
from ..models.config_models import DEFAULT_EMAIL_DOMAIN

"""Config loader.

Responsibilities:
- Load YAML config (default config/export.yml)
- Validate it against config_schema.json (unknown keys are rejected)
- Apply defaults for every key that is not given
"""

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "ConfigError",
    "ExportConfig",
    "SCHEMA_PATH",
    "load_config",
]

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")
DEFAULT_CONFIG_PATH = Path("config/export.yml")


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class ExportConfig:
    input_file: str | None = None  # student workbook (.xlsx / .csv)
    sheet: str | None = None  # None = first sheet
    directory_file: str | None = None  # Outlook user export, optional
    output_directory: str = "./out"
    output_basename: str = DEFAULT_BASENAME
    chunk_size: int = CHUNK_SIZE
    email_domain: str = DEFAULT_EMAIL_DOMAIN
    preferences_file: str = ".outlook_contacts/preferences.json"
    overrides_file: str | None = None  # YAML: row number -> email
    error_log_directory: str = "./logs"


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the bundled JSON schema.

    Raises:
        ConfigError: If the schema file is missing or not valid JSON, or the
            config data violates the schema (unknown keys, wrong types, bad
            values).
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")
    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def load_config(path: Path) -> ExportConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config root must be a mapping, got {type(data).__name__}")

    _validate_config_schema(data)

    defaults = ExportConfig()
    return ExportConfig(
        input_file=data.get("input_file"),
        sheet=data.get("sheet"),
        directory_file=data.get("directory_file"),
        output_directory=data.get("output_directory", defaults.output_directory),
        output_basename=data.get("output_basename", defaults.output_basename),
        chunk_size=data.get("chunk_size", defaults.chunk_size),
        email_domain=data.get("email_domain", defaults.email_domain),
        preferences_file=data.get("preferences_file", defaults.preferences_file),
        overrides_file=data.get("overrides_file"),
        error_log_directory=data.get("error_log_directory", defaults.error_log_directory),
    )
