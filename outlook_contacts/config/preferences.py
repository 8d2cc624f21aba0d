from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..engine.mapping import mapping_from_dict, mapping_to_dict
from ..models.config_models import RequiredPolicy
from ..models.field_rule import Mapping
from .loader import ConfigError

"""Persisted user preferences and email overrides.

Preferences (last mapping, last required policy) are best-effort state: a
missing, unreadable or malformed file silently yields the defaults, and a
mapping that references columns of an older sheet is repaired later by
sanitize_mapping(). Saving failures are logged, never raised.

Email overrides are explicit user input (YAML, row number -> email), so a
malformed overrides file is a ConfigError.
"""

__all__ = [
    "PREFERENCES_SCHEMA",
    "Preferences",
    "load_overrides",
    "load_preferences",
    "save_overrides",
    "save_preferences",
]

logger = logging.getLogger(__name__)

PREFERENCES_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "mapping": {
            "type": "object",
            "additionalProperties": {
                "type": "object",
                "properties": {
                    "type": {"enum": ["column", "fixed", "generated"]},
                    "value": {"type": "string"},
                },
                "required": ["type", "value"],
            },
        },
        "required": {
            "type": "object",
            "additionalProperties": {"type": "boolean"},
        },
    },
}


@dataclass(frozen=True)
class Preferences:
    mapping: Mapping | None = None  # may be partial or stale
    required: RequiredPolicy = field(default_factory=RequiredPolicy)


def load_preferences(path: Path) -> Preferences:
    if not path.exists():
        return Preferences()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        jsonschema.validate(data, PREFERENCES_SCHEMA)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError, ValidationError) as e:
        logger.warning(f"preferences: ignoring {path}: {e.__class__.__name__}")
        return Preferences()
    mapping = mapping_from_dict(data.get("mapping")) if "mapping" in data else None
    return Preferences(
        mapping=mapping or None,
        required=RequiredPolicy.from_dict(data.get("required")),
    )


def save_preferences(path: Path, mapping: Mapping, required: RequiredPolicy) -> None:
    payload = {"mapping": mapping_to_dict(mapping), "required": required.to_dict()}
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
    except OSError as e:
        logger.warning(f"preferences: could not save {path}: {e}")


def load_overrides(path: Path) -> dict[int, str]:
    """Read a YAML mapping of row number -> replacement email."""
    if not path.exists():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid overrides yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"overrides file must map row numbers to emails: {path}")
    overrides: dict[int, str] = {}
    for key, value in data.items():
        try:
            row_number = int(key)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"overrides: invalid row number {key!r}") from e
        if value is None:
            continue
        overrides[row_number] = str(value).strip()
    return {k: v for k, v in overrides.items() if v}


def save_overrides(path: Path, overrides: dict[int, str]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    text = yaml.safe_dump(dict(sorted(overrides.items())), allow_unicode=True, sort_keys=False)
    path.write_text(text, encoding="utf-8")
