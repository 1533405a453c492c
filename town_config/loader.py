"""
Import configuration loader (``town_config.loader``).

Responsibility
--------------
Loads YAML files and parses them into typed ``town_config.schema``
dataclass instances.  Compiling a definition into a runtime ImportProfile
is ``town_ingestion.profiles.compile_profile_from_def``.

Invariants enforced
-------------------
* Parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; no silent defaults for required fields.
* Every parsed object is a frozen dataclass from ``schema.py``.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys in parsed dict  -> ``KeyError`` propagates.
* Wrong shapes (non-list mappings, non-int limits)  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from town_kernel.logging_config import get_logger

from town_config.schema import (
    ColumnMappingDef,
    ImportProfileDef,
    ImportSettings,
    ValidationRuleDef,
)

logger = get_logger("config.loader")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top-level document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top-level YAML document must be a mapping")
    return data


def _as_list(value: Any, what: str) -> list[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"{what} must be a list, got {type(value).__name__}")
    return value


def parse_column_mapping_def(data: dict[str, Any]) -> ColumnMappingDef:
    """Parse one entry of ``mappings``. ``source`` and ``target`` are required."""
    return ColumnMappingDef(
        source=data["source"],
        target=data["target"],
        transform=data.get("transform"),
        required=bool(data.get("required", False)),
        default=data.get("default"),
        has_default="default" in data,
        pattern=data.get("pattern"),
    )


def parse_validation_rule_def(data: dict[str, Any]) -> ValidationRuleDef:
    """Parse one entry of ``validations``. ``id`` and ``type`` are required."""
    params = data.get("params") or {}
    if not isinstance(params, dict):
        raise ValueError(f"Validation {data.get('id')!r}: params must be a mapping")
    return ValidationRuleDef(
        id=data["id"],
        rule_type=data["type"],
        fields=tuple(_as_list(data.get("fields"), "fields")),
        severity=data.get("severity", "error"),
        description=data.get("description", ""),
        message=data.get("message"),
        params=dict(params),
    )


def parse_import_profile_def(data: dict[str, Any]) -> ImportProfileDef:
    """
    Parse an ``ImportProfileDef`` from a dict.

    Raises:
        KeyError: if ``id``, ``name`` or a nested required key is missing.
        ValueError: if a nested section has the wrong shape.
    """
    parse_options = data.get("parse_options") or {}
    if not isinstance(parse_options, dict):
        raise ValueError(f"Profile {data.get('id')!r}: parse_options must be a mapping")
    return ImportProfileDef(
        id=data["id"],
        name=data["name"],
        vendor=data.get("vendor", "CUSTOM"),
        file_type=data.get("file_type", "CSV"),
        data_type=data.get("data_type", "TRANSACTIONS"),
        description=data.get("description", ""),
        tenant_id=data.get("tenant_id"),
        parse_options=dict(parse_options),
        mappings=tuple(
            parse_column_mapping_def(m) for m in _as_list(data.get("mappings"), "mappings")
        ),
        validations=tuple(
            parse_validation_rule_def(v) for v in _as_list(data.get("validations"), "validations")
        ),
    )


def parse_import_settings(data: dict[str, Any] | None) -> ImportSettings:
    """Parse the optional ``settings`` section; absent keys take defaults."""
    data = data or {}
    max_workers = data.get("max_workers")
    return ImportSettings(
        preview_limit=int(data.get("preview_limit", 10)),
        sample_limit=int(data.get("sample_limit", 5)),
        max_workers=int(max_workers) if max_workers is not None else None,
    )


def load_import_config(path: Path) -> tuple[ImportSettings, tuple[ImportProfileDef, ...]]:
    """
    Load an import configuration file.

    Expected layout::

        settings:
          preview_limit: 10
        profiles:
          - id: town-ledger
            name: Town Ledger Export
            mappings: [...]
    """
    data = load_yaml_file(Path(path))
    settings = parse_import_settings(data.get("settings"))
    defs = tuple(parse_import_profile_def(p) for p in _as_list(data.get("profiles"), "profiles"))
    logger.info(
        "import_config_loaded",
        extra={
            "path": str(path),
            "profile_count": len(defs),
            "checksum": compute_checksum(data),
        },
    )
    return settings, defs


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization. Deterministic."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
