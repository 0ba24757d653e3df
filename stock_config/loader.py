"""
Configuration Loader (``stock_config.loader``).

Responsibility
--------------
Reads a YAML configuration file and splits it into the typed module
configs (``ReportingConfig``, ``RawMaterialsConfig``).  The public entry
point is ``stock_config.load_config()``; nothing else should call this
directly.

Invariants enforced
-------------------
* Unknown top-level sections and unknown keys inside a section raise
  ``ValueError``; a typo never silently falls back to a default.
* ``compute_checksum`` is a deterministic SHA-256 of the canonical JSON
  form, so reordering keys in the YAML does not change it.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Out-of-range values  -> ``ValueError`` from the config dataclass.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import fields
from pathlib import Path
from typing import Any

import yaml

from stock_modules.raw_materials.config import RawMaterialsConfig
from stock_modules.reporting.config import ReportingConfig

TOP_LEVEL_KEYS = frozenset({"config_id", "version", "reporting", "raw_materials"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at the top level")
    return data


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 checksum of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def _section(data: dict[str, Any], name: str, allowed: frozenset[str]) -> dict[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ValueError(f"Section '{name}' must be a mapping")
    unknown = set(section) - allowed
    if unknown:
        raise ValueError(f"Unknown keys in '{name}': {sorted(unknown)}")
    return section


def _field_names(cls: type) -> frozenset[str]:
    return frozenset(f.name for f in fields(cls))


def parse_reporting(data: dict[str, Any]) -> ReportingConfig:
    return ReportingConfig.from_dict(
        _section(data, "reporting", _field_names(ReportingConfig))
    )


def parse_raw_materials(data: dict[str, Any]) -> RawMaterialsConfig:
    return RawMaterialsConfig.from_dict(
        _section(data, "raw_materials", _field_names(RawMaterialsConfig))
    )


def validate_top_level(data: dict[str, Any]) -> None:
    unknown = set(data) - TOP_LEVEL_KEYS
    if unknown:
        raise ValueError(f"Unknown configuration sections: {sorted(unknown)}")
