"""
Configuration loader (``stock_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into the frozen dataclasses
of ``stock_config.schema``.  Callers use ``stock_config.get_active_config()``;
this module is its implementation.

Invariants enforced
-------------------
* Unknown sections and unknown keys are errors, not silently ignored.
* Values must have the type of the field's default (``bool`` and ``int``
  are not interchangeable).
* ``compute_checksum`` is a deterministic SHA-256 of the parsed data.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown key or wrong type  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import asdict, fields
from pathlib import Path
from typing import Any

import yaml

from stock_config.schema import (
    DatabaseConfig,
    LedgerConfig,
    LoggingConfig,
    StockConfig,
    UomConfig,
)

SECTIONS: dict[str, type] = {
    "database": DatabaseConfig,
    "logging": LoggingConfig,
    "ledger": LedgerConfig,
    "uom": UomConfig,
}

TOP_LEVEL_KEYS = frozenset({"config_id", "version"}) | frozenset(SECTIONS)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping, got {type(data).__name__}")
    return data


def _check_type(where: str, value: Any, default: Any) -> None:
    expected = type(default)
    if expected is bool:
        ok = isinstance(value, bool)
    elif expected is int:
        ok = isinstance(value, int) and not isinstance(value, bool)
    else:
        ok = isinstance(value, expected)
    if not ok:
        raise ValueError(
            f"{where}: expected {expected.__name__}, got {type(value).__name__} ({value!r})"
        )


def parse_section(name: str, cls: type, data: Any) -> Any:
    """Parse one section mapping into its dataclass."""
    if data is None:
        return cls()
    if not isinstance(data, dict):
        raise ValueError(f"{name}: section must be a mapping")

    defaults = cls()
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"{name}: unknown key(s): {', '.join(unknown)}")

    for key, value in data.items():
        _check_type(f"{name}.{key}", value, getattr(defaults, key))
    return cls(**data)


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def parse_config(data: dict[str, Any]) -> StockConfig:
    """
    Build a StockConfig from a parsed YAML mapping.

    Missing sections take their dataclass defaults.  The checksum covers
    the fully defaulted configuration, so an omitted section and a section
    spelling out the defaults hash the same.
    """
    unknown = sorted(set(data) - TOP_LEVEL_KEYS)
    if unknown:
        raise ValueError(f"unknown top-level key(s): {', '.join(unknown)}")

    base = StockConfig()
    config_id = data.get("config_id", base.config_id)
    version = data.get("version", base.version)
    _check_type("config_id", config_id, base.config_id)
    _check_type("version", version, base.version)

    sections = {
        name: parse_section(name, cls, data.get(name))
        for name, cls in SECTIONS.items()
    }

    config = StockConfig(config_id=config_id, version=version, **sections)
    payload = asdict(config)
    payload.pop("checksum")
    return StockConfig(
        config_id=config_id,
        version=version,
        checksum=compute_checksum(payload),
        **sections,
    )


def load_config_file(path: Path) -> StockConfig:
    return parse_config(load_yaml_file(path))
