"""
Configuration Loader (``inventory_config.loader``).

Responsibility
--------------
Loads a YAML settings file and parses it into the typed
``inventory_config.schema`` dataclasses.  Runtime callers go through
``inventory_config.get_active_settings()``.

Invariants enforced
-------------------
* Unknown keys are rejected with ``ValueError`` -- a typo never turns
  into a silent default.
* Every parsed object is a frozen dataclass from ``schema.py``.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the
  parsed content.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown or mistyped keys  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import asdict, fields
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from inventory_config.schema import (
    DatabaseSettings,
    InventorySettings,
    ProcurementSettings,
    RetrySettings,
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _check_keys(section: str, data: dict[str, Any], cls: type) -> None:
    allowed = {f.name for f in fields(cls)}
    unknown = sorted(set(data) - allowed)
    if unknown:
        raise ValueError(f"Unknown keys in '{section}': {', '.join(unknown)}")


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise ValueError(f"Section '{name}' must be a mapping, got {type(value).__name__}")
    return value


def parse_decimal(value: Any, name: str) -> Decimal:
    """Parse a Decimal from YAML; floats go through ``str``."""
    if isinstance(value, bool):
        raise ValueError(f"{name} must be a number, got {value!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"{name} must be a number, got {value!r}") from None


def parse_database(data: dict[str, Any]) -> DatabaseSettings:
    _check_keys("database", data, DatabaseSettings)
    return DatabaseSettings(**data)


def parse_retry(data: dict[str, Any]) -> RetrySettings:
    _check_keys("retry", data, RetrySettings)
    return RetrySettings(**data)


def parse_procurement(data: dict[str, Any]) -> ProcurementSettings:
    _check_keys("procurement", data, ProcurementSettings)
    data = dict(data)
    if "tax_rate" in data:
        data["tax_rate"] = parse_decimal(data["tax_rate"], "procurement.tax_rate")
    return ProcurementSettings(**data)


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def parse_settings(data: dict[str, Any]) -> InventorySettings:
    """Parse a root settings mapping into ``InventorySettings``."""
    allowed = {"config_id", "version", "database", "retry", "procurement"}
    unknown = sorted(set(data) - allowed)
    if unknown:
        raise ValueError(f"Unknown top-level keys: {', '.join(unknown)}")

    settings = InventorySettings(
        config_id=str(data.get("config_id", "default")),
        version=int(data.get("version", 1)),
        database=parse_database(_section(data, "database")),
        retry=parse_retry(_section(data, "retry")),
        procurement=parse_procurement(_section(data, "procurement")),
    )
    checksum = compute_checksum(asdict(settings))
    return InventorySettings(
        config_id=settings.config_id,
        version=settings.version,
        database=settings.database,
        retry=settings.retry,
        procurement=settings.procurement,
        checksum=checksum,
    )


def load_settings(path: Path | str) -> InventorySettings:
    """Load and parse a YAML settings file."""
    return parse_settings(load_yaml_file(Path(path)))
