"""
inventory_config -- single public entrypoint for runtime settings.

Responsibility:
    Provides the ONLY way to obtain settings at runtime through
    ``get_active_settings()``.  No other component reads settings files
    directly.  Returns a frozen ``InventorySettings``; ``bridges`` turns it
    into the engine, retry policy and procurement config.

Architecture position:
    Configuration -- sits above ``inventory_kernel`` and
    ``inventory_modules``.  The kernel MUST NEVER import from
    ``inventory_config``.

Failure modes:
    - ``FileNotFoundError`` -- settings file missing.
    - ``ValueError`` -- unknown keys or invalid values.

Audit relevance:
    Every successful ``get_active_settings()`` call emits an
    ``inventory_config_trace`` log entry with the config id, version and
    checksum, tying runtime behaviour to an exact settings file.
"""

from __future__ import annotations

from pathlib import Path

from inventory_config.loader import load_settings
from inventory_config.schema import (
    DatabaseSettings,
    InventorySettings,
    ProcurementSettings,
    RetrySettings,
)
from inventory_kernel.logging_config import get_logger

_logger = get_logger("config")

# Default settings file
DEFAULT_SETTINGS_PATH = Path(__file__).parent / "sets" / "default.yaml"

__all__ = [
    "DEFAULT_SETTINGS_PATH",
    "DatabaseSettings",
    "InventorySettings",
    "ProcurementSettings",
    "RetrySettings",
    "get_active_settings",
    "load_settings",
]


def get_active_settings(config_path: Path | str | None = None) -> InventorySettings:
    """The ONLY public settings entrypoint.

    Args:
        config_path: Override path to a YAML settings file.
            Defaults to inventory_config/sets/default.yaml.

    Raises:
        FileNotFoundError: If the settings file does not exist.
        ValueError: If the settings fail validation.
    """
    path = Path(config_path) if config_path is not None else DEFAULT_SETTINGS_PATH
    settings = load_settings(path)

    _logger.info(
        "inventory_config_trace",
        extra={
            "trace_type": "INVENTORY_CONFIG_TRACE",
            "config_id": settings.config_id,
            "config_version": settings.version,
            "checksum": settings.checksum,
            "source": str(path),
            "dialect": settings.database.url.split(":", 1)[0],
        },
    )
    return settings
