"""
InventorySettings schema.

The human-authored YAML settings file is parsed by the loader into these
frozen types.  ``bridges.py`` turns them into kernel and module inputs
(engine, retry policy, procurement config).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal


@dataclass(frozen=True)
class DatabaseSettings:
    """Connection and timeout settings for the storage backend."""

    url: str = "sqlite:///inventory.db"
    echo: bool = False
    pool_size: int = 5
    max_overflow: int = 10
    pool_timeout: int = 30
    statement_timeout_ms: int = 15000


@dataclass(frozen=True)
class RetrySettings:
    """Bounded retry for transient storage errors."""

    max_attempts: int = 3
    base_delay_seconds: float = 0.05
    max_delay_seconds: float = 1.0


@dataclass(frozen=True)
class ProcurementSettings:
    """Purchase order totals, numbering and listing settings."""

    tax_rate: Decimal = Decimal("0.16")
    order_number_prefix: str = "PO"
    order_number_width: int = 4
    default_page_size: int = 50
    max_page_size: int = 200


@dataclass(frozen=True)
class InventorySettings:
    """Root settings artifact.  ``checksum`` identifies the parsed content."""

    config_id: str
    version: int
    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    retry: RetrySettings = field(default_factory=RetrySettings)
    procurement: ProcurementSettings = field(default_factory=ProcurementSettings)
    checksum: str = ""
