"""
Config -> Kernel Bridges.

Functions that convert ``InventorySettings`` into kernel and module
inputs.  They live in inventory_config (the producer) because the kernel
must never import inventory_config.

Usage:
    from inventory_config import get_active_settings
    from inventory_config.bridges import build_procurement_config, build_retry_policy

    settings = get_active_settings()
    config = build_procurement_config(settings)
"""

from __future__ import annotations

from sqlalchemy.engine import Engine

from inventory_config.schema import InventorySettings
from inventory_kernel.services.retry_service import RetryPolicy
from inventory_modules.procurement.config import ProcurementConfig


def build_retry_policy(settings: InventorySettings) -> RetryPolicy:
    return RetryPolicy(
        max_attempts=settings.retry.max_attempts,
        base_delay_seconds=settings.retry.base_delay_seconds,
        max_delay_seconds=settings.retry.max_delay_seconds,
    )


def build_procurement_config(settings: InventorySettings) -> ProcurementConfig:
    p = settings.procurement
    return ProcurementConfig(
        tax_rate=p.tax_rate,
        order_number_prefix=p.order_number_prefix,
        order_number_width=p.order_number_width,
        default_page_size=p.default_page_size,
        max_page_size=p.max_page_size,
    )


def init_engine(settings: InventorySettings) -> Engine:
    """Initialize the module-level engine from the database settings."""
    from inventory_kernel.db.engine import init_engine_from_url

    db = settings.database
    return init_engine_from_url(
        db.url,
        echo=db.echo,
        pool_size=db.pool_size,
        max_overflow=db.max_overflow,
        pool_timeout=db.pool_timeout,
        statement_timeout_ms=db.statement_timeout_ms,
    )
