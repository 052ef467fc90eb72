"""
Inventory Modules.

Orchestration over the Inventory Kernel:

- Inventory: stocked items, the movement ledger, stock health queries
- Procurement: purchase orders, order numbering, the order lifecycle

Each module contains domain models (frozen DTOs), ORM models, pure
helpers, a configuration schema where needed, and services.
"""

from inventory_modules import inventory, procurement

__all__ = [
    "inventory",
    "procurement",
    "create_all_tables",
]


def create_all_tables(install_triggers: bool = True, engine=None) -> None:
    """Convenience alias for ``_orm_registry.create_all_tables``."""
    from inventory_modules._orm_registry import create_all_tables as _create

    _create(install_triggers=install_triggers, engine=engine)
