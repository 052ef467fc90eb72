"""
Module ORM Registry (``inventory_modules._orm_registry``).

Responsibility
--------------
Ensure every SQLAlchemy ORM model is imported so that ``Base.metadata``
contains its table definition before tables are created.

Also provides ``create_all_tables()`` -- the entry point that registers
all module ORM models and then creates every table.

Architecture position
---------------------
**Modules layer** -- utility.  Imports from sibling ``inventory_modules``
packages and from ``inventory_kernel.db.engine`` (allowed: modules -> kernel).

Usage
-----
Entrypoints and ``tests/conftest.py`` call ``create_all_tables()``.
"""


def import_all_orm_models() -> None:
    """Import kernel models and every ``inventory_modules.*.orm`` module.

    Purchase order lines reference ``inventory_items``, so the inventory
    module is imported before procurement.  Also registers the movement
    immutability listeners.  Idempotent.
    """
    import inventory_kernel.services.sequence_service  # noqa: F401  # sequence_counters
    import inventory_modules.inventory.orm  # noqa: F401
    import inventory_modules.procurement.orm  # noqa: F401

    from inventory_kernel.db.immutability import register_immutability_listeners

    register_immutability_listeners()


def create_all_tables(install_triggers: bool = True, engine=None) -> None:
    """Create every table, then optionally install the movement triggers.

    Preconditions:
        Engine must be initialized via ``init_engine_from_url()`` unless
        ``engine`` is passed.
    """
    from inventory_kernel.db.engine import create_tables

    import_all_orm_models()
    create_tables(install_triggers=install_triggers, engine=engine)
