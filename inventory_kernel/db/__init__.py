"""Database layer - engine, base classes, types, and append-only guards."""

from inventory_kernel.db.base import UUID, Base, TrackedBase, UUIDString
from inventory_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    read_scope,
    session_scope,
)
from inventory_kernel.db.types import Money, Quantity, to_decimal

__all__ = [
    "get_engine",
    "get_session",
    "session_scope",
    "read_scope",
    "create_tables",
    "Base",
    "TrackedBase",
    "UUIDString",
    "UUID",
    "Money",
    "Quantity",
    "to_decimal",
]
