"""
Inventory Module (``inventory_modules.inventory``).

Responsibility
--------------
Stocked items and their append-only movement ledger: increases,
decreases, adjustments, cycle counts, history, and stock health.

Architecture
------------
Layer: **Modules**.  Imports from ``inventory_kernel`` but never the
reverse.  ``StockLedgerService`` owns writes; ``StockHealthSelector``
owns reads.

Invariants
----------
- Quantity never goes negative (conditional UPDATE plus CHECK constraint).
- Quantity equals the sum of movement deltas.
- Movements are never updated or deleted.
"""

from inventory_modules.inventory.health import StockHealthSelector
from inventory_modules.inventory.ledger import MovementHistory, StockLedgerService
from inventory_modules.inventory.models import (
    PURCHASE_ORDER_REFERENCE,
    InventoryItem,
    ItemStatus,
    Movement,
    MovementKind,
    MovementReference,
    StockValuation,
)

__all__ = [
    "InventoryItem",
    "ItemStatus",
    "Movement",
    "MovementHistory",
    "MovementKind",
    "MovementReference",
    "PURCHASE_ORDER_REFERENCE",
    "StockHealthSelector",
    "StockLedgerService",
    "StockValuation",
]
