"""
Inventory Domain Models (``inventory_modules.inventory.models``).

Responsibility
--------------
Frozen value objects for stock: items, movements, movement references, and
the stock valuation snapshot.  These carry no database identity and no I/O;
services return them instead of ORM instances.

Invariants
----------
- ``InventoryItem.quantity`` is never negative.
- ``Movement.resulting_quantity`` is never negative.
- All monetary fields use ``Decimal`` -- never ``float``.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from inventory_kernel.logging_config import get_logger

logger = get_logger("modules.inventory.models")


class MovementKind(Enum):
    """Direction of a stock movement."""
    INCREASE = "increase"
    DECREASE = "decrease"
    ADJUSTMENT = "adjustment"


class ItemStatus(Enum):
    """Soft lifecycle flag; items are never hard-deleted while movements exist."""
    ACTIVE = "active"
    INACTIVE = "inactive"


@dataclass(frozen=True)
class MovementReference:
    """What caused a movement, e.g. ``("purchase_order", order_id)``."""
    kind: str
    id: UUID

    def __post_init__(self):
        if not self.kind:
            logger.warning("movement_reference_invalid", extra={"reason": "empty kind"})
            raise ValueError("reference kind must be non-empty")


PURCHASE_ORDER_REFERENCE = "purchase_order"


@dataclass(frozen=True)
class InventoryItem:
    """A stocked item as seen by the ledger."""
    id: UUID
    tenant_id: UUID
    sku: str
    name: str
    quantity: int
    min_quantity: int
    unit_price: Decimal
    status: ItemStatus = ItemStatus.ACTIVE
    category_id: UUID | None = None
    description: str | None = None
    version: int = 0

    def __post_init__(self):
        if self.quantity < 0:
            logger.warning(
                "inventory_item_invalid",
                extra={"item_id": str(self.id), "quantity": self.quantity},
            )
            raise ValueError("quantity cannot be negative")

    @property
    def is_low_stock(self) -> bool:
        return self.quantity <= self.min_quantity

    @property
    def stock_value(self) -> Decimal:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class Movement:
    """An applied, immutable stock change."""
    id: UUID
    item_id: UUID
    sequence: int
    kind: MovementKind
    delta: int
    resulting_quantity: int
    created_at: datetime
    reference: MovementReference | None = None
    note: str | None = None
    unit_cost: Decimal | None = None
    total_cost: Decimal | None = None

    @property
    def previous_quantity(self) -> int:
        return self.resulting_quantity - self.delta


@dataclass(frozen=True)
class StockValuation:
    """Point-in-time stock health figures over active items."""
    total_items: int
    low_stock_count: int
    total_value: Decimal
