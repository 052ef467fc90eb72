"""
Procurement Domain Models.

The nouns of procurement: purchase orders, their lines, and the inputs
and filters the order store accepts.
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID


class OrderStatus(Enum):
    """Purchase order lifecycle states."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    SHIPPED = "shipped"
    RECEIVED = "received"
    CANCELLED = "cancelled"


# Statuses whose orders can no longer be edited
LOCKED_STATUSES = frozenset({OrderStatus.RECEIVED, OrderStatus.CANCELLED})

# Statuses whose line items may still be replaced
ITEM_EDITABLE_STATUSES = frozenset({OrderStatus.PENDING, OrderStatus.CONFIRMED})

# Open orders, i.e. not yet received or cancelled
OPEN_STATUSES = (OrderStatus.PENDING, OrderStatus.CONFIRMED, OrderStatus.SHIPPED)


@dataclass(frozen=True)
class PurchaseOrderItem:
    """A line on a purchase order."""
    id: UUID
    order_id: UUID
    line_number: int
    quantity: int
    unit_price: Decimal
    line_total: Decimal
    product_id: UUID | None = None
    description: str = ""


@dataclass(frozen=True)
class PurchaseOrder:
    """A purchase order with its lines and derived totals."""
    id: UUID
    tenant_id: UUID
    supplier_id: UUID
    order_number: str
    order_date: date
    status: OrderStatus
    subtotal: Decimal
    tax: Decimal
    total: Decimal
    items: tuple[PurchaseOrderItem, ...] = ()
    expected_delivery_date: date | None = None
    delivered_at: datetime | None = None
    notes: str | None = None
    created_by_id: UUID | None = None

    @property
    def is_editable(self) -> bool:
        return self.status not in LOCKED_STATUSES


@dataclass(frozen=True)
class OrderLineInput:
    """Caller-supplied line for create/update.  Validated by the order store."""
    quantity: int
    unit_price: Decimal
    product_id: UUID | None = None
    description: str = ""


class _Unset:
    """Marker for "field not supplied" in an ``OrderPatch``."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET = _Unset()


@dataclass(frozen=True)
class OrderPatch:
    """
    Partial update for a purchase order.

    Fields left as ``UNSET`` are not touched.  ``None`` clears optional
    fields (``expected_delivery_date``, ``notes``).
    """
    supplier_id: UUID | _Unset = UNSET
    order_date: date | _Unset = UNSET
    expected_delivery_date: date | None | _Unset = UNSET
    notes: str | None | _Unset = UNSET
    items: tuple[OrderLineInput, ...] | _Unset = UNSET

    def supplied_fields(self) -> tuple[str, ...]:
        return tuple(
            name for name in (
                "supplier_id", "order_date", "expected_delivery_date", "notes", "items",
            )
            if getattr(self, name) is not UNSET
        )


@dataclass(frozen=True)
class OrderFilter:
    """Filters and paging for ``PurchaseOrderService.list_orders``."""
    status: OrderStatus | str | None = None
    supplier_id: UUID | None = None
    date_from: date | None = None
    date_to: date | None = None
    search: str | None = None
    page: int = 1
    limit: int | None = None


@dataclass(frozen=True)
class OrderPage:
    """One page of orders plus pagination metadata."""
    items: tuple[PurchaseOrder, ...]
    page: int
    limit: int
    total: int
    pages: int

    @property
    def has_next(self) -> bool:
        return self.page < self.pages
