"""
Procurement Module (``inventory_modules.procurement``).

Responsibility
--------------
Purchase orders: creation with tenant/year numbering, edits, listing,
and the pending -> confirmed -> shipped -> received lifecycle.  Receiving
an order increases stock through the inventory ledger.

Architecture position
---------------------
**Modules layer** -- workflow declaration, config schema, pure helpers,
and two services: ``PurchaseOrderService`` (order data) and
``OrderLifecycleController`` (status changes).

Invariants enforced
-------------------
* ``total == subtotal + tax`` on every stored order.
* Order numbers are unique per tenant.
* Receiving is atomic with its stock movements.
"""

from inventory_modules.procurement.config import ProcurementConfig
from inventory_modules.procurement.lifecycle import OrderLifecycleController
from inventory_modules.procurement.models import (
    UNSET,
    OrderFilter,
    OrderLineInput,
    OrderPage,
    OrderPatch,
    OrderStatus,
    PurchaseOrder,
    PurchaseOrderItem,
)
from inventory_modules.procurement.service import PurchaseOrderService
from inventory_modules.procurement.workflows import PURCHASE_ORDER_WORKFLOW

__all__ = [
    "OrderFilter",
    "OrderLifecycleController",
    "OrderLineInput",
    "OrderPage",
    "OrderPatch",
    "OrderStatus",
    "PURCHASE_ORDER_WORKFLOW",
    "ProcurementConfig",
    "PurchaseOrder",
    "PurchaseOrderItem",
    "PurchaseOrderService",
    "UNSET",
]
