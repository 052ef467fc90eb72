"""
Typed Exception Hierarchy for the Inventory Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the ledger and the order store must react to specific failures:
retry a transient storage error, show "not enough stock", refuse to edit a
received order.  Parsing message strings for that is fragile, so:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example:
    try:
        ledger.post_movement(item_id, MovementKind.DECREASE, 7)
    except InsufficientStockError as e:
        api_response(code=e.code, requested=e.requested, available=e.available)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from InventoryKernelError:

    InventoryKernelError (base)
    |
    +-- NotFoundError
    |   +-- ItemNotFoundError
    |   +-- OrderNotFoundError
    |
    +-- InvalidArgumentError
    |
    +-- PermissionDeniedError
    |
    +-- SupplierError
    |   +-- SupplierNotFoundError
    |   +-- SupplierInactiveError
    |
    +-- StockError
    |   +-- InsufficientStockError
    |
    +-- OrderStateError
    |   +-- InvalidTransitionError
    |   +-- OrderImmutableError
    |
    +-- StorageFaultError
    |
    +-- ConflictError
    |   +-- OrderNumberConflictError
    |   +-- ItemVersionConflictError
    |   +-- StaleStatusError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Not found       | ITEM_NOT_FOUND              | Item id unknown for the tenant
                | ORDER_NOT_FOUND             | Order id unknown for the tenant
----------------|-----------------------------|-----------------------------------------
Validation      | INVALID_ARGUMENT            | Bad shape/range (zero qty, negative price)
                | PERMISSION_DENIED           | Authorization gate refused the action
----------------|-----------------------------|-----------------------------------------
Supplier        | SUPPLIER_NOT_FOUND          | Registry has no such supplier
                | SUPPLIER_INACTIVE           | Supplier exists but is inactive
----------------|-----------------------------|-----------------------------------------
Stock           | INSUFFICIENT_STOCK          | Decrease would drive quantity below zero
----------------|-----------------------------|-----------------------------------------
Order state     | INVALID_TRANSITION          | Edge not in the purchase order workflow
                | ORDER_IMMUTABLE             | Edit attempted on received/cancelled order
----------------|-----------------------------|-----------------------------------------
Storage         | STORAGE_FAULT               | Transient backend error, retries exhausted
----------------|-----------------------------|-----------------------------------------
Conflict        | ORDER_NUMBER_CONFLICT       | Order number collided twice
                | STALE_STATUS                | Order status changed under us
                | ITEM_VERSION_CONFLICT       | Item changed during a cycle count
----------------|-----------------------------|-----------------------------------------
Immutability    | IMMUTABILITY_VIOLATION      | UPDATE/DELETE of a stock movement

===============================================================================
HANDLING PATTERNS
===============================================================================

1. VALIDATION ERRORS ARE FINAL.  InvalidArgumentError, SupplierError,
   NotFoundError and OrderStateError are raised before any write and are
   never retried.

2. STORAGE FAULTS ARE RETRIED INSIDE THE KERNEL.  A caller only sees
   StorageFaultError once the bounded retry budget is spent; ``__cause__``
   holds the last backend error.

3. CONFLICTS GET ONE RETRY WITH RE-DERIVATION.  The order store re-seeds
   the numbering counter and tries once more before surfacing
   OrderNumberConflictError.
"""


class InventoryKernelError(Exception):
    """
    Base exception for all inventory kernel errors.

    All subclasses must have a `code` class attribute
    for machine-readable error identification.
    """

    code: str = "INVENTORY_KERNEL_ERROR"


# Not-found exceptions


class NotFoundError(InventoryKernelError):
    """An identifier does not resolve within the tenant."""

    code: str = "NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = str(entity_id)
        super().__init__(f"{entity_type} not found: {entity_id}")


class ItemNotFoundError(NotFoundError):
    """Inventory item does not exist for the tenant."""

    code: str = "ITEM_NOT_FOUND"

    def __init__(self, item_id: str):
        self.item_id = str(item_id)
        super().__init__("Inventory item", item_id)


class OrderNotFoundError(NotFoundError):
    """Purchase order does not exist for the tenant."""

    code: str = "ORDER_NOT_FOUND"

    def __init__(self, order_id: str):
        self.order_id = str(order_id)
        super().__init__("Purchase order", order_id)


# Validation exceptions


class InvalidArgumentError(InventoryKernelError):
    """Argument has the wrong shape or is out of range."""

    code: str = "INVALID_ARGUMENT"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")


class PermissionDeniedError(InventoryKernelError):
    """The authorization gate refused a mutating action."""

    code: str = "PERMISSION_DENIED"

    def __init__(self, role: str, resource: str, action: str):
        self.role = role
        self.resource = resource
        self.action = action
        super().__init__(
            f"Role '{role}' may not perform '{action}' on '{resource}'"
        )


# Supplier exceptions


class SupplierError(InventoryKernelError):
    """Base exception for supplier lookups."""

    code: str = "SUPPLIER_ERROR"


class SupplierNotFoundError(SupplierError):
    """Supplier registry has no such supplier."""

    code: str = "SUPPLIER_NOT_FOUND"

    def __init__(self, supplier_id: str):
        self.supplier_id = str(supplier_id)
        super().__init__(f"Supplier not found: {supplier_id}")


class SupplierInactiveError(SupplierError):
    """Supplier exists but cannot receive new orders."""

    code: str = "SUPPLIER_INACTIVE"

    def __init__(self, supplier_id: str, supplier_name: str = ""):
        self.supplier_id = str(supplier_id)
        self.supplier_name = supplier_name
        label = f"{supplier_name} ({supplier_id})" if supplier_name else str(supplier_id)
        super().__init__(f"Supplier is inactive: {label}")


# Stock exceptions


class StockError(InventoryKernelError):
    """Base exception for stock-level errors."""

    code: str = "STOCK_ERROR"


class InsufficientStockError(StockError):
    """A decrease would drive the item's quantity below zero."""

    code: str = "INSUFFICIENT_STOCK"

    def __init__(self, item_id: str, requested: int, available: int):
        self.item_id = str(item_id)
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for item {item_id}: "
            f"requested {requested}, available {available}"
        )


# Order state exceptions


class OrderStateError(InventoryKernelError):
    """Base exception for purchase order state errors."""

    code: str = "ORDER_STATE_ERROR"


class InvalidTransitionError(OrderStateError):
    """Requested status change is not an edge of the workflow."""

    code: str = "INVALID_TRANSITION"

    def __init__(self, order_id: str, from_status: str, to_status: str):
        self.order_id = str(order_id)
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Cannot transition purchase order {order_id} "
            f"from '{from_status}' to '{to_status}'"
        )


class OrderImmutableError(OrderStateError):
    """Edit attempted on an order whose status forbids it."""

    code: str = "ORDER_IMMUTABLE"

    def __init__(self, order_id: str, status: str, reason: str | None = None):
        self.order_id = str(order_id)
        self.status = status
        self.reason = reason or f"order is {status}"
        super().__init__(
            f"Purchase order {order_id} cannot be modified: {self.reason}"
        )


# Storage exceptions


class StorageFaultError(InventoryKernelError):
    """Transient backend error that persisted through every retry."""

    code: str = "STORAGE_FAULT"

    def __init__(self, operation: str, attempts: int, detail: str = ""):
        self.operation = operation
        self.attempts = attempts
        self.detail = detail
        message = f"Storage fault during {operation} after {attempts} attempt(s)"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


# Conflict exceptions


class ConflictError(InventoryKernelError):
    """Concurrent writer produced a colliding value or version."""

    code: str = "CONFLICT"


class OrderNumberConflictError(ConflictError):
    """Order number allocation collided even after re-derivation."""

    code: str = "ORDER_NUMBER_CONFLICT"

    def __init__(self, tenant_id: str, order_number: str):
        self.tenant_id = str(tenant_id)
        self.order_number = order_number
        super().__init__(
            f"Order number {order_number} already exists for tenant {tenant_id}"
        )


class ItemVersionConflictError(ConflictError):
    """Item changed between a read and a version-checked write."""

    code: str = "ITEM_VERSION_CONFLICT"

    def __init__(self, item_id: str, expected_version: int):
        self.item_id = str(item_id)
        self.expected_version = expected_version
        super().__init__(
            f"Inventory item {item_id} is no longer at version {expected_version}: "
            "it was modified by another transaction"
        )


class StaleStatusError(ConflictError):
    """Order status changed between read and compare-and-swap."""

    code: str = "STALE_STATUS"

    def __init__(self, order_id: str, expected_status: str):
        self.order_id = str(order_id)
        self.expected_status = expected_status
        super().__init__(
            f"Purchase order {order_id} is no longer '{expected_status}': "
            "status was changed by another transaction"
        )


# Immutability exceptions


class ImmutabilityError(InventoryKernelError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """
    Attempted to modify or delete an immutable record.

    Stock movements are append-only once written.
    """

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = str(entity_id)
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
