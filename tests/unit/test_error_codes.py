"""
Every kernel exception carries a stable machine-readable code and its
structured fields.
"""

import pytest

from inventory_kernel import exceptions as exc


@pytest.mark.parametrize(
    "error, code, parent",
    [
        (exc.ItemNotFoundError("i1"), "ITEM_NOT_FOUND", exc.NotFoundError),
        (exc.OrderNotFoundError("o1"), "ORDER_NOT_FOUND", exc.NotFoundError),
        (exc.InvalidArgumentError("quantity", "must be positive"), "INVALID_ARGUMENT", exc.InventoryKernelError),
        (exc.PermissionDeniedError("clerk", "purchase_order", "delete"), "PERMISSION_DENIED", exc.InventoryKernelError),
        (exc.SupplierNotFoundError("s1"), "SUPPLIER_NOT_FOUND", exc.SupplierError),
        (exc.SupplierInactiveError("s1", "Acme"), "SUPPLIER_INACTIVE", exc.SupplierError),
        (exc.InsufficientStockError("i1", 5, 2), "INSUFFICIENT_STOCK", exc.StockError),
        (exc.InvalidTransitionError("o1", "pending", "received"), "INVALID_TRANSITION", exc.OrderStateError),
        (exc.OrderImmutableError("o1", "received"), "ORDER_IMMUTABLE", exc.OrderStateError),
        (exc.StorageFaultError("post_movement", 3), "STORAGE_FAULT", exc.InventoryKernelError),
        (exc.OrderNumberConflictError("t1", "PO-2024-0001"), "ORDER_NUMBER_CONFLICT", exc.ConflictError),
        (exc.ItemVersionConflictError("i1", 4), "ITEM_VERSION_CONFLICT", exc.ConflictError),
        (exc.StaleStatusError("o1", "pending"), "STALE_STATUS", exc.ConflictError),
        (exc.ImmutabilityViolationError("InventoryMovement", "m1", "append-only"), "IMMUTABILITY_VIOLATION", exc.ImmutabilityError),
    ],
)
def test_codes_and_hierarchy(error, code, parent):
    assert error.code == code
    assert isinstance(error, parent)
    assert isinstance(error, exc.InventoryKernelError)


def test_insufficient_stock_fields():
    error = exc.InsufficientStockError("i1", requested=7, available=5)
    assert (error.item_id, error.requested, error.available) == ("i1", 7, 5)
    assert "requested 7, available 5" in str(error)


def test_invalid_argument_names_field():
    error = exc.InvalidArgumentError("items[2].unit_price", "cannot be negative")
    assert error.field == "items[2].unit_price"
    assert str(error) == "Invalid items[2].unit_price: cannot be negative"


def test_order_immutable_default_reason():
    assert exc.OrderImmutableError("o1", "cancelled").reason == "order is cancelled"


def test_storage_fault_detail():
    error = exc.StorageFaultError("create_order", 3, detail="database is locked")
    assert str(error) == "Storage fault during create_order after 3 attempt(s): database is locked"
