"""Pure validation helpers for stock quantities and movement kinds."""

from decimal import Decimal, InvalidOperation

from inventory_kernel.db.types import to_decimal
from inventory_kernel.exceptions import InvalidArgumentError
from inventory_modules.inventory.models import MovementKind


def require_positive_quantity(quantity, field: str = "quantity") -> int:
    """Return ``quantity`` if it is an int > 0; bools and floats are rejected."""
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidArgumentError(field, f"must be a whole number, got {quantity!r}")
    if quantity <= 0:
        raise InvalidArgumentError(field, f"must be positive, got {quantity}")
    return quantity


def require_non_negative_quantity(quantity, field: str = "quantity") -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidArgumentError(field, f"must be a whole number, got {quantity!r}")
    if quantity < 0:
        raise InvalidArgumentError(field, f"cannot be negative, got {quantity}")
    return quantity


def require_non_negative_amount(amount, field: str) -> Decimal:
    """Coerce ``amount`` to Decimal (floats via str); reject negative or non-finite values."""
    if isinstance(amount, bool):
        raise InvalidArgumentError(field, f"must be a number, got {amount!r}")
    try:
        value = to_decimal(amount)
    except (InvalidOperation, ValueError):
        raise InvalidArgumentError(field, f"must be a number, got {amount!r}") from None
    if not value.is_finite():
        raise InvalidArgumentError(field, f"must be finite, got {amount!r}")
    if value < 0:
        raise InvalidArgumentError(field, f"cannot be negative, got {value}")
    return value


def coerce_movement_kind(kind) -> MovementKind:
    if isinstance(kind, MovementKind):
        return kind
    try:
        return MovementKind(kind)
    except ValueError:
        allowed = ", ".join(k.value for k in MovementKind)
        raise InvalidArgumentError("kind", f"must be one of {allowed}, got {kind!r}") from None


def signed_delta(kind: MovementKind, quantity: int) -> int:
    """Decreases subtract; increases and positive adjustments add."""
    return -quantity if kind is MovementKind.DECREASE else quantity
