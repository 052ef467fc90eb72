"""
Procurement Pure Functions (``inventory_modules.procurement.helpers``).

Responsibility
--------------
Stateless calculations for purchase orders: line validation, line and
order totals, and order number formatting/parsing.

Architecture
------------
Layer: **Modules** -- pure helper functions.  No I/O, no session, no clock.

Invariants
----------
- Amounts are ``Decimal`` end to end; tax is not rounded, so
  ``total == subtotal + tax`` holds exactly.
- Validation raises ``InvalidArgumentError`` naming the offending field.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from decimal import Decimal

from inventory_kernel.exceptions import InvalidArgumentError
from inventory_modules.inventory.helpers import (
    require_non_negative_amount,
    require_positive_quantity,
)
from inventory_modules.procurement.models import OrderLineInput


def normalize_lines(items) -> tuple[OrderLineInput, ...]:
    """
    Validate caller-supplied lines.

    Accepts ``OrderLineInput`` instances or mappings with the same keys.
    Raises ``InvalidArgumentError`` if ``items`` is empty or any line has a
    non-positive quantity or a negative unit price.
    """
    if items is None or isinstance(items, (str, bytes)):
        raise InvalidArgumentError("items", "must be a non-empty list of lines")
    lines = list(items)
    if not lines:
        raise InvalidArgumentError("items", "an order needs at least one line")

    normalized = []
    for index, line in enumerate(lines):
        if isinstance(line, Mapping):
            line = OrderLineInput(
                quantity=line.get("quantity"),
                unit_price=line.get("unit_price"),
                product_id=line.get("product_id"),
                description=line.get("description") or "",
            )
        elif not isinstance(line, OrderLineInput):
            raise InvalidArgumentError(f"items[{index}]", f"unsupported line {line!r}")
        normalized.append(
            OrderLineInput(
                quantity=require_positive_quantity(line.quantity, f"items[{index}].quantity"),
                unit_price=require_non_negative_amount(line.unit_price, f"items[{index}].unit_price"),
                product_id=line.product_id,
                description=line.description or "",
            )
        )
    return tuple(normalized)


def compute_line_total(quantity: int, unit_price: Decimal) -> Decimal:
    return unit_price * quantity


def compute_totals(
    lines: Iterable[OrderLineInput],
    tax_rate: Decimal,
) -> tuple[Decimal, Decimal, Decimal]:
    """Return ``(subtotal, tax, total)`` for the lines at ``tax_rate``."""
    subtotal = sum(
        (compute_line_total(line.quantity, line.unit_price) for line in lines),
        Decimal("0"),
    )
    tax = subtotal * tax_rate
    return subtotal, tax, subtotal + tax


def order_number_prefix(prefix: str, year: int) -> str:
    """``PO-2024-`` -- the prefix every order number of that year starts with."""
    return f"{prefix}-{year}-"


def format_order_number(prefix: str, year: int, sequence: int, width: int = 4) -> str:
    """
    Format ``PO-2024-0007``.

    Zero-padded to ``width`` digits; wider sequences are printed in full.
    """
    if sequence < 1:
        raise ValueError("order sequence must be positive")
    return f"{order_number_prefix(prefix, year)}{sequence:0{width}d}"


def parse_order_sequence(order_number: str, prefix: str, year: int) -> int | None:
    """Trailing sequence of an order number of that prefix and year, else None."""
    match = re.fullmatch(
        re.escape(order_number_prefix(prefix, year)) + r"(\d+)",
        order_number or "",
    )
    if match is None:
        return None
    return int(match.group(1))
