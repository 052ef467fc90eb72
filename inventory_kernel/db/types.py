"""
Module: inventory_kernel.db.types
Responsibility: Annotated column types for prices and stock quantities, so
    that every model uses identical column definitions.
Architecture position: Kernel > DB.  May be imported by models, domain,
    services, and selectors.  MUST NOT import from any of those layers.

Invariants enforced:
    - No floats for prices or order totals in Python.  Money is
      Numeric(38, 9) and always comes back as Decimal.
    - Stock quantities are whole units (BigInteger).

Backend precision:
    PostgreSQL stores Money as exact NUMERIC(38, 9).  SQLite has no exact
    decimal storage: NUMERIC columns get REAL affinity, so a stored amount
    is a binary double and is exact only up to 15 significant digits.
    Larger amounts round-trip lossily on SQLite, which is for local
    development and tests; production amounts belong on PostgreSQL.

Failure modes:
    - decimal.InvalidOperation from to_decimal() on non-numeric input.
"""

from decimal import Decimal
from typing import Annotated

from sqlalchemy import BigInteger, Numeric

# 38 digits total, 9 decimal places
Money = Annotated[Decimal, Numeric(38, 9)]

# Whole stock units
Quantity = Annotated[int, BigInteger]


def to_decimal(value: Decimal | int | str | float) -> Decimal:
    """
    Convert an amount to Decimal without float rounding.

    Floats are converted through ``str`` so ``0.1`` becomes ``Decimal("0.1")``.
    """
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))
