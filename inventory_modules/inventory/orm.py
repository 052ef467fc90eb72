"""
SQLAlchemy ORM persistence models for the Inventory module.

Responsibility
--------------
Persist stocked items and their append-only movement history.

Architecture position
---------------------
**Modules layer** -- ORM models consumed by ``StockLedgerService`` and
``StockHealthSelector``.  Items inherit from ``TrackedBase``; movements
inherit from ``Base`` and carry only creation metadata since they are
never updated.

Invariants enforced
-------------------
* ``quantity >= 0`` is a CHECK constraint, so no write path can store a
  negative stock level.
* ``(item_id, sequence)`` is unique -- each movement owns exactly one
  item version, which totally orders an item's history.
* ``(tenant_id, sku)`` is unique.
* Movements are append-only (db/immutability.py, db/triggers.py).
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import Base, TrackedBase, UUIDString
from inventory_kernel.db.types import Money, Quantity


class InventoryItemModel(TrackedBase):
    """
    A stocked item owned by the catalog.

    Maps to the ``InventoryItem`` DTO in ``inventory_modules.inventory.models``.

    Guarantees:
        - ``quantity`` and ``version`` change only through the ledger's
          conditional UPDATE.
        - ``status`` is ``active`` or ``inactive``; rows are never deleted
          while movements reference them.
    """

    __tablename__ = "inventory_items"

    __table_args__ = (
        UniqueConstraint("tenant_id", "sku", name="uq_inventory_item_tenant_sku"),
        CheckConstraint("quantity >= 0", name="ck_inventory_item_quantity_non_negative"),
        CheckConstraint("min_quantity >= 0", name="ck_inventory_item_min_quantity"),
        CheckConstraint("unit_price >= 0", name="ck_inventory_item_unit_price"),
        Index("idx_inventory_item_tenant_status", "tenant_id", "status"),
    )

    tenant_id: Mapped[UUID] = mapped_column()
    category_id: Mapped[UUID | None] = mapped_column(nullable=True)

    sku: Mapped[str] = mapped_column(String(100))
    name: Mapped[str] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(String(4000), nullable=True)

    quantity: Mapped[Quantity] = mapped_column(default=0)
    min_quantity: Mapped[Quantity] = mapped_column(default=0)
    unit_price: Mapped[Money] = mapped_column(default=Decimal("0"))

    status: Mapped[str] = mapped_column(String(20), default="active")
    version: Mapped[int] = mapped_column(default=0)

    def to_dto(self):
        """Convert ORM model to frozen InventoryItem DTO."""
        from inventory_modules.inventory.models import InventoryItem, ItemStatus

        return InventoryItem(
            id=self.id,
            tenant_id=self.tenant_id,
            sku=self.sku,
            name=self.name,
            quantity=self.quantity,
            min_quantity=self.min_quantity,
            unit_price=self.unit_price,
            status=ItemStatus(self.status),
            category_id=self.category_id,
            description=self.description,
            version=self.version,
        )

    def __repr__(self) -> str:
        return f"<InventoryItemModel {self.sku} qty={self.quantity}>"


class InventoryMovementModel(Base):
    """
    One applied stock change.  Append-only.

    Maps to the ``Movement`` DTO in ``inventory_modules.inventory.models``.

    Guarantees:
        - ``delta`` is signed: positive for increases, negative for decreases.
        - ``resulting_quantity`` is the item quantity right after this movement.
        - ``sequence`` equals the item ``version`` this movement produced.
    """

    __tablename__ = "inventory_movements"

    __table_args__ = (
        UniqueConstraint("item_id", "sequence", name="uq_inventory_movement_item_sequence"),
        CheckConstraint("resulting_quantity >= 0", name="ck_inventory_movement_resulting"),
        CheckConstraint("delta <> 0", name="ck_inventory_movement_delta_nonzero"),
        Index("idx_inventory_movement_reference", "reference_type", "reference_id"),
        Index("idx_inventory_movement_tenant", "tenant_id"),
    )

    tenant_id: Mapped[UUID] = mapped_column()
    item_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("inventory_items.id"),
    )
    sequence: Mapped[int] = mapped_column()

    kind: Mapped[str] = mapped_column(String(20))
    delta: Mapped[Quantity] = mapped_column()
    resulting_quantity: Mapped[Quantity] = mapped_column()

    reference_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    reference_id: Mapped[UUID | None] = mapped_column(nullable=True)

    unit_cost: Mapped[Decimal | None] = mapped_column(nullable=True)
    total_cost: Mapped[Decimal | None] = mapped_column(nullable=True)

    note: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    created_by_id: Mapped[UUID] = mapped_column()

    def to_dto(self):
        """Convert ORM model to frozen Movement DTO."""
        from inventory_modules.inventory.models import (
            Movement,
            MovementKind,
            MovementReference,
        )

        reference = None
        if self.reference_type is not None and self.reference_id is not None:
            reference = MovementReference(kind=self.reference_type, id=self.reference_id)
        return Movement(
            id=self.id,
            item_id=self.item_id,
            sequence=self.sequence,
            kind=MovementKind(self.kind),
            delta=self.delta,
            resulting_quantity=self.resulting_quantity,
            created_at=self.created_at,
            reference=reference,
            note=self.note,
            unit_cost=self.unit_cost,
            total_cost=self.total_cost,
        )

    def __repr__(self) -> str:
        return f"<InventoryMovementModel item={self.item_id} #{self.sequence} {self.delta:+d}>"
