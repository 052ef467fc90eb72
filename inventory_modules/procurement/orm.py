"""
SQLAlchemy ORM persistence models for the Procurement module.

Responsibility
--------------
Persist purchase orders and their line items.

Architecture position
---------------------
**Modules layer** -- ORM models consumed by ``PurchaseOrderService`` and
``OrderLifecycleController``.  Inherits from ``TrackedBase`` (kernel db
layer).

Invariants enforced
-------------------
* All monetary fields use ``Decimal`` (Numeric(38,9)) -- NEVER float.
  SQLite keeps only 15 significant digits; see ``inventory_kernel.db.types``.
* ``(tenant_id, order_number)`` is unique; order numbering relies on it
  as the final arbiter.
* Line items belong to exactly one order and are deleted with it
  (ORM cascade plus ``ON DELETE CASCADE``).
* ``status`` is stored as String(20); it changes only through the
  lifecycle controller's compare-and-swap UPDATE.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from inventory_kernel.db.base import TrackedBase
from inventory_kernel.db.types import Money, Quantity

# ---------------------------------------------------------------------------
# PurchaseOrderModel
# ---------------------------------------------------------------------------


class PurchaseOrderModel(TrackedBase):
    """
    A purchase order placed with a supplier.

    Maps to the ``PurchaseOrder`` DTO in ``inventory_modules.procurement.models``.

    Guarantees:
        - ``order_number`` is unique per tenant (``PO-YYYY-NNNN``).
        - ``subtotal``/``tax``/``total`` are derived from the lines.
        - ``status`` follows the lifecycle:
          pending -> confirmed -> shipped -> received, or -> cancelled.
    """

    __tablename__ = "purchase_orders"

    __table_args__ = (
        UniqueConstraint("tenant_id", "order_number", name="uq_purchase_order_tenant_number"),
        CheckConstraint("subtotal >= 0", name="ck_purchase_order_subtotal"),
        Index("idx_purchase_order_tenant_status", "tenant_id", "status"),
        Index("idx_purchase_order_tenant_date", "tenant_id", "order_date"),
        Index("idx_purchase_order_supplier", "supplier_id"),
    )

    tenant_id: Mapped[UUID] = mapped_column(nullable=False)
    supplier_id: Mapped[UUID] = mapped_column(nullable=False)
    order_number: Mapped[str] = mapped_column(String(50), nullable=False)
    order_date: Mapped[date] = mapped_column(Date, nullable=False)
    expected_delivery_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    delivered_at: Mapped[datetime | None] = mapped_column(nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    subtotal: Mapped[Money] = mapped_column(default=Decimal("0"))
    tax: Mapped[Money] = mapped_column(default=Decimal("0"))
    total: Mapped[Money] = mapped_column(default=Decimal("0"))
    notes: Mapped[str | None] = mapped_column(String(4000), nullable=True)

    # Relationships
    items: Mapped[list["PurchaseOrderItemModel"]] = relationship(
        "PurchaseOrderItemModel",
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="PurchaseOrderItemModel.line_number",
    )

    def to_dto(self):
        from inventory_modules.procurement.models import OrderStatus, PurchaseOrder

        return PurchaseOrder(
            id=self.id,
            tenant_id=self.tenant_id,
            supplier_id=self.supplier_id,
            order_number=self.order_number,
            order_date=self.order_date,
            status=OrderStatus(self.status),
            subtotal=self.subtotal,
            tax=self.tax,
            total=self.total,
            items=tuple(item.to_dto() for item in self.items),
            expected_delivery_date=self.expected_delivery_date,
            delivered_at=self.delivered_at,
            notes=self.notes,
            created_by_id=self.created_by_id,
        )

    def __repr__(self) -> str:
        return f"<PurchaseOrderModel {self.order_number} [{self.status}]>"


# ---------------------------------------------------------------------------
# PurchaseOrderItemModel
# ---------------------------------------------------------------------------


class PurchaseOrderItemModel(TrackedBase):
    """
    A line item on a purchase order.

    Maps to the ``PurchaseOrderItem`` DTO in
    ``inventory_modules.procurement.models``.

    Guarantees:
        - Belongs to exactly one ``PurchaseOrderModel``.
        - (order_id, line_number) is unique.
        - ``line_total`` = ``quantity`` x ``unit_price``.
    """

    __tablename__ = "purchase_order_items"

    __table_args__ = (
        UniqueConstraint("order_id", "line_number", name="uq_purchase_order_item_line"),
        CheckConstraint("quantity > 0", name="ck_purchase_order_item_quantity"),
        CheckConstraint("unit_price >= 0", name="ck_purchase_order_item_unit_price"),
        Index("idx_purchase_order_item_order", "order_id"),
        Index("idx_purchase_order_item_product", "product_id"),
    )

    order_id: Mapped[UUID] = mapped_column(
        ForeignKey("purchase_orders.id", ondelete="CASCADE"), nullable=False,
    )
    line_number: Mapped[int]
    product_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("inventory_items.id"), nullable=True,
    )
    description: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    quantity: Mapped[Quantity]
    unit_price: Mapped[Money] = mapped_column(default=Decimal("0"))
    line_total: Mapped[Money] = mapped_column(default=Decimal("0"))

    # Parent relationship
    order: Mapped["PurchaseOrderModel"] = relationship(
        "PurchaseOrderModel",
        back_populates="items",
    )

    def to_dto(self):
        from inventory_modules.procurement.models import PurchaseOrderItem

        return PurchaseOrderItem(
            id=self.id,
            order_id=self.order_id,
            line_number=self.line_number,
            quantity=self.quantity,
            unit_price=self.unit_price,
            line_total=self.line_total,
            product_id=self.product_id,
            description=self.description,
        )

    def __repr__(self) -> str:
        return f"<PurchaseOrderItemModel #{self.line_number} qty={self.quantity}>"
