"""
StockHealthSelector -- read-only stock health queries.

Responsibility:
    Low-stock listing, point-in-time valuation, and item search over the
    tenant's active items.

Architecture position:
    Modules > Selectors.  Never writes; returns frozen DTOs.

Invariants enforced:
    - ``valuation`` is ONE aggregate SELECT, so its three figures come from
      the same snapshot even while movements are being posted.
    - Only ``active`` items are considered.
    - Each query runs in ``read_scope``: no read transaction outlives the
      call unless the caller already had one open.
"""

from decimal import Decimal

from sqlalchemy import case, func, or_, select

from inventory_kernel.db.engine import read_scope
from inventory_kernel.logging_config import get_logger
from inventory_kernel.selectors.base import BaseSelector
from inventory_modules.inventory.models import InventoryItem, ItemStatus, StockValuation
from inventory_modules.inventory.orm import InventoryItemModel

logger = get_logger("modules.inventory.health")


class StockHealthSelector(BaseSelector):
    """Stock health figures for one tenant."""

    def _active(self):
        return select(InventoryItemModel).where(
            InventoryItemModel.tenant_id == self.tenant_id,
            InventoryItemModel.status == ItemStatus.ACTIVE.value,
        )

    def low_stock_items(self) -> list[InventoryItem]:
        """Active items at or below their minimum, lowest quantity first."""
        stmt = (
            self._active()
            .where(InventoryItemModel.quantity <= InventoryItemModel.min_quantity)
            .order_by(InventoryItemModel.quantity, InventoryItemModel.sku)
        )
        with read_scope(self.session):
            items = [row.to_dto() for row in self.session.execute(stmt).scalars()]
        logger.debug("low_stock_items_listed", extra={"count": len(items)})
        return items

    def valuation(self) -> StockValuation:
        """Item count, low-stock count and total stock value in one query."""
        stmt = select(
            func.count(InventoryItemModel.id),
            func.coalesce(
                func.sum(
                    case(
                        (InventoryItemModel.quantity <= InventoryItemModel.min_quantity, 1),
                        else_=0,
                    )
                ),
                0,
            ),
            func.coalesce(
                func.sum(InventoryItemModel.quantity * InventoryItemModel.unit_price),
                0,
            ),
        ).where(
            InventoryItemModel.tenant_id == self.tenant_id,
            InventoryItemModel.status == ItemStatus.ACTIVE.value,
        )
        with read_scope(self.session):
            total_items, low_stock_count, total_value = self.session.execute(stmt).one()

        result = StockValuation(
            total_items=int(total_items),
            low_stock_count=int(low_stock_count),
            total_value=Decimal(str(total_value)),
        )
        logger.info(
            "stock_valuation_computed",
            extra={
                "total_items": result.total_items,
                "low_stock_count": result.low_stock_count,
                "total_value": str(result.total_value),
            },
        )
        return result

    def search_items(self, text: str) -> list[InventoryItem]:
        """Case-insensitive substring match on name, SKU and description."""
        text = (text or "").strip()
        stmt = self._active()
        if text:
            stmt = stmt.where(
                or_(
                    InventoryItemModel.name.icontains(text, autoescape=True),
                    InventoryItemModel.sku.icontains(text, autoescape=True),
                    InventoryItemModel.description.icontains(text, autoescape=True),
                )
            )
        stmt = stmt.order_by(InventoryItemModel.name, InventoryItemModel.sku)
        with read_scope(self.session):
            return [row.to_dto() for row in self.session.execute(stmt).scalars()]
