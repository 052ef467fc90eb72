"""
Purchase Order Store (``inventory_modules.procurement.service``).

Responsibility
--------------
Creates, edits, reads, lists and deletes purchase orders and their line
items, allocating tenant/year order numbers and keeping the derived
totals consistent.  Status changes are NOT made here -- see
``inventory_modules.procurement.lifecycle``.

Architecture position
---------------------
**Modules layer**.  ``PurchaseOrderService`` is the public entry point for
order data.  It consults the ``SupplierRegistry`` and the authorization
gate, reads the item catalog (``inventory_items``), and allocates numbers
through the kernel ``SequenceService``.

Invariants enforced
-------------------
* Each public mutating method owns its transaction boundary (commit on
  success, rollback on any exception).  A header is never left without
  its items: header and items are written in one transaction.
* ``subtotal = sum(quantity * unit_price)``, ``tax = subtotal * tax_rate``,
  ``total = subtotal + tax`` -- recomputed on every line change.
* Order numbers are unique per tenant.  Allocation is an atomic counter
  increment; the unique constraint is the final arbiter, and a collision
  gets one retry after re-seeding the counter past the current maximum.
* Reads end any transaction they open, so an idle reader holds no
  database locks.
* Received and cancelled orders are read-only.  Lines can be replaced only
  while ``pending`` or ``confirmed``.

Failure modes
-------------
* ``SupplierNotFoundError`` / ``SupplierInactiveError`` -- supplier check.
* ``InvalidArgumentError`` -- empty items, bad quantity/price, bad paging.
* ``ItemNotFoundError`` -- a line references an unknown product.
* ``OrderNotFoundError`` -- unknown id or another tenant's order.
* ``OrderImmutableError`` -- edit of a locked order.
* ``OrderNumberConflictError`` -- numbering collided twice.
* ``StorageFaultError`` -- transient storage errors outlasted the retries.

Usage::

    service = PurchaseOrderService(session, context, suppliers, clock=clock)
    order = service.create_order(
        supplier_id,
        items=[OrderLineInput(quantity=10, unit_price=Decimal("2.50"), product_id=item_id)],
    )
"""

from __future__ import annotations

from datetime import date
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from inventory_kernel.db.engine import read_scope
from inventory_kernel.domain.clock import Clock
from inventory_kernel.domain.collaborators import (
    AuthorizationGate,
    OperationContext,
    SupplierRecord,
    SupplierRegistry,
)
from inventory_kernel.exceptions import (
    InvalidArgumentError,
    ItemNotFoundError,
    OrderImmutableError,
    OrderNotFoundError,
    OrderNumberConflictError,
    SupplierInactiveError,
    SupplierNotFoundError,
)
from inventory_kernel.logging_config import get_logger
from inventory_kernel.services.base import BaseService
from inventory_kernel.services.retry_service import RetryPolicy
from inventory_kernel.services.sequence_service import SequenceService
from inventory_modules.inventory.orm import InventoryItemModel
from inventory_modules.procurement.config import ProcurementConfig
from inventory_modules.procurement.helpers import (
    compute_line_total,
    compute_totals,
    format_order_number,
    normalize_lines,
    order_number_prefix,
    parse_order_sequence,
)
from inventory_modules.procurement.models import (
    ITEM_EDITABLE_STATUSES,
    LOCKED_STATUSES,
    OPEN_STATUSES,
    UNSET,
    OrderFilter,
    OrderLineInput,
    OrderPage,
    OrderPatch,
    OrderStatus,
    PurchaseOrder,
)
from inventory_modules.procurement.orm import PurchaseOrderItemModel, PurchaseOrderModel

logger = get_logger("modules.procurement.service")

RESOURCE = "purchase_order"

_ORDER_NUMBER_CONSTRAINT_MARKERS = (
    "uq_purchase_order_tenant_number",
    "purchase_orders.order_number",
)


def _is_order_number_conflict(exc: IntegrityError) -> bool:
    message = str(getattr(exc, "orig", exc))
    return any(marker in message for marker in _ORDER_NUMBER_CONSTRAINT_MARKERS)


def coerce_order_status(status) -> OrderStatus:
    """Accept an ``OrderStatus`` or its string value."""
    if isinstance(status, OrderStatus):
        return status
    try:
        return OrderStatus(status)
    except ValueError:
        allowed = ", ".join(s.value for s in OrderStatus)
        raise InvalidArgumentError("status", f"must be one of {allowed}, got {status!r}") from None


class PurchaseOrderService(BaseService):
    """
    Stores purchase orders for one tenant.

    Contract
    --------
    * Write methods return the stored ``PurchaseOrder`` DTO after commit.
    * Read methods never write.
    * Every mutating method asks the authorization gate first.
    """

    def __init__(
        self,
        session: Session,
        context: OperationContext,
        suppliers: SupplierRegistry,
        config: ProcurementConfig | None = None,
        clock: Clock | None = None,
        gate: AuthorizationGate | None = None,
        retry_policy: RetryPolicy | None = None,
        auto_commit: bool = True,
    ):
        super().__init__(
            session, context, clock=clock, gate=gate,
            retry_policy=retry_policy, auto_commit=auto_commit,
        )
        self._suppliers = suppliers
        self._config = config or ProcurementConfig.with_defaults()

    @property
    def config(self) -> ProcurementConfig:
        return self._config

    # =========================================================================
    # Validation
    # =========================================================================

    def _require_supplier(self, supplier_id: UUID) -> SupplierRecord:
        supplier = self._suppliers.get_supplier(self.tenant_id, supplier_id)
        if supplier is None:
            logger.warning("supplier_not_found", extra={"supplier_id": str(supplier_id)})
            raise SupplierNotFoundError(str(supplier_id))
        if not supplier.is_active:
            logger.warning(
                "supplier_inactive",
                extra={"supplier_id": str(supplier_id), "supplier_name": supplier.name},
            )
            raise SupplierInactiveError(str(supplier_id), supplier.name)
        return supplier

    def _require_products(self, lines: tuple[OrderLineInput, ...]) -> None:
        """Every referenced product must be an item of this tenant."""
        product_ids = {line.product_id for line in lines if line.product_id is not None}
        if not product_ids:
            return
        found = set(
            self.session.execute(
                select(InventoryItemModel.id).where(
                    InventoryItemModel.tenant_id == self.tenant_id,
                    InventoryItemModel.id.in_(product_ids),
                )
            ).scalars()
        )
        for line in lines:
            if line.product_id is not None and line.product_id not in found:
                raise ItemNotFoundError(str(line.product_id))

    def _load(self, order_id: UUID, for_update: bool = False) -> PurchaseOrderModel:
        stmt = select(PurchaseOrderModel).where(
            PurchaseOrderModel.id == order_id,
            PurchaseOrderModel.tenant_id == self.tenant_id,
        )
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        order = self.session.execute(stmt).scalar_one_or_none()
        if order is None:
            raise OrderNotFoundError(str(order_id))
        return order

    # =========================================================================
    # Order numbering
    # =========================================================================

    def _counter_name(self, year: int) -> str:
        return f"purchase_order:{self.tenant_id}:{year}"

    def _max_existing_sequence(self, year: int) -> int:
        """Highest trailing sequence among this tenant's orders of ``year``."""
        prefix = order_number_prefix(self._config.order_number_prefix, year)
        numbers = self.session.execute(
            select(PurchaseOrderModel.order_number).where(
                PurchaseOrderModel.tenant_id == self.tenant_id,
                PurchaseOrderModel.order_number.startswith(prefix, autoescape=True),
            )
        ).scalars()
        sequences = [
            seq for seq in (
                parse_order_sequence(n, self._config.order_number_prefix, year) for n in numbers
            )
            if seq is not None
        ]
        return max(sequences, default=0)

    def _allocate_order_number(self, year: int, reseed: bool = False) -> str:
        counter = self._counter_name(year)
        sequences = SequenceService(self.session)
        if reseed:
            sequences.advance_to(counter, self._max_existing_sequence(year))
        value = sequences.next_value(counter, seed=lambda: self._max_existing_sequence(year))
        order_number = format_order_number(
            self._config.order_number_prefix, year, value, self._config.order_number_width,
        )
        logger.info(
            "order_number_allocated",
            extra={"order_number": order_number, "counter": counter, "reseeded": reseed},
        )
        return order_number

    # =========================================================================
    # Writes
    # =========================================================================

    def _build_items(
        self,
        order: PurchaseOrderModel,
        lines: tuple[OrderLineInput, ...],
    ) -> list[PurchaseOrderItemModel]:
        return [
            PurchaseOrderItemModel(
                order_id=order.id,
                line_number=index,
                product_id=line.product_id,
                description=line.description,
                quantity=line.quantity,
                unit_price=line.unit_price,
                line_total=compute_line_total(line.quantity, line.unit_price),
                created_by_id=self.context.actor_id,
            )
            for index, line in enumerate(lines, start=1)
        ]

    def _insert_order(
        self,
        supplier_id: UUID,
        order_number: str,
        order_date: date,
        lines: tuple[OrderLineInput, ...],
        expected_delivery_date: date | None,
        notes: str | None,
    ) -> PurchaseOrderModel:
        """Write header then items inside a savepoint; all or nothing."""
        subtotal, tax, total = compute_totals(lines, self._config.tax_rate)
        with self.session.begin_nested():
            order = PurchaseOrderModel(
                tenant_id=self.tenant_id,
                supplier_id=supplier_id,
                order_number=order_number,
                order_date=order_date,
                expected_delivery_date=expected_delivery_date,
                status=OrderStatus.PENDING.value,
                subtotal=subtotal,
                tax=tax,
                total=total,
                notes=notes,
                created_by_id=self.context.actor_id,
            )
            self.session.add(order)
            self.session.flush()

            try:
                order.items.extend(self._build_items(order, lines))
                self.session.flush()
            except BaseException as exc:
                logger.warning(
                    "purchase_order_items_failed",
                    extra={"order_number": order_number, "error": type(exc).__name__},
                )
                raise
        return order

    def create_order(
        self,
        supplier_id: UUID,
        items,
        order_date: date | None = None,
        expected_delivery_date: date | None = None,
        notes: str | None = None,
    ) -> PurchaseOrder:
        """
        Create a ``pending`` order with a freshly allocated number.

        All validation happens before any write.  ``order_date`` defaults
        to the clock's today.
        """
        self._authorize(RESOURCE, "create")
        lines = normalize_lines(items)
        self._require_supplier(supplier_id)
        order_date = order_date or self.clock.today()

        def work() -> PurchaseOrder:
            self._require_products(lines)
            for attempt in (1, 2):
                order_number = self._allocate_order_number(order_date.year, reseed=attempt > 1)
                try:
                    order = self._insert_order(
                        supplier_id, order_number, order_date, lines,
                        expected_delivery_date, notes,
                    )
                except IntegrityError as exc:
                    if not _is_order_number_conflict(exc):
                        raise
                    logger.warning(
                        "order_number_conflict",
                        extra={"order_number": order_number, "attempt": attempt},
                    )
                    if attempt > 1:
                        raise OrderNumberConflictError(str(self.tenant_id), order_number) from exc
                    continue

                logger.info(
                    "purchase_order_created",
                    extra={
                        "order_id": str(order.id),
                        "order_number": order.order_number,
                        "supplier_id": str(supplier_id),
                        "line_count": len(lines),
                        "total": str(order.total),
                    },
                )
                return order.to_dto()
            raise AssertionError("unreachable")

        return self._unit_of_work("create_order", work)

    def update_order(self, order_id: UUID, patch: OrderPatch) -> PurchaseOrder:
        """
        Apply a partial update.

        Replacing items recomputes the totals.  Locked orders raise
        ``OrderImmutableError`` and are left unchanged.
        """
        self._authorize(RESOURCE, "update")
        lines = normalize_lines(patch.items) if patch.items is not UNSET else None
        if patch.supplier_id is not UNSET:
            self._require_supplier(patch.supplier_id)
        if patch.order_date is not UNSET and patch.order_date is None:
            raise InvalidArgumentError("order_date", "cannot be cleared")

        def work() -> PurchaseOrder:
            order = self._load(order_id, for_update=True)
            status = OrderStatus(order.status)
            if status in LOCKED_STATUSES:
                logger.warning(
                    "order_update_rejected",
                    extra={"order_id": str(order_id), "status": status.value},
                )
                raise OrderImmutableError(str(order_id), status.value)
            if lines is not None and status not in ITEM_EDITABLE_STATUSES:
                logger.warning(
                    "order_update_rejected",
                    extra={"order_id": str(order_id), "status": status.value, "field": "items"},
                )
                raise OrderImmutableError(
                    str(order_id), status.value,
                    reason=f"line items cannot be replaced once an order is {status.value}",
                )

            if patch.supplier_id is not UNSET:
                order.supplier_id = patch.supplier_id
            if patch.order_date is not UNSET:
                order.order_date = patch.order_date
            if patch.expected_delivery_date is not UNSET:
                order.expected_delivery_date = patch.expected_delivery_date
            if patch.notes is not UNSET:
                order.notes = patch.notes

            if lines is not None:
                self._require_products(lines)
                order.items.clear()
                self.session.flush()
                order.items.extend(self._build_items(order, lines))
                order.subtotal, order.tax, order.total = compute_totals(
                    lines, self._config.tax_rate,
                )

            order.updated_by_id = self.context.actor_id
            self.session.flush()

            logger.info(
                "purchase_order_updated",
                extra={
                    "order_id": str(order.id),
                    "order_number": order.order_number,
                    "fields": list(patch.supplied_fields()),
                    "total": str(order.total),
                },
            )
            return order.to_dto()

        return self._unit_of_work("update_order", work)

    def delete_order(self, order_id: UUID) -> None:
        """Delete an order and its lines.  Received orders are kept."""
        self._authorize(RESOURCE, "delete")

        def work() -> None:
            order = self._load(order_id, for_update=True)
            if order.status == OrderStatus.RECEIVED.value:
                raise OrderImmutableError(
                    str(order_id), order.status,
                    reason="received orders are part of the stock history",
                )
            order_number = order.order_number
            self.session.delete(order)
            self.session.flush()
            logger.info(
                "purchase_order_deleted",
                extra={"order_id": str(order_id), "order_number": order_number},
            )

        self._unit_of_work("delete_order", work)

    # =========================================================================
    # Reads
    # =========================================================================

    def get_order(self, order_id: UUID) -> PurchaseOrder:
        with read_scope(self.session):
            return self._load(order_id).to_dto()

    def list_orders(self, filters: OrderFilter | None = None) -> OrderPage:
        """
        Filtered, paged listing, newest first.

        Ordered by ``order_date`` then ``order_number``, both descending.
        """
        filters = filters or OrderFilter()
        if isinstance(filters.page, bool) or not isinstance(filters.page, int) or filters.page < 1:
            raise InvalidArgumentError("page", f"must be an integer >= 1, got {filters.page!r}")
        limit = filters.limit
        if limit is None:
            limit = self._config.default_page_size
        elif isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise InvalidArgumentError("limit", f"must be an integer >= 1, got {limit!r}")
        limit = min(limit, self._config.max_page_size)

        conditions = [PurchaseOrderModel.tenant_id == self.tenant_id]
        if filters.status is not None:
            conditions.append(PurchaseOrderModel.status == coerce_order_status(filters.status).value)
        if filters.supplier_id is not None:
            conditions.append(PurchaseOrderModel.supplier_id == filters.supplier_id)
        if filters.date_from is not None:
            conditions.append(PurchaseOrderModel.order_date >= filters.date_from)
        if filters.date_to is not None:
            conditions.append(PurchaseOrderModel.order_date <= filters.date_to)
        search = (filters.search or "").strip()
        if search:
            conditions.append(
                or_(
                    PurchaseOrderModel.order_number.icontains(search, autoescape=True),
                    PurchaseOrderModel.notes.icontains(search, autoescape=True),
                )
            )

        with read_scope(self.session):
            total = self.session.execute(
                select(func.count(PurchaseOrderModel.id)).where(*conditions)
            ).scalar_one()
            rows = self.session.execute(
                select(PurchaseOrderModel)
                .where(*conditions)
                .order_by(PurchaseOrderModel.order_date.desc(), PurchaseOrderModel.order_number.desc())
                .limit(limit)
                .offset((filters.page - 1) * limit)
            ).scalars().all()
            items = tuple(row.to_dto() for row in rows)

        return OrderPage(
            items=items,
            page=filters.page,
            limit=limit,
            total=total,
            pages=(total + limit - 1) // limit,
        )

    def list_pending_orders(self) -> list[PurchaseOrder]:
        """Open orders (pending, confirmed, shipped), oldest first."""
        stmt = (
            select(PurchaseOrderModel)
            .where(
                PurchaseOrderModel.tenant_id == self.tenant_id,
                PurchaseOrderModel.status.in_([s.value for s in OPEN_STATUSES]),
            )
            .order_by(PurchaseOrderModel.order_date, PurchaseOrderModel.order_number)
        )
        with read_scope(self.session):
            return [row.to_dto() for row in self.session.execute(stmt).scalars()]

    def list_orders_by_supplier(self, supplier_id: UUID) -> list[PurchaseOrder]:
        stmt = (
            select(PurchaseOrderModel)
            .where(
                PurchaseOrderModel.tenant_id == self.tenant_id,
                PurchaseOrderModel.supplier_id == supplier_id,
            )
            .order_by(PurchaseOrderModel.order_date.desc(), PurchaseOrderModel.order_number.desc())
        )
        with read_scope(self.session):
            return [row.to_dto() for row in self.session.execute(stmt).scalars()]
