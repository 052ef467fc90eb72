"""
Order Lifecycle Controller (``inventory_modules.procurement.lifecycle``).

Responsibility
--------------
Moves purchase orders through ``PURCHASE_ORDER_WORKFLOW``.  Receiving an
order posts one stock increase per stocked line, in the same transaction
as the status change.

Architecture position
---------------------
**Modules layer**.  Composes ``StockLedgerService`` with
``auto_commit=False`` on its own session, so the ledger's writes and the
status write commit or roll back together.

Invariants enforced
-------------------
* Only workflow edges are taken; re-entering the current state is not an
  edge.  An edge's guard is checked before anything is written.
* The status write is a compare-and-swap
  (``UPDATE ... WHERE id = :id AND status = :from``) after a
  ``SELECT ... FOR UPDATE``, so of two concurrent transitions out of the
  same state at most one succeeds.
* Receiving is all-or-nothing: movements, status and ``delivered_at``
  are committed once.  Any exception, including ``KeyboardInterrupt``,
  rolls all of it back.

Failure modes
-------------
* ``InvalidArgumentError`` -- unknown target status.
* ``OrderNotFoundError`` -- unknown id or another tenant's order.
* ``InvalidTransitionError`` -- edge not in the workflow.
* ``StaleStatusError`` -- the status changed under us.
* ``ItemNotFoundError`` -- receive guard: a line's product is not one of
  the tenant's items.  Nothing is written.
* Ledger errors (``ItemNotFoundError``, ``StorageFaultError``, ...)
  during receipt -- whole receipt rolled back.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from inventory_kernel.domain.clock import Clock
from inventory_kernel.domain.collaborators import AuthorizationGate, OperationContext
from inventory_kernel.domain.workflow import Guard, Workflow
from inventory_kernel.exceptions import (
    InvalidTransitionError,
    ItemNotFoundError,
    OrderNotFoundError,
    StaleStatusError,
)
from inventory_kernel.logging_config import LogContext, get_logger
from inventory_kernel.services.base import BaseService
from inventory_kernel.services.retry_service import RetryPolicy
from inventory_modules.inventory.ledger import StockLedgerService
from inventory_modules.inventory.models import (
    PURCHASE_ORDER_REFERENCE,
    MovementKind,
    MovementReference,
)
from inventory_modules.inventory.orm import InventoryItemModel
from inventory_modules.procurement.models import OrderStatus, PurchaseOrder
from inventory_modules.procurement.orm import PurchaseOrderModel
from inventory_modules.procurement.service import RESOURCE, coerce_order_status
from inventory_modules.procurement.workflows import ITEMS_RESOLVABLE, PURCHASE_ORDER_WORKFLOW

logger = get_logger("modules.procurement.lifecycle")


def cancellation_note(existing: str | None, reason: str | None) -> str | None:
    """Append ``Cancelled: <reason>`` to the notes, after a blank line."""
    reason = (reason or "").strip()
    if not reason:
        return existing
    line = f"Cancelled: {reason}"
    return f"{existing}\n\n{line}" if existing else line


class OrderLifecycleController(BaseService):
    """
    Applies purchase order status transitions.

    Guarantees
    ----------
    * One transaction per call; the ledger shares it.
    * Returns the order as committed.
    """

    def __init__(
        self,
        session: Session,
        context: OperationContext,
        clock: Clock | None = None,
        gate: AuthorizationGate | None = None,
        retry_policy: RetryPolicy | None = None,
        workflow: Workflow = PURCHASE_ORDER_WORKFLOW,
    ):
        super().__init__(
            session, context, clock=clock, gate=gate, retry_policy=retry_policy,
        )
        self._workflow = workflow

    # =========================================================================
    # Public API
    # =========================================================================

    def transition(self, order_id: UUID, target_status: OrderStatus | str) -> PurchaseOrder:
        """Move an order along one workflow edge."""
        self._authorize(RESOURCE, "transition")
        target = coerce_order_status(target_status)
        return self._run(order_id, target)

    def cancel(self, order_id: UUID, reason: str | None = None) -> PurchaseOrder:
        """Cancel an open order, recording the reason in its notes.  No stock effect."""
        self._authorize(RESOURCE, "cancel")
        return self._run(order_id, OrderStatus.CANCELLED, reason=reason)

    def receive(self, order_id: UUID) -> PurchaseOrder:
        """Shorthand for ``transition(order_id, "received")``."""
        return self.transition(order_id, OrderStatus.RECEIVED)

    def allowed_targets(self, status: OrderStatus | str) -> tuple[OrderStatus, ...]:
        status = coerce_order_status(status)
        return tuple(OrderStatus(s) for s in self._workflow.allowed_targets(status.value))

    def is_terminal(self, status: OrderStatus | str) -> bool:
        return self._workflow.is_terminal(coerce_order_status(status).value)

    # =========================================================================
    # Internals
    # =========================================================================

    def _run(
        self,
        order_id: UUID,
        target: OrderStatus,
        reason: str | None = None,
    ) -> PurchaseOrder:
        def work() -> PurchaseOrder:
            try:
                return self._apply(order_id, target, reason)
            except BaseException as exc:
                if target is OrderStatus.RECEIVED:
                    logger.warning(
                        "order_receive_rolled_back",
                        extra={"order_id": str(order_id), "error": type(exc).__name__},
                    )
                raise

        with LogContext.bind(order_id=order_id):
            return self._unit_of_work(f"transition_to_{target.value}", work)

    def _apply(
        self,
        order_id: UUID,
        target: OrderStatus,
        reason: str | None,
    ) -> PurchaseOrder:
        order = self.session.execute(
            select(PurchaseOrderModel)
            .where(
                PurchaseOrderModel.id == order_id,
                PurchaseOrderModel.tenant_id == self.tenant_id,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if order is None:
            raise OrderNotFoundError(str(order_id))

        current = order.status
        edge = self._workflow.find_transition(current, target.value)
        if edge is None:
            logger.warning(
                "order_transition_rejected",
                extra={"order_id": str(order_id), "from_status": current, "to_status": target.value},
            )
            raise InvalidTransitionError(str(order_id), current, target.value)

        if edge.guard is not None:
            self._check_guard(edge.guard, order)

        now = self.clock.now_utc()
        movement_count = 0
        if edge.posts_stock:
            movement_count = self._post_receipt(order)

        values = {
            "status": target.value,
            "updated_at": now,
            "updated_by_id": self.context.actor_id,
        }
        if target is OrderStatus.RECEIVED:
            values["delivered_at"] = now
        if target is OrderStatus.CANCELLED:
            values["notes"] = cancellation_note(order.notes, reason)

        result = self.session.execute(
            update(PurchaseOrderModel)
            .where(
                PurchaseOrderModel.id == order_id,
                PurchaseOrderModel.tenant_id == self.tenant_id,
                PurchaseOrderModel.status == current,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            logger.warning(
                "order_status_conflict",
                extra={"order_id": str(order_id), "expected_status": current},
            )
            raise StaleStatusError(str(order_id), current)

        order = self.session.get(PurchaseOrderModel, order_id, populate_existing=True)
        logger.info(
            "order_transitioned",
            extra={
                "order_id": str(order_id),
                "order_number": order.order_number,
                "from_status": current,
                "to_status": target.value,
                "action": edge.action,
                "movement_count": movement_count,
            },
        )
        return order.to_dto()

    def _check_guard(self, guard: Guard, order: PurchaseOrderModel) -> None:
        if guard != ITEMS_RESOLVABLE:
            raise ValueError(f"No evaluator for workflow guard {guard.name!r}")
        product_ids = {line.product_id for line in order.items if line.product_id is not None}
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
        missing = sorted(str(product_id) for product_id in product_ids - found)
        if missing:
            logger.warning(
                "order_guard_failed",
                extra={"order_id": str(order.id), "guard": guard.name, "missing_items": missing},
            )
            raise ItemNotFoundError(missing[0])

    def _post_receipt(self, order: PurchaseOrderModel) -> int:
        """Post one increase per line that references a stocked item."""
        ledger = StockLedgerService(
            self.session,
            self.context,
            clock=self.clock,
            gate=self._gate,
            auto_commit=False,
        )
        reference = MovementReference(kind=PURCHASE_ORDER_REFERENCE, id=order.id)
        note = f"Receipt of purchase order {order.order_number}"
        count = 0
        for item in order.items:
            if item.product_id is None:
                continue
            ledger.post_movement(
                item.product_id,
                MovementKind.INCREASE,
                item.quantity,
                reference=reference,
                note=note,
                unit_cost=item.unit_price,
            )
            count += 1
        return count
