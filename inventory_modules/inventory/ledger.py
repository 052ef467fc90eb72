"""
Stock Ledger Service (``inventory_modules.inventory.ledger``).

Responsibility
--------------
Owns each item's current quantity and its append-only movement log.
Applies increases, decreases, and adjustments; lists an item's history;
answers "how many are on hand".

Architecture position
---------------------
**Modules layer**.  Called directly for manual adjustments and
consumption, and by ``OrderLifecycleController`` (with
``auto_commit=False``) when a purchase order is received.

Invariants enforced
-------------------
* Atomic per item: the quantity check and write are ONE statement,
  ``UPDATE inventory_items SET quantity = quantity + :delta,
  version = version + 1 WHERE id = :id AND tenant_id = :t
  [AND quantity >= :needed]``.  Concurrent decreases therefore cannot
  both succeed when only one fits, on any backend.
* The movement row is appended in the same transaction, stamped with the
  item version the update produced, so current quantity always equals the
  sum of movement deltas.
* Validation (positive whole quantity, known kind) happens before any write.
* Reads end any transaction they open, so an idle reader holds no
  database locks.

Failure modes
-------------
* ``InvalidArgumentError`` -- zero/negative/non-integer quantity, bad kind.
* ``ItemNotFoundError`` -- unknown item or item of another tenant.
* ``InsufficientStockError`` -- decrease larger than the quantity on hand;
  nothing is written.
* ``StorageFaultError`` -- transient backend errors outlasted the retries.

Usage::

    ledger = StockLedgerService(session, context, clock=clock)
    movement = ledger.post_movement(item_id, MovementKind.DECREASE, 3, note="bench use")
    for m in ledger.list_movements(item_id):
        ...
"""

from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from inventory_kernel.db.engine import read_scope
from inventory_kernel.exceptions import (
    InsufficientStockError,
    ItemNotFoundError,
    ItemVersionConflictError,
)
from inventory_kernel.logging_config import get_logger
from inventory_kernel.services.base import BaseService
from inventory_modules.inventory.helpers import (
    coerce_movement_kind,
    require_non_negative_amount,
    require_non_negative_quantity,
    require_positive_quantity,
    signed_delta,
)
from inventory_modules.inventory.models import (
    Movement,
    MovementKind,
    MovementReference,
)
from inventory_modules.inventory.orm import InventoryItemModel, InventoryMovementModel

logger = get_logger("modules.inventory.ledger")

RESOURCE = "inventory_item"


class MovementHistory:
    """
    An item's movements, oldest first.

    Lazy and restartable: every ``iter()`` runs fresh keyset-paged queries
    on ``sequence``, so iterating twice yields the history as stored at
    that time.
    """

    def __init__(
        self,
        session: Session,
        tenant_id: UUID,
        item_id: UUID,
        since: datetime | None = None,
        batch_size: int = 200,
    ):
        self._session = session
        self._tenant_id = tenant_id
        self._item_id = item_id
        self._since = since
        self._batch_size = batch_size

    def __iter__(self) -> Iterator[Movement]:
        last_sequence = 0
        while True:
            stmt = (
                select(InventoryMovementModel)
                .where(
                    InventoryMovementModel.tenant_id == self._tenant_id,
                    InventoryMovementModel.item_id == self._item_id,
                    InventoryMovementModel.sequence > last_sequence,
                )
                .order_by(InventoryMovementModel.sequence)
                .limit(self._batch_size)
            )
            if self._since is not None:
                stmt = stmt.where(InventoryMovementModel.created_at >= self._since)
            with read_scope(self._session):
                rows = self._session.execute(stmt).scalars().all()
                page = [row.to_dto() for row in rows]
            yield from page
            if len(rows) < self._batch_size:
                return
            last_sequence = rows[-1].sequence


class StockLedgerService(BaseService):
    """
    Applies stock movements atomically per item.

    Guarantees
    ----------
    * ``auto_commit=True`` (default): each mutating call commits on
      success and rolls back on any exception, retrying transient storage
      errors.
    * ``auto_commit=False``: flush only; the caller owns the transaction.
    """

    # =========================================================================
    # Writes
    # =========================================================================

    def post_movement(
        self,
        item_id: UUID,
        kind: MovementKind | str,
        quantity: int,
        reference: MovementReference | None = None,
        note: str | None = None,
        unit_cost: Decimal | None = None,
    ) -> Movement:
        """
        Apply a stock movement.

        ``quantity`` is always positive; ``kind`` carries the direction.
        An adjustment posted here is a positive correction -- use
        ``adjust_to`` for a counted quantity.
        """
        self._authorize(RESOURCE, "post_movement")
        kind = coerce_movement_kind(kind)
        quantity = require_positive_quantity(quantity)
        if unit_cost is not None:
            unit_cost = require_non_negative_amount(unit_cost, "unit_cost")

        delta = signed_delta(kind, quantity)
        return self._unit_of_work(
            "post_movement",
            lambda: self._apply(item_id, kind, delta, reference, note, unit_cost),
        )

    def adjust_to(
        self,
        item_id: UUID,
        counted_quantity: int,
        note: str | None = None,
    ) -> Movement | None:
        """
        Record a cycle count: adjust the item to ``counted_quantity``.

        The adjustment delta may be negative.  Returns None when the count
        matches and nothing is recorded.  A concurrent movement between the
        read and the write is detected by version and the count re-derived
        once before ``ItemVersionConflictError`` is raised.
        """
        self._authorize(RESOURCE, "post_movement")
        counted_quantity = require_non_negative_quantity(counted_quantity, "counted_quantity")

        def work() -> Movement | None:
            for attempt in (1, 2):
                current, version = self._load_quantity_and_version(item_id)
                delta = counted_quantity - current
                if delta == 0:
                    logger.info(
                        "stock_count_matched",
                        extra={"item_id": str(item_id), "quantity": current},
                    )
                    return None
                try:
                    return self._apply(
                        item_id, MovementKind.ADJUSTMENT, delta, None, note, None,
                        expected_version=version,
                    )
                except ItemVersionConflictError:
                    if attempt == 2:
                        raise
                    logger.info(
                        "stock_count_version_retry",
                        extra={"item_id": str(item_id), "expected_version": version},
                    )
            return None

        return self._unit_of_work("adjust_to", work)

    def _apply(
        self,
        item_id: UUID,
        kind: MovementKind,
        delta: int,
        reference: MovementReference | None,
        note: str | None,
        unit_cost: Decimal | None,
        expected_version: int | None = None,
    ) -> Movement:
        now = self.clock.now_utc()

        stmt = (
            update(InventoryItemModel)
            .where(
                InventoryItemModel.id == item_id,
                InventoryItemModel.tenant_id == self.tenant_id,
            )
            .values(
                quantity=InventoryItemModel.quantity + delta,
                version=InventoryItemModel.version + 1,
                updated_at=now,
                updated_by_id=self.context.actor_id,
            )
            .execution_options(synchronize_session=False)
        )
        if delta < 0:
            stmt = stmt.where(InventoryItemModel.quantity >= -delta)
        if expected_version is not None:
            stmt = stmt.where(InventoryItemModel.version == expected_version)

        if self.session.execute(stmt).rowcount == 0:
            self._raise_rejection(item_id, kind, delta, expected_version)

        # Refresh any copy held by this session and read the new state
        item = self.session.get(InventoryItemModel, item_id, populate_existing=True)

        movement = InventoryMovementModel(
            tenant_id=self.tenant_id,
            item_id=item_id,
            sequence=item.version,
            kind=kind.value,
            delta=delta,
            resulting_quantity=item.quantity,
            reference_type=reference.kind if reference else None,
            reference_id=reference.id if reference else None,
            unit_cost=unit_cost,
            total_cost=unit_cost * abs(delta) if unit_cost is not None else None,
            note=note,
            created_at=now,
            created_by_id=self.context.actor_id,
        )
        self.session.add(movement)
        self.session.flush()

        logger.info(
            "stock_movement_posted",
            extra={
                "item_id": str(item_id),
                "movement_id": str(movement.id),
                "kind": kind.value,
                "delta": delta,
                "resulting_quantity": item.quantity,
                "sequence": item.version,
                "reference_type": movement.reference_type,
                "reference_id": str(movement.reference_id) if movement.reference_id else None,
            },
        )
        return movement.to_dto()

    def _raise_rejection(
        self,
        item_id: UUID,
        kind: MovementKind,
        delta: int,
        expected_version: int | None,
    ) -> None:
        """Explain why the conditional UPDATE matched no row."""
        row = self.session.execute(
            select(InventoryItemModel.quantity, InventoryItemModel.version).where(
                InventoryItemModel.id == item_id,
                InventoryItemModel.tenant_id == self.tenant_id,
            )
        ).one_or_none()

        if row is None:
            logger.warning("stock_item_not_found", extra={"item_id": str(item_id)})
            raise ItemNotFoundError(str(item_id))

        available, version = row
        if expected_version is not None and version != expected_version:
            raise ItemVersionConflictError(str(item_id), expected_version)

        logger.warning(
            "insufficient_stock_rejected",
            extra={
                "item_id": str(item_id),
                "kind": kind.value,
                "requested": -delta,
                "available": available,
            },
        )
        raise InsufficientStockError(str(item_id), requested=-delta, available=available)

    # =========================================================================
    # Reads
    # =========================================================================

    def _load_quantity_and_version(self, item_id: UUID) -> tuple[int, int]:
        row = self.session.execute(
            select(InventoryItemModel.quantity, InventoryItemModel.version).where(
                InventoryItemModel.id == item_id,
                InventoryItemModel.tenant_id == self.tenant_id,
            )
        ).one_or_none()
        if row is None:
            raise ItemNotFoundError(str(item_id))
        return row[0], row[1]

    def current_quantity(self, item_id: UUID) -> int:
        """Quantity on hand; equals the sum of the item's movement deltas."""
        with read_scope(self.session):
            quantity, _ = self._load_quantity_and_version(item_id)
        return quantity

    def list_movements(
        self,
        item_id: UUID,
        since: datetime | None = None,
    ) -> MovementHistory:
        """Lazy, restartable, oldest-first history of an item's movements."""
        with read_scope(self.session):
            self._load_quantity_and_version(item_id)
        if since is not None and since.tzinfo is not None:
            since = since.astimezone(timezone.utc)
        return MovementHistory(self.session, self.tenant_id, item_id, since=since)

    def reconcile(self, item_id: UUID) -> bool:
        """True iff the stored quantity equals the sum of recorded deltas."""
        with read_scope(self.session):
            quantity, _ = self._load_quantity_and_version(item_id)
            total = self.session.execute(
                select(func.coalesce(func.sum(InventoryMovementModel.delta), 0)).where(
                    InventoryMovementModel.tenant_id == self.tenant_id,
                    InventoryMovementModel.item_id == item_id,
                )
            ).scalar_one()
        if int(total) != quantity:
            logger.warning(
                "stock_reconciliation_mismatch",
                extra={"item_id": str(item_id), "quantity": quantity, "sum_of_deltas": int(total)},
            )
            return False
        return True
