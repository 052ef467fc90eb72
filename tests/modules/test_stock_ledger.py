"""
Tests for StockLedgerService: movements, history, cycle counts and
reconciliation.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import patch
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from inventory_kernel.exceptions import (
    InsufficientStockError,
    InvalidArgumentError,
    ItemNotFoundError,
    ItemVersionConflictError,
    PermissionDeniedError,
)
from inventory_modules.inventory.ledger import MovementHistory, StockLedgerService
from inventory_modules.inventory.models import MovementKind, MovementReference
from inventory_modules.inventory.orm import InventoryItemModel, InventoryMovementModel


class DenyMovementsGate:
    def is_allowed(self, role, resource, action):
        return not (resource == "inventory_item" and action == "post_movement")


@pytest.fixture
def ledger(session, context, deterministic_clock):
    return StockLedgerService(session, context, clock=deterministic_clock)


def _movement_count(session, item_id) -> int:
    return session.execute(
        select(func.count(InventoryMovementModel.id)).where(
            InventoryMovementModel.item_id == item_id,
        )
    ).scalar_one()


class TestPostMovement:

    def test_increase(self, ledger, create_item):
        item = create_item("BOLT-1", quantity=10)
        movement = ledger.post_movement(item.id, MovementKind.INCREASE, 5, note="restock")

        assert movement.delta == 5
        assert movement.resulting_quantity == 15
        assert movement.previous_quantity == 10
        assert movement.note == "restock"
        assert ledger.current_quantity(item.id) == 15

    def test_decrease(self, ledger, create_item):
        item = create_item("BOLT-2", quantity=10)
        movement = ledger.post_movement(item.id, "decrease", 4)

        assert movement.kind is MovementKind.DECREASE
        assert movement.delta == -4
        assert movement.resulting_quantity == 6

    def test_decrease_to_exactly_zero(self, ledger, create_item):
        item = create_item("BOLT-3", quantity=3)
        movement = ledger.post_movement(item.id, MovementKind.DECREASE, 3)
        assert movement.resulting_quantity == 0

    def test_adjustment_adds(self, ledger, create_item):
        item = create_item("BOLT-4", quantity=2)
        movement = ledger.post_movement(item.id, MovementKind.ADJUSTMENT, 3)
        assert movement.delta == 3
        assert movement.resulting_quantity == 5

    def test_sequence_follows_item_version(self, ledger, create_item):
        item = create_item("BOLT-5")
        first = ledger.post_movement(item.id, MovementKind.INCREASE, 1)
        second = ledger.post_movement(item.id, MovementKind.INCREASE, 1)
        assert second.sequence == first.sequence + 1

    def test_reference_and_cost_recorded(self, ledger, create_item):
        item = create_item("BOLT-6")
        ref = MovementReference(kind="purchase_order", id=uuid4())
        movement = ledger.post_movement(
            item.id, MovementKind.INCREASE, 4, reference=ref, unit_cost=Decimal("2.50"),
        )
        assert movement.reference == ref
        assert movement.unit_cost == Decimal("2.50")
        assert movement.total_cost == Decimal("10.00")

    def test_created_at_from_clock(self, ledger, create_item, deterministic_clock):
        item = create_item("BOLT-7")
        movement = ledger.post_movement(item.id, MovementKind.INCREASE, 1)
        assert movement.created_at.replace(tzinfo=None) == deterministic_clock.now_utc().replace(tzinfo=None)


class TestRejections:

    def test_insufficient_stock_writes_nothing(self, ledger, create_item, session):
        item = create_item("NUT-1", quantity=5)
        before = _movement_count(session, item.id)

        with pytest.raises(InsufficientStockError) as exc_info:
            ledger.post_movement(item.id, MovementKind.DECREASE, 7)

        assert exc_info.value.requested == 7
        assert exc_info.value.available == 5
        assert ledger.current_quantity(item.id) == 5
        assert _movement_count(session, item.id) == before

    @pytest.mark.parametrize("quantity", [0, -1, 1.5, True, "3"])
    def test_invalid_quantity(self, ledger, create_item, quantity):
        item = create_item("NUT-2", quantity=5)
        with pytest.raises(InvalidArgumentError):
            ledger.post_movement(item.id, MovementKind.INCREASE, quantity)
        assert ledger.current_quantity(item.id) == 5

    def test_invalid_kind(self, ledger, create_item):
        item = create_item("NUT-3")
        with pytest.raises(InvalidArgumentError):
            ledger.post_movement(item.id, "transfer", 1)

    def test_negative_unit_cost(self, ledger, create_item):
        item = create_item("NUT-4")
        with pytest.raises(InvalidArgumentError):
            ledger.post_movement(item.id, MovementKind.INCREASE, 1, unit_cost=Decimal("-1"))

    def test_unknown_item(self, ledger):
        with pytest.raises(ItemNotFoundError):
            ledger.post_movement(uuid4(), MovementKind.INCREASE, 1)

    def test_other_tenant_item_is_not_found(
        self, session, other_context, deterministic_clock, create_item,
    ):
        item = create_item("NUT-5", quantity=5)
        foreign = StockLedgerService(session, other_context, clock=deterministic_clock)
        with pytest.raises(ItemNotFoundError):
            foreign.post_movement(item.id, MovementKind.DECREASE, 1)
        with pytest.raises(ItemNotFoundError):
            foreign.current_quantity(item.id)

    def test_permission_denied(self, session, context, create_item):
        item = create_item("NUT-6", quantity=5)
        ledger = StockLedgerService(session, context, gate=DenyMovementsGate())
        with pytest.raises(PermissionDeniedError):
            ledger.post_movement(item.id, MovementKind.INCREASE, 1)
        assert session.get(InventoryItemModel, item.id).quantity == 5

    def test_rejection_logged(self, ledger, create_item, captured_logs):
        item = create_item("NUT-7", quantity=1)
        with pytest.raises(InsufficientStockError):
            ledger.post_movement(item.id, MovementKind.DECREASE, 2)
        rejected = [r for r in captured_logs() if r["message"] == "insufficient_stock_rejected"]
        assert len(rejected) == 1
        assert rejected[0]["available"] == 1


class TestHistory:

    def test_oldest_first(self, ledger, create_item):
        item = create_item("WASHER-1")
        ledger.post_movement(item.id, MovementKind.INCREASE, 10)
        ledger.post_movement(item.id, MovementKind.DECREASE, 3)
        ledger.post_movement(item.id, MovementKind.INCREASE, 1)

        history = list(ledger.list_movements(item.id))
        assert [m.delta for m in history] == [10, -3, 1]
        assert [m.resulting_quantity for m in history] == [10, 7, 8]

    def test_restartable(self, ledger, create_item):
        item = create_item("WASHER-2")
        ledger.post_movement(item.id, MovementKind.INCREASE, 2)
        history = ledger.list_movements(item.id)

        assert len(list(history)) == 1
        ledger.post_movement(item.id, MovementKind.INCREASE, 2)
        assert len(list(history)) == 2

    def test_pages_through_large_history(self, ledger, session, tenant_id, create_item):
        item = create_item("WASHER-3")
        for _ in range(7):
            ledger.post_movement(item.id, MovementKind.INCREASE, 1)

        history = MovementHistory(session, tenant_id, item.id, batch_size=3)
        assert [m.resulting_quantity for m in history] == list(range(1, 8))

    def test_since_filter(self, ledger, create_item, deterministic_clock):
        item = create_item("WASHER-4")
        ledger.post_movement(item.id, MovementKind.INCREASE, 1)
        deterministic_clock.advance(3600)
        cutoff = deterministic_clock.now_utc()
        ledger.post_movement(item.id, MovementKind.INCREASE, 2)

        recent = list(ledger.list_movements(item.id, since=cutoff))
        assert [m.delta for m in recent] == [2]

    def test_since_accepts_other_timezones(self, ledger, create_item, deterministic_clock):
        item = create_item("WASHER-5")
        ledger.post_movement(item.id, MovementKind.INCREASE, 1)
        later = deterministic_clock.now_utc() + timedelta(minutes=1)
        shifted = later.astimezone(timezone(timedelta(hours=5)))
        assert list(ledger.list_movements(item.id, since=shifted)) == []

    def test_unknown_item_raises_eagerly(self, ledger):
        with pytest.raises(ItemNotFoundError):
            ledger.list_movements(uuid4())

    def test_empty_history(self, ledger, create_item):
        item = create_item("WASHER-6")
        assert list(ledger.list_movements(item.id, since=datetime(2020, 1, 1, tzinfo=timezone.utc))) == []


class TestCycleCount:

    def test_adjust_down(self, ledger, create_item):
        item = create_item("GEAR-1", quantity=10)
        movement = ledger.adjust_to(item.id, 7, note="cycle count")
        assert movement.kind is MovementKind.ADJUSTMENT
        assert movement.delta == -3
        assert movement.resulting_quantity == 7

    def test_adjust_up(self, ledger, create_item):
        item = create_item("GEAR-2", quantity=2)
        movement = ledger.adjust_to(item.id, 9)
        assert movement.delta == 7

    def test_adjust_to_zero(self, ledger, create_item):
        item = create_item("GEAR-3", quantity=4)
        assert ledger.adjust_to(item.id, 0).resulting_quantity == 0

    def test_matching_count_records_nothing(self, ledger, create_item, session):
        item = create_item("GEAR-4", quantity=4)
        before = _movement_count(session, item.id)
        assert ledger.adjust_to(item.id, 4) is None
        assert _movement_count(session, item.id) == before

    def test_negative_count_rejected(self, ledger, create_item):
        item = create_item("GEAR-5", quantity=4)
        with pytest.raises(InvalidArgumentError):
            ledger.adjust_to(item.id, -1)

    def test_unknown_item(self, ledger):
        with pytest.raises(ItemNotFoundError):
            ledger.adjust_to(uuid4(), 3)

    def test_concurrent_change_rederives_once(self, ledger, create_item, captured_logs):
        item = create_item("GEAR-6", quantity=10)
        original = StockLedgerService._load_quantity_and_version
        calls = []

        def stale_once(self, item_id):
            quantity, version = original(self, item_id)
            calls.append(1)
            return (quantity, version - 1) if len(calls) == 1 else (quantity, version)

        with patch.object(StockLedgerService, "_load_quantity_and_version", stale_once):
            movement = ledger.adjust_to(item.id, 6)

        assert movement.delta == -4
        assert any(r["message"] == "stock_count_version_retry" for r in captured_logs())

    def test_persistent_version_conflict(self, ledger, create_item):
        item = create_item("GEAR-7", quantity=10)
        original = StockLedgerService._load_quantity_and_version

        def always_stale(self, item_id):
            quantity, version = original(self, item_id)
            return quantity, version - 1

        with patch.object(StockLedgerService, "_load_quantity_and_version", always_stale):
            with pytest.raises(ItemVersionConflictError):
                ledger.adjust_to(item.id, 6)
        assert ledger.current_quantity(item.id) == 10


class TestReconcile:

    def test_consistent_after_mixed_movements(self, ledger, create_item):
        item = create_item("CHAIN-1", quantity=10)
        ledger.post_movement(item.id, MovementKind.DECREASE, 4)
        ledger.adjust_to(item.id, 9)
        ledger.post_movement(item.id, MovementKind.INCREASE, 1)

        assert ledger.reconcile(item.id) is True
        total = sum(m.delta for m in ledger.list_movements(item.id))
        assert total == ledger.current_quantity(item.id) == 10

    def test_item_without_movements(self, ledger, create_item):
        item = create_item("CHAIN-2")
        assert ledger.reconcile(item.id) is True

