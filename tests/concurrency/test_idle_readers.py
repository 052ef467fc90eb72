"""
Idle readers must not hold database locks.

A caller that reads and then keeps its session open (a request handler
waiting on something else, a report being rendered) must not stall
writers on other sessions.  SQLite makes this visible: a read transaction
left open keeps a SHARED lock and no writer can commit past it.  The
engine here has a short busy timeout so a regression fails fast with
``StorageFaultError`` instead of hanging.
"""

from decimal import Decimal

import pytest
from sqlalchemy.orm import sessionmaker

from inventory_kernel.db.engine import build_engine
from inventory_kernel.domain.clock import DeterministicClock
from inventory_kernel.services.retry_service import RetryPolicy
from inventory_modules._orm_registry import create_all_tables
from inventory_modules.inventory.health import StockHealthSelector
from inventory_modules.inventory.ledger import StockLedgerService
from inventory_modules.inventory.models import MovementKind
from inventory_modules.procurement.lifecycle import OrderLifecycleController
from inventory_modules.procurement.models import OrderFilter, OrderLineInput, OrderStatus
from inventory_modules.procurement.service import PurchaseOrderService
from tests.conftest import uses_external_database

pytestmark = pytest.mark.concurrency

WRITER_POLICY = RetryPolicy(max_attempts=2, base_delay_seconds=0.01, max_delay_seconds=0.05)


@pytest.fixture
def impatient_factory(db_tables, tmp_path):
    """Sessions on a fresh SQLite file whose busy timeout is half a second."""
    if uses_external_database():
        pytest.skip("lock behaviour under test is SQLite's")
    eng = build_engine(
        f"sqlite:///{tmp_path / 'readers.db'}",
        pool_size=5, max_overflow=5, statement_timeout_ms=500,
    )
    create_all_tables(engine=eng)
    factory = sessionmaker(bind=eng, expire_on_commit=False)
    sessions = []

    def _make():
        s = factory()
        sessions.append(s)
        return s

    yield _make
    for s in sessions:
        s.close()
    eng.dispose()


@pytest.fixture
def item(impatient_factory, item_maker, tenant_id, test_actor_id):
    session = impatient_factory()
    try:
        return item_maker(session, tenant_id, test_actor_id, "IDLE-1", quantity=10, min_quantity=20)
    finally:
        session.close()


@pytest.fixture
def order(impatient_factory, context, supplier_registry, supplier_id, item):
    service = PurchaseOrderService(
        impatient_factory(), context, supplier_registry, clock=DeterministicClock(),
    )
    created = service.create_order(
        supplier_id,
        [OrderLineInput(quantity=4, unit_price=Decimal("2.50"), product_id=item.id)],
    )
    service.session.close()
    return created


def _writer_decreases(factory, context, item_id):
    ledger = StockLedgerService(factory(), context, retry_policy=WRITER_POLICY)
    return ledger.post_movement(item_id, MovementKind.DECREASE, 1)


class TestLedgerReaders:

    @pytest.mark.parametrize(
        "read",
        [
            lambda ledger, item_id: ledger.current_quantity(item_id),
            lambda ledger, item_id: list(ledger.list_movements(item_id)),
            lambda ledger, item_id: ledger.reconcile(item_id),
        ],
        ids=["current_quantity", "list_movements", "reconcile"],
    )
    def test_open_reader_does_not_block_writer(self, impatient_factory, context, item, read):
        reader = impatient_factory()
        read(StockLedgerService(reader, context), item.id)

        movement = _writer_decreases(impatient_factory, context, item.id)

        assert movement.resulting_quantity == 9
        assert not reader.in_transaction()
        assert StockLedgerService(reader, context).current_quantity(item.id) == 9

    def test_read_inside_caller_transaction_keeps_it_open(self, impatient_factory, context, item):
        reader = impatient_factory()
        with reader.begin():
            StockLedgerService(reader, context).current_quantity(item.id)
            assert reader.in_transaction()
        assert not reader.in_transaction()


class TestSelectorReaders:

    def test_open_selector_does_not_block_writer(self, impatient_factory, context, item, tenant_id):
        reader = impatient_factory()
        selector = StockHealthSelector(reader, tenant_id)
        assert [i.sku for i in selector.low_stock_items()] == ["IDLE-1"]
        before = selector.valuation()
        selector.search_items("idle")

        _writer_decreases(impatient_factory, context, item.id)

        assert not reader.in_transaction()
        assert selector.valuation().total_value == before.total_value - Decimal("10")


class TestOrderReaders:

    def test_open_order_reader_does_not_block_receipt(
        self, impatient_factory, context, supplier_registry, supplier_id, order, item,
    ):
        reader = impatient_factory()
        orders = PurchaseOrderService(reader, context, supplier_registry)
        assert orders.get_order(order.id).status == OrderStatus.PENDING
        assert orders.list_orders(OrderFilter()).total == 1
        assert len(orders.list_pending_orders()) == 1
        assert len(orders.list_orders_by_supplier(supplier_id)) == 1

        lifecycle = OrderLifecycleController(
            impatient_factory(), context, clock=DeterministicClock(), retry_policy=WRITER_POLICY,
        )
        for target in (OrderStatus.CONFIRMED, OrderStatus.SHIPPED, OrderStatus.RECEIVED):
            lifecycle.transition(order.id, target)

        assert not reader.in_transaction()
        assert orders.get_order(order.id).status == OrderStatus.RECEIVED
        assert StockLedgerService(reader, context).current_quantity(item.id) == 14
