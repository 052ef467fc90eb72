"""
Schema creation and append-only trigger management.
"""

import pytest
from sqlalchemy import inspect, text
from sqlalchemy.exc import IntegrityError

from inventory_kernel.db.engine import build_engine
from inventory_kernel.db.triggers import (
    ALL_TRIGGER_NAMES,
    get_missing_triggers,
    install_immutability_triggers,
    triggers_installed,
    uninstall_immutability_triggers,
)
from inventory_modules._orm_registry import create_all_tables


@pytest.fixture
def memory_engine():
    engine = build_engine("sqlite:///:memory:")
    yield engine
    engine.dispose()


class TestSchema:

    def test_all_tables_created(self, memory_engine):
        create_all_tables(engine=memory_engine)
        tables = set(inspect(memory_engine).get_table_names())
        assert {
            "inventory_items",
            "inventory_movements",
            "purchase_orders",
            "purchase_order_items",
            "sequence_counters",
        } <= tables

    def test_triggers_optional(self, memory_engine):
        create_all_tables(install_triggers=False, engine=memory_engine)
        assert get_missing_triggers(memory_engine) == sorted(ALL_TRIGGER_NAMES)

    def test_foreign_keys_enforced(self, memory_engine):
        create_all_tables(engine=memory_engine)
        with pytest.raises(IntegrityError):
            with memory_engine.begin() as conn:
                conn.execute(text(
                    "INSERT INTO purchase_order_items "
                    "(id, order_id, line_number, description, quantity, unit_price, line_total, "
                    "created_by_id, created_at, updated_at) "
                    "VALUES ('a', 'missing', 1, '', 1, 1, 1, 'x', CURRENT_TIMESTAMP, CURRENT_TIMESTAMP)"
                ))


class TestTriggerLifecycle:

    def test_install_is_idempotent(self, isolated_engine):
        assert triggers_installed(isolated_engine)
        install_immutability_triggers(isolated_engine)
        assert triggers_installed(isolated_engine)

    def test_uninstall_and_reinstall(self, isolated_engine):
        uninstall_immutability_triggers(isolated_engine)
        assert get_missing_triggers(isolated_engine) == sorted(ALL_TRIGGER_NAMES)

        install_immutability_triggers(isolated_engine)
        assert get_missing_triggers(isolated_engine) == []
