"""
Module-level engine helpers: session factory, session_scope, dialect checks.
"""

import pytest
from sqlalchemy import select, text

from inventory_kernel.db.engine import (
    get_engine,
    get_session,
    get_session_factory,
    is_postgres,
    is_sqlite,
    session_scope,
)
from inventory_kernel.services.sequence_service import SequenceCounter
from tests.conftest import uses_external_database


class SimulatedCrash(Exception):
    pass


def test_engine_is_the_suite_engine(db_engine):
    assert get_engine() is db_engine
    assert get_session_factory().kw["bind"] is db_engine


def test_dialect_checks(db_engine):
    if uses_external_database():
        assert is_postgres() and not is_sqlite()
    else:
        assert is_sqlite() and not is_postgres()


def test_session_scope_runs_statements(db_tables):
    with session_scope() as session:
        assert session.execute(text("SELECT 1")).scalar_one() == 1


@pytest.mark.parametrize("error", [SimulatedCrash("boom"), KeyboardInterrupt()])
def test_session_scope_rolls_back(db_tables, error):
    with pytest.raises(type(error)):
        with session_scope() as session:
            session.add(SequenceCounter(name="scope:rollback", current_value=1))
            session.flush()
            raise error

    check = get_session()
    try:
        found = check.execute(
            select(SequenceCounter).where(SequenceCounter.name == "scope:rollback")
        ).scalar_one_or_none()
        assert found is None
    finally:
        check.close()
