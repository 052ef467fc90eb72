"""
ORM-Level Immutability Enforcement (Layer 1 of 2).

Stock movements are the audit trail behind every quantity change.  Once a
movement row exists it is never edited or removed; a correction is a new
movement.

  Layer 1: THIS FILE (ORM event listeners)
    - Catches modifications through SQLAlchemy unit-of-work flushes
    - Catches ORM-enabled bulk UPDATE/DELETE statements (do_orm_execute)

  Layer 2: db/sql/<dialect>/*.sql (database triggers)
    - Catches raw SQL and direct database access

Protected entities:

Entity               | When Immutable         | Why
---------------------|------------------------|--------------------------------------
InventoryMovement    | ALWAYS (from creation) | current quantity == sum of deltas
"""

from sqlalchemy import event
from sqlalchemy.orm import ORMExecuteState, Session

from inventory_kernel.exceptions import ImmutabilityViolationError
from inventory_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

_MOVEMENT_TABLE = "inventory_movements"


def _block(entity_id: str, operation: str) -> None:
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": "InventoryMovement",
            "entity_id": entity_id,
            "operation": operation,
        },
    )
    raise ImmutabilityViolationError(
        entity_type="InventoryMovement",
        entity_id=entity_id,
        reason=f"Stock movements are append-only ({operation} rejected)",
    )


def _check_movement_update(mapper, connection, target):
    """Prevent any update to a persisted InventoryMovement."""
    _block(str(target.id), "UPDATE")


def _check_movement_delete(mapper, connection, target):
    """Prevent deletion of an InventoryMovement."""
    _block(str(target.id), "DELETE")


def _check_bulk_movement_statement(orm_execute_state: ORMExecuteState):
    """Reject ORM-enabled bulk UPDATE/DELETE aimed at the movements table."""
    if not (orm_execute_state.is_update or orm_execute_state.is_delete):
        return
    mapper = orm_execute_state.bind_mapper
    if mapper is None or mapper.local_table.name != _MOVEMENT_TABLE:
        return
    _block("*", "UPDATE" if orm_execute_state.is_update else "DELETE")


def register_immutability_listeners():
    """
    Register all immutability enforcement event listeners.

    Call this after all models are imported but before any database
    operations begin.  Repeated calls are harmless.
    """
    from inventory_modules.inventory.orm import InventoryMovementModel

    if not event.contains(InventoryMovementModel, "before_update", _check_movement_update):
        event.listen(InventoryMovementModel, "before_update", _check_movement_update)
    if not event.contains(InventoryMovementModel, "before_delete", _check_movement_delete):
        event.listen(InventoryMovementModel, "before_delete", _check_movement_delete)
    if not event.contains(Session, "do_orm_execute", _check_bulk_movement_statement):
        event.listen(Session, "do_orm_execute", _check_bulk_movement_statement)

    logger.info("immutability_listeners_registered", extra={"entities": ["InventoryMovement"]})


def _safe_remove_listener(target, event_name, listener_fn):
    """Remove an event listener, ignoring it if not registered."""
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove immutability enforcement event listeners.

    WARNING: Only use this in tests that must bypass the ORM layer to
    exercise the database triggers directly.
    """
    from inventory_modules.inventory.orm import InventoryMovementModel

    _safe_remove_listener(InventoryMovementModel, "before_update", _check_movement_update)
    _safe_remove_listener(InventoryMovementModel, "before_delete", _check_movement_delete)
    _safe_remove_listener(Session, "do_orm_execute", _check_bulk_movement_statement)
