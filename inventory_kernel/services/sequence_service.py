"""
SequenceService -- monotonic counter allocation via an atomic increment.

Responsibility:
    Hands out strictly increasing integers per named counter.  Order
    numbering uses one counter per tenant and calendar year
    (``purchase_order:<tenant>:<year>``).

Architecture position:
    Kernel > Services -- flush-only infrastructure.  Called by
    PurchaseOrderService inside the caller's transaction.

Invariants enforced:
    - Allocation is a single ``UPDATE ... SET current_value = current_value + 1``.
      The row write lock serializes concurrent allocators, so no two
      transactions can observe the same value.  Read-max-then-insert is
      used only to seed a counter on first use.
    - Transactional: the increment is only visible after the caller's
      transaction commits.  Rollback returns the value.

Failure modes:
    - IntegrityError: two transactions create the same counter row at once
      (handled via savepoint rollback and retry of the increment).
"""

from collections.abc import Callable

from sqlalchemy import String, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Mapped, Session, mapped_column

from inventory_kernel.db.base import Base
from inventory_kernel.logging_config import get_logger

logger = get_logger("services.sequence")


class SequenceCounter(Base):
    """
    Sequence counter table.

    Each row represents a named counter with its last allocated value.
    """

    __tablename__ = "sequence_counters"

    name: Mapped[str] = mapped_column(
        String(120),
        nullable=False,
        unique=True,
    )

    current_value: Mapped[int] = mapped_column(
        nullable=False,
        default=0,
    )


class SequenceService:
    """
    Service for generating transactional counter values.

    Guarantees:
        - Strictly monotonic values per counter name.
        - Never calls ``session.commit()`` -- caller controls boundaries.

    Usage:
        seq = SequenceService(session)
        value = seq.next_value("purchase_order:<tenant>:2024", seed=lambda: 17)
    """

    def __init__(self, session: Session):
        self._session = session

    def _increment(self, sequence_name: str) -> int | None:
        result = self._session.execute(
            update(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
            .values(current_value=SequenceCounter.current_value + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            return None
        return self._read(sequence_name)

    def _read(self, sequence_name: str) -> int | None:
        return self._session.execute(
            select(SequenceCounter.current_value)
            .where(SequenceCounter.name == sequence_name)
        ).scalar_one_or_none()

    def _create(self, sequence_name: str, value: int) -> bool:
        """Insert the counter row inside a savepoint; False if another writer won."""
        savepoint = self._session.begin_nested()
        try:
            self._session.add(SequenceCounter(name=sequence_name, current_value=value))
            self._session.flush()
            savepoint.commit()
            return True
        except IntegrityError:
            logger.debug(
                "sequence_counter_race_retry",
                extra={"sequence_name": sequence_name},
            )
            savepoint.rollback()
            return False

    def next_value(
        self,
        sequence_name: str,
        seed: Callable[[], int] | None = None,
    ) -> int:
        """
        Allocate the next value for a named counter.

        Args:
            sequence_name: Name of the counter.
            seed: Called once when the counter does not exist yet; returns
                the highest value already in use (default 0).

        Returns:
            The next value (always > 0).
        """
        value = self._increment(sequence_name)
        if value is None:
            start = (seed() if seed is not None else 0) + 1
            if self._create(sequence_name, start):
                value = start
            else:
                value = self._increment(sequence_name)
                if value is None:
                    raise RuntimeError(f"Sequence counter vanished: {sequence_name}")

        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": value},
        )
        return value

    def advance_to(self, sequence_name: str, floor: int) -> int:
        """
        Move a counter forward so the next allocation is above ``floor``.

        Never moves a counter backwards.  Returns the counter's value afterwards.
        """
        self._session.execute(
            update(SequenceCounter)
            .where(
                SequenceCounter.name == sequence_name,
                SequenceCounter.current_value < floor,
            )
            .values(current_value=floor)
            .execution_options(synchronize_session=False)
        )
        current = self._read(sequence_name)
        if current is None:
            if not self._create(sequence_name, floor):
                return self.advance_to(sequence_name, floor)
            current = floor

        logger.info(
            "sequence_advanced",
            extra={"sequence_name": sequence_name, "floor": floor, "value": current},
        )
        return current

    def current_value(self, sequence_name: str) -> int | None:
        """Current value of a counter without incrementing, or None."""
        return self._read(sequence_name)

    def reset(self, sequence_name: str, value: int = 0) -> None:
        """
        Reset a counter to a specific value.

        WARNING: Only for tests or migration scripts.
        """
        result = self._session.execute(
            update(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
            .values(current_value=value)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            self._create(sequence_name, value)
        logger.warning(
            "sequence_reset",
            extra={"sequence_name": sequence_name, "value": value},
        )
