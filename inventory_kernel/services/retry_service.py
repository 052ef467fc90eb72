"""
RetryService -- bounded retry for transient storage errors.

Responsibility:
    Runs one unit of work inside the session's transaction, commits it,
    and re-runs it from scratch after a rollback when the backend reports
    a transient failure (lock timeout, "database is locked", dropped
    connection, serialization failure).

Architecture position:
    Kernel > Services -- imperative shell.  Used by every module service
    that owns a transaction boundary.

Invariants enforced:
    - Only storage errors are retried.  Domain errors (validation,
      insufficient stock, invalid transition, conflicts) roll back and
      propagate unmodified on the first attempt.
    - An attempt that opens its own transaction marks the connection with
      ``WRITE_TRANSACTION_OPTION`` so SQLite takes the write lock at BEGIN.
    - Every failed attempt is rolled back before the next one starts, so
      a retry never builds on partial writes.
    - ``max_attempts`` bounds the work; exhausting it raises
      StorageFaultError chained to the last backend error.

Failure modes:
    - StorageFaultError: transient error persisted through every attempt.
    - Any other exception: rolled back and re-raised.

Usage:
    runner = RetryService(session, RetryPolicy(max_attempts=3))
    movement = runner.run("post_movement", lambda: ledger._apply(...))
"""

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar

from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.orm import Session

from inventory_kernel.db.engine import WRITE_TRANSACTION_OPTION
from inventory_kernel.exceptions import StorageFaultError
from inventory_kernel.logging_config import get_logger

logger = get_logger("services.retry")

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff schedule: base * 2^(attempt-1), capped at max_delay_seconds."""
    max_attempts: int = 3
    base_delay_seconds: float = 0.05
    max_delay_seconds: float = 1.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay_seconds < 0 or self.max_delay_seconds < 0:
            raise ValueError("retry delays must be non-negative")

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number ``attempt`` (1-based)."""
        return min(self.max_delay_seconds, self.base_delay_seconds * (2 ** (attempt - 1)))


def is_transient_storage_error(exc: BaseException) -> bool:
    """True for backend errors that may succeed when the transaction is re-run."""
    if isinstance(exc, OperationalError):
        return True
    if isinstance(exc, DBAPIError) and exc.connection_invalidated:
        return True
    return False


class RetryService:
    """
    Owns a transaction boundary and retries it on transient storage errors.

    Guarantees:
        - ``run`` commits exactly once on success.
        - On any exception (including KeyboardInterrupt and cancellation)
          the session is rolled back before the exception leaves ``run``.
    """

    def __init__(
        self,
        session: Session,
        policy: RetryPolicy | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._session = session
        self._policy = policy or RetryPolicy()
        self._sleep = sleep

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    def run(self, operation: str, work: Callable[[], T]) -> T:
        """Run ``work`` and commit, retrying the whole unit on transient errors."""
        attempt = 0
        while True:
            attempt += 1
            try:
                if not self._session.in_transaction():
                    self._session.connection(
                        execution_options={WRITE_TRANSACTION_OPTION: True},
                    )
                result = work()
                self._session.commit()
            except BaseException as exc:
                self._session.rollback()
                if not is_transient_storage_error(exc):
                    raise
                if attempt >= self._policy.max_attempts:
                    logger.error(
                        "storage_retry_exhausted",
                        extra={
                            "operation": operation,
                            "attempts": attempt,
                            "error": type(exc).__name__,
                        },
                    )
                    raise StorageFaultError(
                        operation, attempt, detail=str(getattr(exc, "orig", exc)),
                    ) from exc
                delay = self._policy.delay_for(attempt)
                logger.warning(
                    "storage_retry_scheduled",
                    extra={
                        "operation": operation,
                        "attempt": attempt,
                        "max_attempts": self._policy.max_attempts,
                        "delay_seconds": delay,
                        "error": type(exc).__name__,
                    },
                )
                self._sleep(delay)
                continue

            if attempt > 1:
                logger.info(
                    "storage_retry_succeeded",
                    extra={"operation": operation, "attempts": attempt},
                )
            return result
