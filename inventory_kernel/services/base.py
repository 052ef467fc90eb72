"""
BaseService -- abstract base for tenant-scoped write services.

Responsibility:
    Provides the common constructor and transaction-boundary contract for
    every service that mutates inventory or purchase order state: tenant
    context, clock, authorization gate, and the retrying unit of work.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.
    StockLedgerService, PurchaseOrderService, and OrderLifecycleController
    extend this class.

Invariants enforced:
    - Transaction boundaries: with ``auto_commit=True`` each public call
      is one transaction, committed on success and rolled back on any
      exception.  With ``auto_commit=False`` the service only flushes and
      the caller owns commit/rollback, so several services can share one
      atomic transaction.
    - Authorization: the gate is consulted before any write.

Failure modes:
    - PermissionDeniedError from ``_authorize`` before any state change.
    - StorageFaultError once transient retries are exhausted.
"""

from abc import ABC
from collections.abc import Callable
from typing import TypeVar

from sqlalchemy.orm import Session

from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.domain.collaborators import (
    AllowAllGate,
    AuthorizationGate,
    OperationContext,
    require_permission,
)
from inventory_kernel.logging_config import LogContext
from inventory_kernel.services.retry_service import RetryPolicy, RetryService

T = TypeVar("T")


class BaseService(ABC):
    """
    Abstract base class for tenant-scoped write services.

    Guarantees:
        - ``self.session``, ``self.context`` and ``self.clock`` are set.
        - ``_unit_of_work`` binds tenant/actor into LogContext for the
          duration of the call.
    """

    def __init__(
        self,
        session: Session,
        context: OperationContext,
        clock: Clock | None = None,
        gate: AuthorizationGate | None = None,
        retry_policy: RetryPolicy | None = None,
        auto_commit: bool = True,
    ):
        self.session = session
        self.context = context
        self.clock = clock or SystemClock()
        self._gate = gate or AllowAllGate()
        self._auto_commit = auto_commit
        self._runner = RetryService(session, retry_policy)

    @property
    def tenant_id(self):
        return self.context.tenant_id

    def _authorize(self, resource: str, action: str) -> None:
        require_permission(self._gate, self.context, resource, action)

    def _unit_of_work(self, operation: str, work: Callable[[], T]) -> T:
        """Run ``work`` as one transaction, or as a flush inside the caller's."""
        with LogContext.bind(
            tenant_id=self.context.tenant_id,
            actor_id=self.context.actor_id,
        ):
            if not self._auto_commit:
                result = work()
                self.session.flush()
                return result
            return self._runner.run(operation, work)
