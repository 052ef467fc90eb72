"""Contracts for the collaborators this core consumes but does not own.

The authorization gate and the supplier registry live outside the
subsystem.  Services depend only on the Protocols below; the small
concrete classes cover local development and tests.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable
from uuid import UUID

from inventory_kernel.exceptions import PermissionDeniedError
from inventory_kernel.logging_config import get_logger

logger = get_logger("domain.collaborators")


@dataclass(frozen=True)
class OperationContext:
    """Who is calling, on behalf of which tenant.

    Every service is constructed with one; every query it runs is filtered
    by ``tenant_id``.
    """
    tenant_id: UUID
    actor_id: UUID
    role: str = "admin"


@dataclass(frozen=True)
class SupplierRecord:
    """Read-only supplier snapshot from the supplier registry."""
    id: UUID
    name: str
    is_active: bool


@runtime_checkable
class SupplierRegistry(Protocol):
    """Lookup of supplier master data."""

    def get_supplier(self, tenant_id: UUID, supplier_id: UUID) -> SupplierRecord | None:
        """Return the supplier, or None if the tenant has no such supplier."""
        ...


@runtime_checkable
class AuthorizationGate(Protocol):
    """Capability check consulted before every mutating operation."""

    def is_allowed(self, role: str, resource: str, action: str) -> bool:
        ...


class AllowAllGate:
    """Gate for deployments where the check already ran upstream."""

    def is_allowed(self, role: str, resource: str, action: str) -> bool:
        return True


class StaticSupplierRegistry:
    """In-memory supplier registry keyed by (tenant_id, supplier_id)."""

    def __init__(self) -> None:
        self._suppliers: dict[tuple[UUID, UUID], SupplierRecord] = {}

    def register(self, tenant_id: UUID, supplier: SupplierRecord) -> SupplierRecord:
        self._suppliers[(tenant_id, supplier.id)] = supplier
        return supplier

    def get_supplier(self, tenant_id: UUID, supplier_id: UUID) -> SupplierRecord | None:
        return self._suppliers.get((tenant_id, supplier_id))


def require_permission(
    gate: AuthorizationGate,
    context: OperationContext,
    resource: str,
    action: str,
) -> None:
    """Raise PermissionDeniedError unless the gate allows the action."""
    if gate.is_allowed(context.role, resource, action):
        return
    logger.warning(
        "permission_denied",
        extra={"role": context.role, "resource": resource, "action": action},
    )
    raise PermissionDeniedError(context.role, resource, action)
