"""Services for the inventory kernel (write side)."""

from inventory_kernel.services.base import BaseService
from inventory_kernel.services.retry_service import (
    RetryPolicy,
    RetryService,
    is_transient_storage_error,
)
from inventory_kernel.services.sequence_service import SequenceCounter, SequenceService

__all__ = [
    "BaseService",
    "RetryPolicy",
    "RetryService",
    "SequenceCounter",
    "SequenceService",
    "is_transient_storage_error",
]
