"""
Inventory Kernel

Shared core for the inventory-and-procurement subsystem:
- Append-only stock movements with atomic per-item application
- Tenant-scoped order numbering via counter rows
- Typed exceptions and structured JSON logging
- Transaction boundaries with bounded retry for transient storage errors
"""

__version__ = "0.1.0"
