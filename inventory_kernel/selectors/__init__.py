"""Selectors for the inventory kernel (read side)."""

from inventory_kernel.selectors.base import BaseSelector

__all__ = ["BaseSelector"]
