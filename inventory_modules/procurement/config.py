"""
Procurement Configuration Schema.

Defines the structure and sensible defaults for purchase order settings.
Actual values are loaded from ``inventory_config`` at runtime.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Self

from inventory_kernel.db.types import to_decimal
from inventory_kernel.logging_config import get_logger

logger = get_logger("modules.procurement.config")


@dataclass(frozen=True)
class ProcurementConfig:
    """
    Configuration schema for the procurement module.

    Override at instantiation with deployment-specific values:

        config = ProcurementConfig(tax_rate=Decimal("0.08"), max_page_size=100)
    """

    # Totals
    tax_rate: Decimal = Decimal("0.16")

    # Order numbering: {prefix}-{year}-{sequence zero-padded to width}
    order_number_prefix: str = "PO"
    order_number_width: int = 4

    # Listing
    default_page_size: int = 50
    max_page_size: int = 200

    def __post_init__(self):
        if not isinstance(self.tax_rate, Decimal):
            object.__setattr__(self, "tax_rate", to_decimal(self.tax_rate))
        if self.tax_rate < 0:
            raise ValueError("tax_rate cannot be negative")
        if not self.order_number_prefix or "-" in self.order_number_prefix:
            raise ValueError("order_number_prefix must be non-empty and contain no '-'")
        if self.order_number_width < 1:
            raise ValueError("order_number_width must be at least 1")
        if self.default_page_size < 1 or self.max_page_size < self.default_page_size:
            raise ValueError("page sizes must satisfy 1 <= default_page_size <= max_page_size")
        logger.info(
            "procurement_config_initialized",
            extra={
                "tax_rate": str(self.tax_rate),
                "order_number_prefix": self.order_number_prefix,
                "order_number_width": self.order_number_width,
                "default_page_size": self.default_page_size,
                "max_page_size": self.max_page_size,
            },
        )

    @classmethod
    def with_defaults(cls) -> Self:
        """Create config with the standard defaults."""
        logger.info("procurement_config_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        """Create config from a dictionary (e.g., a YAML section)."""
        logger.info(
            "procurement_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        data = dict(data)
        if "tax_rate" in data:
            data["tax_rate"] = to_decimal(data["tax_rate"])
        return cls(**data)
