"""
Domain: Product stock records.

A Product is owned by the catalog; this package only reads it and changes its
quantity through stock deltas. Quantity must never go below zero.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional
from uuid import UUID

# Reorder level used by the catalog when a product has none set.
DEFAULT_REORDER_LEVEL: int = 10


@dataclass(frozen=True, slots=True)
class Product:
    """
    Snapshot of a product as fetched from the store.

    The quantity is the value known at fetch time and may be stale by the
    time a sale is committed.
    """

    product_id: UUID
    name: str
    sku: str
    quantity: int
    unit_price: Decimal
    reorder_level: Optional[int] = None
    category_name: Optional[str] = None

    def __post_init__(self) -> None:
        if self.quantity < 0:
            raise ValueError("quantity must be >= 0")
        if self.unit_price < 0:
            raise ValueError("unit_price must be >= 0")

    @property
    def effective_reorder_level(self) -> int:
        if self.reorder_level is None:
            return DEFAULT_REORDER_LEVEL
        return self.reorder_level

    @property
    def is_low_stock(self) -> bool:
        """True when stock has fallen to the reorder level or below."""

        return self.quantity <= self.effective_reorder_level

    @property
    def stock_value(self) -> Decimal:
        return self.unit_price * self.quantity


@dataclass(frozen=True, slots=True)
class ProductSummary:
    """Name and SKU of a product, embedded in sale item listings."""

    product_id: UUID
    name: str
    sku: str
